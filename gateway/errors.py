"""
Gateway Errors
==============
One small exception hierarchy shared by every layer of the gateway.

  ValidationError  → bad tool-call payload, bad arguments, unknown tool/model (400)
  PolicyRejection  → a guardrail short-circuited the request (400, never sent upstream)
  UpstreamError    → the LLM provider failed; its status code and message are relayed
  InternalError    → anything else, wrapped with a module-tagged message (500)

The HTTP layer renders any GatewayError with a single exception handler, so
handlers and services only ever raise — they never build error responses.
"""


class GatewayError(Exception):
    """Base class. Carries the HTTP status the API layer should answer with."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict:
        return {"error": self.message}


class ValidationError(GatewayError):
    status_code = 400


class InternalError(GatewayError):
    status_code = 500


class PolicyRejection(GatewayError):
    """
    Raised when the guardrail engine rejects a request.

    `reason` is a stable machine-readable code (e.g. "blocked_content");
    `message` is the canned, client-facing text from the policy store.
    """

    status_code = 400

    def __init__(self, reason: str, message: str, suggestions: list[str] | None = None):
        super().__init__(message)
        self.reason = reason
        self.suggestions = suggestions or []

    def to_payload(self) -> dict:
        return {
            "error":       "Request blocked by usage policy",
            "reason":      self.reason,
            "message":     self.message,
            "suggestions": self.suggestions,
        }


class UpstreamError(GatewayError):
    """The upstream LLM provider answered with an error, timed out, or was unreachable."""

    def __init__(self, status_code: int, message: str, details: dict | None = None):
        super().__init__(message, status_code=status_code)
        self.details = details

    def to_payload(self) -> dict:
        payload = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload
