"""
Upstream LLM Client
===================
Thin async client for the Anthropic Messages API over httpx.

  POST <base_url>/v1/messages
    content-type:      application/json
    x-api-key:         <api key>
    anthropic-version: <version>

Failures surface as UpstreamError so the HTTP layer can relay them:
  non-2xx       → provider status + provider message (+ raw error body as details)
  timeout       → 504
  network error → 502

Calls are not retried.
"""
import logging

import httpx

from .config import DEFAULT_ANTHROPIC_BASE_URL, DEFAULT_ANTHROPIC_VERSION
from .errors import UpstreamError

logger = logging.getLogger(__name__)


class AnthropicClient:
    def __init__(
        self,
        api_key: str | None,
        base_url: str = DEFAULT_ANTHROPIC_BASE_URL,
        version: str = DEFAULT_ANTHROPIC_VERSION,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key  = api_key
        self.base_url = base_url.rstrip("/")
        self.version  = version
        self.timeout  = timeout
        self._client  = client or httpx.AsyncClient(timeout=timeout)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def create_message(self, body: dict) -> dict:
        headers = {
            "content-type":      "application/json",
            "x-api-key":         self.api_key or "",
            "anthropic-version": self.version,
        }
        url = f"{self.base_url}/v1/messages"
        logger.info("[upstream] POST %s model=%s", url, body.get("model"))

        try:
            response = await self._client.post(url, headers=headers, json=body, timeout=self.timeout)
        except httpx.TimeoutException as e:
            logger.error("[upstream] Request timed out after %.1fs", self.timeout)
            raise UpstreamError(504, "Upstream request timed out") from e
        except httpx.HTTPError as e:
            logger.error("[upstream] Transport error: %s", e)
            raise UpstreamError(502, f"Upstream request failed: {e}") from e

        if response.is_success:
            return response.json()

        try:
            details = response.json()
        except ValueError:
            details = {"raw": response.text}
        error = details.get("error") if isinstance(details, dict) else None
        message = (
            error.get("message") if isinstance(error, dict) and error.get("message")
            else f"Anthropic API error: {response.status_code}"
        )
        logger.warning("[upstream] Anthropic API error %d: %s", response.status_code, message)
        raise UpstreamError(response.status_code, message, details)

    async def aclose(self) -> None:
        await self._client.aclose()
