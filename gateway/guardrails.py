"""
Guardrail Engine
================
Runs before every upstream LLM call and enforces the usage policy:

  1. Session    — message-count and session-age limits (ledger-backed)
  2. Content    — blocked keywords (absolute precedence), business-topic detection
  3. Tools      — tools present/required, every tool name on the allow-list
  4. Prompt     — inject the system prompt, clamp max_tokens
  5. Update     — bump the session counters

Each step can short-circuit with a stable `reason` code plus the canned
response from the policy store. The engine is deterministic: no model call
sits on this path.

The engine is the only component that mutates the session ledger; the whole
check → update sequence for a session runs under that session's lock.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .config import PolicyConfig
from .ledger import SessionLedger

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 1024

# Reason codes. Clients switch on these.
SESSION_MESSAGE_LIMIT = "session_message_limit"
SESSION_TIME_LIMIT    = "session_time_limit"
BLOCKED_CONTENT       = "blocked_content"
NO_BUSINESS_CONTENT   = "no_business_content"
TOOLS_REQUIRED        = "tools_required"
UNAUTHORIZED_TOOL     = "unauthorized_tool"

NO_BUSINESS_WARNING = "No business-related content detected"


@dataclass
class GuardrailResult:
    allowed: bool
    reason: str | None = None
    suggested_response: str | None = None
    modified_request: dict | None = None
    warnings: list[str] = field(default_factory=list)


def extract_text_content(content) -> str:
    """
    Reduce a Messages-API `content` field to plain text.

    A string passes through; a list of blocks becomes the space-joined text
    of its `type == "text"` items; anything else is empty.
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return " ".join(
            item.get("text") or ""
            for item in content
            if isinstance(item, dict) and item.get("type") == "text"
        )
    return ""


def classify_query(messages: list) -> str:
    """Coarse label for the last message, used only in log lines."""
    if not messages:
        return "unknown"
    last = messages[-1]
    content = last.get("content") if isinstance(last, dict) else None
    if not isinstance(content, str):
        return "unknown"

    text = content.lower()
    if any(w in text for w in ("busca", "search", "encuentra")):
        return "search_query"
    if any(w in text for w in ("producto", "lomito", "empanada")):
        return "product_query"
    if any(w in text for w in ("cliente", "customer")):
        return "customer_query"
    if any(w in text for w in ("pedido", "order")):
        return "order_query"
    if any(w in text for w in ("precio", "price", "costo")):
        return "pricing_query"
    return "general_ecommerce"


class GuardrailEngine:
    """
    Validates and rewrites outbound LLM requests against a PolicyConfig.

    Usage:
        engine = GuardrailEngine(policy)
        result = await engine.validate_and_process_request(body, session_id)
        if not result.allowed:
            ...  # return result.reason / result.suggested_response to the client
        upstream_body = result.modified_request
    """

    def __init__(self, policy: PolicyConfig, ledger: SessionLedger | None = None):
        self._policy = policy
        self._ledger = ledger or SessionLedger()
        self._reset_counters()

    @property
    def policy(self) -> PolicyConfig:
        return self._policy

    @property
    def ledger(self) -> SessionLedger:
        return self._ledger

    # ── Main entry point ────────────────────────────────────────────────────

    async def validate_and_process_request(
        self, request: dict, session_id: str = "default"
    ) -> GuardrailResult:
        self._total_requests += 1

        if not self._policy.enabled:
            self._allowed_requests += 1
            self._log_request(session_id, "allowed", "guardrails_disabled", request)
            return GuardrailResult(allowed=True)

        logger.info("[guardrails] Validating request for session: %s", session_id)

        async with self._ledger.lock(session_id):
            session_check, created = self._check_session(session_id)
            if not session_check.allowed:
                return self._blocked(session_id, session_check, request)

            content_check = self._check_content(request.get("messages") or [])
            if not content_check.allowed:
                return self._blocked(session_id, content_check, request)

            tools_check = self._check_tools(request.get("tools"))
            if not tools_check.allowed:
                return self._blocked(session_id, tools_check, request)

            modified = self._apply_system_prompt(request)
            self._update_session(session_id, increment=not created)

        self._allowed_requests += 1
        self._log_request(session_id, "allowed", "valid_ecommerce_query", request)
        return GuardrailResult(
            allowed=True,
            modified_request=modified,
            warnings=content_check.warnings,
        )

    # ── Individual checks ───────────────────────────────────────────────────

    def _check_session(self, session_id: str) -> tuple[GuardrailResult, bool]:
        """Returns (result, created). A brand-new session always passes."""
        record = self._ledger.get(session_id)
        if record is None:
            self._ledger.create(session_id)
            return GuardrailResult(allowed=True), True

        limits = self._policy.limits
        if record.message_count >= limits.max_messages_per_session:
            logger.warning("[guardrails] Session %s exceeded message limit", session_id)
            return self._reject(SESSION_MESSAGE_LIMIT, self._policy.responses.limit), False

        if self._ledger.age_minutes(record) > limits.max_session_duration_minutes:
            logger.warning("[guardrails] Session %s exceeded time limit", session_id)
            self._ledger.delete(session_id)
            return self._reject(SESSION_TIME_LIMIT, self._policy.responses.limit), False

        return GuardrailResult(allowed=True), False

    def _check_content(self, messages: list) -> GuardrailResult:
        limits = self._policy.limits
        blocked = [k.lower() for k in limits.blocked_keywords]
        topics  = [t.lower() for t in limits.allowed_topics]

        has_business_content = False
        blocked_hits: list[str] = []

        for message in messages:
            if not isinstance(message, dict) or message.get("role") != "user":
                continue
            text = extract_text_content(message.get("content")).lower()
            blocked_hits.extend(k for k in blocked if k in text)
            if any(t in text for t in topics):
                has_business_content = True

        if blocked_hits:
            logger.warning("[guardrails] Blocked keywords detected: %s", ", ".join(blocked_hits))
            return self._reject(BLOCKED_CONTENT, self._policy.responses.blocked)

        warnings: list[str] = []
        if self._policy.strict_mode and not has_business_content:
            if limits.required_tools:
                return self._reject(NO_BUSINESS_CONTENT, self._policy.responses.out_of_scope)
            warnings.append(NO_BUSINESS_WARNING)

        return GuardrailResult(allowed=True, warnings=warnings)

    def _check_tools(self, tools) -> GuardrailResult:
        if not tools:
            if self._policy.limits.required_tools:
                logger.warning("[guardrails] No tools provided but tools are required")
                return self._reject(TOOLS_REQUIRED, self._policy.responses.tool_required)
            return GuardrailResult(allowed=True)

        allowed = self._policy.allowed_tools
        for tool in tools:
            name = tool.get("name") if isinstance(tool, dict) else None
            if name not in allowed:
                logger.warning("[guardrails] Unauthorized tool requested: %s", name)
                return self._reject(
                    UNAUTHORIZED_TOOL,
                    f'La herramienta "{name}" no está autorizada. '
                    f"Herramientas disponibles: {', '.join(sorted(allowed))}",
                )

        return GuardrailResult(allowed=True)

    def _apply_system_prompt(self, request: dict) -> dict:
        requested = request.get("max_tokens")
        if requested is None:
            requested = DEFAULT_MAX_TOKENS
        return {
            **request,
            "system":     "\n\n".join(self._policy.system_prompt_parts),
            "max_tokens": min(requested, self._policy.limits.max_tokens),
        }

    def _update_session(self, session_id: str, increment: bool) -> None:
        record = self._ledger.get(session_id)
        if record is None:
            return
        if increment:
            record.message_count += 1
        record.last_activity = self._ledger.now()

    # ── Helpers ─────────────────────────────────────────────────────────────

    @staticmethod
    def _reject(reason: str, response: str) -> GuardrailResult:
        return GuardrailResult(allowed=False, reason=reason, suggested_response=response)

    def _blocked(self, session_id: str, result: GuardrailResult, request: dict) -> GuardrailResult:
        self._blocked_requests += 1
        self._block_reasons[result.reason] = self._block_reasons.get(result.reason, 0) + 1
        self._log_request(session_id, "blocked", result.reason, request)
        return result

    def _log_request(self, session_id: str, action: str, reason: str, request: dict) -> None:
        tools = request.get("tools") or []
        details = {
            "session_id":    session_id,
            "action":        action,
            "reason":        reason,
            "model":         request.get("model"),
            "message_count": len(request.get("messages") or []),
            "tools":         [t.get("name") for t in tools if isinstance(t, dict)],
            "query_type":    classify_query(request.get("messages") or []),
        }
        if action == "allowed":
            logger.info("[guardrails] Request processed: %s", reason, extra={"guardrails": details})
        else:
            logger.warning("[guardrails] Request blocked: %s", reason, extra={"guardrails": details})

    def _reset_counters(self) -> None:
        self._total_requests   = 0
        self._allowed_requests = 0
        self._blocked_requests = 0
        self._block_reasons: dict[str, int] = {}
        self._stats_started = self._ledger.now()

    # ── Management operations ───────────────────────────────────────────────

    async def clean_expired_sessions(self) -> int:
        removed = await self._ledger.sweep(self._policy.limits.max_session_duration_minutes)
        for session_id in removed:
            logger.info("[guardrails] Cleaned expired session: %s", session_id)
        return len(removed)

    async def reset_session(self, session_id: str) -> bool:
        async with self._ledger.lock(session_id):
            existed = self._ledger.delete(session_id)
        logger.info("[guardrails] Session reset: %s", session_id)
        return existed

    def get_session_stats(self) -> dict:
        now = self._ledger.now()
        sessions = [
            {
                "id":               session_id,
                "message_count":    record.message_count,
                "duration_minutes": self._ledger.age_minutes(record, now),
                "last_activity":    datetime.fromtimestamp(record.last_activity, tz=timezone.utc).isoformat(),
            }
            for session_id, record in self._ledger.items()
        ]
        return {"active_sessions": len(sessions), "sessions": sessions}

    def get_detailed_stats(self) -> dict:
        total = self._total_requests
        rate  = f"{self._allowed_requests / total * 100:.2f}%" if total else "0%"
        top = sorted(self._ledger.items(), key=lambda kv: kv[1].message_count, reverse=True)[:10]
        return {
            "active_sessions":  len(self._ledger),
            "total_requests":   total,
            "allowed_requests": self._allowed_requests,
            "blocked_requests": self._blocked_requests,
            "block_reasons":    dict(self._block_reasons),
            "allowed_rate":     rate,
            "uptime_minutes":   round((self._ledger.now() - self._stats_started) / 60.0, 1),
            "top_sessions":     [{"id": sid, "message_count": rec.message_count} for sid, rec in top],
        }

    def reset_stats(self) -> None:
        self._reset_counters()
        logger.info("[guardrails] Statistics reset")

    def get_config(self) -> PolicyConfig:
        return self._policy
