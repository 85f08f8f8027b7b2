"""
Orchestrator
============
The request pipeline behind POST /anthropic and POST /chat.

  anthropic_proxy:
    validate body → guardrails → upstream LLM → post-process → response

  post_process_response:
    If the LLM's answer says (in so many words) that it lacks the data and the
    user's message maps to catalog tools, run the first tool that succeeds
    and replace the answer with its formatted result.

  handle_chat_message:
    No LLM at all: classify the message, run the first detected tool, return
    its formatted text (or a clarification prompt).

Every response that goes through post-processing carries a `_guardrails`
metadata object. Post-processing never fails a request: on any internal
error the original answer is returned with `_guardrails.error` set.
"""
import copy
import logging
import uuid
from datetime import datetime, timezone

from .config import Settings, get_settings
from .datasources import build_sample_sources
from .errors import InternalError, PolicyRejection, ValidationError
from .formatter import format_tool_result
from .guardrails import GuardrailEngine, extract_text_content
from .intent import IntentClassifier
from .tools import ToolDispatcher
from .upstream import AnthropicClient

logger = logging.getLogger(__name__)

ALLOWED_MODELS = frozenset({
    "claude-3-haiku-20240307",
    "claude-3-sonnet-20240229",
    "claude-3-opus-20240229",
    "claude-3-5-haiku-20241022",
    "claude-3-5-sonnet-20240620",
    "claude-3-5-sonnet-20241022",
    "claude-3-7-sonnet-20250219",
    "claude-sonnet-4-20250514",
    "claude-opus-4-20250514",
})

REJECTION_SUGGESTIONS = [
    "Consultá por productos disponibles y sus precios",
    "Buscá información de clientes por nombre o email",
    "Revisá el estado de los pedidos",
]

CLARIFICATION_RESPONSE = (
    "No estoy seguro de qué información necesitás. Podés preguntarme por "
    "productos (por ejemplo: \"¿Tenés pizza disponible?\"), clientes o pedidos."
)

# Answers shorter than this count as "insufficient" when they contain a weak phrase.
SHORT_ANSWER_THRESHOLD = 300

STRONG_INSUFFICIENCY_PHRASES = (
    "no tengo acceso", "no puedo acceder", "no puedo mostrar", "no puedo mostrarte",
    "no puedo proporcionar", "no puedo proporcionarte", "no puedo consultar",
    "no tengo información", "no dispongo de", "no cuento con",
    "i don't have access", "i do not have access", "i cannot access", "i can't access",
    "i cannot show", "i can't show", "i cannot provide", "i can't provide",
    "i don't have information", "unable to access",
)

WEAK_INSUFFICIENCY_PHRASES = (
    "no sé", "no se cuál", "no estoy seguro", "no tengo datos", "no tengo los datos",
    "necesitaría", "te recomiendo consultar", "podrías verificar", "desconozco",
    "i'm not sure", "i am not sure", "i don't know", "i would need", "please check",
)


def needs_tool_data(answer: str) -> bool:
    text = (answer or "").lower()
    if any(phrase in text for phrase in STRONG_INSUFFICIENCY_PHRASES):
        return True
    return len(answer or "") < SHORT_ANSWER_THRESHOLD and any(
        phrase in text for phrase in WEAK_INSUFFICIENCY_PHRASES
    )


def resolve_session_id(header: str | None, client_host: str | None) -> str:
    """X-Session-Id header → caller address → generated id."""
    if header and header.strip():
        return header.strip()
    if client_host:
        return client_host
    return f"session-{uuid.uuid4().hex}"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _last_user_message(messages: list) -> str:
    for message in reversed(messages or []):
        if isinstance(message, dict) and message.get("role") == "user":
            return extract_text_content(message.get("content"))
    return ""


def _answer_text(response: dict) -> str:
    return extract_text_content(response.get("content"))


class Orchestrator:
    """
    Usage:
        gateway = build_gateway()
        answer  = await gateway.anthropic_proxy(body, session_id="abc")
        reply   = await gateway.handle_chat_message("¿Tenés pizza disponible?")
    """

    def __init__(
        self,
        guardrails: GuardrailEngine,
        dispatcher: ToolDispatcher,
        llm: AnthropicClient,
        classifier: IntentClassifier | None = None,
    ):
        self.guardrails = guardrails
        self.dispatcher = dispatcher
        self.llm        = llm
        self.classifier = classifier or IntentClassifier()

    # ── POST /anthropic ─────────────────────────────────────────────────────

    async def anthropic_proxy(self, body: dict, session_id: str) -> dict:
        if not isinstance(body, dict) or not body.get("model") or not body.get("messages"):
            raise ValidationError("Model and messages are required")
        model = body["model"]
        if model not in ALLOWED_MODELS:
            raise ValidationError(f"Modelo no soportado: {model}")
        max_tokens = body.get("max_tokens")
        if max_tokens is not None and (isinstance(max_tokens, bool) or not isinstance(max_tokens, int)):
            raise ValidationError("max_tokens debe ser un entero")
        if not self.llm.configured:
            raise InternalError("Anthropic API key not configured")

        result = await self.guardrails.validate_and_process_request(body, session_id)
        if not result.allowed:
            raise PolicyRejection(result.reason, result.suggested_response, list(REJECTION_SUGGESTIONS))

        upstream_body = result.modified_request or body
        logger.info("[orchestrator] Forwarding request for session %s to %s", session_id, model)
        response = await self.llm.create_message(upstream_body)

        processed = await self.post_process_response(response, body["messages"], session_id)
        if result.warnings:
            processed.setdefault("_guardrails", {})["warnings"] = list(result.warnings)
        return processed

    # ── Post-processing ─────────────────────────────────────────────────────

    async def post_process_response(self, response: dict, messages: list, session_id: str) -> dict:
        try:
            return await self._post_process(response, messages, session_id)
        except Exception as e:
            logger.error("[orchestrator] Post-processing failed: %s", e, exc_info=True)
            fallback = copy.deepcopy(response)
            fallback["_guardrails"] = {
                "sessionId": session_id,
                "processed": False,
                "timestamp": _now_iso(),
                "error":     "post_processing_failed",
            }
            return fallback

    async def _post_process(self, response: dict, messages: list, session_id: str) -> dict:
        user_message = _last_user_message(messages)
        intents = self.classifier.classify(user_message)
        detected = [intent.tool_name for intent in intents]
        result = copy.deepcopy(response)

        if intents and needs_tool_data(_answer_text(response)):
            logger.info("[orchestrator] Answer lacks data, trying tools: %s", detected)
            for intent in intents:
                try:
                    tool_result = await self.dispatcher.call_tool(intent.tool_name, intent.parameters)
                except Exception as e:
                    logger.warning("[orchestrator] Tool %s failed during post-processing: %s", intent.tool_name, e)
                    continue
                result["content"] = [
                    {"type": "text", "text": format_tool_result(intent.tool_name, tool_result)}
                ]
                result["_guardrails"] = {
                    "sessionId":          session_id,
                    "processed":          True,
                    "timestamp":          _now_iso(),
                    "toolsUsed":          [intent.tool_name],
                    "automaticExecution": True,
                }
                return result

        result["_guardrails"] = {
            "sessionId":          session_id,
            "processed":          True,
            "timestamp":          _now_iso(),
            "toolsDetected":      detected,
            "automaticExecution": False,
        }
        return result

    # ── POST /chat ──────────────────────────────────────────────────────────

    async def handle_chat_message(self, message: str) -> dict:
        if not isinstance(message, str) or not message.strip():
            raise ValidationError("Message is required")

        intents = self.classifier.classify(message)
        if not intents:
            return {"response": CLARIFICATION_RESPONSE, "tool_used": None, "parameters": {}}

        intent = intents[0]
        logger.info("[orchestrator] Chat message routed to %s %s", intent.tool_name, intent.parameters)
        tool_result = await self.dispatcher.call_tool(intent.tool_name, intent.parameters)
        return {
            "response":   format_tool_result(intent.tool_name, tool_result),
            "tool_used":  intent.tool_name,
            "parameters": intent.parameters,
        }

    async def aclose(self) -> None:
        await self.llm.aclose()


def build_gateway(settings: Settings | None = None) -> Orchestrator:
    """Wire the default gateway: policy from env, in-memory sources, httpx upstream."""
    settings = settings or get_settings()
    customers, products, orders = build_sample_sources()
    return Orchestrator(
        guardrails=GuardrailEngine(settings.policy),
        dispatcher=ToolDispatcher(customers, products, orders),
        llm=AnthropicClient(
            api_key=settings.anthropic_api_key,
            base_url=settings.anthropic_base_url,
            version=settings.anthropic_version,
            timeout=settings.upstream_timeout_seconds,
        ),
        classifier=IntentClassifier(),
    )
