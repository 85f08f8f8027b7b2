"""
Configuration
=============
Two read-only configuration objects, both built once at start-up:

  PolicyConfig  — the guardrail policy store (prompts, content rules, limits,
                  allowed tools, canned responses). DEFAULT_POLICY holds the
                  production values; load_policy() applies env overrides.
  Settings      — process settings (upstream credentials, timeouts, sweep
                  interval, log level) read from environment variables.

Everything here is a frozen dataclass. Overrides go through
dataclasses.replace(), so DEFAULT_POLICY itself is never mutated.
"""
import logging
import os
from dataclasses import asdict, dataclass, field, replace
from typing import Literal

from .prompts import SYSTEM_PROMPT_PARTS

Severity = Literal["warning", "error", "block"]


@dataclass(frozen=True)
class ContentRule:
    name: str
    description: str
    enabled: bool
    severity: Severity


@dataclass(frozen=True)
class PolicyLimits:
    max_tokens: int = 1024
    max_messages_per_session: int = 50
    max_session_duration_minutes: int = 30
    allowed_topics: frozenset[str] = frozenset()
    blocked_keywords: frozenset[str] = frozenset()
    # When True, requests must carry tools and (in strict mode) business content.
    required_tools: bool = False


@dataclass(frozen=True)
class GuardrailResponses:
    out_of_scope: str
    tool_required: str
    blocked: str
    limit: str


@dataclass(frozen=True)
class PolicyConfig:
    enabled: bool
    strict_mode: bool
    system_prompt_parts: tuple[str, ...]
    content_rules: tuple[ContentRule, ...]
    limits: PolicyLimits
    allowed_tools: frozenset[str]
    responses: GuardrailResponses


# ── Default policy ──────────────────────────────────────────────────────────

DEFAULT_POLICY = PolicyConfig(
    enabled=True,
    # Non-strict so general e-commerce questions without a topic keyword pass.
    strict_mode=False,
    system_prompt_parts=SYSTEM_PROMPT_PARTS,
    content_rules=(
        ContentRule("business_only", "Solo temas relacionados con el e-commerce", True, "block"),
        ContentRule("tool_required", "Sugiere uso de herramientas cuando sea útil", False, "warning"),
        ContentRule("no_personal_data", "No solicitar datos personales sensibles", True, "block"),
        ContentRule("professional_tone", "Mantener tono profesional y empresarial", True, "warning"),
    ),
    limits=PolicyLimits(
        max_tokens=1024,
        max_messages_per_session=50,
        max_session_duration_minutes=30,
        allowed_topics=frozenset({
            "productos", "clientes", "pedidos", "ventas", "inventario", "categorías",
            "precios", "stock", "búsqueda", "filtros", "reportes", "estadísticas",
        }),
        blocked_keywords=frozenset({
            "política", "religión", "noticias", "entretenimiento", "deportes",
            "celebridades", "guerra", "violencia", "drogas", "personal", "privado",
            "secreto",
        }),
        required_tools=False,
    ),
    allowed_tools=frozenset({
        "get_products", "get_customers", "get_orders",
        "get_product_by_id", "search_products", "search_customers",
    }),
    responses=GuardrailResponses(
        out_of_scope=(
            "Lo siento, solo puedo ayudarte con consultas relacionadas con nuestro "
            "e-commerce: productos, clientes, pedidos y operaciones del negocio. "
            "¿Hay algo específico sobre nuestros productos o servicios que te "
            "gustaría consultar?"
        ),
        tool_required=(
            "Para responder tu consulta necesito usar nuestras herramientas de datos "
            "del negocio. ¿Podrías reformular tu pregunta para que pueda buscar "
            "información específica sobre productos, clientes o pedidos?"
        ),
        blocked=(
            "No puedo ayudarte con ese tema. Mi función es asistir exclusivamente con "
            "consultas del e-commerce. ¿Te gustaría saber algo sobre nuestros "
            "productos o servicios?"
        ),
        limit=(
            "Has alcanzado el límite de consultas para esta sesión. Por favor, inicia "
            "una nueva conversación si necesitas más ayuda."
        ),
    ),
)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def load_policy(base: PolicyConfig = DEFAULT_POLICY) -> PolicyConfig:
    """
    Return `base` with environment overrides applied.

    Recognised variables:
      GUARDRAILS_ENABLED, GUARDRAILS_STRICT_MODE, GUARDRAILS_REQUIRED_TOOLS,
      GUARDRAILS_MAX_TOKENS, GUARDRAILS_MAX_MESSAGES, GUARDRAILS_MAX_SESSION_MINUTES
    """
    limits = replace(
        base.limits,
        max_tokens=_env_int("GUARDRAILS_MAX_TOKENS", base.limits.max_tokens),
        max_messages_per_session=_env_int(
            "GUARDRAILS_MAX_MESSAGES", base.limits.max_messages_per_session
        ),
        max_session_duration_minutes=_env_int(
            "GUARDRAILS_MAX_SESSION_MINUTES", base.limits.max_session_duration_minutes
        ),
        required_tools=_env_bool("GUARDRAILS_REQUIRED_TOOLS", base.limits.required_tools),
    )
    return replace(
        base,
        enabled=_env_bool("GUARDRAILS_ENABLED", base.enabled),
        strict_mode=_env_bool("GUARDRAILS_STRICT_MODE", base.strict_mode),
        limits=limits,
    )


def policy_to_dict(policy: PolicyConfig) -> dict:
    """JSON-safe snapshot of a policy: sets become sorted lists, tuples become lists."""
    data = asdict(policy)
    data["system_prompt_parts"] = list(policy.system_prompt_parts)
    data["allowed_tools"] = sorted(policy.allowed_tools)
    data["limits"]["allowed_topics"] = sorted(policy.limits.allowed_topics)
    data["limits"]["blocked_keywords"] = sorted(policy.limits.blocked_keywords)
    return data


# ── Process settings ────────────────────────────────────────────────────────

DEFAULT_ANTHROPIC_BASE_URL = "https://api.anthropic.com"
DEFAULT_ANTHROPIC_VERSION = "2023-06-01"


@dataclass(frozen=True)
class Settings:
    anthropic_api_key: str | None = None
    anthropic_base_url: str = DEFAULT_ANTHROPIC_BASE_URL
    anthropic_version: str = DEFAULT_ANTHROPIC_VERSION
    upstream_timeout_seconds: float = 30.0
    session_sweep_interval_seconds: float = 300.0
    log_level: str = "INFO"
    policy: PolicyConfig = field(default=DEFAULT_POLICY)


def get_settings() -> Settings:
    """
    Build Settings from the environment.

    Resolution order per field: environment variable → built-in default.
    Call once at start-up; the result is immutable.
    """
    return Settings(
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
        anthropic_base_url=os.getenv("ANTHROPIC_BASE_URL", DEFAULT_ANTHROPIC_BASE_URL),
        anthropic_version=os.getenv("ANTHROPIC_VERSION", DEFAULT_ANTHROPIC_VERSION),
        upstream_timeout_seconds=float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30")),
        session_sweep_interval_seconds=float(os.getenv("SESSION_SWEEP_INTERVAL_SECONDS", "300")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        policy=load_policy(),
    )


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger (idempotent)."""
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
