"""
gateway — Guardrailed Tool-Orchestration Gateway
================================================

Package layout:

    errors.py        GatewayError hierarchy (ValidationError, PolicyRejection, ...)
    prompts.py       System prompt parts injected into every upstream request
    config.py        PolicyConfig / DEFAULT_POLICY, Settings, logging setup
    ledger.py        SessionLedger — per-session counters behind sharded locks
    guardrails.py    GuardrailEngine — session, content and tool checks
    queries.py       Validated query objects for the data sources
    datasources.py   Source Protocols + in-memory sample store
    tools.py         TOOL_CATALOG, ToolDispatcher
    intent.py        IntentClassifier — message → catalog tools
    formatter.py     format_tool_result — tool JSON → Spanish answer text
    upstream.py      AnthropicClient (httpx)
    orchestrator.py  Orchestrator, build_gateway()

Entry points for external callers:
"""
from .config import (
    DEFAULT_POLICY,
    PolicyConfig,
    Settings,
    configure_logging,
    get_settings,
    load_policy,
    policy_to_dict,
)
from .errors import GatewayError, InternalError, PolicyRejection, UpstreamError, ValidationError
from .guardrails import GuardrailEngine, GuardrailResult
from .intent import DetectedIntent, IntentClassifier, detect_required_tools
from .ledger import SessionLedger
from .orchestrator import Orchestrator, build_gateway, resolve_session_id
from .tools import TOOL_CATALOG, ToolCallRequest, ToolCallResult, ToolDispatcher, list_tools

__all__ = [
    "Orchestrator",
    "build_gateway",
    "resolve_session_id",
    "GuardrailEngine",
    "GuardrailResult",
    "SessionLedger",
    "ToolDispatcher",
    "ToolCallRequest",
    "ToolCallResult",
    "TOOL_CATALOG",
    "list_tools",
    "IntentClassifier",
    "DetectedIntent",
    "detect_required_tools",
    "PolicyConfig",
    "DEFAULT_POLICY",
    "Settings",
    "get_settings",
    "load_policy",
    "policy_to_dict",
    "configure_logging",
    "GatewayError",
    "ValidationError",
    "PolicyRejection",
    "UpstreamError",
    "InternalError",
]
