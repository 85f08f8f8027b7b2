"""
FastAPI HTTP Interface
======================
Exposes the guardrailed gateway over HTTP.

Endpoints:
  POST /anthropic                          → guarded proxy to the Anthropic Messages API
  POST /chat                               → intent-routed tool answer, no LLM call
  GET  /health                             → liveness + guardrail summary
  GET  /tools                              → tool catalog
  POST /tools/call                         → run one catalog tool
  GET  /guardrails/config                  → active policy
  GET  /guardrails/stats                   → session + request statistics
  POST /guardrails/sessions/{id}/reset     → forget one session
  POST /guardrails/sessions/clean          → sweep expired sessions now
  POST /guardrails/stats/reset             → zero the request counters

Run:
    uvicorn api:app --reload --port 8000

Example cURL flow:

    # 1. Ask the LLM through the guardrails
    curl -X POST http://localhost:8000/anthropic \\
         -H "Content-Type: application/json" -H "X-Session-Id: demo" \\
         -d '{"model": "claude-3-5-haiku-20241022", "max_tokens": 512,
              "messages": [{"role": "user", "content": "¿Qué productos tienen en stock?"}]}'

    # 2. Same question answered straight from the catalog tools
    curl -X POST http://localhost:8000/chat \\
         -H "Content-Type: application/json" \\
         -d '{"message": "¿Tenés pizza disponible?"}'
"""
import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from gateway import (
    GatewayError,
    Orchestrator,
    ToolCallRequest,
    ValidationError,
    build_gateway,
    configure_logging,
    get_settings,
    policy_to_dict,
    resolve_session_id,
)

logger = logging.getLogger(__name__)

_gateway: Orchestrator | None = None


async def _sweep_sessions(gateway: Orchestrator, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            removed = await gateway.guardrails.clean_expired_sessions()
            if removed:
                logger.info("[api] Periodic sweep removed %d session(s)", removed)
        except Exception as e:
            logger.error("[api] Periodic session sweep failed: %s", e, exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the gateway and start the periodic session sweep on startup.
    The sweep task is cancelled and the upstream HTTP client closed on shutdown.

    Configuration is read from the environment (a local .env file is loaded
    first if present).
    """
    global _gateway
    load_dotenv()
    settings = get_settings()
    configure_logging(settings.log_level)

    _gateway = build_gateway(settings)
    sweeper = asyncio.create_task(
        _sweep_sessions(_gateway, settings.session_sweep_interval_seconds)
    )
    logger.info("[api] Gateway ready (anthropic configured: %s)", _gateway.llm.configured)
    yield
    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper
    await _gateway.aclose()
    _gateway = None


app = FastAPI(
    title="Guardrailed MCP Gateway",
    description="Usage-policy gateway between chat clients, the Anthropic API and business-data tools.",
    lifespan=lifespan,
)


def get_gateway() -> Orchestrator:
    if not _gateway:
        raise HTTPException(status_code=503, detail="Gateway not initialized.")
    return _gateway


# ── Error handling ─────────────────────────────────────────────────────────────

@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    if exc.status_code >= 500:
        logger.error("[api] %s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("[api] %s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("[api] Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


# ── Request / Response models ──────────────────────────────────────────────────

class ChatRequest(BaseModel):
    message: str


class ChatResponse(BaseModel):
    response: str
    tool_used: str | None = None
    parameters: dict = {}


# ── Endpoints ──────────────────────────────────────────────────────────────────

@app.post("/anthropic")
async def anthropic_proxy(
    request: Request,
    x_session_id: str | None = Header(default=None),
    gateway: Orchestrator = Depends(get_gateway),
):
    """
    Guarded proxy to the Anthropic Messages API.

    Success → the upstream response (possibly rewritten with tool data),
              annotated with a `_guardrails` object.
    Blocked → 400 { error, reason, message, suggestions }
    """
    body = await _json_body(request)
    client_host = request.client.host if request.client else None
    session_id = resolve_session_id(x_session_id, client_host)
    return await gateway.anthropic_proxy(body, session_id)


@app.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, gateway: Orchestrator = Depends(get_gateway)):
    """Answer straight from the catalog tools picked by the intent classifier."""
    result = await gateway.handle_chat_message(request.message)
    return ChatResponse(**result)


@app.get("/health")
async def health(gateway: Orchestrator = Depends(get_gateway)):
    policy = gateway.guardrails.policy
    return {
        "status":               "OK",
        "service":              "MCP Service",
        "timestamp":            datetime.now(timezone.utc).isoformat(),
        "anthropic_configured": gateway.llm.configured,
        "guardrails": {
            "enabled":        policy.enabled,
            "activeSessions": len(gateway.guardrails.ledger),
        },
    }


@app.get("/tools")
async def list_tools(gateway: Orchestrator = Depends(get_gateway)):
    return {"tools": [tool.to_dict() for tool in gateway.dispatcher.list_tools()]}


@app.post("/tools/call")
async def call_tool(request: Request, gateway: Orchestrator = Depends(get_gateway)):
    """Body: { toolName, arguments }. Returns { content: [ {type, text} ] }."""
    call = ToolCallRequest.create(await _json_body(request))
    result = await gateway.dispatcher.call_tool(call.tool_name, call.arguments)
    return result.to_dict()


# ── Guardrail management ───────────────────────────────────────────────────────

@app.get("/guardrails/config")
async def guardrails_config(gateway: Orchestrator = Depends(get_gateway)):
    return {"config": policy_to_dict(gateway.guardrails.get_config())}


@app.get("/guardrails/stats")
async def guardrails_stats(gateway: Orchestrator = Depends(get_gateway)):
    return {
        "sessions": gateway.guardrails.get_session_stats(),
        "requests": gateway.guardrails.get_detailed_stats(),
    }


@app.post("/guardrails/sessions/{session_id}/reset")
async def reset_session(session_id: str, gateway: Orchestrator = Depends(get_gateway)):
    if not session_id.strip():
        raise ValidationError("Session ID is required")
    existed = await gateway.guardrails.reset_session(session_id)
    return {"message": f"Session {session_id} reset", "existed": existed}


@app.post("/guardrails/sessions/clean")
async def clean_sessions(gateway: Orchestrator = Depends(get_gateway)):
    removed = await gateway.guardrails.clean_expired_sessions()
    return {"message": "Expired sessions cleaned", "removed": removed}


@app.post("/guardrails/stats/reset")
async def reset_stats(gateway: Orchestrator = Depends(get_gateway)):
    gateway.guardrails.reset_stats()
    return {"message": "Statistics reset"}
