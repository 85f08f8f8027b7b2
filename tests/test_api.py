"""
Tests for api.py
=================
Drives the FastAPI app through TestClient with the gateway dependency
overridden: real guardrails, dispatcher and in-memory store, mocked LLM.

Covers:
  - /anthropic: success, validation error, policy rejection, upstream error,
    X-Session-Id vs. client address
  - /chat, /health, /tools, /tools/call
  - guardrail management endpoints
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

import api
from gateway.config import DEFAULT_POLICY
from gateway.errors import UpstreamError
from gateway.guardrails import GuardrailEngine
from gateway.orchestrator import Orchestrator

MODEL = "claude-3-5-haiku-20241022"


@pytest.fixture
def llm():
    client = MagicMock()
    client.configured = True
    client.create_message = AsyncMock(return_value={
        "role": "assistant",
        "content": [{"type": "text", "text": "Tenemos Pizza Muzzarella a $8500."}],
    })
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def gateway(dispatcher, llm):
    return Orchestrator(GuardrailEngine(DEFAULT_POLICY), dispatcher, llm)


@pytest.fixture
def client(gateway):
    api.app.dependency_overrides[api.get_gateway] = lambda: gateway
    yield TestClient(api.app)
    api.app.dependency_overrides.clear()


def _body(text="¿Tenés pizza disponible?"):
    return {"model": MODEL, "max_tokens": 256, "messages": [{"role": "user", "content": text}]}


# ---------------------------------------------------------------------------
# POST /anthropic
# ---------------------------------------------------------------------------

class TestAnthropicEndpoint:
    def test_success_is_annotated(self, client):
        res = client.post("/anthropic", json=_body(), headers={"X-Session-Id": "abc"})
        assert res.status_code == 200
        data = res.json()
        assert data["content"][0]["text"] == "Tenemos Pizza Muzzarella a $8500."
        assert data["_guardrails"]["sessionId"] == "abc"
        assert data["_guardrails"]["automaticExecution"] is False

    def test_session_falls_back_to_client_address(self, client, gateway):
        client.post("/anthropic", json=_body())
        assert "testclient" in gateway.guardrails.ledger

    def test_missing_fields(self, client):
        res = client.post("/anthropic", json={"model": MODEL})
        assert res.status_code == 400
        assert res.json() == {"error": "Model and messages are required"}

    def test_non_json_body(self, client):
        res = client.post("/anthropic", content=b"not json", headers={"content-type": "application/json"})
        assert res.status_code == 400

    def test_policy_rejection(self, client, llm):
        res = client.post("/anthropic", json=_body("contame de deportes"))
        assert res.status_code == 400
        data = res.json()
        assert data["error"] == "Request blocked by usage policy"
        assert data["reason"] == "blocked_content"
        assert isinstance(data["suggestions"], list)
        llm.create_message.assert_not_awaited()

    def test_upstream_error_relayed(self, client, llm):
        llm.create_message.side_effect = UpstreamError(529, "Overloaded", {"type": "error"})
        res = client.post("/anthropic", json=_body())
        assert res.status_code == 529
        assert res.json() == {"error": "Overloaded", "details": {"type": "error"}}

    def test_missing_api_key_is_500(self, client, llm):
        llm.configured = False
        res = client.post("/anthropic", json=_body())
        assert res.status_code == 500
        assert res.json() == {"error": "Anthropic API key not configured"}


# ---------------------------------------------------------------------------
# Chat, health and tools
# ---------------------------------------------------------------------------

class TestChatEndpoint:
    def test_chat(self, client):
        res = client.post("/chat", json={"message": "qué productos tienen"})
        assert res.status_code == 200
        data = res.json()
        assert data["tool_used"] == "get_products"
        assert "Encontré 5 productos" in data["response"]

    def test_chat_without_tool(self, client):
        data = client.post("/chat", json={"message": "hola"}).json()
        assert data["tool_used"] is None


class TestHealth:
    def test_health(self, client):
        client.post("/anthropic", json=_body(), headers={"X-Session-Id": "s1"})
        data = client.get("/health").json()
        assert data["status"] == "OK"
        assert data["service"] == "MCP Service"
        assert data["anthropic_configured"] is True
        assert data["guardrails"] == {"enabled": True, "activeSessions": 1}
        assert "timestamp" in data


class TestToolsEndpoints:
    def test_list(self, client):
        tools = client.get("/tools").json()["tools"]
        assert len(tools) == 8
        assert all("inputSchema" in t for t in tools)

    def test_call(self, client):
        res = client.post("/tools/call", json={"toolName": "get_product_by_id", "arguments": {"id": "nope"}})
        assert res.status_code == 200
        assert res.json() == {"content": [{"type": "text", "text": "Producto con ID nope no encontrado"}]}

    def test_call_validation(self, client):
        res = client.post("/tools/call", json={"arguments": {}})
        assert res.status_code == 400
        assert res.json() == {"error": "Tool name is required"}

    def test_call_unknown_tool(self, client):
        res = client.post("/tools/call", json={"toolName": "rm_rf"})
        assert res.status_code == 400
        assert res.json() == {"error": "Herramienta desconocida: rm_rf"}


# ---------------------------------------------------------------------------
# Guardrail management
# ---------------------------------------------------------------------------

class TestGuardrailManagement:
    def test_config(self, client):
        config = client.get("/guardrails/config").json()["config"]
        assert config["enabled"] is True
        assert "get_products" in config["allowed_tools"]
        assert config["limits"]["max_tokens"] == 1024

    def test_stats_and_reset(self, client):
        client.post("/anthropic", json=_body(), headers={"X-Session-Id": "s1"})
        stats = client.get("/guardrails/stats").json()
        assert stats["sessions"]["active_sessions"] == 1
        assert stats["requests"]["total_requests"] == 1

        assert client.post("/guardrails/stats/reset").status_code == 200
        assert client.get("/guardrails/stats").json()["requests"]["total_requests"] == 0

    def test_reset_session(self, client, gateway):
        client.post("/anthropic", json=_body(), headers={"X-Session-Id": "s1"})
        data = client.post("/guardrails/sessions/s1/reset").json()
        assert data["existed"] is True
        assert "s1" not in gateway.guardrails.ledger

    def test_clean_sessions(self, client):
        data = client.post("/guardrails/sessions/clean").json()
        assert data["removed"] == 0
