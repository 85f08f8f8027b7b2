"""
pytest configuration for the gateway test suite.

Sets PYTHONPATH so tests can import from the project root.
Clears gateway environment overrides so every test sees DEFAULT_POLICY, and
sets a dummy Anthropic key so nothing ever talks to the real API.

asyncio_mode = "auto" (set in pyproject.toml) means all async test functions
are automatically collected as asyncio tests — no @pytest.mark.asyncio
needed on individual tests.
"""
import os
import sys

import pytest

# Ensure the project root is on sys.path so `import gateway` and `import mcp_server` work
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

os.environ.setdefault("ANTHROPIC_API_KEY", "test-key")

_POLICY_ENV = (
    "GUARDRAILS_ENABLED",
    "GUARDRAILS_STRICT_MODE",
    "GUARDRAILS_REQUIRED_TOOLS",
    "GUARDRAILS_MAX_TOKENS",
    "GUARDRAILS_MAX_MESSAGES",
    "GUARDRAILS_MAX_SESSION_MINUTES",
)


@pytest.fixture(autouse=True)
def _clean_policy_env(monkeypatch):
    for name in _POLICY_ENV:
        monkeypatch.delenv(name, raising=False)


class FakeClock:
    """Manually advanced epoch clock for SessionLedger."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += minutes * 60


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sources():
    from gateway.datasources import build_sample_sources
    return build_sample_sources()


@pytest.fixture
def dispatcher(sources):
    from gateway.tools import ToolDispatcher
    return ToolDispatcher(*sources)
