"""Shared test fixtures for the XSEN orchestrator test suite."""

from __future__ import annotations

import os
import random

import httpx
import pytest

from xsen.services.sessions import InMemorySessionStore
from xsen.services.trivia import TriviaEngine, TriviaQuestion


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    Providers are switched off and no model key is set, so nothing in the
    suite can reach the network unless a test wires in its own fakes.
    """
    os.environ["ANTHROPIC_API_KEY"] = ""
    os.environ["VIDEO_AGENT_URL"] = ""
    os.environ["ESPN_MCP_URL"] = ""
    os.environ["CFBD_MCP_URL"] = ""
    os.environ["MCP_API_KEY"] = ""
    os.environ["ROUTING_MODE"] = "rules"
    os.environ.setdefault("METRICS_ENABLED", "false")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemorySessionStore(idle_seconds=900, max_history=4, clock=clock)


SAMPLE_BANK = [
    TriviaQuestion("Who coached OU to the 2000 title?", "Bob Stoops", "Beat FSU 13-2."),
    TriviaQuestion("Who won the 1978 Heisman?", "Billy Sims"),
    TriviaQuestion("Who won three titles in the 70s and 80s?", "Barry Switzer"),
    TriviaQuestion("Who coached the 47-game streak?", "Bud Wilkinson"),
    TriviaQuestion("Who won the 2017 Heisman?", "Baker Mayfield"),
]


@pytest.fixture
def trivia_engine():
    """Small deterministic bank; every answer has plenty of distractors."""
    return TriviaEngine(SAMPLE_BANK, rng=random.Random(7))


@pytest.fixture
def rpc_response():
    """Factory fixture for JSON-RPC responses from a tool endpoint."""

    def _make(result=None, *, error=None, status_code: int = 200, url: str = "http://tools.test/mcp"):
        body = {"jsonrpc": "2.0", "id": 1}
        if error is not None:
            body["error"] = error
        else:
            body["result"] = result
        return httpx.Response(status_code, json=body, request=httpx.Request("POST", url))

    return _make


@pytest.fixture
def text_result(rpc_response):
    """Factory for a ``tools/call`` response carrying one text block."""

    def _make(text: str, *, is_error: bool = False):
        result = {"content": [{"type": "text", "text": text}]}
        if is_error:
            result["isError"] = True
        return rpc_response(result)

    return _make
