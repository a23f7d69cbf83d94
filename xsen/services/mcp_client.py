"""JSON-RPC tool-call client for the remote stats endpoints.

The stats services expose MCP-style tools (``tools/list`` / ``tools/call``)
whose argument schemas are not fixed: one deployment wants ``{"team": ...}``,
another ``{"query": ...}``, a third ``{"text": ...}``.  Rather than keeping a
schema registry, the client generates an ordered list of candidate argument
shapes for each query and tries them one by one until a call returns real
data.

Flow for :meth:`ToolCallClient.invoke`::

    discover_tools (cached per endpoint)
      -> select_tool (keyword preferences, then a generic verb)
      -> build_candidates (payload strategies, de-duplicated)
      -> call_tool per candidate until the text is non-empty and not a
         "no data found" sentinel
"""

from __future__ import annotations

import itertools
import json
import logging
import re
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from xsen.config import MCP_API_KEY, TOOL_CALL_TIMEOUT_SECONDS
from xsen.services.metrics import metrics
from xsen.services.teams import QueryContext, build_context

logger = logging.getLogger(__name__)

GENERIC_VERBS = ("query", "search", "get", "fetch")
_TEXT_KEYS = ("response", "reply", "output", "message")

NO_DATA_RE = re.compile(
    r"no data|not found|no results?\b|couldn'?t find|could not find|unable to find|no games|no information",
    re.IGNORECASE,
)
_EMPTY_BODIES = {"", "[]", "{}", "null", "none"}


class ToolCallError(Exception):
    """Raised when a tool endpoint cannot be reached or answers with an error."""


@dataclass(frozen=True)
class ProviderResult:
    """Outcome of a provider call: ``text`` on success, ``reason`` on failure."""

    ok: bool
    text: str = ""
    reason: str = ""

    @classmethod
    def success(cls, text: str) -> ProviderResult:
        return cls(ok=True, text=text)

    @classmethod
    def failure(cls, reason: str) -> ProviderResult:
        return cls(ok=False, reason=reason)


# ── Payload strategies ───────────────────────────────────────────────
# Each strategy is a pure function (query, context) -> arguments | None.

PayloadStrategy = Callable[[str, QueryContext], "dict[str, Any] | None"]


def full_context_payload(query: str, ctx: QueryContext) -> dict[str, Any] | None:
    payload = {"team": ctx.team, "sport": ctx.sport, "opponent": ctx.opponent, "year": ctx.year}
    return {k: v for k, v in payload.items() if v is not None}


def team_sport_payload(query: str, ctx: QueryContext) -> dict[str, Any] | None:
    return {"team": ctx.team, "sport": ctx.sport}


def team_query_payload(query: str, ctx: QueryContext) -> dict[str, Any] | None:
    return {"team": ctx.team, "query": query}


def team_payload(query: str, ctx: QueryContext) -> dict[str, Any] | None:
    return {"team": ctx.team}


def _single_field(key: str) -> PayloadStrategy:
    def strategy(query: str, ctx: QueryContext) -> dict[str, Any] | None:
        return {key: query}

    strategy.__name__ = f"{key}_payload"
    return strategy


DEFAULT_STRATEGIES: tuple[PayloadStrategy, ...] = (
    full_context_payload,
    team_sport_payload,
    team_query_payload,
    team_payload,
    *(_single_field(key) for key in ("query", "text", "message", "q", "input")),
)


def build_candidates(
    query: str,
    context: QueryContext,
    strategies: Sequence[PayloadStrategy] = DEFAULT_STRATEGIES,
) -> list[dict[str, Any]]:
    """Evaluate *strategies* in order, dropping empty and duplicate shapes."""
    candidates: list[dict[str, Any]] = []
    for strategy in strategies:
        payload = strategy(query, context)
        if payload and payload not in candidates:
            candidates.append(payload)
    return candidates


# ── Tool selection ───────────────────────────────────────────────────

ToolPreference = tuple[re.Pattern[str], tuple[str, ...]]


def select_tool(
    query: str,
    tool_names: Sequence[str],
    preferences: Sequence[ToolPreference] = (),
) -> str | None:
    """Pick the tool best suited to *query*.

    Preferences are ``(pattern, name_fragments)`` pairs checked in order: the
    first pattern that matches the query and has a fragment contained in a
    tool name decides.  Without a strong signal, the first tool whose name
    contains a generic verb is used, then simply the first tool.
    """
    if not tool_names:
        return None
    for pattern, fragments in preferences:
        if not pattern.search(query):
            continue
        for fragment in fragments:
            for name in tool_names:
                if fragment in name.lower():
                    return name
    for name in tool_names:
        if any(verb in name.lower() for verb in GENERIC_VERBS):
            return name
    return tool_names[0]


# ── Response envelopes ───────────────────────────────────────────────

def _block_text(block: Any) -> str:
    if isinstance(block, str):
        return block
    if isinstance(block, dict) and isinstance(block.get("text"), str):
        return block["text"]
    return ""


def extract_text(body: Any) -> str:
    """Flatten the response envelopes tool servers use into one string.

    Handles a bare string, ``{"result": {"content": [{"text": ...}]}}``,
    ``{"result": "..."}`` and ``{"response"|"reply"|"output"|"message": ...}``.
    Anything else that is JSON is pretty-printed rather than dropped.
    """
    if body is None:
        return ""
    if isinstance(body, str):
        return body
    payload = body
    if isinstance(body, dict):
        result = body.get("result")
        if isinstance(result, str):
            return result
        if isinstance(result, dict):
            content = result.get("content")
            if isinstance(content, list):
                return "\n".join(t for t in map(_block_text, content) if t).strip()
            for key in _TEXT_KEYS:
                if isinstance(result.get(key), str):
                    return result[key]
        for key in _TEXT_KEYS:
            if isinstance(body.get(key), str):
                return body[key]
        if result is not None:
            payload = result
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


def is_no_data(text: str) -> bool:
    """True for empty bodies and "no data found"-style replies."""
    stripped = text.strip()
    if stripped.lower() in _EMPTY_BODIES:
        return True
    return bool(NO_DATA_RE.search(stripped[:200]))


def _decode_body(response: httpx.Response) -> Any:
    text = response.text
    if "text/event-stream" in response.headers.get("content-type", ""):
        data = [line[5:].strip() for line in text.splitlines() if line.startswith("data:")]
        text = data[-1] if data else ""
    try:
        return json.loads(text)
    except ValueError:
        return text


class ToolCallClient:
    """Talks to tool endpoints over JSON-RPC 2.0.

    Discovered tool names are cached per endpoint URL for the lifetime of
    the client.  Concurrent first requests may both discover; the cache
    write is idempotent so the race is harmless.

    Args:
        api_key: Optional bearer credential sent with every call.
        timeout: Per-call timeout in seconds.
        http_client: Injectable ``httpx.Client`` (tests).
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        timeout: float = TOOL_CALL_TIMEOUT_SECONDS,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else MCP_API_KEY
        self._timeout = timeout
        self._headers = {
            "Content-Type": "application/json",
            "Accept": "application/json, text/event-stream",
        }
        if self._api_key:
            self._headers["Authorization"] = f"Bearer {self._api_key}"
        self._http = http_client or httpx.Client(timeout=timeout)
        self._tool_cache: dict[str, list[str]] = {}
        self._cache_lock = threading.Lock()
        self._ids = itertools.count(1)

    def close(self) -> None:
        self._http.close()

    # ── Transport ────────────────────────────────────────────────────

    def _rpc(
        self,
        endpoint: str,
        method: str,
        params: dict[str, Any],
        timeout: float | None = None,
    ) -> Any:
        """POST one JSON-RPC request and return the decoded body."""
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        service = httpx.URL(endpoint).host or endpoint
        t0 = time.perf_counter()
        try:
            response = self._http.post(
                endpoint, json=payload, headers=self._headers, timeout=timeout or self._timeout
            )
        except httpx.TimeoutException as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_failure(service, method, error_type="timeout", latency_ms=elapsed)
            raise ToolCallError(f"{method} timed out after {timeout or self._timeout:.0f}s") from exc
        except httpx.HTTPError as exc:
            metrics.record_failure(service, method, error_type=type(exc).__name__)
            raise ToolCallError(f"{method} failed: {type(exc).__name__}") from exc

        elapsed = (time.perf_counter() - t0) * 1000
        if response.status_code >= 400:
            metrics.record_failure(service, method, error_type=f"http_{response.status_code}", latency_ms=elapsed)
            raise ToolCallError(f"{method} returned HTTP {response.status_code}")

        body = _decode_body(response)
        if isinstance(body, dict) and body.get("error"):
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            metrics.record_failure(service, method, error_type="rpc_error", latency_ms=elapsed)
            raise ToolCallError(f"{method} error: {message}")

        metrics.record_success(service, method, latency_ms=elapsed)
        return body

    # ── Public API ───────────────────────────────────────────────────

    def discover_tools(self, endpoint: str) -> list[str]:
        """Tool names advertised by *endpoint* (one network call per endpoint)."""
        with self._cache_lock:
            cached = self._tool_cache.get(endpoint)
        if cached is not None:
            return list(cached)

        body = self._rpc(endpoint, "tools/list", {})
        result = body.get("result") if isinstance(body, dict) else None
        tools = result.get("tools", []) if isinstance(result, dict) else []
        names = [t["name"] for t in tools if isinstance(t, dict) and t.get("name")]
        logger.info("Discovered %d tool(s) at %s: %s", len(names), endpoint, ", ".join(names))

        with self._cache_lock:
            self._tool_cache.setdefault(endpoint, names)
        return list(names)

    def call_tool(
        self,
        endpoint: str,
        tool_name: str,
        arguments: dict[str, Any],
        timeout: float | None = None,
    ) -> ProviderResult:
        """Invoke one tool once.  Transport and protocol errors become failures."""
        try:
            body = self._rpc(endpoint, "tools/call", {"name": tool_name, "arguments": arguments}, timeout)
        except ToolCallError as exc:
            return ProviderResult.failure(str(exc))

        text = extract_text(body).strip()
        result = body.get("result") if isinstance(body, dict) else None
        if isinstance(result, dict) and result.get("isError"):
            return ProviderResult.failure(text or f"{tool_name} reported an error")
        return ProviderResult.success(text)

    def invoke(
        self,
        endpoint: str,
        query: str,
        *,
        preferences: Sequence[ToolPreference] = (),
        strategies: Sequence[PayloadStrategy] = DEFAULT_STRATEGIES,
        context: QueryContext | None = None,
    ) -> ProviderResult:
        """Answer *query* from *endpoint*, trying payload shapes in order."""
        try:
            tools = self.discover_tools(endpoint)
        except ToolCallError as exc:
            logger.warning("Tool discovery failed for %s: %s", endpoint, exc)
            return ProviderResult.failure(str(exc))

        tool = select_tool(query, tools, preferences)
        if tool is None:
            return ProviderResult.failure(f"{endpoint} advertises no tools")

        candidates = build_candidates(query, context or build_context(query), strategies)
        last_reason = "no candidates"
        for attempt, arguments in enumerate(candidates, start=1):
            result = self.call_tool(endpoint, tool, arguments)
            if result.ok and not is_no_data(result.text):
                logger.info("%s answered on attempt %d/%d with %s", tool, attempt, len(candidates), sorted(arguments))
                return result
            last_reason = result.reason or (result.text[:120] or "empty result")
            logger.debug("%s attempt %d/%d unusable (%s): %s", tool, attempt, len(candidates), arguments, last_reason)

        logger.warning("%s gave no usable result after %d payload shape(s)", tool, len(candidates))
        return ProviderResult.failure(f"{tool}: no usable result ({last_reason})")
