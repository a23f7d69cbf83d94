"""Live (ESPN) and historical (CFBD) stats adapters.

Both are thin wrappers over :class:`ToolCallClient`; they differ only in the
endpoint they talk to and in which tool names they prefer for a given kind
of question.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from xsen.services.mcp_client import ProviderResult, ToolCallClient, ToolPreference
from xsen.services.teams import build_context

logger = logging.getLogger(__name__)


def _prefs(*pairs: tuple[str, tuple[str, ...]]) -> tuple[ToolPreference, ...]:
    return tuple((re.compile(pattern, re.IGNORECASE), fragments) for pattern, fragments in pairs)


LIVE_PREFERENCES = _prefs(
    (r"roster|players|team list|who'?s on", ("roster",)),
    (r"schedule|upcoming|next game|when|calendar", ("schedule",)),
    (r"\bscores?\b", ("score", "result")),
    (r"stats|statistics|performance|numbers", ("stat",)),
    (r"news|article|story|headline|injur", ("news",)),
    (r"result|final|\bgame\b", ("result", "score")),
    (r"find player|search player|who is", ("player",)),
    (r"dashboard|overview|everything|complete|full info", ("dashboard",)),
)

HISTORY_PREFERENCES = _prefs(
    (r"recruit", ("recruit",)),
    (r"\bbowls?\b|postseason|playoff", ("bowl", "postseason")),
    (r"\bvs\.?\b|versus|against|head[- ]to[- ]head|series|matchup", ("matchup", "head_to_head", "series", "game")),
    (r"heisman|award", ("award", "heisman")),
    (r"\bcoach", ("coach",)),
    (r"rank|poll", ("ranking", "poll")),
    (r"record|season|all[- ]time|history", ("record", "season", "history")),
)


class StatsAdapter:
    """One remote stats capability reachable through the tool-call protocol.

    Args:
        name: Label used in logs and replies ("ESPN", "CFBD").
        endpoint: Tool endpoint URL.
        client: Shared tool-call client (owns the discovery cache).
        preferences: Sub-intent tool-name preferences for this endpoint.
    """

    def __init__(
        self,
        name: str,
        endpoint: str,
        client: ToolCallClient,
        preferences: Sequence[ToolPreference] = (),
    ) -> None:
        self.name = name
        self.endpoint = endpoint
        self._client = client
        self._preferences = tuple(preferences)

    def close(self) -> None:
        self._client.close()

    def invoke(self, query: str) -> ProviderResult:
        context = build_context(query)
        logger.debug("%s query %r -> %s", self.name, query, context)
        return self._client.invoke(
            self.endpoint,
            query,
            preferences=self._preferences,
            context=context,
        )


def live_stats_adapter(endpoint: str, client: ToolCallClient) -> StatsAdapter:
    return StatsAdapter("ESPN", endpoint, client, LIVE_PREFERENCES)


def history_adapter(endpoint: str, client: ToolCallClient) -> StatsAdapter:
    return StatsAdapter("CFBD", endpoint, client, HISTORY_PREFERENCES)
