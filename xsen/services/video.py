"""HTTP client for the highlight-video search service.

The service takes one free-text ``q`` parameter, so conversational filler is
stripped and team nicknames are rewritten to full names before searching.
Any failure yields an empty list; callers never see an exception.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Any

import httpx

from xsen.config import VIDEO_TIMEOUT_SECONDS
from xsen.services.metrics import metrics
from xsen.services.teams import rewrite_aliases

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 3

FILLER_PHRASES = (
    "i want to watch",
    "i want to see",
    "can you show me",
    "could you show me",
    "let me see",
    "show me",
    "can you",
    "could you",
    "find me",
    "pull up",
    "give me",
    "please",
)
_FILLER_RE = re.compile(r"\b(?:" + "|".join(re.escape(p) for p in FILLER_PHRASES) + r")\b")


@dataclass(frozen=True)
class VideoHit:
    title: str
    url: str


def refine_query(text: str) -> str:
    """Lowercase, drop filler phrases and canonicalize team names."""
    lowered = (text or "").lower()
    refined = _FILLER_RE.sub(" ", lowered)
    refined = re.sub(r"[?!.,]+", " ", refined)
    refined = " ".join(rewrite_aliases(refined).split())
    return refined or " ".join(lowered.split())


def _parse_hits(body: Any, limit: int) -> list[VideoHit]:
    items = body.get("videos") if isinstance(body, dict) else body
    if not isinstance(items, list):
        raise ValueError("video search response is not a list")
    hits = []
    for item in items:
        if not isinstance(item, dict) or not item.get("url"):
            continue
        hits.append(VideoHit(title=str(item.get("title") or "Untitled clip"), url=str(item["url"])))
    return hits[:limit]


class VideoSearchClient:
    """Searches ``GET {base_url}/search`` for highlight clips."""

    def __init__(
        self,
        base_url: str,
        *,
        limit: int = DEFAULT_LIMIT,
        timeout: float = VIDEO_TIMEOUT_SECONDS,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._limit = limit
        self._http = http_client or httpx.Client(timeout=timeout)
        self._timeout = timeout

    def close(self) -> None:
        self._http.close()

    def search(self, query: str) -> list[VideoHit]:
        params = {
            "q": refine_query(query),
            "limit": self._limit,
            "ts": int(time.time() * 1000),  # cache buster
        }
        t0 = time.perf_counter()
        try:
            response = self._http.get(f"{self._base_url}/search", params=params, timeout=self._timeout)
            response.raise_for_status()
            hits = _parse_hits(response.json(), self._limit)
        except (httpx.HTTPError, ValueError) as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_failure("video", "GET /search", error_type=type(exc).__name__, latency_ms=elapsed)
            logger.warning("Video search failed for %r: %s", params["q"], exc)
            return []

        metrics.record_success("video", "GET /search", latency_ms=(time.perf_counter() - t0) * 1000)
        logger.debug("Video search %r -> %d hit(s)", params["q"], len(hits))
        return hits
