"""Keyword intent classifier.

Rules are an ordered list of ``(predicate, intent)`` pairs evaluated top to
bottom; the first predicate that matches wins.  Overlapping keywords (e.g.
"watch the Texas game today") are therefore resolved purely by rule order:

    1. pending trivia answer (a/b/c/d)   -> TRIVIA_ANSWER
    2. trivia keywords                   -> TRIVIA_REQUEST
    3. video keywords                    -> VIDEO_REQUEST
    4. live / recency keywords           -> LIVE_STATS_REQUEST
    5. historical keywords               -> HISTORICAL_REQUEST
    6. anything else                     -> GENERIC_CHAT
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum


class Intent(str, Enum):
    TRIVIA_ANSWER = "trivia_answer"
    TRIVIA_REQUEST = "trivia_request"
    VIDEO_REQUEST = "video_request"
    LIVE_STATS_REQUEST = "live_stats_request"
    HISTORICAL_REQUEST = "historical_request"
    GENERIC_CHAT = "generic_chat"


@dataclass(frozen=True)
class RuleInput:
    """What a rule predicate sees: the trimmed text plus session context."""

    text: str
    awaiting_answer: bool = False


Predicate = Callable[[RuleInput], bool]

_ANSWER_RE = re.compile(r"^[abcd]$", re.IGNORECASE)


def _keywords(*words: str) -> re.Pattern[str]:
    alternation = "|".join(re.escape(w).replace(r"\ ", r"\s+") for w in words)
    return re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)


TRIVIA_KEYWORDS = _keywords("trivia", "quiz", "quiz me", "test me", "test my knowledge")
VIDEO_KEYWORDS = _keywords(
    "video", "videos", "highlight", "highlights", "clip", "clips",
    "watch", "show me", "replay", "footage",
)
LIVE_KEYWORDS = _keywords(
    "score", "scores", "today", "tonight", "this week", "this season",
    "schedule", "live", "right now", "standings", "ranking", "rankings",
    "roster", "next game", "upcoming", "latest", "news", "injury", "injuries",
    "stats",
)
HISTORICAL_KEYWORDS = _keywords(
    "all-time", "all time", "history", "historical", "vs", "versus", "against",
    "bowl", "bowls", "recruiting", "recruit", "recruits", "championship",
    "championships", "heisman", "series", "past season", "years ago",
)
_YEAR_RE = re.compile(r"\b(?:18[6-9]\d|19\d{2}|20\d{2})\b")


def is_trivia_answer(inp: RuleInput) -> bool:
    return inp.awaiting_answer and bool(_ANSWER_RE.match(inp.text))


def is_trivia_request(inp: RuleInput) -> bool:
    return bool(TRIVIA_KEYWORDS.search(inp.text))


def is_video_request(inp: RuleInput) -> bool:
    return bool(VIDEO_KEYWORDS.search(inp.text))


def is_live_stats_request(inp: RuleInput) -> bool:
    return bool(LIVE_KEYWORDS.search(inp.text))


def is_historical_request(inp: RuleInput) -> bool:
    # The bare word "history" always means the history provider.
    if inp.text.lower() == "history":
        return True
    return bool(HISTORICAL_KEYWORDS.search(inp.text) or _YEAR_RE.search(inp.text))


DEFAULT_RULES: tuple[tuple[Predicate, Intent], ...] = (
    (is_trivia_answer, Intent.TRIVIA_ANSWER),
    (is_trivia_request, Intent.TRIVIA_REQUEST),
    (is_video_request, Intent.VIDEO_REQUEST),
    (is_live_stats_request, Intent.LIVE_STATS_REQUEST),
    (is_historical_request, Intent.HISTORICAL_REQUEST),
)


class IntentClassifier:
    """First-match-wins classifier over an ordered rule list."""

    def __init__(self, rules: Sequence[tuple[Predicate, Intent]] = DEFAULT_RULES) -> None:
        self._rules = tuple(rules)

    def classify(self, text: str, *, awaiting_answer: bool = False) -> Intent:
        inp = RuleInput(text=(text or "").strip(), awaiting_answer=awaiting_answer)
        for predicate, intent in self._rules:
            if predicate(inp):
                return intent
        return Intent.GENERIC_CHAT
