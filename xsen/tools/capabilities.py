"""Capability calls shared by both routing modes.

The plain functions (``ask_trivia``, ``find_videos``...) turn one provider
call into the text the fan sees; the rule-routed orchestrator calls them
directly.  The ``@tool`` wrappers expose the same functions to the
generative model.  They read the providers and the caller's session from
``config["configurable"]``, which the orchestrator fills per request.

Every function returns a string and never raises for provider problems, so
the model always gets something it can relay.
"""

import logging
from dataclasses import dataclass

from langchain_core.runnables import RunnableConfig
from langchain_core.tools import tool

from xsen import composer
from xsen.services.sessions import Session
from xsen.services.stats import StatsAdapter
from xsen.services.trivia import InsufficientDistractorsError, TriviaEngine
from xsen.services.video import VideoSearchClient

logger = logging.getLogger(__name__)


@dataclass
class Capabilities:
    """The configured providers; ``None`` means switched off."""

    trivia: TriviaEngine | None = None
    video: VideoSearchClient | None = None
    live_stats: StatsAdapter | None = None
    history: StatsAdapter | None = None

    def enabled(self) -> dict[str, bool]:
        return {
            "trivia": self.trivia is not None and len(self.trivia) > 0,
            "video": self.video is not None,
            "live_stats": self.live_stats is not None,
            "history": self.history is not None,
        }


# ── Shared capability calls ──────────────────────────────────────────


def ask_trivia(caps: Capabilities, session: Session) -> str:
    """Draw a question, store it on the session and format it."""
    if caps.trivia is None:
        return composer.TRIVIA_WARMING_UP
    try:
        question = caps.trivia.next_question()
    except InsufficientDistractorsError as exc:
        logger.warning("Trivia question unusable: %s", exc)
        return composer.TRIVIA_HICCUP
    if question is None:
        return composer.TRIVIA_WARMING_UP
    caps.trivia.ask(session, question)
    return composer.format_trivia(question)


def answer_trivia(session: Session, letter: str) -> str:
    return composer.format_answer(TriviaEngine.check(session, letter))


def find_videos(caps: Capabilities, query: str) -> str:
    if caps.video is None:
        return composer.not_enabled("Video search")
    return composer.format_videos(caps.video.search(query))


def _stats(adapter: StatsAdapter | None, kind: str, feature: str, query: str) -> str:
    if adapter is None:
        return composer.not_enabled(feature)
    result = adapter.invoke(query)
    if not result.ok:
        logger.warning("%s failed for %r: %s", adapter.name, query, result.reason)
        return composer.PROVIDER_FAILURE[kind]
    return composer.format_stats(kind, result.text)


def live_stats(caps: Capabilities, query: str) -> str:
    return _stats(caps.live_stats, "live", "Live stats", query)


def football_history(caps: Capabilities, query: str) -> str:
    return _stats(caps.history, "history", "Historical stats", query)


# ── LangChain tools for the model-routed mode ────────────────────────


def _request_context(config: RunnableConfig) -> tuple[Capabilities, Session]:
    configurable = config.get("configurable") or {}
    return configurable["capabilities"], configurable["session"]


@tool
def start_trivia(config: RunnableConfig) -> str:
    """Ask the fan a multiple-choice Oklahoma Sooners trivia question.

    Use this when the fan asks for trivia, a quiz, or to test their
    knowledge. Present the question and the A-D options exactly as returned.
    The fan's A/B/C/D reply is graded automatically; do not grade it yourself.
    """
    caps, session = _request_context(config)
    return ask_trivia(caps, session)


@tool
def search_highlight_videos(query: str, config: RunnableConfig) -> str:
    """Search for highlight videos, clips and replays.

    Args:
        query: What the fan wants to watch, e.g. "OU vs Texas 2024 highlights".
    """
    caps, _ = _request_context(config)
    return find_videos(caps, query)


@tool
def get_live_sports_stats(query: str, config: RunnableConfig) -> str:
    """Get current scores, schedules, rosters, rankings, stats and news.

    Covers every Oklahoma sport (football, men's and women's basketball,
    softball, baseball and more) for the current season.

    Args:
        query: The fan's question, e.g. "OU softball score today".
    """
    caps, _ = _request_context(config)
    return live_stats(caps, query)


@tool
def get_football_history(query: str, config: RunnableConfig) -> str:
    """Look up college FOOTBALL history: all-time records, past seasons,
    bowl games, head-to-head series, coaches and recruiting.

    Football only. Do NOT use this for basketball or any other sport.

    Args:
        query: The fan's question, e.g. "OU vs Nebraska all-time record".
    """
    caps, _ = _request_context(config)
    return football_history(caps, query)


CAPABILITY_TOOLS = [
    start_trivia,
    search_highlight_videos,
    get_live_sports_stats,
    get_football_history,
]
