"""Ephemeral per-conversation state with idle eviction.

Sessions live in process memory only: a restart forgets every open trivia
question and chat history.  A daemon thread sweeps idle sessions on a fixed
interval, independent of request handling.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_SESSION_ID = "default"
DEFAULT_IDLE_SECONDS = 15 * 60
DEFAULT_MAX_HISTORY = 10


@dataclass
class Session:
    """Conversation state for a single session id.

    ``active`` is true while a trivia question waits for an A-D answer;
    ``correct_index``, ``correct_answer`` and ``explanation`` describe that
    question.  ``chat_history`` holds ``{"role", "content"}`` dicts and never
    grows past ``max_history`` entries.
    """

    session_id: str
    active: bool = False
    correct_index: int = 0
    correct_answer: str = ""
    explanation: str = ""
    chat_history: list[dict[str, str]] = field(default_factory=list)
    last_seen: float = 0.0
    max_history: int = DEFAULT_MAX_HISTORY

    def open_question(self, correct_index: int, correct_answer: str, explanation: str) -> None:
        """Mark a trivia question as pending, replacing any earlier one."""
        if not 0 <= correct_index <= 3:
            raise ValueError(f"correct_index must be in [0, 3], got {correct_index}")
        self.active = True
        self.correct_index = correct_index
        self.correct_answer = correct_answer
        self.explanation = explanation

    def clear_question(self) -> None:
        self.active = False
        self.correct_index = 0
        self.correct_answer = ""
        self.explanation = ""

    def add_turn(self, role: str, content: str) -> None:
        """Append a chat turn and drop the oldest ones beyond the bound."""
        self.chat_history.append({"role": role, "content": content})
        if len(self.chat_history) > self.max_history:
            del self.chat_history[: len(self.chat_history) - self.max_history]


class SessionStore(ABC):
    """Interface the orchestrator depends on; swap in Redis, a DB, etc."""

    @abstractmethod
    def get_or_create(self, session_id: str | None) -> Session:
        """Return the session for *session_id*, creating it if needed."""

    @abstractmethod
    def touch(self, session: Session) -> None:
        """Refresh the session's ``last_seen`` timestamp."""

    @abstractmethod
    def sweep(self) -> int:
        """Evict idle sessions.  Returns the number removed."""


class InMemorySessionStore(SessionStore):
    """Dict-backed store guarded by a lock.

    Args:
        idle_seconds: Sessions untouched for longer than this are evicted
            by :meth:`sweep`.
        max_history: Chat-history bound applied to new sessions.
        clock: Monotonic time source (injectable for tests).
    """

    def __init__(
        self,
        idle_seconds: float = DEFAULT_IDLE_SECONDS,
        max_history: int = DEFAULT_MAX_HISTORY,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._idle_seconds = idle_seconds
        self._max_history = max_history
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def get_or_create(self, session_id: str | None) -> Session:
        key = (session_id or "").strip() or DEFAULT_SESSION_ID
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                session = Session(session_id=key, max_history=self._max_history)
                self._sessions[key] = session
                logger.debug("Session created: %s", key)
            session.last_seen = self._clock()
            return session

    def touch(self, session: Session) -> None:
        session.last_seen = self._clock()

    def sweep(self) -> int:
        cutoff = self._clock() - self._idle_seconds
        with self._lock:
            stale = [sid for sid, s in self._sessions.items() if s.last_seen < cutoff]
            for sid in stale:
                del self._sessions[sid]
        if stale:
            logger.info("Evicted %d idle session(s)", len(stale))
        return len(stale)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions


class SessionSweeper:
    """Runs ``store.sweep()`` on a daemon thread every *interval* seconds."""

    def __init__(self, store: SessionStore, interval: float) -> None:
        self._store = store
        self._interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="session-sweeper")
        self._thread.start()
        logger.info("Session sweeper started (interval=%.0fs)", self._interval)

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self._interval + 1)
            self._thread = None

    def run_once(self) -> int:
        """One sweep that never raises; errors are logged."""
        try:
            return self._store.sweep()
        except Exception:
            logger.exception("Session sweep failed")
            return 0

    def _loop(self) -> None:
        while not self._stop.wait(self._interval):
            self.run_once()
