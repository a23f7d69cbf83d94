"""Trivia question bank and multiple-choice builder.

The bank is a JSON list loaded once at startup.  Each request draws a random
record and turns it into a four-option question.  Records without
pre-authored wrong answers get distractors picked from the rest of the bank:
answers of similar length first (they look plausible), then anything else.
"""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from xsen.services.sessions import Session

logger = logging.getLogger(__name__)

OPTION_LETTERS = "ABCD"
DISTRACTOR_COUNT = 3
# Max difference in characters for a distractor to count as "plausible"
LENGTH_TOLERANCE = 12


class InsufficientDistractorsError(Exception):
    """Raised when the bank is too small to build four distinct options."""


class NoPendingQuestionError(Exception):
    """Raised when an answer is checked but no question is open."""


def normalize_answer(text: str) -> str:
    """Trim, collapse inner whitespace and lowercase."""
    return " ".join(str(text).split()).lower()


@dataclass(frozen=True)
class TriviaQuestion:
    question: str
    correct_answer: str
    explanation: str = ""
    distractors: tuple[str, ...] = ()

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> TriviaQuestion | None:
        """Build a question from a bank record, or ``None`` if unusable.

        Accepts ``answer`` / ``correctAnswer`` / ``correct_answer`` holding
        the answer text, or the legacy shape where ``options`` lists four
        choices and ``answer`` is the letter of the right one.
        """
        if not isinstance(record, dict):
            return None
        question = " ".join(str(record.get("question") or "").split())
        answer = record.get("correctAnswer") or record.get("correct_answer") or record.get("answer") or ""
        answer = " ".join(str(answer).split())
        raw = record.get("distractors")
        if isinstance(raw, str):
            raw = [raw]
        elif not isinstance(raw, (list, tuple)):
            raw = []
        distractors = [str(d) for d in raw if str(d).strip()]

        options = record.get("options")
        if isinstance(options, list) and len(answer) == 1 and answer.upper() in OPTION_LETTERS:
            idx = OPTION_LETTERS.index(answer.upper())
            if idx >= len(options):
                return None
            answer = " ".join(str(options[idx]).split())
            distractors = [str(o) for i, o in enumerate(options) if i != idx and str(o).strip()]

        if not question or not answer:
            return None
        return cls(
            question=question,
            correct_answer=answer,
            explanation=str(record.get("explanation") or "").strip(),
            distractors=tuple(distractors),
        )


@dataclass(frozen=True)
class MultipleChoiceQuestion:
    question: str
    options: tuple[str, ...]
    correct_index: int
    explanation: str = ""

    @property
    def correct_letter(self) -> str:
        return OPTION_LETTERS[self.correct_index]

    @property
    def correct_answer(self) -> str:
        return self.options[self.correct_index]


@dataclass(frozen=True)
class AnswerResult:
    correct: bool
    explanation: str
    correct_letter: str
    correct_answer: str


class TriviaEngine:
    """Random multiple-choice questions from a fixed bank.

    Args:
        questions: The sanitized question bank.
        rng: Random source (seed it in tests for reproducible draws).
    """

    def __init__(self, questions: list[TriviaQuestion], *, rng: random.Random | None = None) -> None:
        self._questions = list(questions)
        self._rng = rng or random.Random()
        # Every distinct answer in the bank is a potential distractor.
        seen: set[str] = set()
        self._answers: list[str] = []
        for q in self._questions:
            norm = normalize_answer(q.correct_answer)
            if norm not in seen:
                seen.add(norm)
                self._answers.append(q.correct_answer)

    @classmethod
    def from_file(cls, path: Path | str, *, rng: random.Random | None = None) -> TriviaEngine:
        """Load the bank from a JSON file; a missing or bad file gives an empty bank."""
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.error("Trivia bank not found at %s", path)
            raw = []
        except (OSError, ValueError) as exc:
            logger.error("Failed to load trivia bank %s: %s", path, exc)
            raw = []
        if not isinstance(raw, list):
            logger.error("Trivia bank %s is not a JSON list", path)
            raw = []

        questions = []
        for record in raw:
            question = TriviaQuestion.from_record(record)
            if question is None:
                logger.warning("Skipping unusable trivia record: %r", record)
                continue
            questions.append(question)
        logger.info("Loaded %d trivia question(s) from %s", len(questions), path)
        return cls(questions, rng=rng)

    def __len__(self) -> int:
        return len(self._questions)

    def next_question(self) -> MultipleChoiceQuestion | None:
        """Draw a random question; ``None`` when the bank is empty.

        Raises:
            InsufficientDistractorsError: the bank cannot supply three wrong
                answers for the drawn record.
        """
        if not self._questions:
            return None
        return self.build_question(self._rng.choice(self._questions))

    def build_question(self, record: TriviaQuestion) -> MultipleChoiceQuestion:
        distractors = self._pick_distractors(record)
        options = [record.correct_answer, *distractors]
        self._rng.shuffle(options)
        correct = normalize_answer(record.correct_answer)
        correct_index = next(i for i, o in enumerate(options) if normalize_answer(o) == correct)
        return MultipleChoiceQuestion(
            question=record.question,
            options=tuple(options),
            correct_index=correct_index,
            explanation=record.explanation,
        )

    def _pick_distractors(self, record: TriviaQuestion) -> list[str]:
        correct = normalize_answer(record.correct_answer)
        seen = {correct}
        chosen: list[str] = []

        def draw(pool: list[str]) -> None:
            for candidate in pool:
                if len(chosen) == DISTRACTOR_COUNT:
                    return
                norm = normalize_answer(candidate)
                if norm and norm not in seen:
                    seen.add(norm)
                    chosen.append(" ".join(candidate.split()))

        authored = list(record.distractors)
        self._rng.shuffle(authored)
        draw(authored)
        if len(chosen) == DISTRACTOR_COUNT:
            return chosen

        others = [a for a in self._answers if normalize_answer(a) != correct]
        plausible = [a for a in others if abs(len(normalize_answer(a)) - len(correct)) <= LENGTH_TOLERANCE]
        fallback = list(others)
        self._rng.shuffle(plausible)
        self._rng.shuffle(fallback)
        draw(plausible)
        draw(fallback)

        if len(chosen) < DISTRACTOR_COUNT:
            raise InsufficientDistractorsError(
                f"Only {len(chosen)} distinct distractor(s) available for {record.question!r}"
            )
        return chosen

    @staticmethod
    def ask(session: Session, question: MultipleChoiceQuestion) -> None:
        """Record *question* as the session's pending question."""
        session.open_question(question.correct_index, question.correct_answer, question.explanation)

    @staticmethod
    def check(session: Session, letter: str) -> AnswerResult:
        """Grade an A-D answer and clear the pending question."""
        if not session.active:
            raise NoPendingQuestionError(f"No open trivia question for session {session.session_id}")
        choice = (letter or "").strip().upper()
        if len(choice) != 1 or choice not in OPTION_LETTERS:
            raise ValueError(f"Answer must be one of A-D, got {letter!r}")

        result = AnswerResult(
            correct=OPTION_LETTERS.index(choice) == session.correct_index,
            explanation=session.explanation,
            correct_letter=OPTION_LETTERS[session.correct_index],
            correct_answer=session.correct_answer,
        )
        session.clear_question()
        return result
