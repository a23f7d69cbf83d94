"""Canned replies and formatting for everything the bot sends back."""

from __future__ import annotations

import re
from collections.abc import Sequence

from xsen.services.trivia import OPTION_LETTERS, AnswerResult, MultipleChoiceQuestion
from xsen.services.video import VideoHit

GREETING = "Boomer Sooner! What can I help you with?"
DEFAULT_CHAT_REPLY = (
    "Boomer Sooner! I can quiz you with Sooners trivia, find highlight videos, "
    "pull live scores and schedules, or dig into OU football history. What sounds good?"
)
FALLBACK_REPLY = "Sorry Sooner, something went wrong on my end. Please try again in a moment. 🏈"
STARTING_UP_REPLY = "I'm still warming up. Give me a moment and try again!"

TRIVIA_WARMING_UP = "I'd love to quiz you, but my trivia bank is still warming up! Try again soon."
TRIVIA_HICCUP = "I hit a hiccup building that trivia question. Ask me for another one!"
NO_VIDEOS = "I couldn't find any videos matching that. Try rephrasing your request!"

PROVIDER_FAILURE = {
    "live": "Having trouble fetching live stats right now. Try again in a bit!",
    "history": "Having trouble digging up that history right now. Try again in a bit!",
}
STATS_PREAMBLE = {
    "live": "📊 Here's the latest:",
    "history": "📜 From the record books:",
}


def not_enabled(feature: str) -> str:
    return f"{feature} isn't enabled yet. Check back soon!"


def format_trivia(question: MultipleChoiceQuestion) -> str:
    lines = ["🧠 Trivia Time!", "", question.question, ""]
    lines += [f"{letter}) {option}" for letter, option in zip(OPTION_LETTERS, question.options)]
    lines += ["", "Reply with A, B, C, or D."]
    return "\n".join(lines)


def format_answer(result: AnswerResult) -> str:
    if result.correct:
        reply = "✅ Correct! Boomer Sooner! 🎉"
    else:
        reply = f"❌ Not quite. The correct answer was {result.correct_letter}) {result.correct_answer}."
    if result.explanation:
        reply += f"\n\n{result.explanation}"
    return reply


def format_videos(hits: Sequence[VideoHit]) -> str:
    if not hits:
        return NO_VIDEOS
    lines = ["🎥 Here's what I found:", ""]
    for number, hit in enumerate(hits, start=1):
        lines.append(f"{number}. {hit.title}")
        lines.append(f"   {hit.url}")
    return "\n".join(lines)


def format_stats(kind: str, text: str) -> str:
    return f"{STATS_PREAMBLE[kind]}\n\n{text.strip()}"


# "[label](https://x.y))" -> "[label](https://x.y)"
_MD_LINK_RE = re.compile(r"(\[[^\]]*\]\([^()\s]+\))\)+")
# "https://x.y))" -> "https://x.y)"
_BARE_URL_RE = re.compile(r"(https?://[^\s()\[\]]+\))\)+")


def sanitize_links(text: str) -> str:
    """Drop doubled closing parentheses after markdown links and bare URLs."""
    text = _MD_LINK_RE.sub(r"\1", text)
    return _BARE_URL_RE.sub(r"\1", text)
