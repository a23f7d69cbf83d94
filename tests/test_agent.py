"""Tests for the orchestrator.

Covers:
  - Rule-routed flow (greeting, trivia round trip, provider replies)
  - Generic chat with and without a model
  - Model-routed tool loop with a mocked LLM, including the round cap
  - The LangChain tool wrappers reading providers from the run config
"""

from __future__ import annotations

import itertools
import random
from unittest.mock import MagicMock, patch

import pytest
from langchain_core.messages import AIMessage, HumanMessage

from xsen import composer
from xsen.agent import (
    MAX_TOOL_ROUNDS,
    Orchestrator,
    _history_messages,
    build_capabilities,
    message_text,
    should_use_tools,
)
from xsen.services.mcp_client import ProviderResult
from xsen.services.sessions import Session
from xsen.services.trivia import TriviaEngine, TriviaQuestion
from xsen.services.video import VideoHit
from xsen.tools.capabilities import (
    Capabilities,
    get_football_history,
    get_live_sports_stats,
    search_highlight_videos,
    start_trivia,
)

# ── Helpers ──────────────────────────────────────────────────────────


def _letter_for(session: Session, correct: bool) -> str:
    index = session.correct_index if correct else (session.correct_index + 1) % 4
    return "ABCD"[index]


def _make_mock_llm(*responses: AIMessage) -> MagicMock:
    """A chat model whose tool-bound twin returns *responses* in order."""
    llm = MagicMock()
    llm.bind_tools.return_value.invoke.side_effect = list(responses)
    return llm


def _tool_call(name: str, args: dict, call_id: str) -> AIMessage:
    return AIMessage(content="", tool_calls=[{"name": name, "args": args, "id": call_id, "type": "tool_call"}])


@pytest.fixture
def caps(trivia_engine):
    return Capabilities(trivia=trivia_engine)


@pytest.fixture
def orchestrator(store, caps):
    return Orchestrator(store, caps)


# ── TestInputHandling ────────────────────────────────────────────────


class TestInputHandling:
    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_message_gets_greeting_without_side_effects(self, store, text):
        video = MagicMock()
        orchestrator = Orchestrator(store, Capabilities(video=video))

        assert orchestrator.handle(text, "s1") == composer.GREETING
        assert len(store) == 0
        video.search.assert_not_called()

    def test_session_touched_after_message(self, orchestrator, store, clock):
        orchestrator.handle("hello", "s1")
        clock.advance(100)
        orchestrator.handle("hello again", "s1")
        assert store.get_or_create("s1").last_seen == clock.now


# ── TestTriviaFlow ───────────────────────────────────────────────────


class TestTriviaFlow:
    def test_question_then_correct_answer(self, orchestrator, store):
        reply = orchestrator.handle("quiz me", "s1")
        assert reply.startswith("🧠 Trivia Time!")
        session = store.get_or_create("s1")
        assert session.active is True

        reply = orchestrator.handle(_letter_for(session, correct=True).lower(), "s1")
        assert reply.startswith("✅ Correct!")
        assert session.active is False

    def test_wrong_answer_reveals_correct_option(self, orchestrator, store):
        orchestrator.handle("trivia", "s1")
        session = store.get_or_create("s1")
        expected = f"{_letter_for(session, correct=True)}) {session.correct_answer}"

        reply = orchestrator.handle(_letter_for(session, correct=False), "s1")
        assert reply.startswith("❌ Not quite.")
        assert expected in reply

    def test_answer_without_question_is_chat(self, orchestrator):
        assert orchestrator.handle("b", "s1") == composer.DEFAULT_CHAT_REPLY

    def test_sessions_are_isolated(self, orchestrator, store):
        orchestrator.handle("quiz me", "s1")
        assert orchestrator.handle("a", "s2") == composer.DEFAULT_CHAT_REPLY
        assert store.get_or_create("s1").active is True

    def test_missing_bank_warms_up(self, store):
        orchestrator = Orchestrator(store, Capabilities())
        assert orchestrator.handle("quiz me", "s1") == composer.TRIVIA_WARMING_UP

    def test_empty_bank_warms_up(self, store):
        orchestrator = Orchestrator(store, Capabilities(trivia=TriviaEngine([])))
        assert orchestrator.handle("quiz me", "s1") == composer.TRIVIA_WARMING_UP

    def test_tiny_bank_hiccups(self, store):
        engine = TriviaEngine([TriviaQuestion("Q1", "A"), TriviaQuestion("Q2", "B")], rng=random.Random(0))
        orchestrator = Orchestrator(store, Capabilities(trivia=engine))
        assert orchestrator.handle("quiz me", "s1") == composer.TRIVIA_HICCUP
        assert store.get_or_create("s1").active is False


# ── TestProviders ────────────────────────────────────────────────────


class TestProviders:
    def test_unconfigured_video_is_not_enabled(self, orchestrator):
        with patch("httpx.Client.get") as mock_get:
            reply = orchestrator.handle("show me highlights", "s1")
        assert reply == composer.not_enabled("Video search")
        mock_get.assert_not_called()

    def test_unconfigured_stats_are_not_enabled(self, orchestrator):
        assert orchestrator.handle("OU score today", "s1") == composer.not_enabled("Live stats")
        assert orchestrator.handle("OU vs Texas all-time", "s1") == composer.not_enabled("Historical stats")

    def test_video_hits_are_listed(self, store):
        video = MagicMock()
        video.search.return_value = [VideoHit("OU vs Texas", "https://v.test/1")]
        orchestrator = Orchestrator(store, Capabilities(video=video))

        reply = orchestrator.handle("show me OU vs Texas highlights", "s1")

        video.search.assert_called_once_with("show me OU vs Texas highlights")
        assert "https://v.test/1" in reply

    def test_live_stats_success(self, store):
        live = MagicMock()
        live.invoke.return_value = ProviderResult.success("Oklahoma 34, Texas 3")
        orchestrator = Orchestrator(store, Capabilities(live_stats=live))

        reply = orchestrator.handle("OU score today", "s1")
        assert reply == "📊 Here's the latest:\n\nOklahoma 34, Texas 3"

    def test_history_failure_apologizes(self, store):
        history = MagicMock()
        history.name = "CFBD"
        history.invoke.return_value = ProviderResult.failure("timed out")
        orchestrator = Orchestrator(store, Capabilities(history=history))

        assert orchestrator.handle("OU vs Nebraska all-time", "s1") == composer.PROVIDER_FAILURE["history"]

    def test_unexpected_error_becomes_fallback(self, store):
        live = MagicMock()
        live.invoke.side_effect = RuntimeError("boom")
        orchestrator = Orchestrator(store, Capabilities(live_stats=live))

        assert orchestrator.handle("OU score today", "s1") == composer.FALLBACK_REPLY

    def test_links_are_sanitized(self, store):
        live = MagicMock()
        live.invoke.return_value = ProviderResult.success("Box score: [link](https://espn.test/1))")
        orchestrator = Orchestrator(store, Capabilities(live_stats=live))

        assert orchestrator.handle("OU score today", "s1").endswith("[link](https://espn.test/1)")


# ── TestGenericChat ──────────────────────────────────────────────────


class TestGenericChat:
    def test_model_reply_and_history(self, store, caps):
        llm = MagicMock()
        llm.invoke.side_effect = [AIMessage(content="Boomer Sooner!"), AIMessage(content="Anytime.")]
        orchestrator = Orchestrator(store, caps, chat_model=llm)

        assert orchestrator.handle("hey bot", "s1") == "Boomer Sooner!"
        orchestrator.handle("thanks", "s1")

        second_call = llm.invoke.call_args.args[0]
        assert [m.content for m in second_call[1:]] == ["hey bot", "Boomer Sooner!", "thanks"]
        assert len(store.get_or_create("s1").chat_history) == 4

    def test_empty_model_reply_uses_default(self, store, caps):
        llm = MagicMock()
        llm.invoke.return_value = AIMessage(content="")
        orchestrator = Orchestrator(store, caps, chat_model=llm)
        assert orchestrator.handle("hey bot", "s1") == composer.DEFAULT_CHAT_REPLY

    def test_model_error_becomes_fallback(self, store, caps):
        llm = MagicMock()
        llm.invoke.side_effect = TimeoutError("slow")
        orchestrator = Orchestrator(store, caps, chat_model=llm)
        assert orchestrator.handle("hey bot", "s1") == composer.FALLBACK_REPLY


# ── TestModelRouting ─────────────────────────────────────────────────


class TestModelRouting:
    def test_model_mode_without_model_falls_back_to_rules(self, store, caps):
        orchestrator = Orchestrator(store, caps, routing_mode="model")
        assert orchestrator.routing_mode == "rules"

    def test_tool_call_then_answer(self, store, caps):
        llm = _make_mock_llm(
            _tool_call("start_trivia", {}, "call_1"),
            AIMessage(content="Here's one for you!"),
        )
        orchestrator = Orchestrator(store, caps, chat_model=llm, routing_mode="model")

        assert orchestrator.handle("quiz me", "s1") == "Here's one for you!"
        session = store.get_or_create("s1")
        assert session.active is True

        # the A-D reply is graded without another model call
        reply = orchestrator.handle(_letter_for(session, correct=True), "s1")
        assert reply.startswith("✅ Correct!")
        assert llm.bind_tools.return_value.invoke.call_count == 2

    def test_tool_result_reaches_the_model(self, store):
        live = MagicMock()
        live.invoke.return_value = ProviderResult.success("Oklahoma 34, Texas 3")
        llm = _make_mock_llm(
            _tool_call("get_live_sports_stats", {"query": "OU score"}, "call_1"),
            AIMessage(content="The Sooners won 34-3!"),
        )
        orchestrator = Orchestrator(store, Capabilities(live_stats=live), chat_model=llm, routing_mode="model")

        assert orchestrator.handle("how did OU do?", "s1") == "The Sooners won 34-3!"
        second_call = llm.bind_tools.return_value.invoke.call_args_list[1].args[0]
        assert "Oklahoma 34, Texas 3" in second_call[-1].content
        live.invoke.assert_called_once_with("OU score")

    def test_runaway_tool_loop_fails_closed(self, store, caps):
        ids = itertools.count()
        llm = MagicMock()
        llm.bind_tools.return_value.invoke.side_effect = lambda messages: _tool_call(
            "get_live_sports_stats", {"query": "score"}, f"call_{next(ids)}"
        )
        orchestrator = Orchestrator(store, caps, chat_model=llm, routing_mode="model")

        assert orchestrator.handle("score?", "s1") == composer.FALLBACK_REPLY
        assert llm.bind_tools.return_value.invoke.call_count <= MAX_TOOL_ROUNDS + 1

    def test_full_tool_round_budget_still_answers(self, store, caps):
        rounds = [
            _tool_call("get_live_sports_stats", {"query": "score"}, f"call_{i}") for i in range(MAX_TOOL_ROUNDS)
        ]
        llm = _make_mock_llm(*rounds, AIMessage(content="done"))
        orchestrator = Orchestrator(store, caps, chat_model=llm, routing_mode="model")

        assert orchestrator.handle("score?", "s1") == "done"
        assert llm.bind_tools.return_value.invoke.call_count == MAX_TOOL_ROUNDS + 1

    def test_should_use_tools(self):
        assert should_use_tools({"messages": [_tool_call("start_trivia", {}, "c1")]}) == "tools"
        assert should_use_tools({"messages": [AIMessage(content="done")]}) == "__end__"


# ── TestCapabilityTools ──────────────────────────────────────────────


class TestCapabilityTools:
    def _config(self, caps, session=None):
        return {"configurable": {"capabilities": caps, "session": session or Session("s1")}}

    def test_config_is_hidden_from_model_schema(self):
        assert set(get_live_sports_stats.args) == {"query"}
        assert "config" not in start_trivia.args

    def test_start_trivia_opens_question(self, caps):
        session = Session("s1")
        text = start_trivia.invoke({}, config=self._config(caps, session))
        assert "Reply with A, B, C, or D." in text
        assert session.active is True

    def test_unconfigured_tools_say_not_enabled(self):
        config = self._config(Capabilities())
        assert search_highlight_videos.invoke({"query": "OU"}, config=config) == composer.not_enabled("Video search")
        assert get_football_history.invoke({"query": "OU"}, config=config) == composer.not_enabled("Historical stats")


# ── TestMessageHelpers ───────────────────────────────────────────────


class TestMessageHelpers:
    def test_message_text_joins_text_blocks(self):
        message = AIMessage(content=[{"type": "text", "text": "Boomer "}, {"type": "tool_use", "id": "x"}, "Sooner"])
        assert message_text(message) == "Boomer Sooner"

    def test_history_skips_leading_assistant_turns(self):
        session = Session("s1")
        session.add_turn("assistant", "orphan")
        session.add_turn("user", "hi")
        session.add_turn("assistant", "hello")
        messages = _history_messages(session)
        assert [type(m) for m in messages] == [HumanMessage, AIMessage]


# ── TestFactory ──────────────────────────────────────────────────────


class TestFactory:
    def test_unconfigured_providers_are_off(self):
        caps = build_capabilities(tool_client=MagicMock())
        enabled = caps.enabled()
        assert enabled["trivia"] is True
        assert enabled["video"] is False
        assert enabled["live_stats"] is False
        assert enabled["history"] is False
