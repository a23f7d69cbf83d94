"""Message orchestrator for Boomer Bot.

Architecture:
  Every message goes through the same front half:

    1. empty text            -> static greeting (no provider touched)
    2. session lookup        -> lazily created, idle ones swept in background
    3. pending trivia answer -> graded first, so "b" is never misrouted

  Then one of two routing modes (``ROUTING_MODE``):

  **rules** (default)
    The keyword :class:`IntentClassifier` picks exactly one capability and
    the composer formats its output.  Generic chat goes to a tool-less LLM
    when one is configured, otherwise to a static prompt.

  **model**
    A LangGraph StateGraph lets the LLM decide which capability to call:

        chatbot -> (tool calls?) -> tools -> chatbot (loop) -> END

    The loop is capped at ``MAX_TOOL_ROUNDS`` rounds of tool calls through
    the graph recursion limit; hitting the cap fails closed with an apology.

  Whatever the path, links in the final text are sanitized and failures
  become a friendly reply instead of an error.
"""

from __future__ import annotations

import logging
import time
from typing import Annotated, Any

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, AnyMessage, BaseMessage, HumanMessage, SystemMessage
from langgraph.errors import GraphRecursionError
from langgraph.graph import END, StateGraph
from langgraph.graph.message import add_messages
from langgraph.prebuilt import ToolNode
from typing_extensions import TypedDict

from xsen import composer, config
from xsen.classifier import Intent, IntentClassifier
from xsen.prompts import get_system_prompt
from xsen.services.mcp_client import ToolCallClient
from xsen.services.metrics import metrics
from xsen.services.sessions import InMemorySessionStore, Session, SessionStore
from xsen.services.stats import history_adapter, live_stats_adapter
from xsen.services.trivia import TriviaEngine
from xsen.services.video import VideoSearchClient
from xsen.tools.capabilities import (
    CAPABILITY_TOOLS,
    Capabilities,
    answer_trivia,
    ask_trivia,
    find_videos,
    football_history,
    live_stats,
)

logger = logging.getLogger(__name__)

MAX_TOOL_ROUNDS = 5
# two steps per tool round, then the answering chatbot step and the input step
RECURSION_LIMIT = 2 * MAX_TOOL_ROUNDS + 2


class AgentState(TypedDict):
    """Messages for one model-routed turn; tool results are appended as
    ``ToolMessage`` turns by the ``tools`` node before the next model call."""

    messages: Annotated[list[AnyMessage], add_messages]


# ── LLM builders ────────────────────────────────────────────────────


def _build_llm(model: str) -> ChatAnthropic:
    return ChatAnthropic(
        model=model,
        api_key=config.ANTHROPIC_API_KEY,
        temperature=0.3,
        max_tokens=1024,
        timeout=config.LLM_TIMEOUT_SECONDS,
        max_retries=1,
    )


def message_text(message: BaseMessage) -> str:
    """Text of an AI message whose content may be a list of blocks."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def _history_messages(session: Session) -> list[BaseMessage]:
    messages: list[BaseMessage] = []
    for turn in session.chat_history:
        if turn["role"] == "user":
            messages.append(HumanMessage(content=turn["content"]))
        elif messages:
            # the model API wants the conversation to open with a user turn
            messages.append(AIMessage(content=turn["content"]))
    return messages


def _timed_invoke(llm: Any, messages: list[BaseMessage], operation: str) -> BaseMessage:
    t0 = time.perf_counter()
    try:
        response = llm.invoke(messages)
    except Exception as exc:
        metrics.record_failure(
            "anthropic", operation,
            error_type=type(exc).__name__, latency_ms=(time.perf_counter() - t0) * 1000,
        )
        raise
    metrics.record_success("anthropic", operation, latency_ms=(time.perf_counter() - t0) * 1000)
    return response


# ── Graph assembly ───────────────────────────────────────────────────


def should_use_tools(state: AgentState) -> str:
    last_message = state["messages"][-1]
    if getattr(last_message, "tool_calls", None):
        return "tools"
    return END


def create_tool_graph(llm: BaseChatModel):
    """Compile the chatbot/tools loop for the model-routed mode.

    No checkpointer: conversation memory lives in the session store, and the
    graph only sees the bounded history passed in for each turn.
    """
    llm_with_tools = llm.bind_tools(CAPABILITY_TOOLS)

    def chatbot_node(state: AgentState) -> dict:
        system = SystemMessage(content=get_system_prompt(with_tools=True))
        response = _timed_invoke(llm_with_tools, [system] + state["messages"], "tool_loop")
        return {"messages": [response]}

    graph = StateGraph(AgentState)
    graph.add_node("chatbot", chatbot_node)
    graph.add_node("tools", ToolNode(CAPABILITY_TOOLS))
    graph.set_entry_point("chatbot")
    graph.add_conditional_edges("chatbot", should_use_tools, {"tools": "tools", END: END})
    graph.add_edge("tools", "chatbot")
    return graph.compile()


# ── Orchestrator ─────────────────────────────────────────────────────


class Orchestrator:
    """Turns one inbound message into one reply.

    Args:
        sessions: Session store (owns session lifetime).
        capabilities: Configured providers; missing ones reply "not enabled".
        classifier: Intent classifier for the rule-routed mode.
        chat_model: Generative model, or ``None`` to run without one.
        routing_mode: ``"rules"`` or ``"model"``; ``"model"`` needs a
            chat model and otherwise falls back to rules.
    """

    def __init__(
        self,
        sessions: SessionStore,
        capabilities: Capabilities,
        *,
        classifier: IntentClassifier | None = None,
        chat_model: BaseChatModel | None = None,
        routing_mode: str = "rules",
    ) -> None:
        self.sessions = sessions
        self.capabilities = capabilities
        self._classifier = classifier or IntentClassifier()
        self._chat_model = chat_model
        if routing_mode == "model" and chat_model is None:
            logger.warning("ROUTING_MODE=model needs ANTHROPIC_API_KEY; using rule routing")
            routing_mode = "rules"
        self.routing_mode = routing_mode
        self._graph = create_tool_graph(chat_model) if routing_mode == "model" else None

    def handle(self, text: str | None, session_id: str | None = None) -> str:
        text = (text or "").strip()
        if not text:
            return composer.GREETING

        session = self.sessions.get_or_create(session_id)
        try:
            if session.active and self._classifier.classify(text, awaiting_answer=True) is Intent.TRIVIA_ANSWER:
                reply = answer_trivia(session, text)
            elif self._graph is not None:
                reply = self._run_tool_loop(session, text)
            else:
                reply = self._route(session, text)
        except Exception:
            logger.exception("Error handling message for session %s", session.session_id)
            reply = composer.FALLBACK_REPLY
        finally:
            self.sessions.touch(session)
        return composer.sanitize_links(reply)

    # ── Rule-routed mode ─────────────────────────────────────────────

    def _route(self, session: Session, text: str) -> str:
        intent = self._classifier.classify(text, awaiting_answer=session.active)
        logger.info("Session %s: %s", session.session_id, intent.value)
        caps = self.capabilities

        if intent is Intent.TRIVIA_REQUEST:
            return ask_trivia(caps, session)
        if intent is Intent.VIDEO_REQUEST:
            return find_videos(caps, text)
        if intent is Intent.LIVE_STATS_REQUEST:
            return live_stats(caps, text)
        if intent is Intent.HISTORICAL_REQUEST:
            return football_history(caps, text)
        return self._generic_chat(session, text)

    def _generic_chat(self, session: Session, text: str) -> str:
        if self._chat_model is None:
            return composer.DEFAULT_CHAT_REPLY
        session.add_turn("user", text)
        system = SystemMessage(content=get_system_prompt(with_tools=False))
        response = _timed_invoke(self._chat_model, [system] + _history_messages(session), "chat")
        reply = message_text(response).strip() or composer.DEFAULT_CHAT_REPLY
        session.add_turn("assistant", reply)
        return reply

    # ── Model-routed mode ────────────────────────────────────────────

    def _run_tool_loop(self, session: Session, text: str) -> str:
        session.add_turn("user", text)
        run_config = {
            "recursion_limit": RECURSION_LIMIT,
            "configurable": {"capabilities": self.capabilities, "session": session},
        }
        try:
            result = self._graph.invoke({"messages": _history_messages(session)}, config=run_config)
        except GraphRecursionError:
            logger.warning("Tool loop hit %d rounds for session %s", MAX_TOOL_ROUNDS, session.session_id)
            return composer.FALLBACK_REPLY

        messages = result.get("messages", [])
        reply = message_text(messages[-1]).strip() if messages else ""
        if not reply:
            logger.error("Tool loop produced no text for session %s", session.session_id)
            return composer.FALLBACK_REPLY
        session.add_turn("assistant", reply)
        return reply


# ── Factory ──────────────────────────────────────────────────────────


def build_capabilities(tool_client: ToolCallClient | None = None) -> Capabilities:
    """Instantiate every provider whose configuration is present."""
    client = tool_client or ToolCallClient()
    caps = Capabilities(
        trivia=TriviaEngine.from_file(config.TRIVIA_PATH),
        video=VideoSearchClient(config.VIDEO_AGENT_URL) if config.VIDEO_AGENT_URL else None,
        live_stats=live_stats_adapter(config.ESPN_MCP_URL, client) if config.ESPN_MCP_URL else None,
        history=history_adapter(config.CFBD_MCP_URL, client) if config.CFBD_MCP_URL else None,
    )
    logger.info("Capabilities: %s", ", ".join(f"{k}={'on' if v else 'off'}" for k, v in caps.enabled().items()))
    return caps


def create_orchestrator(sessions: SessionStore | None = None) -> Orchestrator:
    """Build the orchestrator from ``xsen.config``."""
    chat_model = None
    if config.ANTHROPIC_API_KEY:
        model = config.MODEL_NAME if config.ROUTING_MODE == "model" else config.FAST_MODEL_NAME
        chat_model = _build_llm(model)
    else:
        logger.info("ANTHROPIC_API_KEY not set; generic chat uses the static reply")

    orchestrator = Orchestrator(
        sessions or InMemorySessionStore(config.SESSION_IDLE_SECONDS, config.CHAT_HISTORY_TURNS),
        build_capabilities(),
        chat_model=chat_model,
        routing_mode=config.ROUTING_MODE,
    )
    logger.info("Orchestrator ready (routing=%s)", orchestrator.routing_mode)
    return orchestrator
