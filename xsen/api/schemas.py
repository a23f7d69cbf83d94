"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator

from xsen.services.sessions import DEFAULT_SESSION_ID


def _first_text(*values: Any) -> str:
    for value in values:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if isinstance(value, str) and value.strip():
            return value
    return ""


class ChatRequest(BaseModel):
    """Incoming chat message.

    Chat widgets disagree on field names, so the text is read from
    ``message.text``, ``message``, ``text`` or ``input`` (first non-empty
    wins) and the session id from ``sessionId`` or ``session_id``.
    """

    message: str = Field("", description="The fan's message")
    session_id: str = Field(DEFAULT_SESSION_ID, description="Session identifier for trivia state and chat history")

    @model_validator(mode="before")
    @classmethod
    def _accept_aliases(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return {}
        message = data.get("message")
        nested = message.get("text") if isinstance(message, dict) else None
        session_id = _first_text(data.get("sessionId"), data.get("session_id"))
        return {
            "message": _first_text(nested, message, data.get("text"), data.get("input")),
            "session_id": session_id.strip() or DEFAULT_SESSION_ID,
        }


class ChatResponse(BaseModel):
    """Reply sent back to the chat widget."""

    response: str = Field(..., description="The bot's reply")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "xsen-orchestrator"
    capabilities: dict[str, bool] = Field(default_factory=dict)
