"""FastAPI route definitions for the XSEN orchestrator API."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Request

from xsen import composer
from xsen.api.schemas import ChatRequest, ChatResponse, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_orchestrator(request: Request):
    """The orchestrator built during the FastAPI lifespan, or ``None``."""
    return getattr(request.app.state, "orchestrator", None)


async def _read_body(request: Request) -> dict:
    """Parse the JSON body; anything unparseable counts as an empty message."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check(http_request: Request):
    """Health check endpoint; also reports which capabilities are on."""
    orchestrator = _get_orchestrator(http_request)
    capabilities = orchestrator.capabilities.enabled() if orchestrator is not None else {}
    return HealthResponse(capabilities=capabilities)


@router.post("/chat", response_model=ChatResponse)
async def chat(http_request: Request):
    """Answer one fan message.

    The chat contract has no error responses: bad input gets the greeting,
    provider trouble gets an apology, and both come back as HTTP 200.

    ``Orchestrator.handle`` blocks on outbound HTTP and model calls, so it
    runs in the default thread pool via ``asyncio.to_thread``.
    """
    request = ChatRequest.model_validate(await _read_body(http_request))
    request_id = getattr(http_request.state, "request_id", "?")

    orchestrator = _get_orchestrator(http_request)
    if orchestrator is None:
        logger.warning("[%s] Chat request before startup finished", request_id)
        return ChatResponse(response=composer.STARTING_UP_REPLY)

    try:
        reply = await asyncio.to_thread(orchestrator.handle, request.message, request.session_id)
    except Exception:
        logger.exception("[%s] Error processing chat request", request_id)
        reply = composer.FALLBACK_REPLY

    return ChatResponse(response=reply)
