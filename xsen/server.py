"""FastAPI server for the XSEN orchestrator.

Run with:
    uvicorn xsen.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from xsen.agent import create_orchestrator
from xsen.api.routes import router
from xsen.config import CORS_ORIGINS, SERVER_HOST, SERVER_PORT, SESSION_SWEEP_INTERVAL_SECONDS
from xsen.services.metrics import metrics
from xsen.services.sessions import SessionSweeper

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Build the orchestrator once and start the idle-session sweeper."""
    logger.info("Building orchestrator…")
    orchestrator = create_orchestrator()
    sweeper = SessionSweeper(orchestrator.sessions, SESSION_SWEEP_INTERVAL_SECONDS)
    sweeper.start()
    application.state.orchestrator = orchestrator
    yield
    application.state.orchestrator = None
    sweeper.stop()
    caps = orchestrator.capabilities
    for client in (caps.video, caps.live_stats, caps.history):
        if client is not None:
            client.close()
    metrics.close()


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="XSEN Orchestrator",
    description="Boomer Bot: trivia, highlight videos, live stats and football history for Sooners fans.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Tag every request with an ID, echoed back as ``X-Request-ID``."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info("[%s] %s %s", request_id, request.method, request.url.path)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Register routes ──────────────────────────────────────────────────
app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "XSEN Orchestrator",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "chat": "/chat",
    }


# ── CLI entry point ──────────────────────────────────────────────────

if __name__ == "__main__":
    logger.info("Starting XSEN orchestrator on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "xsen.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )
