"""Centralized configuration for the XSEN orchestrator.

Value resolution order (per secret):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

Every capability is optional.  A provider whose base URL is missing is
simply switched off and the bot answers "not enabled yet" for it; only a
malformed value (e.g. a non-integer ``PORT``) stops the process at startup.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))

PROJECT_ROOT = Path(__file__).resolve().parent.parent


# ── Secret resolution ────────────────────────────────────────────────

def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store, or ``None``."""
    try:
        import boto3  # noqa: PLC0415 (boto3 is only needed on AWS)

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/xsen/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _optional_secret(name: str) -> str | None:
    """Return a secret from env-var or SSM, or ``None`` when unset."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value
    if _ON_AWS:
        return _get_ssm_parameter(name)
    return None


def _base_url(name: str) -> str:
    """Read a provider base URL, stripping trailing slashes ('' = disabled)."""
    return os.getenv(name, "").strip().rstrip("/")


# ── Generative model ────────────────────────────────────────────────
ANTHROPIC_API_KEY: str | None = _optional_secret("ANTHROPIC_API_KEY")
MODEL_NAME: str = os.getenv("MODEL_NAME", "claude-sonnet-4-5")
FAST_MODEL_NAME: str = os.getenv("FAST_MODEL_NAME", "claude-haiku-4-5")
LLM_TIMEOUT_SECONDS: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))

# "rules" = keyword classifier picks the provider; "model" = the LLM picks
ROUTING_MODE: str = os.getenv("ROUTING_MODE", "rules").strip().lower()

# ── Capability providers ────────────────────────────────────────────
VIDEO_AGENT_URL: str = _base_url("VIDEO_AGENT_URL")
ESPN_MCP_URL: str = _base_url("ESPN_MCP_URL")
CFBD_MCP_URL: str = _base_url("CFBD_MCP_URL")
MCP_API_KEY: str | None = _optional_secret("MCP_API_KEY")

TOOL_CALL_TIMEOUT_SECONDS: float = float(os.getenv("TOOL_CALL_TIMEOUT_SECONDS", "7"))
VIDEO_TIMEOUT_SECONDS: float = float(os.getenv("VIDEO_TIMEOUT_SECONDS", "8"))

TRIVIA_PATH: Path = Path(os.getenv("TRIVIA_PATH", str(PROJECT_ROOT / "data" / "trivia.json")))

# ── Sessions ────────────────────────────────────────────────────────
SESSION_IDLE_SECONDS: float = float(os.getenv("SESSION_IDLE_SECONDS", "900"))
SESSION_SWEEP_INTERVAL_SECONDS: float = float(os.getenv("SESSION_SWEEP_INTERVAL_SECONDS", "60"))
CHAT_HISTORY_TURNS: int = int(os.getenv("CHAT_HISTORY_TURNS", "10"))

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("PORT", os.getenv("SERVER_PORT", "8000")))
CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
