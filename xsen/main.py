"""Terminal chat with Boomer Bot.

Runs the same orchestrator as the HTTP server, in-process, so capabilities
can be tried locally without a chat widget.  For production, use the
FastAPI server (xsen/server.py).

Usage:
    python -m xsen.main                       # interactive
    python -m xsen.main --debug               # show provider calls
    python -m xsen.main -m "quiz me"          # one message, then exit
"""

from __future__ import annotations

import argparse
import logging
import uuid

from xsen.agent import Orchestrator, create_orchestrator

logger = logging.getLogger(__name__)

HELP = """Commands:
  /new      start a fresh session (drops trivia state and history)
  /session  show the current session id
  /caps     show which capabilities are enabled
  /quit     exit"""


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
    )
    if not debug:
        for noisy in ("httpx", "httpcore", "anthropic"):
            logging.getLogger(noisy).setLevel(logging.WARNING)
    logging.getLogger("xsen").setLevel(logging.DEBUG if debug else logging.INFO)


def _new_session_id() -> str:
    return f"cli-{uuid.uuid4().hex[:8]}"


def _run_command(command: str, orchestrator: Orchestrator, session_id: str) -> str | None:
    """Handle a slash command.  Returns the new session id, or ``None`` to exit."""
    if command in ("/quit", "/exit"):
        return None
    if command == "/new":
        session_id = _new_session_id()
        print(f">> New session: {session_id}")
    elif command == "/session":
        print(f">> Session: {session_id}")
    elif command == "/caps":
        for name, on in orchestrator.capabilities.enabled().items():
            print(f">> {name:<10} {'on' if on else 'off'}")
    else:
        print(HELP)
    return session_id


def chat_loop(orchestrator: Orchestrator, session_id: str) -> None:
    print(f"\nBoomer Bot ({orchestrator.routing_mode} routing). Type /help for commands.\n")
    while True:
        try:
            text = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print()
            return
        if not text:
            continue
        if text.startswith("/"):
            next_id = _run_command(text.lower(), orchestrator, session_id)
            if next_id is None:
                return
            session_id = next_id
            continue
        print(f"\nBoomer Bot: {orchestrator.handle(text, session_id)}\n")


def main():
    parser = argparse.ArgumentParser(description="Chat with Boomer Bot in the terminal")
    parser.add_argument("--debug", action="store_true", help="Log provider and model calls")
    parser.add_argument("-m", "--message", help="Send one message, print the reply and exit")
    parser.add_argument("--session", default=None, help="Session id to use (default: a fresh one)")
    args = parser.parse_args()

    _configure_logging(args.debug)
    orchestrator = create_orchestrator()
    session_id = args.session or _new_session_id()
    logger.info("CLI session %s", session_id)

    if args.message is not None:
        print(orchestrator.handle(args.message, session_id))
        return
    chat_loop(orchestrator, session_id)
    print("Boomer Sooner! See you next time.")


if __name__ == "__main__":
    main()
