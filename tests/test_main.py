"""Tests for the terminal chat entry point."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from xsen import main as cli


@patch("xsen.main.create_orchestrator")
def test_one_shot_message(mock_create, capsys):
    mock_create.return_value.handle.return_value = "Boomer Sooner!"
    with patch("sys.argv", ["boomer-bot", "-m", "hello", "--session", "s1"]):
        cli.main()
    mock_create.return_value.handle.assert_called_once_with("hello", "s1")
    assert capsys.readouterr().out.strip() == "Boomer Sooner!"


class TestChatLoop:
    def _run(self, inputs: list[str], orchestrator=None):
        orchestrator = orchestrator or MagicMock(routing_mode="rules")
        with patch("builtins.input", side_effect=inputs):
            cli.chat_loop(orchestrator, "s1")
        return orchestrator

    def test_messages_go_to_orchestrator(self, capsys):
        orchestrator = MagicMock(routing_mode="rules")
        orchestrator.handle.return_value = "Here's your question"
        self._run(["quiz me", "", "/quit"], orchestrator)
        orchestrator.handle.assert_called_once_with("quiz me", "s1")
        assert "Here's your question" in capsys.readouterr().out

    def test_new_session_changes_id(self):
        orchestrator = self._run(["/new", "hello", "/quit"])
        session_id = orchestrator.handle.call_args.args[1]
        assert session_id != "s1"
        assert session_id.startswith("cli-")

    def test_eof_ends_loop(self):
        orchestrator = self._run([EOFError()])
        orchestrator.handle.assert_not_called()
