"""Tests for the command-line interface."""

from collections.abc import AsyncIterator, Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

from typer.testing import CliRunner

from ficsclient import __version__
from ficsclient.__main__ import app, format_chat, format_event
from ficsclient.protocol.errors import AuthenticationError, TransportError
from ficsclient.protocol.grammar import (
    ChatMessage,
    GameChat,
    GameResult,
    GameStart,
    GameSummary,
    Player,
    PlyUpdate,
    UserEntry,
)
from ficsclient.session import LoginResult

runner = CliRunner()

START = GameStart(
    white=Player(name="CANABLANCA", rating="1776"),
    black=Player(name="GriffySr", rating="2094"),
    rated=True,
    variant="blitz",
    initial=5,
    increment=0,
)
PLY = PlyUpdate(
    position="rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR",
    to_move="B",
    move_number=1,
    white_time=300,
    black_time=300,
    verbose_move="P/e2-e4",
    algebraic_move="e4",
)


class FakeWatch:
    """Stand-in for a game watch with canned events."""

    def __init__(self, events: list[Any], result: GameResult | None) -> None:
        self.events = events
        self.result = result

    async def _iterate(self) -> AsyncIterator[Any]:
        for event in self.events:
            yield event

    def __aiter__(self) -> AsyncIterator[Any]:
        return self._iterate()

    async def _result(self) -> GameResult | None:
        return self.result

    def __await__(self) -> Generator[Any, None, GameResult | None]:
        return self._result().__await__()


def fake_client() -> MagicMock:
    client = MagicMock()
    client.login = AsyncMock(return_value=LoginResult(username="GuestABCD"))
    client.close = AsyncMock()
    client.transcript = None
    return client


class TestCommands:
    """Tests for the CLI commands."""

    def test_version(self) -> None:
        """Test the version command."""
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self) -> None:
        """Test that every command is listed."""
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("games", "who", "sought", "observe", "chat", "passthrough"):
            assert command in result.output

    def test_games(self) -> None:
        """Test listing games."""
        client = fake_client()
        client.games = AsyncMock(
            return_value=[
                GameSummary(
                    number=32,
                    white=Player(name="GMIvanchuk", rating="2715"),
                    black=Player(name="GMCarlsen", rating="2862"),
                    white_clock="1:52:33",
                    black_clock="1:41:23",
                    to_move="B",
                    move_number=18,
                )
            ]
        )

        with patch("ficsclient.__main__.FICSClient.connect", AsyncMock(return_value=client)):
            result = runner.invoke(app, ["games", "--no-transcript"])

        assert result.exit_code == 0
        assert "GuestABCD" in result.output
        assert "GMCarlsen" in result.output
        client.login.assert_awaited_once_with(None, None)
        client.close.assert_awaited_once()

    def test_who_with_credentials(self) -> None:
        """Test passing credentials through to login."""
        client = fake_client()
        client.who = AsyncMock(return_value=[UserEntry(name="mamer", rating="1843", status="^")])

        with patch("ficsclient.__main__.FICSClient.connect", AsyncMock(return_value=client)):
            result = runner.invoke(
                app, ["who", "--no-transcript", "--user", "foo", "--password", "bar"]
            )

        assert result.exit_code == 0
        assert "mamer" in result.output
        client.login.assert_awaited_once_with("foo", "bar")

    def test_observe(self) -> None:
        """Test printing an observed game until its result."""
        client = fake_client()
        client.observe = MagicMock(
            return_value=FakeWatch([START, PLY], GameResult(result="0-1", reason="CANABLANCA resigns"))
        )

        with patch("ficsclient.__main__.FICSClient.connect", AsyncMock(return_value=client)):
            result = runner.invoke(app, ["observe", "47", "--no-transcript"])

        assert result.exit_code == 0
        client.observe.assert_called_once_with(47)
        assert "CANABLANCA" in result.output
        assert "e4" in result.output
        assert "0-1" in result.output

    def test_connection_failure(self) -> None:
        """Test that a failed connection exits with an error."""
        connect = AsyncMock(side_effect=TransportError("Failed to connect to freechess.org:5000"))

        with patch("ficsclient.__main__.FICSClient.connect", connect):
            result = runner.invoke(app, ["games", "--no-transcript"])

        assert result.exit_code == 1
        assert "Failed to connect" in result.output

    def test_login_failure_closes_session(self) -> None:
        """Test that the session is closed when login fails."""
        client = fake_client()
        client.login = AsyncMock(side_effect=AuthenticationError("Invalid password"))

        with patch("ficsclient.__main__.FICSClient.connect", AsyncMock(return_value=client)):
            result = runner.invoke(app, ["games", "--no-transcript"])

        assert result.exit_code == 1
        assert "Invalid password" in result.output
        client.close.assert_awaited_once()


class TestFormatting:
    """Tests for event formatting."""

    def test_format_game_start(self) -> None:
        """Test the match line."""
        text = format_event(START)

        assert "CANABLANCA" in text
        assert "rated blitz 5 0" in text

    def test_format_ply(self) -> None:
        """Test a move line."""
        text = format_event(PLY)

        assert text.startswith("1. ")
        assert "e4" in text

    def test_format_whisper(self) -> None:
        """Test a whisper."""
        text = format_event(GameChat(user="GriffySr(C)", message="eval=-3.74", kind="whisper"))

        assert "whispers: eval=-3.74" in text

    def test_format_channel_tell(self) -> None:
        """Test chat formatting for channel and personal tells."""
        assert "(50)" in format_chat(ChatMessage(kind="tell", user="foo", message="hi", channel="50"))
        assert "[shout]" in format_chat(ChatMessage(kind="shout", user="foo", message="hi"))
