"""Tests for game observation."""

import asyncio
from collections.abc import Awaitable, Callable

import pytest

from ficsclient.client import FICSClient
from ficsclient.observation import GameWatch, WatchState
from ficsclient.protocol.errors import ConnectionClosedError
from ficsclient.protocol.grammar import GameChat, GameResult, GameStart, PlyUpdate
from ficsclient.testing import ScriptedTransport

Settle = Callable[[], Awaitable[None]]

START_47 = "Game 47: CANABLANCA (1776) GriffySr (2094) rated blitz 5 0"
RESULT_47 = "{Game 47 (CANABLANCA vs. GriffySr) CANABLANCA resigns} 0-1"
REMOVED_47 = "Removing game 47 from observation list."


def style12(game: int, to_move: str, move_number: int, verbose: str, algebraic: str) -> str:
    """Build a style-12 line for the starting position."""
    return (
        "<12> rnbqkbnr pppppppp -------- -------- -------- -------- PPPPPPPP RNBQKBNR "
        f"{to_move} -1 1 1 1 1 0 {game} CANABLANCA GriffySr 0 5 0 39 39 "
        f"295 300 {move_number} {verbose} (0:04) {algebraic} 0 1 0"
    )


def feed(client: FICSClient, *lines: str) -> None:
    """Deliver server lines followed by the idle prompt, as the server sends them."""
    client.receive(("".join(f"{line}\n\r" for line in lines) + "fics% ").encode())


class TestGameWatch:
    """Tests for observing a game through the client."""

    @pytest.mark.asyncio
    async def test_full_game(
        self, client: FICSClient, transport: ScriptedTransport, settle: Settle
    ) -> None:
        """Test start, updates, chat, result and removal of one game."""
        watch = client.observe(47)

        assert transport.commands == ["observe 47"]

        feed(
            client,
            "You are now observing game 47.",
            START_47,
            style12(47, "B", 1, "P/e2-e4", "e4"),
            style12(47, "W", 1, "P/e7-e5", "e5"),
            "GriffySr(C)(2094)[47] whispers: ply=4; eval=-3.74",
            style12(47, "B", 2, "N/g1-f3", "Nf3"),
            RESULT_47,
            REMOVED_47,
        )

        events = await watch.events.collect()
        result = await watch
        await settle()

        assert [type(event) for event in events] == [
            GameStart,
            PlyUpdate,
            PlyUpdate,
            GameChat,
            PlyUpdate,
        ]
        assert events[0].white.name == "CANABLANCA"
        assert [e.algebraic_move for e in events if isinstance(e, PlyUpdate)] == ["e4", "e5", "Nf3"]
        assert result == GameResult(result="0-1", reason="CANABLANCA resigns")
        assert watch.state is WatchState.COMPLETED
        assert client.watches == {}

    @pytest.mark.asyncio
    async def test_iterate_while_lines_arrive(
        self, client: FICSClient, settle: Settle
    ) -> None:
        """Test a consumer iterating before the lines arrive."""
        watch = client.observe(47)
        consumer = asyncio.ensure_future(watch.events.collect())
        await settle()

        feed(client, START_47)
        await settle()
        feed(client, style12(47, "B", 1, "P/e2-e4", "e4"), REMOVED_47)

        assert len(await consumer) == 2
        assert await watch is None

    @pytest.mark.asyncio
    async def test_other_games_ignored(self, client: FICSClient) -> None:
        """Test that lines about other games produce no events."""
        watch = client.observe(47)

        feed(
            client,
            "Game 8: Foo (1500) Bar (1600) unrated lightning 1 0",
            style12(8, "B", 1, "P/d2-d4", "d4"),
            style12(470, "B", 1, "P/d2-d4", "d4"),
            "Foo(1500)[8] kibitzes: hello",
            "Removing game 8 from observation list.",
        )

        assert not watch.done
        feed(client, REMOVED_47)

        assert await watch.events.collect() == []

    @pytest.mark.asyncio
    async def test_match_start_emitted_once(self, client: FICSClient) -> None:
        """Test that a repeated match line is not emitted again."""
        watch = client.observe(47)

        feed(client, START_47, START_47, REMOVED_47)

        assert len(await watch.events.collect()) == 1

    @pytest.mark.asyncio
    async def test_two_games_at_once(self, client: FICSClient, settle: Settle) -> None:
        """Test that removing one game leaves the other watch running."""
        first = client.observe(47)
        second = client.observe(8)

        feed(client, "Removing game 8 from observation list.")
        await settle()

        assert second.done
        assert not first.done
        assert set(client.watches) == {47}

        feed(client, REMOVED_47)
        assert first.done

    @pytest.mark.asyncio
    async def test_observe_twice_returns_same_watch(
        self, client: FICSClient, transport: ScriptedTransport
    ) -> None:
        """Test that an active watch is reused."""
        watch = client.observe(47)

        assert client.observe("47") is watch
        assert transport.commands == ["observe 47"]

    @pytest.mark.asyncio
    async def test_unobserve_cancels_watch(
        self, client: FICSClient, transport: ScriptedTransport
    ) -> None:
        """Test stopping an observation before the game ends."""
        watch = client.observe(47)
        feed(client, START_47)

        unobserve = asyncio.ensure_future(client.unobserve(47))
        await asyncio.sleep(0)

        assert watch.state is WatchState.CANCELLED
        assert transport.commands[-1] == "unobserve 47"

        feed(client, style12(47, "B", 1, "P/e2-e4", "e4"), REMOVED_47)

        assert await unobserve is True
        assert await watch is None
        assert len(await watch.events.collect()) == 1

    @pytest.mark.asyncio
    async def test_unobserve_not_observing(self, client: FICSClient) -> None:
        """Test unobserving a game that is not being watched."""
        unobserve = asyncio.ensure_future(client.unobserve(12))
        await asyncio.sleep(0)

        feed(client, "You are not observing game 12.")

        assert await unobserve is False

    @pytest.mark.asyncio
    async def test_closing_events_cancels_watch(self, client: FICSClient) -> None:
        """Test that closing the event stream stops the watch."""
        watch = client.observe(47)

        await watch.events.aclose()

        assert watch.state is WatchState.CANCELLED
        assert await watch is None

    @pytest.mark.asyncio
    async def test_closing_events_tells_server(
        self, client: FICSClient, transport: ScriptedTransport
    ) -> None:
        """Test that abandoning the event stream sends unobserve."""
        baseline = len(client.registry)
        watch = client.observe(47)
        feed(client, START_47)

        await watch.events.aclose()
        await asyncio.sleep(0)

        assert transport.commands == ["observe 47", "unobserve 47"]
        assert 47 not in client.watches

        feed(client, REMOVED_47)
        await asyncio.sleep(0)

        assert len(client.registry) == baseline

    @pytest.mark.asyncio
    async def test_closing_events_after_game_end(
        self, client: FICSClient, transport: ScriptedTransport
    ) -> None:
        """Test that a finished watch sends nothing when its stream is closed."""
        watch = client.observe(47)
        feed(client, START_47, RESULT_47, REMOVED_47)
        await watch

        await watch.events.aclose()

        assert transport.commands == ["observe 47"]

    @pytest.mark.asyncio
    async def test_abandon_hook_receives_game_number(self) -> None:
        """Test the hook a standalone watch calls when its stream is closed."""
        abandoned: list[int] = []
        watch = GameWatch("47", on_abandon=abandoned.append)

        await watch.events.aclose()

        assert abandoned == [47]
        assert watch.state is WatchState.CANCELLED

    @pytest.mark.asyncio
    async def test_connection_closed(self, client: FICSClient) -> None:
        """Test that a closed session fails the watch after buffered events."""
        watch = client.observe(47)
        feed(client, START_47)

        await client.close()

        with pytest.raises(ConnectionClosedError):
            await watch
        received = []
        with pytest.raises(ConnectionClosedError):
            async for event in watch:
                received.append(event)
        assert len(received) == 1

    def test_not_started(self) -> None:
        """Test awaiting a watch that never sent observe."""
        watch = GameWatch(47)

        with pytest.raises(RuntimeError):
            _ = watch.future
        assert not watch.done
