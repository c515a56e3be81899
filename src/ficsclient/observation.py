"""Live game observation."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Generator
from enum import Enum, auto
from typing import Any

from ficsclient.protocol import grammar
from ficsclient.protocol.commands import CommandCorrelator, PendingCommand
from ficsclient.protocol.grammar import GameChat, GameResult, GameStart, PlyUpdate
from ficsclient.protocol.streams import EventStream

logger = logging.getLogger(__name__)

ObservationEvent = GameStart | PlyUpdate | GameChat


class WatchState(Enum):
    """Lifecycle of a game watch."""

    WATCHING = auto()
    COMPLETED = auto()
    CANCELLED = auto()


class GameWatch:
    """Observation state for one game number.

    Lines about other games are ignored. The server announces the result
    before it removes the game from the observation list, so the result is
    held until the removal line arrives.

    Closing ``events`` early cancels the watch and calls ``on_abandon`` with
    the game number, so the owner can tell the server to stop sending moves.

    Usage::

        watch = client.observe(47)
        async for event in watch:
            ...
        result = await watch
    """

    def __init__(self, game: int | str, on_abandon: Callable[[int], None] | None = None) -> None:
        self.game = int(game)
        self.on_abandon = on_abandon
        self.state = WatchState.WATCHING
        self.started = False
        self.result: GameResult | None = None
        self.events: EventStream[ObservationEvent] = EventStream(on_cancel=self._abandon)
        self._future: asyncio.Future[GameResult | None] | None = None
        self._match_start = grammar.game_start(self.game)
        self._ply_update = grammar.ply_update(self.game)
        self._game_chat = grammar.game_chat(self.game)
        self._game_result = grammar.game_result(self.game)
        self._game_removed = grammar.game_removed(self.game)

    def __repr__(self) -> str:
        return f"<GameWatch {self.game} {self.state.name.lower()}>"

    @property
    def future(self) -> "asyncio.Future[GameResult | None]":
        if self._future is None:
            raise RuntimeError(f"Observation of game {self.game} has not been started")
        return self._future

    @property
    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def start(self, correlator: CommandCorrelator) -> "asyncio.Future[GameResult | None]":
        """Send ``observe`` and begin classifying lines for this game."""
        self._future = correlator.issue(f"observe {self.game}", self.handle_line)
        self._future.add_done_callback(self._settled)
        return self._future

    def handle_line(self, line: str, pending: PendingCommand[Any]) -> None:
        """Classify one line; resolves ``pending`` when the game is removed."""
        if self.state is not WatchState.WATCHING:
            return

        if not self.started and (start := self._match_start(line)):
            self.started = True
            self.events.push(start)
        elif update := self._ply_update(line):
            self.events.push(update)
        elif chat := self._game_chat(line):
            self.events.push(chat)
        elif result := self._game_result(line):
            self.result = result
        elif self._game_removed(line):
            self.state = WatchState.COMPLETED
            logger.info("Game %s removed from observation list", self.game)
            self.events.close()
            pending.resolve(self.result)

    def cancel(self) -> None:
        """Stop watching locally; the watch resolves with no result."""
        if self.state is not WatchState.WATCHING:
            return
        self.state = WatchState.CANCELLED
        self.events.close()
        if self._future is not None and not self._future.done():
            self._future.set_result(None)

    def _abandon(self) -> None:
        if self.state is not WatchState.WATCHING:
            return
        self.cancel()
        if self.on_abandon is not None:
            self.on_abandon(self.game)

    def _settled(self, future: "asyncio.Future[GameResult | None]") -> None:
        if future.cancelled():
            self.state = WatchState.CANCELLED
            self.events.close()
        elif future.exception() is not None:
            self.events.close(future.exception())
        else:
            self.events.close()

    def __aiter__(self) -> AsyncIterator[ObservationEvent]:
        return self.events.__aiter__()

    def __await__(self) -> Generator[Any, None, GameResult | None]:
        return self.future.__await__()
