"""High-level FICS session client."""

import asyncio
import contextlib
import logging
from typing import Any, TypeVar

from ficsclient.config import Config
from ficsclient.connection.protocol import Transport
from ficsclient.connection.telnet import TelnetTransport
from ficsclient.logging.transcript import TranscriptLogger
from ficsclient.observation import GameWatch
from ficsclient.protocol import grammar
from ficsclient.protocol.commands import (
    CommandCorrelator,
    LineHandler,
    SerializationQueue,
    consume_failure,
)
from ficsclient.protocol.errors import ConnectionClosedError, TransportError
from ficsclient.protocol.grammar import (
    ChannelEntry,
    ChatMessage,
    Classifier,
    EcoEntry,
    GameSummary,
    SoughtAd,
    UserEntry,
)
from ficsclient.protocol.lines import LineDemultiplexer
from ficsclient.protocol.registry import SubscriptionRegistry
from ficsclient.protocol.streams import EventStream
from ficsclient.session import Keepalive, LoginResult, LoginStateMachine

logger = logging.getLogger(__name__)

T = TypeVar("T")

EcoInfo = dict[str, EcoEntry]


class FICSClient:
    """A session with a FICS server.

    Lines read from the transport are split into logical lines and handed to
    every active listener in order. Each command registers its own listener
    and completes when its terminating line has been seen.

    Commands whose replies end with a generic line (``who``, ``games``,
    ``sought``, ``eco``) are serialized; all others may run concurrently.
    Running two ambiguous commands concurrently outside of those methods can
    attribute lines to the wrong command.

    Usage::

        async with await FICSClient.connect() as client:
            await client.login()
            games = await client.games()
    """

    def __init__(
        self,
        transport: Transport,
        config: Config | None = None,
        transcript: TranscriptLogger | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            transport: Connected transport.
            config: Client configuration.
            transcript: Optional transcript of the session traffic.
        """
        self.config = config or Config()
        self.transport = transport
        self.transcript = transcript

        session = self.config.session
        self.registry = SubscriptionRegistry()
        self.demux = LineDemultiplexer(prompt=session.prompt, encoding=self.config.server.encoding)
        self.correlator = CommandCorrelator(self.registry, self._write, prompt=session.prompt)
        self.queue = SerializationQueue()
        self.keepalive = Keepalive(self.correlator, interval=session.keepalive_interval)
        self.login_state: LoginStateMachine | None = None

        self._watches: dict[int, GameWatch] = {}
        self._reader_task: asyncio.Task[None] | None = None
        self._closed = False
        self._secrets: set[str] = set()

        if session.auto_next_page:
            self.registry.subscribe(self._page_through, name="pagination")

    @classmethod
    async def connect(
        cls,
        config: Config | None = None,
        transcript: TranscriptLogger | None = None,
    ) -> "FICSClient":
        """Open a connection to the configured server and start reading.

        Raises:
            TransportError: If the connection fails.
        """
        config = config or Config()
        transport = await TelnetTransport.open(config.server)
        client = cls(transport, config, transcript)
        client.start()
        return client

    @property
    def closed(self) -> bool:
        return self._closed

    # Stream handling

    def start(self) -> None:
        """Start the task feeding transport data into the session."""
        if self._reader_task is None:
            self._reader_task = asyncio.create_task(self._read_loop(), name="fics-reader")

    async def _read_loop(self) -> None:
        reason = "Connection closed by server"
        try:
            while True:
                chunk = await self.transport.read()
                if not chunk:
                    break
                self.receive(chunk)
            for line in self.demux.flush():
                self._dispatch(line)
        except TransportError as e:
            logger.error("Receive loop terminated: %s", e)
            if self.transcript:
                self.transcript.log_error("transport", str(e))
            reason = str(e)
        finally:
            self._teardown(ConnectionClosedError(reason))

    def receive(self, chunk: bytes | str) -> None:
        """Feed raw transport data into the session."""
        for line in self.demux.feed(chunk):
            self._dispatch(line)

    def _dispatch(self, line: str) -> None:
        logger.debug("< %s", line)
        if self.transcript:
            self.transcript.log_received(line)
        self.registry.dispatch(line)

    def _write(self, data: str) -> None:
        if self.transcript:
            text = data.rstrip("\r\n")
            self.transcript.log_sent("********" if text in self._secrets else text)
        self.transport.write(data)

    def _page_through(self, line: str) -> None:
        if grammar.is_next_page_prompt(grammar.strip_prompt(line, self.correlator.prompt)):
            self.correlator.send("next")

    def lines(self) -> EventStream[str]:
        """Stream every logical line, for debugging and passthrough."""
        return self._stream(lambda line: line, name="lines", strip_prompt=False)

    def _stream(
        self,
        classify: Classifier[T],
        name: str,
        strip_prompt: bool = True,
    ) -> EventStream[T]:
        prompt = self.correlator.prompt

        def deliver(line: str) -> None:
            if strip_prompt:
                line = grammar.strip_prompt(line, prompt)
            event = classify(line)
            if event is not None:
                stream.push(event)

        subscription = self.registry.subscribe(deliver, lambda exc: stream.close(exc), name=name)
        stream: EventStream[T] = EventStream(
            on_cancel=lambda: self.registry.unsubscribe(subscription)
        )
        if not subscription.active:
            stream.close(ConnectionClosedError("Connection closed"))
        return stream

    # Lifecycle

    async def close(self) -> None:
        """End the session, failing everything still pending."""
        self._teardown(ConnectionClosedError("Session closed"))
        if self._reader_task is not None and self._reader_task is not asyncio.current_task():
            self._reader_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader_task
        await self.transport.close()
        if self.transcript:
            self.transcript.finalize()
            self.transcript = None

    def _teardown(self, exc: ConnectionClosedError) -> None:
        if self._closed:
            return
        self._closed = True
        logger.info("Session ending: %s", exc)
        self.keepalive.cancel()
        if self.transcript:
            self.transcript.log_system_note(str(exc))
        self.registry.close(exc)

    async def __aenter__(self) -> "FICSClient":
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    # Command plumbing

    def _issue(self, command: str, on_line: LineHandler | None = None) -> "asyncio.Future[Any]":
        return self.correlator.issue(command, on_line)

    def _issue_blocking(self, command: str, on_line: LineHandler) -> "asyncio.Future[Any]":
        return self.queue.enqueue(lambda: self.correlator.issue(command, on_line))

    def _issue_until(self, command: str, classify: Classifier[T]) -> "asyncio.Future[T]":
        def on_line(line: str, pending: Any) -> None:
            value = classify(line)
            if value is not None:
                pending.resolve(value)

        return self._issue(command, on_line)

    # Session

    async def login(self, username: str | None = None, password: str | None = None) -> LoginResult:
        """Log in, as a guest when no username is given.

        Returns:
            LoginResult with the handle assigned by the server.

        Raises:
            AuthenticationError: If the server rejects the password.
            ConnectionClosedError: If the connection closes during login.
        """
        session = self.config.session
        username = username or session.username
        if password is None and session.password is not None:
            password = session.password.get_secret_value()
        if password:
            self._secrets.add(password)

        self.login_state = LoginStateMachine(
            self.correlator,
            username=username,
            password=password,
            setup_commands=session.setup_commands,
            on_ready=self.keepalive.start,
        )
        return await self.login_state.start()

    # Chat

    def chat(self) -> EventStream[ChatMessage]:
        """Stream shouts, its and tells as they arrive.

        The stream never ends on its own; ``aclose()`` it when done.
        """
        return self._stream(grammar.parse_chat, name="chat")

    async def tell(self, recipient: str | int, message: str) -> bool:
        """Send a message to a user or a channel.

        Returns:
            True if the server confirmed delivery.
        """
        recipient = str(recipient)
        return await self._issue_until(f"tell {recipient} {message}", grammar.tell_ack(recipient))

    async def shout(self, message: str, it: bool = False) -> bool:
        """Broadcast to everyone listening to shouts, as an ``it`` if requested."""
        command = "it" if it else "shout"
        return await self._issue_until(f"{command} {message}", grammar.parse_shout_ack)

    # Channels

    async def channels(self) -> list[str]:
        """Get the channel numbers the user is subscribed to."""
        return await self._issue_until("=channel", grammar.parse_channels)

    async def channel_list(self) -> list[ChannelEntry]:
        """Get every channel with its description."""
        entries: list[ChannelEntry] = []

        def on_line(line: str, pending: Any) -> None:
            if grammar.is_channel_list_complete(line):
                pending.resolve(entries)
            elif parsed := grammar.parse_channel_list_entry(line):
                entries.extend(parsed)

        return await self._issue("help channel_list", on_line)

    async def join_channel(self, channel: str | int) -> bool:
        """Add a channel; False if it was already on the list."""
        channel = str(channel)
        return await self._issue_until(
            f"+channel {channel}", grammar.channel_change_ack(channel, "add")
        )

    async def leave_channel(self, channel: str | int) -> bool:
        """Remove a channel; False if it was not on the list."""
        channel = str(channel)
        return await self._issue_until(
            f"-channel {channel}", grammar.channel_change_ack(channel, "remove")
        )

    # Listings

    async def who(self) -> list[UserEntry]:
        """List the users logged in."""
        users: list[UserEntry] = []

        def on_line(line: str, pending: Any) -> None:
            users.extend(grammar.parse_handles(line))
            if grammar.is_who_complete(line):
                pending.resolve(users)

        return await self._issue_blocking("who", on_line)

    async def games(self) -> list[GameSummary]:
        """List the games in progress.

        Examined games and bot lectures are not included.
        """
        games: list[GameSummary] = []

        def on_line(line: str, pending: Any) -> None:
            if game := grammar.parse_game(line):
                games.append(game)
            elif grammar.is_games_complete(line):
                pending.resolve(games)

        return await self._issue_blocking("games", on_line)

    async def sought(self) -> list[SoughtAd]:
        """List the seek ads awaiting opponents."""
        ads: list[SoughtAd] = []

        def on_line(line: str, pending: Any) -> None:
            if ad := grammar.parse_sought(line):
                ads.append(ad)
            elif grammar.is_sought_complete(line):
                pending.resolve(ads)

        return await self._issue_blocking("sought", on_line)

    async def eco(self, game: int | str) -> EcoInfo:
        """Get the opening classification of a game, keyed by eco/nic/long."""
        eco: EcoInfo = {}

        def on_line(line: str, pending: Any) -> None:
            if entry := grammar.parse_eco(line):
                eco[entry.kind] = entry
                if entry.kind == "long":
                    pending.resolve(eco)

        return await self._issue_blocking(f"eco {game}", on_line)

    # Games

    def observe(self, game: int | str) -> GameWatch:
        """Start observing a game.

        Returns:
            The watch for the game; iterate it for events, await it for the
            result. Observing a game already watched returns the same watch.
        """
        number = int(game)
        watch = self._watches.get(number)
        if watch is not None and not watch.done:
            return watch

        watch = GameWatch(number, on_abandon=self._release_game)
        self._watches[number] = watch
        future = watch.start(self.correlator)
        future.add_done_callback(lambda _: self._forget(watch))
        return watch

    def _forget(self, watch: GameWatch) -> None:
        if self._watches.get(watch.game) is watch:
            del self._watches[watch.game]

    @property
    def watches(self) -> dict[int, GameWatch]:
        return dict(self._watches)

    async def unobserve(self, game: int | str) -> bool:
        """Stop observing a game.

        Returns:
            True if the server removed the game from the observation list,
            False if it was not being observed.
        """
        number = int(game)
        watch = self._watches.get(number)
        if watch is not None:
            watch.cancel()
        return await self._send_unobserve(number)

    def _release_game(self, number: int) -> None:
        self._send_unobserve(number).add_done_callback(consume_failure)

    def _send_unobserve(self, number: int) -> "asyncio.Future[bool]":
        removed = grammar.game_removed(number)
        refused = grammar.unobserve_refusal(number)

        def on_line(line: str, pending: Any) -> None:
            if removed(line):
                pending.resolve(True)
            elif refused(line):
                pending.resolve(False)

        return self._issue(f"unobserve {number}", on_line)

    async def moves(self, game: int | str) -> list[tuple[str, ...]]:
        """Get the moves of a game as (white, black) pairs; the last may be single."""
        moves: list[tuple[str, ...]] = []

        def on_line(line: str, pending: Any) -> None:
            if pair := grammar.parse_move_pair(line):
                moves.append(pair)
            elif grammar.is_moves_complete(line):
                pending.resolve(moves)

        return await self._issue(f"moves {game}", on_line)

    async def observers(self, game: int | str) -> list[str]:
        """List the users observing a game."""
        return await self._issue_until(f"allobservers {game}", grammar.observers(game))

    async def kibitz(self, game: int | str, message: str) -> bool:
        """Send a message to the players and observers of a game."""
        return await self._issue_until(
            f"xkibitz {game} {message}",
            lambda line: True if grammar.is_kibitz_ack(line) else None,
        )

    async def whisper(self, game: int | str, message: str) -> bool:
        """Send a message to the observers of a game."""
        return await self._issue_until(
            f"xwhisper {game} {message}",
            lambda line: True if grammar.is_whisper_ack(line) else None,
        )
