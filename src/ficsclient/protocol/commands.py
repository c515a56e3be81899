"""Command correlation and serialization.

The wire protocol has no request IDs: a command's reply is simply whatever
lines follow it. Each issued command gets its own listener that sees every
line from the moment it was written until the command's handler recognizes
the terminating line.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from ficsclient.protocol.errors import ConnectionClosedError
from ficsclient.protocol.grammar import DEFAULT_PROMPT, is_idle_prompt, strip_prompt
from ficsclient.protocol.registry import SubscriptionRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

LINE_TERMINATOR = "\r\n"


class PendingCommand(Generic[T]):
    """A command waiting for its terminating line."""

    def __init__(self, command: str, future: "asyncio.Future[T]") -> None:
        self.command = command
        self.future = future

    @property
    def done(self) -> bool:
        return self.future.done()

    def resolve(self, value: T) -> None:
        """Complete the command with ``value``; later calls are ignored."""
        if not self.future.done():
            self.future.set_result(value)

    def fail(self, exc: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(exc)

    def __repr__(self) -> str:
        state = "done" if self.done else "pending"
        return f"<PendingCommand {self.command!r} {state}>"


LineHandler = Callable[[str, PendingCommand[Any]], None]


def consume_failure(future: "asyncio.Future[Any]") -> None:
    """Done callback for commands nobody awaits; logs instead of raising."""
    if not future.cancelled() and future.exception() is not None:
        logger.debug("Background command failed: %s", future.exception())


class CommandCorrelator:
    """Writes commands and routes the following lines to their handlers."""

    def __init__(
        self,
        registry: SubscriptionRegistry,
        write: Callable[[str], None],
        prompt: str = DEFAULT_PROMPT,
    ) -> None:
        """Initialize the correlator.

        Args:
            registry: Line fan-out shared with the rest of the session.
            write: Writes raw text to the transport.
            prompt: Idle prompt token.
        """
        self.registry = registry
        self.prompt = prompt
        self._write = write

    def send(self, text: str) -> None:
        """Write one line to the server without waiting for any reply."""
        logger.debug("> %s", text)
        self._write(text + LINE_TERMINATOR)

    def issue(
        self,
        command: str,
        on_line: LineHandler | None = None,
    ) -> "asyncio.Future[Any]":
        """Send a command and correlate its reply.

        Args:
            command: Command text, without terminator.
            on_line: Called as ``on_line(line, pending)`` for every line (idle
                prompt stripped) until it calls ``pending.resolve``. Without a
                handler the command completes with ``None`` at the idle prompt.

        Returns:
            Future resolved with the value passed to ``pending.resolve``.
        """
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        pending: PendingCommand[Any] = PendingCommand(command, future)

        def deliver(line: str) -> None:
            if pending.done:
                self.registry.unsubscribe(subscription)
                return
            if on_line is None:
                if is_idle_prompt(line, self.prompt):
                    pending.resolve(None)
            else:
                stripped = strip_prompt(line, self.prompt)
                if stripped:
                    try:
                        on_line(stripped, pending)
                    except Exception as exc:
                        logger.warning("Handler for %r failed: %s", command, exc)
                        pending.fail(exc)
            if pending.done:
                self.registry.unsubscribe(subscription)

        subscription = self.registry.subscribe(deliver, pending.fail, name=command)
        future.add_done_callback(lambda _: self.registry.unsubscribe(subscription))

        if not subscription.active:
            pending.fail(ConnectionClosedError(f"Connection closed before {command!r} was sent"))
            return future

        try:
            self.send(command)
        except Exception as exc:
            pending.fail(exc)
            self.registry.unsubscribe(subscription)
        return future


class SerializationQueue:
    """Runs queued commands one at a time, in submission order.

    Used for commands whose replies end with generic lines (a bare count of
    displayed items) that another such command could also produce. The head
    of the queue stays queued until its own future settles.
    """

    def __init__(self) -> None:
        self._queue: deque[tuple[Callable[[], asyncio.Future[Any]], asyncio.Future[Any]]] = deque()
        self._running: asyncio.Future[Any] | None = None

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def busy(self) -> bool:
        return self._running is not None

    def enqueue(self, thunk: Callable[[], "asyncio.Future[T]"]) -> "asyncio.Future[T]":
        """Queue an action that issues a command and returns its future.

        Args:
            thunk: Zero-argument callable, run when every earlier action is done.

        Returns:
            Future mirroring the outcome of the future returned by ``thunk``.
        """
        outer: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._queue.append((thunk, outer))
        self._drain()
        return outer

    def _drain(self) -> None:
        while self._queue and self._running is None:
            thunk, outer = self._queue[0]
            if outer.done():
                self._queue.popleft()
                continue
            try:
                inner = thunk()
            except Exception as exc:
                self._queue.popleft()
                outer.set_exception(exc)
                continue
            self._running = inner
            outer.add_done_callback(lambda o, inner=inner: inner.cancel() if o.cancelled() else None)
            inner.add_done_callback(self._finish)

    def _finish(self, inner: "asyncio.Future[Any]") -> None:
        _, outer = self._queue.popleft()
        self._running = None
        if not outer.done():
            if inner.cancelled():
                outer.cancel()
            elif inner.exception() is not None:
                outer.set_exception(inner.exception())  # type: ignore[arg-type]
            else:
                outer.set_result(inner.result())
        self._drain()
