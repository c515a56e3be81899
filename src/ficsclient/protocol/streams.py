"""Cancellable multi-event streams."""

import asyncio
from collections import deque
from collections.abc import AsyncIterator, Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class EventStream(Generic[T]):
    """A single-consumer stream of events ending once, cleanly or with an error.

    Producers call :meth:`push` synchronously from line delivery; the consumer
    iterates with ``async for``. Events pushed before :meth:`close` are still
    delivered; pushes after it are ignored.
    """

    def __init__(self, on_cancel: Callable[[], None] | None = None) -> None:
        self._events: deque[T] = deque()
        self._waiter: asyncio.Future[None] | None = None
        self._closed = False
        self._error: BaseException | None = None
        self._on_cancel = on_cancel

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, event: T) -> None:
        if self._closed:
            return
        self._events.append(event)
        self._wake()

    def close(self, exc: BaseException | None = None) -> None:
        """End the stream; ``exc`` is raised to the consumer after buffered events."""
        if self._closed:
            return
        self._closed = True
        self._error = exc
        self._wake()

    async def aclose(self) -> None:
        """Stop consuming: drop buffered events and run the cancel hook."""
        self._events.clear()
        if self._on_cancel is not None:
            on_cancel, self._on_cancel = self._on_cancel, None
            on_cancel()
        self.close()

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        while not self._events:
            if self._closed:
                if self._error is not None:
                    raise self._error
                raise StopAsyncIteration
            self._waiter = asyncio.get_running_loop().create_future()
            try:
                await self._waiter
            finally:
                self._waiter = None
        return self._events.popleft()

    async def collect(self) -> list[T]:
        """Consume the stream to its end."""
        return [event async for event in self]

    def _wake(self) -> None:
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(None)
