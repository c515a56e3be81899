"""Tests for event streams."""

import asyncio

import pytest

from ficsclient.protocol.streams import EventStream


class TestEventStream:
    """Tests for EventStream."""

    @pytest.mark.asyncio
    async def test_buffered_events_then_end(self) -> None:
        """Test that events pushed before close are still delivered."""
        stream: EventStream[int] = EventStream()
        stream.push(1)
        stream.push(2)
        stream.close()

        assert await stream.collect() == [1, 2]

    @pytest.mark.asyncio
    async def test_error_after_buffered_events(self) -> None:
        """Test that a closing error is raised once the buffer is empty."""
        stream: EventStream[int] = EventStream()
        received: list[int] = []
        stream.push(1)
        stream.close(ConnectionError("gone"))

        with pytest.raises(ConnectionError):
            async for event in stream:
                received.append(event)

        assert received == [1]

    @pytest.mark.asyncio
    async def test_consumer_woken_by_push(self) -> None:
        """Test a consumer waiting before any event arrives."""
        stream: EventStream[str] = EventStream()
        task = asyncio.create_task(stream.__anext__())
        await asyncio.sleep(0)

        assert not task.done()
        stream.push("hello")

        assert await task == "hello"

    @pytest.mark.asyncio
    async def test_push_after_close_ignored(self) -> None:
        """Test that the stream ends exactly once."""
        stream: EventStream[int] = EventStream()
        stream.close()
        stream.push(1)
        stream.close(ValueError("ignored"))

        assert await stream.collect() == []

    @pytest.mark.asyncio
    async def test_aclose_runs_cancel_hook_once(self) -> None:
        """Test that cancelling drops buffered events and calls the hook."""
        calls: list[str] = []
        stream: EventStream[int] = EventStream(on_cancel=lambda: calls.append("cancel"))
        stream.push(1)

        await stream.aclose()
        await stream.aclose()

        assert calls == ["cancel"]
        assert stream.closed
        assert await stream.collect() == []
