"""Tests for the scripted transport."""

import json
from pathlib import Path

import pytest

from ficsclient.client import FICSClient
from ficsclient.logging.transcript import TranscriptLogger
from ficsclient.protocol.errors import ConnectionClosedError, TransportError
from ficsclient.testing import ScriptedTransport


class TestScriptedTransport:
    """Tests for ScriptedTransport."""

    @pytest.mark.asyncio
    async def test_reads_in_order(self) -> None:
        """Test that fed chunks are read back in order, then end of stream."""
        transport = ScriptedTransport()
        transport.feed(b"one\n")
        transport.feed("two\n")
        transport.end()

        assert await transport.read() == b"one\n"
        assert await transport.read() == b"two\n"
        assert await transport.read() == b""

    @pytest.mark.asyncio
    async def test_records_writes(self) -> None:
        """Test that writes are recorded."""
        transport = ScriptedTransport()

        transport.write("who\r\n")

        assert transport.written == ["who\r\n"]
        assert transport.commands == ["who"]

    @pytest.mark.asyncio
    async def test_closed(self) -> None:
        """Test reads and writes after close."""
        transport = ScriptedTransport()

        await transport.close()

        assert await transport.read() == b""
        with pytest.raises(TransportError):
            transport.write("who\r\n")

    @pytest.mark.asyncio
    async def test_replay_transcript(self, tmp_path: Path) -> None:
        """Test replaying a recorded session through a client."""
        json_path = tmp_path / "observe_47.json"
        with TranscriptLogger(json_path=json_path) as transcript:
            transcript.log_sent("observe 47")
            transcript.log_received("You are now observing game 47.")
            transcript.log_received("Game 47: CANABLANCA (1776) GriffySr (2094) rated blitz 5 0")
            transcript.log_received("{Game 47 (CANABLANCA vs. GriffySr) CANABLANCA resigns} 0-1")
            transcript.log_received("Removing game 47 from observation list.")

        transport = ScriptedTransport.from_transcript(json_path)
        async with FICSClient(transport) as client:
            watch = client.observe(47)
            result = await watch

        assert result is not None
        assert result.result == "0-1"
        assert len(await watch.events.collect()) == 1

    @pytest.mark.asyncio
    async def test_replay_ends_session(self, tmp_path: Path) -> None:
        """Test that the replayed stream ends after the last line."""
        json_path = tmp_path / "empty.json"
        json_path.write_text(json.dumps({"entries": []}))

        client = FICSClient(ScriptedTransport.from_transcript(json_path))
        client.start()

        with pytest.raises(ConnectionClosedError):
            await client.who()
