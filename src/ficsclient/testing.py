"""Scripted transport for tests and transcript replay."""

import asyncio
import json
from pathlib import Path

from ficsclient.protocol.errors import TransportError


class ScriptedTransport:
    """In-memory transport.

    Writes are recorded in :attr:`written`. Reads return the chunks queued
    with :meth:`feed`, in order, and ``b""`` once :meth:`end` is called.

    Usage::

        transport = ScriptedTransport.from_transcript(Path("observe_47.json"))
        client = FICSClient(transport)
        client.start()
    """

    def __init__(self, encoding: str = "latin-1") -> None:
        self.encoding = encoding
        self.written: list[str] = []
        self.closed = False
        self._chunks: asyncio.Queue[bytes] = asyncio.Queue()

    @classmethod
    def from_transcript(cls, path: Path, encoding: str = "latin-1") -> "ScriptedTransport":
        """Build a transport replaying the lines received in a JSON transcript.

        Args:
            path: Transcript written by ``TranscriptLogger``.
            encoding: Encoding used for the replayed bytes.

        Returns:
            Transport whose stream ends after the last recorded line.
        """
        with open(path) as f:
            data = json.load(f)

        transport = cls(encoding=encoding)
        for entry in data.get("entries", []):
            if entry.get("entry_type") == "received":
                transport.feed(entry["content"] + "\n\r")
        transport.end()
        return transport

    @property
    def commands(self) -> list[str]:
        """Lines written so far, without terminators."""
        return [data.removesuffix("\r\n") for data in self.written]

    def feed(self, data: bytes | str) -> None:
        if isinstance(data, str):
            data = data.encode(self.encoding)
        self._chunks.put_nowait(data)

    def end(self) -> None:
        """End the stream after the chunks queued so far."""
        self._chunks.put_nowait(b"")

    def write(self, data: str) -> None:
        if self.closed:
            raise TransportError("Transport is closed")
        self.written.append(data)

    async def read(self) -> bytes:
        if self.closed and self._chunks.empty():
            return b""
        return await self._chunks.get()

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.end()
