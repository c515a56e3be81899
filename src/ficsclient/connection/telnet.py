"""Telnet transport over asyncio streams."""

import asyncio
import contextlib
import logging

from ficsclient.config import ServerConfig
from ficsclient.protocol.errors import TransportError

logger = logging.getLogger(__name__)

IAC = 0xFF
SB = 0xFA
SE = 0xF0
WILL = 0xFB
DONT = 0xFE

READ_SIZE = 4096


def strip_telnet_sequences(data: bytes) -> bytes:
    """Strip telnet IAC sequences from received data.

    Args:
        data: Bytes potentially containing telnet negotiation.

    Returns:
        The data with negotiation removed; an escaped ``IAC IAC`` is kept as
        a single 0xFF byte.
    """
    if IAC not in data:
        return data

    result = bytearray()
    i = 0
    while i < len(data):
        if data[i] != IAC or i + 1 >= len(data):
            result.append(data[i])
            i += 1
            continue

        cmd = data[i + 1]
        if cmd == IAC:
            result.append(IAC)
            i += 2
        elif WILL <= cmd <= DONT:
            i += 3  # IAC + cmd + option
        elif cmd == SB:
            end = data.find(bytes([IAC, SE]), i)
            i = end + 2 if end != -1 else len(data)
        else:
            i += 2
    return bytes(result)


class TelnetTransport:
    """Transport over a TCP connection to a FICS server."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        encoding: str = "latin-1",
    ) -> None:
        self._reader = reader
        self._writer = writer
        self.encoding = encoding
        self._closed = False

    @classmethod
    async def open(cls, config: ServerConfig) -> "TelnetTransport":
        """Connect to the server.

        Args:
            config: Server address and connection settings.

        Returns:
            Connected transport.

        Raises:
            TransportError: If the connection fails or times out.
        """
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(config.host, config.port),
                timeout=config.connect_timeout,
            )
        except TimeoutError as e:
            raise TransportError(f"Timeout connecting to {config.host}:{config.port}") from e
        except OSError as e:
            raise TransportError(f"Failed to connect to {config.host}:{config.port}: {e}") from e

        logger.info("Connected to %s:%s", config.host, config.port)
        return cls(reader, writer, encoding=config.encoding)

    @property
    def is_open(self) -> bool:
        return not self._closed

    def write(self, data: str) -> None:
        if self._closed:
            raise TransportError("Transport is closed")
        self._writer.write(data.encode(self.encoding, errors="replace"))

    async def read(self) -> bytes:
        while not self._closed:
            try:
                data = await self._reader.read(READ_SIZE)
            except (ConnectionError, OSError) as e:
                raise TransportError(f"Read failed: {e}") from e
            if not data:
                return b""
            # A chunk holding only negotiation must not look like end of stream
            text = strip_telnet_sequences(data)
            if text:
                return text
        return b""

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._writer.close()
        with contextlib.suppress(ConnectionError, OSError):
            await self._writer.wait_closed()
        logger.info("Connection closed")
