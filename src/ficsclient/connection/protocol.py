"""Protocol definitions for transports."""

from typing import Protocol


class Transport(Protocol):
    """A duplex text connection to the server.

    Implementations must provide a synchronous write path and an
    asynchronous read path; they perform no framing.
    """

    def write(self, data: str) -> None:
        """Queue text for sending.

        Args:
            data: Text to send, terminator included.
        """
        ...

    async def read(self) -> bytes:
        """Read the next chunk of data.

        Returns:
            Raw bytes, or an empty bytes object once the connection is closed.
        """
        ...

    async def close(self) -> None:
        """Close the connection."""
        ...
