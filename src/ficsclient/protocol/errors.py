"""Errors surfaced by the protocol session engine."""


class FICSError(Exception):
    """Base exception for FICS client errors."""


class TransportError(FICSError):
    """Failed to open or use the underlying connection."""


class ConnectionClosedError(FICSError):
    """The connection closed before a command or observation completed."""


class AuthenticationError(FICSError):
    """The server rejected the supplied credentials."""
