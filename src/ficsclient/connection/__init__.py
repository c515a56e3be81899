"""Server transports."""

from ficsclient.connection.protocol import Transport
from ficsclient.connection.telnet import TelnetTransport, strip_telnet_sequences

__all__ = [
    "TelnetTransport",
    "Transport",
    "strip_telnet_sequences",
]
