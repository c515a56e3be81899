"""Protocol session engine: lines, grammars, listeners and commands."""

from ficsclient.protocol.commands import CommandCorrelator, PendingCommand, SerializationQueue
from ficsclient.protocol.errors import (
    AuthenticationError,
    ConnectionClosedError,
    FICSError,
    TransportError,
)
from ficsclient.protocol.lines import LineDemultiplexer
from ficsclient.protocol.registry import Subscription, SubscriptionRegistry
from ficsclient.protocol.streams import EventStream

__all__ = [
    "AuthenticationError",
    "CommandCorrelator",
    "ConnectionClosedError",
    "EventStream",
    "FICSError",
    "LineDemultiplexer",
    "PendingCommand",
    "SerializationQueue",
    "Subscription",
    "SubscriptionRegistry",
    "TransportError",
]
