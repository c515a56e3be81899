"""ficsclient - asyncio session client for the Free Internet Chess Server."""

from ficsclient.client import EcoInfo, FICSClient
from ficsclient.config import Config, load_config
from ficsclient.observation import GameWatch, ObservationEvent, WatchState
from ficsclient.protocol.errors import (
    AuthenticationError,
    ConnectionClosedError,
    FICSError,
    TransportError,
)
from ficsclient.session import LoginResult, LoginState

__version__ = "0.1.0"

__all__ = [
    "AuthenticationError",
    "Config",
    "ConnectionClosedError",
    "EcoInfo",
    "FICSClient",
    "FICSError",
    "GameWatch",
    "LoginResult",
    "LoginState",
    "ObservationEvent",
    "TransportError",
    "WatchState",
    "__version__",
    "load_config",
]
