"""Shared fixtures."""

import asyncio
from collections.abc import Awaitable, Callable

import pytest

from ficsclient.client import FICSClient
from ficsclient.config import Config
from ficsclient.testing import ScriptedTransport


async def _settle(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def settle() -> Callable[[], Awaitable[None]]:
    """Awaitable that lets scheduled callbacks run."""
    return _settle


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def client(transport: ScriptedTransport, config: Config) -> FICSClient:
    return FICSClient(transport, config)
