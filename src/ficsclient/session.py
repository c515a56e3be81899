"""Login handshake and session keepalive."""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum, auto

from ficsclient.protocol import grammar
from ficsclient.protocol.commands import CommandCorrelator, consume_failure
from ficsclient.protocol.errors import AuthenticationError, ConnectionClosedError
from ficsclient.protocol.registry import Subscription

logger = logging.getLogger(__name__)

GUEST_LOGIN = "guest"
DEFAULT_SETUP_COMMANDS = ("set prompt", "set seek 0", "set style 12")
DEFAULT_KEEPALIVE_INTERVAL = 59 * 60.0
KEEPALIVE_COMMAND = "uptime"


class LoginState(Enum):
    """Progress of the login handshake."""

    AWAITING_LOGIN_PROMPT = auto()
    AWAITING_PASSWORD_PROMPT = auto()
    AWAITING_SESSION_BANNER = auto()
    AWAITING_IDLE_PROMPT = auto()
    READY = auto()
    FAILED = auto()


@dataclass
class LoginResult:
    """Outcome of a successful login."""

    username: str


class LoginStateMachine:
    """Drives the credential exchange from the login prompt to the idle prompt.

    Without credentials the session logs in as a guest; the server then asks
    to press return before assigning a guest handle.
    """

    def __init__(
        self,
        correlator: CommandCorrelator,
        username: str | None = None,
        password: str | None = None,
        setup_commands: Sequence[str] = DEFAULT_SETUP_COMMANDS,
        on_ready: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the state machine.

        Args:
            correlator: Used to send replies and the session setup commands.
            username: Registered handle, or None to log in as a guest.
            password: Password for the registered handle.
            setup_commands: Commands issued once the session is ready.
            on_ready: Called when the session reaches READY (arms keepalive).
        """
        self.correlator = correlator
        self.username = username
        self.password = password
        self.setup_commands = tuple(setup_commands)
        self.on_ready = on_ready
        self.state = LoginState.AWAITING_LOGIN_PROMPT
        self.server_username: str | None = None
        self._future: asyncio.Future[LoginResult] | None = None
        self._subscription: Subscription | None = None

    @property
    def credentialed(self) -> bool:
        return self.username is not None

    def start(self) -> "asyncio.Future[LoginResult]":
        """Start listening for login prompts.

        Returns:
            Future resolved with the effective username, or failed with
            AuthenticationError.
        """
        self._future = asyncio.get_running_loop().create_future()
        self._subscription = self.correlator.registry.subscribe(
            self.feed, self._fail, name="login"
        )
        if not self._subscription.active:
            self._fail(ConnectionClosedError("Connection closed before login"))
        return self._future

    def feed(self, line: str) -> None:
        """Advance the handshake with one raw logical line."""
        if self.state in (LoginState.READY, LoginState.FAILED):
            return

        if grammar.is_login_prompt(line):
            self.correlator.send(self.username or GUEST_LOGIN)
            if self.credentialed:
                self.state = LoginState.AWAITING_PASSWORD_PROMPT
            else:
                self.state = LoginState.AWAITING_SESSION_BANNER
        elif grammar.is_password_prompt(line):
            if self.password is None:
                self._fail(AuthenticationError(f"Password required for {self.username}"))
                return
            self.correlator.send(self.password)
            self.state = LoginState.AWAITING_SESSION_BANNER
        elif grammar.is_return_prompt(line):
            self.correlator.send("")
            self.state = LoginState.AWAITING_SESSION_BANNER
        elif grammar.is_invalid_password(line):
            self._fail(AuthenticationError("Invalid password"))
        elif banner := grammar.parse_session_start(line):
            self.server_username = banner.username
            self.state = LoginState.AWAITING_IDLE_PROMPT
            logger.info("Session started as %s", banner.username)
        elif self.state is LoginState.AWAITING_IDLE_PROMPT and grammar.is_idle_prompt(
            line, self.correlator.prompt
        ):
            self._ready()

    def _ready(self) -> None:
        self.state = LoginState.READY
        self._unsubscribe()
        for command in self.setup_commands:
            self.correlator.issue(command).add_done_callback(consume_failure)
        if self.on_ready is not None:
            self.on_ready()
        if self._future is not None and not self._future.done():
            self._future.set_result(LoginResult(username=self.server_username or ""))

    def _fail(self, exc: BaseException) -> None:
        self.state = LoginState.FAILED
        self._unsubscribe()
        if self._future is not None and not self._future.done():
            self._future.set_exception(exc)

    def _unsubscribe(self) -> None:
        if self._subscription is not None:
            self.correlator.registry.unsubscribe(self._subscription)


class Keepalive:
    """Periodically sends an innocuous command so the server keeps the session.

    The server disconnects sessions idle for an hour, which would also end
    long observations. The task is owned by the session and cancelled when
    the session ends.
    """

    def __init__(
        self,
        correlator: CommandCorrelator,
        interval: float = DEFAULT_KEEPALIVE_INTERVAL,
        command: str = KEEPALIVE_COMMAND,
    ) -> None:
        self.correlator = correlator
        self.interval = interval
        self.command = command
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="fics-keepalive")

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            logger.debug("Sending keepalive %r", self.command)
            self.correlator.issue(self.command).add_done_callback(consume_failure)

    async def __aenter__(self) -> "Keepalive":
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.cancel()
