"""Line grammars for FICS server output.

Every classifier takes one logical line and returns either ``None`` or a
typed payload. Grammars that depend on a runtime value (a game number, a
channel, a tell recipient) are factories returning a classifier bound to that
value.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal, TypeVar

from ficsclient.board import ranks_to_fen

T = TypeVar("T")
Classifier = Callable[[str], T | None]

DEFAULT_PROMPT = "fics%"

_RATING = r"(\d+|[+-]{4})"
_USER = r"(\w+)"
_CLOCK = r"((?:\d+:)?\d+:\d+)"


# Value records


@dataclass(frozen=True)
class Player:
    """A player name with the rating shown next to it."""

    name: str
    rating: str


@dataclass(frozen=True)
class SessionStart:
    """Banner announcing an established session."""

    username: str


@dataclass(frozen=True)
class ChatMessage:
    """A shout, it, personal tell or channel tell."""

    kind: Literal["it", "shout", "tell"]
    user: str
    message: str
    channel: str | None = None


@dataclass(frozen=True)
class ChannelEntry:
    """A channel number with its description from the channel list."""

    number: str
    name: str


@dataclass(frozen=True)
class UserEntry:
    """A handle from the ``who`` listing."""

    name: str
    rating: str
    status: str
    codes: tuple[str, ...] = ()


@dataclass(frozen=True)
class GameSummary:
    """A row of the ``games`` listing."""

    number: int
    white: Player
    black: Player
    white_clock: str
    black_clock: str
    to_move: Literal["W", "B"]
    move_number: int


@dataclass(frozen=True)
class SoughtAd:
    """A seek ad from the ``sought`` listing."""

    number: int
    user: Player
    initial: int
    increment: int
    rated: bool
    variant: str
    rating_range: str


@dataclass(frozen=True)
class EcoEntry:
    """One line of opening classification data."""

    kind: Literal["eco", "nic", "long"]
    half_moves: int
    value: str


@dataclass(frozen=True)
class GameStart:
    """Match metadata sent when an observation starts."""

    white: Player
    black: Player
    rated: bool
    variant: str
    initial: int
    increment: int


@dataclass(frozen=True)
class PlyUpdate:
    """A style-12 position update for one half-move."""

    position: str
    to_move: Literal["W", "B"]
    move_number: int
    white_time: int
    black_time: int
    verbose_move: str
    algebraic_move: str


@dataclass(frozen=True)
class GameChat:
    """A kibitz or whisper sent in an observed game."""

    user: str
    message: str
    kind: Literal["kibitz", "whisper"]


@dataclass(frozen=True)
class GameResult:
    """The result announcement of a game."""

    result: str
    reason: str


# Prompt handling


def _prompt_pattern(prompt: str) -> re.Pattern[str]:
    return re.compile(rf"^{re.escape(prompt)}(?:\s+|$)")


def is_idle_prompt(line: str, prompt: str = DEFAULT_PROMPT) -> bool:
    """Check whether a line is the bare idle prompt."""
    return line.strip() == prompt


def strip_prompt(line: str, prompt: str = DEFAULT_PROMPT) -> str:
    """Remove a leading idle prompt from a line."""
    return _prompt_pattern(prompt).sub("", line, count=1)


# Login

LOGIN_PROMPT = re.compile(r"^login:")
PASSWORD_PROMPT = re.compile(r"^password:")
RETURN_PROMPT = re.compile(r"^Press return")
INVALID_PASSWORD = re.compile(r"^\*{4} Invalid password! \*{4}$")
SESSION_START = re.compile(r"^\*{4} Starting FICS session as (.*) \*{4}$")


def is_login_prompt(line: str) -> bool:
    return bool(LOGIN_PROMPT.match(line))


def is_password_prompt(line: str) -> bool:
    return bool(PASSWORD_PROMPT.match(line))


def is_return_prompt(line: str) -> bool:
    return bool(RETURN_PROMPT.match(line))


def is_invalid_password(line: str) -> bool:
    return bool(INVALID_PASSWORD.match(line))


def parse_session_start(line: str) -> SessionStart | None:
    match = SESSION_START.match(line)
    return SessionStart(username=match.group(1)) if match else None


# Chat

IT = re.compile(r"^--> (\S+) (.*)$")
SHOUT = re.compile(r"^(\S+) shouts: (.*)$")
USER_TELL = re.compile(r"^(\S+) tells you: (.*)$")
CHANNEL_TELL = re.compile(r"^(\S+)\((\d+)\): (.*)$")


def parse_chat(line: str) -> ChatMessage | None:
    """Classify shouts, its and tells."""
    if match := IT.match(line):
        return ChatMessage(kind="it", user=match.group(1), message=match.group(2))
    if match := SHOUT.match(line):
        return ChatMessage(kind="shout", user=match.group(1), message=match.group(2))
    if match := USER_TELL.match(line):
        return ChatMessage(kind="tell", user=match.group(1), message=match.group(2))
    if match := CHANNEL_TELL.match(line):
        return ChatMessage(
            kind="tell",
            user=match.group(1),
            channel=match.group(2),
            message=match.group(3),
        )
    return None


# Acknowledgements

SHOUT_SUCCESS = re.compile(r"^\((?:it-)?shouted to \d+ players?\)$")
SHOUT_UNREGISTERED = re.compile(r"^Only registered players can use the (?:shout|it) command\.$")
KIBITZ_SUCCESS = re.compile(r"^\(kibitzed to \d+ players?\)$")
WHISPER_SUCCESS = re.compile(r"^\(whispered to \d+ players?\)$")


def parse_shout_ack(line: str) -> bool | None:
    """Return True for a delivered shout, False for a refused one."""
    if SHOUT_SUCCESS.match(line):
        return True
    if SHOUT_UNREGISTERED.match(line):
        return False
    return None


def is_kibitz_ack(line: str) -> bool:
    return bool(KIBITZ_SUCCESS.match(line))


def is_whisper_ack(line: str) -> bool:
    return bool(WHISPER_SUCCESS.match(line))


def tell_ack(recipient: str) -> Classifier[bool]:
    """Build a classifier for the acknowledgement of a tell to ``recipient``."""
    name = re.escape(str(recipient))
    failures = [
        re.compile(r"^The range of channels is 0 to 255\.$"),
        re.compile(r"^Only registered users may send tells to channels other than 4, 7 and 53\.$"),
        re.compile(rf"^Only .* may send tells to channel {name}\.$"),
        re.compile(rf"^'{name}' is not a valid handle\.$"),
    ]
    successes = [
        re.compile(rf"^\(told {name}(?:, [^)]*)?\).*$"),
        re.compile(rf"^\(told \d+ players in channel {name}(?:\s+\".*\")?\).*$"),
    ]

    def classify(line: str) -> bool | None:
        if any(pattern.match(line) for pattern in successes):
            return True
        if any(pattern.match(line) for pattern in failures):
            return False
        return None

    return classify


def channel_change_ack(channel: str, action: Literal["add", "remove"]) -> Classifier[bool]:
    """Build a classifier for ``+channel``/``-channel`` acknowledgements."""
    number = re.escape(str(channel))
    if action == "add":
        success = re.compile(rf"^\[{number}\] added to your channel list\.$")
        failure = re.compile(rf"^\[{number}\] is already on your channel list\.$")
    else:
        success = re.compile(rf"^\[{number}\] removed from your channel list\.$")
        failure = re.compile(rf"^\[{number}\] is not in your channel list\.$")

    def classify(line: str) -> bool | None:
        if success.match(line):
            return True
        if failure.match(line):
            return False
        return None

    return classify


def unobserve_refusal(game: int | str) -> Classifier[bool]:
    """Build a classifier for "not observing" replies to ``unobserve``."""
    not_observing_game = re.compile(rf"^You are not observing game {re.escape(str(game))}\.")

    def classify(line: str) -> bool | None:
        if line == "You are not observing any games." or not_observing_game.match(line):
            return True
        return None

    return classify


# Listings

CHANNELS = re.compile(r"^\d+(?:\s+\d+)*$")
CHANNEL_LIST_ENTRY = re.compile(r"^(\d+(?:,\d+)*)\s+(.*)$")
CHANNEL_LIST_COMPLETE = re.compile(r"^Last Modified")

HANDLE = re.compile(r"^(\d+|[+-]{4})([\^~:#'&. ])(\w+)((?:\([*A-Z]+\))*)$")
WHO_COMPLETE = re.compile(
    r"^\d+ players displayed \(of \d+\)\. \(\*\) indicates system administrator\.$"
)

GAME = re.compile(
    rf"^(\d+)\s+{_RATING}\s+(\w+)\s+{_RATING}\s+(\w+)\s+\[.*\]\s+"
    rf"{_CLOCK}\s+-?\s*{_CLOCK}\s+\(.*\)\s+(W|B):\s+(\d+)$"
)
GAMES_COMPLETE = re.compile(r"^\d+ games displayed\.$")

SOUGHT = re.compile(
    r"^\s*(\d+)\s+(\d*|\+{4})\s+(\w+(?:\(C\))?)\s+(\d+)\s+(\d+) ((?:un)?rated)\s+"
    r"([\w/]+)\s+(\d+-\d+)\s?\w*$"
)
SOUGHT_COMPLETE = re.compile(r"^\d+ ads? displayed\.$")

_SAN = r"[RNBQKPa-h1-8Ox=+#-]+"
MOVE_PAIR = re.compile(rf"^\d+\.\s+({_SAN})\s+\(\d+:\d+\)(?:\s+({_SAN})?\s+\(\d+:\d+\))?$")
MOVES_COMPLETE = re.compile(r"^\{[^}]*\} (?:1-0|0-1|1/2-1/2|\*)$")

ECO = re.compile(r"(ECO|NIC|LONG)\[\s*(\d+)\]: (.*)")

NEXT_PAGE = re.compile(r"^Type \[next\] to see next page\.$")


def parse_channels(line: str) -> list[str] | None:
    """Parse the ``=channel`` reply: channel numbers separated by spaces."""
    if not CHANNELS.match(line):
        return None
    return line.split()


def parse_channel_list_entry(line: str) -> list[ChannelEntry] | None:
    """Parse a ``help channel_list`` row; one row may name several channels."""
    match = CHANNEL_LIST_ENTRY.match(line)
    if not match:
        return None
    name = match.group(2)
    return [ChannelEntry(number=number, name=name) for number in match.group(1).split(",")]


def is_channel_list_complete(line: str) -> bool:
    return bool(CHANNEL_LIST_COMPLETE.match(line))


def parse_handles(line: str) -> list[UserEntry]:
    """Parse every handle on a ``who`` line (columns separated by 2+ spaces)."""
    users = []
    for column in re.split(r"\s{2,}", line):
        match = HANDLE.match(column)
        if not match:
            continue
        codes: tuple[str, ...] = ()
        if match.group(4):
            codes = tuple(match.group(4)[1:-1].split(")("))
        users.append(
            UserEntry(
                name=match.group(3),
                rating=match.group(1),
                status=match.group(2),
                codes=codes,
            )
        )
    return users


def is_who_complete(line: str) -> bool:
    return bool(WHO_COMPLETE.match(line))


def parse_game(line: str) -> GameSummary | None:
    """Parse a row of the ``games`` listing.

    Examined games and bot lectures use a different row format and are not
    recognized.
    """
    match = GAME.match(line)
    if not match:
        return None
    return GameSummary(
        number=int(match.group(1)),
        white=Player(name=match.group(3), rating=match.group(2)),
        black=Player(name=match.group(5), rating=match.group(4)),
        white_clock=match.group(6),
        black_clock=match.group(7),
        to_move=match.group(8),  # type: ignore[arg-type]
        move_number=int(match.group(9)),
    )


def is_games_complete(line: str) -> bool:
    return bool(GAMES_COMPLETE.match(line))


def parse_sought(line: str) -> SoughtAd | None:
    match = SOUGHT.match(line)
    if not match:
        return None
    return SoughtAd(
        number=int(match.group(1)),
        user=Player(name=match.group(3), rating=match.group(2)),
        initial=int(match.group(4)),
        increment=int(match.group(5)),
        rated=match.group(6) == "rated",
        variant=match.group(7),
        rating_range=match.group(8),
    )


def is_sought_complete(line: str) -> bool:
    return bool(SOUGHT_COMPLETE.match(line))


def parse_move_pair(line: str) -> tuple[str, ...] | None:
    """Parse a numbered row of the ``moves`` listing."""
    match = MOVE_PAIR.match(line)
    if not match:
        return None
    if match.group(2):
        return (match.group(1), match.group(2))
    return (match.group(1),)


def is_moves_complete(line: str) -> bool:
    return bool(MOVES_COMPLETE.match(line))


def parse_eco(line: str) -> EcoEntry | None:
    match = ECO.search(line)
    if not match:
        return None
    return EcoEntry(
        kind=match.group(1).lower(),  # type: ignore[arg-type]
        half_moves=int(match.group(2)),
        value=match.group(3).strip(),
    )


def is_next_page_prompt(line: str) -> bool:
    return bool(NEXT_PAGE.match(line))


def observers(game: int | str) -> Classifier[list[str]]:
    """Build a classifier for the ``allobservers`` reply of a game."""
    pattern = re.compile(
        rf"^Observing {re.escape(str(game))} \[[^\]]*\]:\s+(.+?)\s+\(\d+ users?\)$"
    )

    def classify(line: str) -> list[str] | None:
        match = pattern.match(line)
        return match.group(1).split() if match else None

    return classify


# Observation


def game_start(game: int | str) -> Classifier[GameStart]:
    """Build a classifier for the match line sent when observing starts."""
    pattern = re.compile(
        rf"^Game {re.escape(str(game))}: {_USER} \({_RATING}\) {_USER} \({_RATING}\) "
        r"((?:un)?rated) (\w+) (\d+) (\d+)$"
    )

    def classify(line: str) -> GameStart | None:
        match = pattern.match(line)
        if not match:
            return None
        return GameStart(
            white=Player(name=match.group(1), rating=match.group(2)),
            black=Player(name=match.group(3), rating=match.group(4)),
            rated=match.group(5) == "rated",
            variant=match.group(6),
            initial=int(match.group(7)),
            increment=int(match.group(8)),
        )

    return classify


def ply_update(game: int | str) -> Classifier[PlyUpdate]:
    """Build a classifier for style-12 board updates of a game."""
    pattern = re.compile(
        r"^<12> ((?:[-pPrRnNbBqQkK]{8}\s?){8}) (W|B) (?:-?\d+ ){6}"
        rf"{re.escape(str(game))} \w+ \w+ (?:-?\d+ ){{5}}(-?\d+) (-?\d+) (\d+) "
        r"(none|o-o-o|o-o|[RNBQKP]/[a-h][1-8]-[a-h][1-8](?:=[RNBQ])?) "
        r"\([\d:.]+\) (\S+)(?:\s+-?\d+)*$"
    )

    def classify(line: str) -> PlyUpdate | None:
        match = pattern.match(line)
        if not match:
            return None
        return PlyUpdate(
            position=ranks_to_fen(match.group(1)),
            to_move=match.group(2),  # type: ignore[arg-type]
            move_number=int(match.group(5)),
            white_time=int(match.group(3)),
            black_time=int(match.group(4)),
            verbose_move=match.group(6),
            algebraic_move=match.group(7),
        )

    return classify


def game_chat(game: int | str) -> Classifier[GameChat]:
    """Build a classifier for kibitzes and whispers in a game."""
    pattern = re.compile(rf"^(.*)\[{re.escape(str(game))}\] (kibitzes|whispers): (.*)$")

    def classify(line: str) -> GameChat | None:
        match = pattern.match(line)
        if not match:
            return None
        kind = "kibitz" if match.group(2) == "kibitzes" else "whisper"
        return GameChat(user=match.group(1), message=match.group(3), kind=kind)

    return classify


def game_result(game: int | str) -> Classifier[GameResult]:
    """Build a classifier for the result announcement of a game."""
    pattern = re.compile(rf"^\{{Game {re.escape(str(game))} \(\w+ vs\. \w+\) ([^}}]*)\}} (\S+)$")

    def classify(line: str) -> GameResult | None:
        match = pattern.match(line)
        if not match:
            return None
        return GameResult(result=match.group(2), reason=match.group(1))

    return classify


def game_removed(game: int | str) -> Callable[[str], bool]:
    """Build a predicate for the removal of a game from the observation list."""
    pattern = re.compile(rf"^Removing game {re.escape(str(game))} from observation list\.$")

    def classify(line: str) -> bool:
        return bool(pattern.match(line))

    return classify
