"""Entry point for the fics CLI."""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ficsclient import __version__
from ficsclient.client import FICSClient
from ficsclient.config import Config, load_config
from ficsclient.logging.transcript import TranscriptLogger, create_transcript_paths
from ficsclient.protocol.errors import FICSError
from ficsclient.protocol.grammar import ChatMessage, GameChat, GameStart, PlyUpdate

app = typer.Typer(
    name="fics",
    help="Command-line client for the Free Internet Chess Server",
)
console = Console()

ConfigOption = Annotated[
    str | None,
    typer.Option("--config", "-c", help="Path to config YAML file"),
]
UserOption = Annotated[
    str | None,
    typer.Option("--user", "-u", help="Registered handle (default: log in as guest)"),
]
PasswordOption = Annotated[
    str | None,
    typer.Option("--password", "-p", help="Password for the registered handle"),
]
TranscriptDirOption = Annotated[
    Path | None,
    typer.Option("--transcript-dir", "-t", help="Directory for transcripts"),
]
NoTranscriptOption = Annotated[
    bool,
    typer.Option("--no-transcript", help="Disable transcript logging"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Show protocol traffic"),
]


def setup_logging(config: Config, verbose: bool) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.logging.level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def create_transcript(
    config: Config,
    name: str,
    transcript_dir: Path | None,
    no_transcript: bool,
) -> TranscriptLogger | None:
    """Create the transcript logger for a command, unless disabled."""
    if no_transcript:
        return None

    t_dir = transcript_dir or config.logging.transcript_dir
    t_dir.mkdir(parents=True, exist_ok=True)

    json_path, md_path = create_transcript_paths(t_dir, name)
    console.print(f"  Transcript: {md_path}")
    return TranscriptLogger(
        json_path=json_path if config.logging.enable_json else None,
        markdown_path=md_path if config.logging.enable_markdown else None,
        title=f"{config.server.host}:{config.server.port} {name}",
    )


@asynccontextmanager
async def open_session(
    config: Config,
    transcript: TranscriptLogger | None,
    user: str | None,
    password: str | None,
) -> AsyncIterator[FICSClient]:
    """Connect, log in, and close the session on exit."""
    client = await FICSClient.connect(config, transcript)
    try:
        result = await client.login(user, password)
        console.print(f"Logged in as [bold]{result.username}[/bold]")
        yield client
    finally:
        await client.close()


def run_session(
    command: str,
    main: Callable[[FICSClient], Awaitable[None]],
    config_path: str | None,
    user: str | None = None,
    password: str | None = None,
    transcript_dir: Path | None = None,
    no_transcript: bool = False,
    verbose: bool = False,
) -> None:
    """Run ``main(client)`` inside a logged-in session, reporting errors."""
    config = load_config(Path(config_path) if config_path else None)
    setup_logging(config, verbose)
    transcript = create_transcript(config, command, transcript_dir, no_transcript)

    async def session() -> None:
        async with open_session(config, transcript, user, password) as client:
            await main(client)

    try:
        asyncio.run(session())
    except FICSError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")


def format_event(event: GameStart | PlyUpdate | GameChat) -> str:
    """Render an observation event as one line of rich markup."""
    if isinstance(event, GameStart):
        rated = "rated" if event.rated else "unrated"
        return (
            f"[bold]{event.white.name}[/bold] ({event.white.rating}) vs "
            f"[bold]{event.black.name}[/bold] ({event.black.rating}), "
            f"{rated} {event.variant} {event.initial} {event.increment}"
        )
    if isinstance(event, PlyUpdate):
        return (
            f"{event.move_number}. [green]{event.algebraic_move}[/green]  "
            f"{event.position}  W {event.white_time}s / B {event.black_time}s"
        )
    verb = "kibitzes" if event.kind == "kibitz" else "whispers"
    return f"[cyan]{escape(event.user)}[/cyan] {verb}: {escape(event.message)}"


def format_chat(message: ChatMessage) -> str:
    where = f"({message.channel})" if message.channel else escape(f"[{message.kind}]")
    return f"[cyan]{escape(message.user)}[/cyan]{where}: {escape(message.message)}"


@app.command()
def games(
    config: ConfigOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    transcript_dir: TranscriptDirOption = None,
    no_transcript: NoTranscriptOption = False,
    verbose: VerboseOption = False,
) -> None:
    """List the games in progress."""

    async def main(client: FICSClient) -> None:
        table = Table(title="Games")
        for column in ("#", "White", "Black", "Clocks", "Move"):
            table.add_column(column)
        for game in await client.games():
            table.add_row(
                str(game.number),
                f"{game.white.name} ({game.white.rating})",
                f"{game.black.name} ({game.black.rating})",
                f"{game.white_clock} / {game.black_clock}",
                f"{game.to_move} {game.move_number}",
            )
        console.print(table)

    run_session(
        "games",
        main,
        config,
        user=user,
        password=password,
        transcript_dir=transcript_dir,
        no_transcript=no_transcript,
        verbose=verbose,
    )


@app.command()
def who(
    config: ConfigOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    transcript_dir: TranscriptDirOption = None,
    no_transcript: NoTranscriptOption = False,
    verbose: VerboseOption = False,
) -> None:
    """List the users logged in."""

    async def main(client: FICSClient) -> None:
        table = Table(title="Users")
        for column in ("Handle", "Rating", "Status", "Codes"):
            table.add_column(column)
        for entry in await client.who():
            table.add_row(entry.name, entry.rating, entry.status, " ".join(entry.codes))
        console.print(table)

    run_session(
        "who",
        main,
        config,
        user=user,
        password=password,
        transcript_dir=transcript_dir,
        no_transcript=no_transcript,
        verbose=verbose,
    )


@app.command()
def sought(
    config: ConfigOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    transcript_dir: TranscriptDirOption = None,
    no_transcript: NoTranscriptOption = False,
    verbose: VerboseOption = False,
) -> None:
    """List the seek ads awaiting opponents."""

    async def main(client: FICSClient) -> None:
        table = Table(title="Seeks")
        for column in ("#", "Player", "Time", "Rated", "Type", "Range"):
            table.add_column(column)
        for ad in await client.sought():
            table.add_row(
                str(ad.number),
                f"{ad.user.name} ({ad.user.rating})",
                f"{ad.initial} {ad.increment}",
                "rated" if ad.rated else "unrated",
                ad.variant,
                ad.rating_range,
            )
        console.print(table)

    run_session(
        "sought",
        main,
        config,
        user=user,
        password=password,
        transcript_dir=transcript_dir,
        no_transcript=no_transcript,
        verbose=verbose,
    )


@app.command()
def observe(
    game: Annotated[int, typer.Argument(help="Number of the game to observe")],
    config: ConfigOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    transcript_dir: TranscriptDirOption = None,
    no_transcript: NoTranscriptOption = False,
    verbose: VerboseOption = False,
) -> None:
    """Observe a game until it ends."""

    async def main(client: FICSClient) -> None:
        watch = client.observe(game)
        async for event in watch:
            if client.transcript:
                client.transcript.log_event(type(event).__name__, event)
            console.print(format_event(event))
        result = await watch
        if result is None:
            console.print(Panel(f"Game {game} is no longer observed", title="Observation"))
        else:
            console.print(Panel(f"{result.reason}: [bold]{result.result}[/bold]", title=f"Game {game}"))

    run_session(
        f"observe_{game}",
        main,
        config,
        user=user,
        password=password,
        transcript_dir=transcript_dir,
        no_transcript=no_transcript,
        verbose=verbose,
    )


@app.command()
def chat(
    config: ConfigOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    transcript_dir: TranscriptDirOption = None,
    no_transcript: NoTranscriptOption = False,
    verbose: VerboseOption = False,
) -> None:
    """Print shouts and tells until interrupted."""

    async def main(client: FICSClient) -> None:
        async for message in client.chat():
            console.print(format_chat(message))

    run_session(
        "chat",
        main,
        config,
        user=user,
        password=password,
        transcript_dir=transcript_dir,
        no_transcript=no_transcript,
        verbose=verbose,
    )


@app.command()
def passthrough(
    config: ConfigOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    transcript_dir: TranscriptDirOption = None,
    no_transcript: NoTranscriptOption = False,
    verbose: VerboseOption = False,
) -> None:
    """Print every logical line the server sends until interrupted."""

    async def main(client: FICSClient) -> None:
        async for line in client.lines():
            console.print(line, markup=False, highlight=False)

    run_session(
        "passthrough",
        main,
        config,
        user=user,
        password=password,
        transcript_dir=transcript_dir,
        no_transcript=no_transcript,
        verbose=verbose,
    )


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"fics {__version__}")


if __name__ == "__main__":
    app()
