"""Transcript logging for server sessions."""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, TextIO


@dataclass
class TranscriptEntry:
    """A single entry in the transcript."""

    timestamp: str
    sequence: int
    entry_type: str  # "sent", "received", "event", "error", "system"
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


class TranscriptLogger:
    """Dual-format transcript logger (JSON + Markdown).

    Records the traffic of a session in JSON format (for replay and building
    test fixtures) and Markdown format (for human reading).
    """

    def __init__(
        self,
        json_path: Path | None = None,
        markdown_path: Path | None = None,
        title: str | None = None,
    ) -> None:
        """Initialize the transcript logger.

        Args:
            json_path: Path for JSON transcript output.
            markdown_path: Path for Markdown transcript output.
            title: Title of the session, e.g. the server address.
        """
        self.json_path = json_path
        self.markdown_path = markdown_path
        self.title = title
        self._entries: list[TranscriptEntry] = []
        self._commands = 0
        self._md_file: TextIO | None = None
        self._start_time = datetime.now()

        # Keep file open for streaming writes during session
        if markdown_path:
            markdown_path.parent.mkdir(parents=True, exist_ok=True)
            self._md_file = open(markdown_path, "w")  # noqa: SIM115
            self._write_markdown_header()

    def _write_markdown_header(self) -> None:
        if self._md_file is None:
            return

        title = self.title or "FICS Session"
        self._md_file.write(f"# {title}\n\n")
        self._md_file.write(f"Started: {self._start_time.isoformat()}\n\n")
        self._md_file.write("---\n\n")
        self._md_file.flush()

    def log_sent(self, text: str) -> None:
        """Log a line written to the server.

        Args:
            text: The line sent, without terminator.
        """
        self._commands += 1
        self._add_entry("sent", text)

        if self._md_file:
            self._md_file.write(f"\n**>** `{text}`\n\n")
            self._md_file.flush()

    def log_received(self, line: str) -> None:
        """Log a logical line received from the server.

        Args:
            line: The logical line.
        """
        self._add_entry("received", line)

        if self._md_file:
            self._md_file.write(f"    {line}\n")
            self._md_file.flush()

    def log_event(self, kind: str, data: Any) -> None:
        """Log a typed event extracted from the stream.

        Args:
            kind: Event type, e.g. "ply" or "chat".
            data: The event payload (a dataclass or plain value).
        """
        payload = asdict(data) if hasattr(data, "__dataclass_fields__") else data
        self._add_entry("event", kind, {"data": payload})

        if self._md_file:
            self._md_file.write(f"\n- *{kind}*: `{payload}`\n")
            self._md_file.flush()

    def log_error(self, error_type: str, message: str) -> None:
        """Log an error.

        Args:
            error_type: Type of error.
            message: Error message.
        """
        self._add_entry("error", message, {"error_type": error_type})

        if self._md_file:
            self._md_file.write(f"\n> **Error ({error_type}):** {message}\n\n")
            self._md_file.flush()

    def log_system_note(self, note: str) -> None:
        """Log a system note.

        Args:
            note: System note content.
        """
        self._add_entry("system", note)

        if self._md_file:
            self._md_file.write(f"\n*[System: {note}]*\n\n")
            self._md_file.flush()

    def _add_entry(
        self,
        entry_type: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self._entries.append(
            TranscriptEntry(
                timestamp=datetime.now().isoformat(),
                sequence=len(self._entries),
                entry_type=entry_type,
                content=content,
                metadata=metadata or {},
            )
        )

    def get_entries(self) -> list[TranscriptEntry]:
        """Get all transcript entries.

        Returns:
            List of transcript entries.
        """
        return self._entries.copy()

    def finalize(self) -> None:
        """Finalize and close transcript files."""
        end_time = datetime.now()

        if self.json_path:
            self.json_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.json_path, "w") as f:
                json.dump(
                    {
                        "title": self.title,
                        "start_time": self._start_time.isoformat(),
                        "end_time": end_time.isoformat(),
                        "total_commands": self._commands,
                        "entries": [asdict(e) for e in self._entries],
                    },
                    f,
                    indent=2,
                    default=str,
                )

        if self._md_file:
            self._md_file.write("\n---\n\n")
            self._md_file.write(f"Completed: {end_time.isoformat()}\n")
            self._md_file.write(f"Commands sent: {self._commands}\n")
            self._md_file.close()
            self._md_file = None

    def __enter__(self) -> "TranscriptLogger":
        """Context manager entry."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.finalize()


def create_transcript_paths(
    base_dir: Path,
    name: str,
    session_id: str | None = None,
) -> tuple[Path, Path]:
    """Create paths for transcript files.

    Args:
        base_dir: Base directory for transcripts.
        name: Name of the session, e.g. the command being run.
        session_id: Optional session identifier.

    Returns:
        Tuple of (json_path, markdown_path).
    """
    if session_id is None:
        session_id = datetime.now().strftime("%Y%m%d_%H%M%S")

    # Sanitize name for filename
    safe_name = "".join(c if c.isalnum() or c in "-_" else "_" for c in name)

    json_path = base_dir / f"{safe_name}_{session_id}.json"
    markdown_path = base_dir / f"{safe_name}_{session_id}.md"

    return json_path, markdown_path
