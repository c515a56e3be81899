"""Turn raw transport chunks into logical protocol lines."""

import codecs
import logging

logger = logging.getLogger(__name__)

CONTINUATION_MARKER = "\\"


class LineDemultiplexer:
    """Split a byte stream into logical lines.

    The server writes lines terminated by ``\\n`` (usually ``\\n\\r``), but a
    single read can end anywhere. A trailing partial line is held back until
    the rest of it arrives, except for interactive input requests such as
    ``login: `` or the bare idle prompt, which never get a terminator.

    Long server messages are wrapped onto continuation lines starting with a
    backslash; those are folded back onto the line they continue. A wrap can
    fall on a chunk boundary, so the last complete line of a chunk is held
    until the next chunk shows it is not continued. The prompt the server
    sends after every reply releases it.
    """

    def __init__(
        self,
        prompt: str = "fics%",
        encoding: str = "latin-1",
        flush_suffixes: tuple[str, ...] = (": ",),
    ) -> None:
        """Initialize the demultiplexer.

        Args:
            prompt: Idle prompt token; a held fragment equal to it is flushed.
            encoding: Encoding used to decode byte chunks.
            flush_suffixes: Fragment endings that mark an input request.
        """
        self.prompt = prompt
        self.flush_suffixes = flush_suffixes
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""
        self._held: str | None = None

    @property
    def pending(self) -> str:
        """The fragment currently held back."""
        return self._pending

    @property
    def held(self) -> str | None:
        """The last complete line, kept back in case a continuation follows."""
        return self._held

    def feed(self, chunk: bytes | str) -> list[str]:
        """Consume a chunk and return the logical lines it completes.

        Args:
            chunk: Raw data as read from the transport.

        Returns:
            Complete logical lines, trimmed, in arrival order.
        """
        text = self._decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        if not text:
            return []

        segments = (self._pending + text).split("\n")
        self._pending = ""

        input_request = False
        if not text.endswith("\n"):
            if self._is_input_request(segments[-1]):
                input_request = True
            else:
                self._pending = segments.pop()

        lines = self._join_continuations(segments)
        if lines and not input_request and self._may_continue():
            self._held = lines.pop()
        return lines

    def flush(self) -> list[str]:
        """Emit the held line and any pending fragment (end of stream)."""
        tail = self._decoder.decode(b"", final=True)
        remainder, self._pending = self._pending + tail, ""
        return self._join_continuations([remainder])

    def _is_input_request(self, fragment: str) -> bool:
        if fragment.strip() == self.prompt:
            return True
        return any(fragment.endswith(suffix) for suffix in self.flush_suffixes)

    def _may_continue(self) -> bool:
        fragment = self._pending.strip()
        return not fragment or fragment.startswith(CONTINUATION_MARKER)

    def _join_continuations(self, segments: list[str]) -> list[str]:
        lines: list[str] = [self._held] if self._held is not None else []
        self._held = None
        for segment in segments:
            line = segment.strip()
            if not line:
                continue
            if line.startswith(CONTINUATION_MARKER):
                if lines:
                    lines[-1] = f"{lines[-1]} {line[1:].strip()}"
                else:
                    logger.debug("Dropping orphan continuation line: %r", line)
                continue
            lines.append(line)
        return lines
