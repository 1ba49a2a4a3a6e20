"""Console output shared by every host's execution unit.

All writes go through a single `Output`, which serializes them under one lock
so a line from one host is never split by a line from another. Each line is
prefixed with the caller's identifier, e.g. ``[win] Build succeeded``.
Styling is only applied to streams attached to a terminal.
"""

from __future__ import annotations

import asyncio
import sys
import threading
from enum import Enum
from typing import TextIO

import asyncssh

from .errors import OutputError

BOLD = "\033[1m"
GREEN_BOLD = "\033[1;32m"
RED_BOLD = "\033[1;31m"
RESET = "\033[0m"
DRAIN_CHUNK = 65536


class Stream(Enum):
    """Which console stream a line goes to."""

    STDOUT = "stdout"
    STDERR = "stderr"


class Category(Enum):
    """Presentation of a line body."""

    PLAIN = "plain"
    COMMAND = "command"
    ERROR = "error"
    SUCCESS = "success"


CATEGORY_STYLES = {
    Category.PLAIN: None,
    Category.COMMAND: GREEN_BOLD,
    Category.ERROR: RED_BOLD,
    Category.SUCCESS: GREEN_BOLD,
}


READ_ERRORS = (OSError, ValueError, asyncio.IncompleteReadError, asyncssh.Error)


async def _discard(reader) -> None:
    """Read until EOF, dropping the data."""
    try:
        while await reader.read(DRAIN_CHUNK):
            pass
    except READ_ERRORS:
        # Already reported by the caller
        return


def _is_tty(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class Output:
    """Process-wide, lock-guarded writer for stdout and stderr."""

    def __init__(
        self,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        stdout_is_tty: bool | None = None,
        stderr_is_tty: bool | None = None,
    ):
        self._streams = {
            Stream.STDOUT: stdout if stdout is not None else sys.stdout,
            Stream.STDERR: stderr if stderr is not None else sys.stderr,
        }
        # Decided once; redirecting mid-run does not change styling.
        self._tty = {
            Stream.STDOUT: _is_tty(self._streams[Stream.STDOUT])
            if stdout_is_tty is None
            else stdout_is_tty,
            Stream.STDERR: _is_tty(self._streams[Stream.STDERR])
            if stderr_is_tty is None
            else stderr_is_tty,
        }
        self._lock = threading.Lock()

    def use_color(self, stream: Stream) -> bool:
        return self._tty[stream]

    def log(self, caller_id: str) -> Log:
        """Return a handle that tags every line with caller_id."""
        return Log(caller_id, self)

    def format_header(self, stream: Stream, header: str) -> str:
        formatted = f"[{header}]"
        if self.use_color(stream):
            return f"{BOLD}{formatted}{RESET}"
        return formatted

    def format_body(self, stream: Stream, category: Category, text: str) -> str:
        if category is Category.COMMAND:
            text = f"$ {text}"
        style = CATEGORY_STYLES[category]
        if style and self.use_color(stream):
            return f"{style}{text}{RESET}"
        return text

    def format_line(self, caller_id: str, stream: Stream, category: Category, text: str) -> str:
        header = self.format_header(stream, caller_id)
        body = self.format_body(stream, category, text.rstrip())
        return f"{header} {body}"

    def emit(self, caller_id: str, stream: Stream, category: Category, text: str) -> None:
        """Write one formatted line atomically."""
        self._write(stream, self.format_line(caller_id, stream, category, text) + "\n")

    def banner(self, text: str) -> None:
        """Write an untagged block of text to stdout."""
        self._write(Stream.STDOUT, text + "\n")

    def _write(self, stream: Stream, data: str) -> None:
        out = self._streams[stream]
        with self._lock:
            try:
                out.write(data)
                out.flush()
            except OSError as e:
                raise OutputError(f"failed to write {stream.value}: {e}") from e

    async def stream_lines(self, caller_id: str, reader, stream: Stream) -> None:
        """Emit each line of a live reader until it is exhausted.

        Works with `asyncio.StreamReader` (bytes) and asyncssh readers (str).
        A read error is emitted as the last line and the rest of the reader is
        drained and discarded until EOF.
        """
        while True:
            try:
                line = await reader.readline()
            except READ_ERRORS as e:
                self.emit(caller_id, stream, Category.PLAIN, str(e))
                await _discard(reader)
                break

            if not line:
                break
            if isinstance(line, bytes):
                line = line.decode("utf-8", errors="replace")
            self.emit(caller_id, stream, Category.PLAIN, line)


class Log:
    """Output handle bound to one caller identifier."""

    def __init__(self, header: str, output: Output):
        self.header = header
        self.output = output

    def line(self, msg: str, stream: Stream = Stream.STDOUT) -> None:
        self.output.emit(self.header, stream, Category.PLAIN, msg)

    def cmd(self, cmd: str) -> None:
        self.output.emit(self.header, Stream.STDOUT, Category.COMMAND, cmd)

    def error(self, msg: str) -> None:
        self.output.emit(self.header, Stream.STDERR, Category.ERROR, msg)

    def success(self, msg: str) -> None:
        self.output.emit(self.header, Stream.STDOUT, Category.SUCCESS, msg)

    async def stream(self, reader, stream: Stream) -> None:
        await self.output.stream_lines(self.header, reader, stream)
