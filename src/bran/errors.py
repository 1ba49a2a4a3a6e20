"""Error kinds raised by bran.

Per-host errors are isolated to the host's execution unit and turned into a
failed outcome. Fatal errors abort the whole run.
"""

from __future__ import annotations


class BranError(Exception):
    """Base class for all bran errors."""

    fatal = False


class ConnectivityError(BranError):
    """The remote shell could not be reached or rejected us."""

    def __init__(self, host: str, reason: object):
        self.host = host
        self.reason = reason
        super().__init__(f"Cannot connect to {host}: {reason}")


class CommandError(BranError):
    """A command exited with a nonzero status."""

    def __init__(self, message: str, exit_status: int | None = None, host: str | None = None):
        self.exit_status = exit_status
        self.host = host
        super().__init__(message)


class LocalIOError(BranError):
    """Local state needed for the run could not be read or written."""

    fatal = True


class OutputError(LocalIOError):
    """Writing to the console failed."""


class ConfigError(BranError):
    """Configuration is missing or invalid."""

    fatal = True
