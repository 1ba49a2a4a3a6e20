"""Local command execution with streamed output."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence

from .errors import CommandError, LocalIOError
from .log import Log, Stream


async def run(args: Sequence[str], log: Log, env: Mapping[str, str] | None = None) -> None:
    """Run a command to completion, streaming stdout and stderr through log.

    Raises CommandError if the command exits with a nonzero status.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=dict(env) if env is not None else None,
        )
    except OSError as e:
        raise LocalIOError(f"failed to run {args[0]}: {e}") from e

    # Read stdout and stderr concurrently
    await asyncio.gather(
        log.stream(proc.stdout, Stream.STDOUT),
        log.stream(proc.stderr, Stream.STDERR),
    )

    exit_status = await proc.wait()
    if exit_status != 0:
        raise CommandError(f"Command failed with exit status {exit_status}", exit_status)
