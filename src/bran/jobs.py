"""Per-host jobs dispatched by the executor."""

from __future__ import annotations

from collections.abc import Sequence

from . import git
from .config import Host
from .executor import Job
from .log import Output
from .remote import Remote


def sync_and_run(token: str | None, commands: Sequence[str]) -> Job:
    """Push the tree at token (if any), then run commands in order.

    Stops at the first failing command.
    """
    commands = tuple(commands)

    async def job(host: Host, output: Output) -> None:
        if token is not None:
            await git.push(host, output)

        async with Remote(host, output) as remote:
            if token is not None:
                await remote.run(f"git reset {token} --hard")
            for cmd in commands:
                await remote.run(cmd)

    return job


async def initialize(host: Host, output: Output) -> None:
    async with Remote(host, output) as remote:
        await remote.init()


async def clean(host: Host, output: Output) -> None:
    async with Remote(host, output) as remote:
        await remote.clean()
