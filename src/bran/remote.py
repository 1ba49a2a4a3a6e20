"""SSH sessions on a single build host."""

from __future__ import annotations

import asyncio

import asyncssh

from .config import Host
from .errors import CommandError, ConnectivityError
from .log import Output, Stream


class Remote:
    """Runs commands in one host's build directory over a single connection.

    Use as an async context manager::

        async with Remote(host, output) as remote:
            await remote.run("make")
    """

    def __init__(self, host: Host, output: Output):
        self.host = host
        self.log = output.log(host.name)
        self._conn: asyncssh.SSHClientConnection | None = None

    async def __aenter__(self) -> Remote:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def connect(self) -> None:
        options = {
            "username": self.host.user,
            "preferred_auth": "publickey",
        }
        # Omitting client_keys lets asyncssh fall back to the default keys
        if self.host.client_keys:
            options["client_keys"] = self.host.client_keys

        try:
            self._conn = await asyncssh.connect(self.host.address, **options)
        except (asyncssh.Error, OSError) as e:
            raise ConnectivityError(self.host.name, e) from e

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            await self._conn.wait_closed()
            self._conn = None

    async def _ssh(self, cmd: str) -> None:
        """Run a raw shell command and stream its output."""
        if self._conn is None:
            raise ConnectivityError(self.host.name, "not connected")

        try:
            async with self._conn.create_process(
                cmd, stdin=asyncssh.DEVNULL, encoding="utf-8", errors="replace"
            ) as proc:
                await asyncio.gather(
                    self.log.stream(proc.stdout, Stream.STDOUT),
                    self.log.stream(proc.stderr, Stream.STDERR),
                )
                await proc.wait()
                exit_status = proc.exit_status
        except (asyncssh.Error, OSError) as e:
            raise ConnectivityError(self.host.name, e) from e

        if exit_status != 0:
            raise CommandError(
                f"Command failed with exit status {exit_status}",
                exit_status,
                host=self.host.name,
            )

    async def init(self) -> None:
        """Create the build directory and an empty repository to push into."""
        mkdir = f'mkdir -p "{self.host.build_dir}"'
        self.log.cmd(mkdir)
        await self._ssh(mkdir)
        await self.run("git init")

    async def clean(self) -> None:
        """Wipe the build directory and initialize it again."""
        rm = f'rm -rf "{self.host.build_dir}"'
        self.log.cmd(rm)
        await self._ssh(rm)
        await self.init()

    async def run(self, cmd: str) -> None:
        """Run cmd inside the build directory."""
        line = f'cd "{self.host.build_dir}"; {cmd}'
        self.log.cmd(line)
        await self._ssh(line)
