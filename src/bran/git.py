"""Synchronization of the local working tree to remote hosts.

bran keeps its own git directory (``.bran``) next to the project's files so it
never touches the project's own repository. Every build commits the whole
working tree there and force-pushes it to each host's ``bran`` branch.
"""

from __future__ import annotations

import os
import shlex
from email.utils import formatdate
from pathlib import Path

from . import process
from .config import Host
from .errors import CommandError, LocalIOError
from .log import Log, Output

GIT_DIR = ".bran"
BRANCH = "master"
REMOTE_BRANCH = "bran"


async def git(log: Log, *args: str, ssh_command: str | None = None) -> None:
    """Run git against the bran git directory."""
    args_with_tree = [f"--git-dir={GIT_DIR}", "--work-tree=.", *args]

    env = None
    if ssh_command:
        env = {**os.environ, "GIT_SSH_COMMAND": ssh_command}

    log.cmd(f"git {shlex.join(args_with_tree)}")
    await process.run(["git", *args_with_tree], log, env=env)


def write_file(path: Path, content: str, log: Log) -> None:
    log.cmd(f'echo "{content}" > {path}')
    try:
        path.write_text(content)
    except OSError as e:
        raise LocalIOError(f"failed to write {path}: {e}") from e


async def init(output: Output) -> None:
    """Create the local bran git directory."""
    log = output.log("local")

    await git(log, "init")
    await git(log, "symbolic-ref", "HEAD", f"refs/heads/{BRANCH}")

    info = Path(GIT_DIR) / "info"
    try:
        info.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise LocalIOError(f"failed to create {info}: {e}") from e
    write_file(info / "exclude", GIT_DIR, log)
    write_file(info / "attributes", "* -filter -diff -merge -text", log)

    await git(log, "config", "user.name", "Brandon Stark")
    await git(log, "config", "user.email", "bran.stark@example.com")
    await git(log, "config", "core.autocrlf", "false")
    await git(log, "config", "core.ignorecase", "false")
    await git(log, "config", "commit.gpgsign", "false")


def head() -> str:
    """Return the commit hash at the tip of the local branch."""
    ref = Path(GIT_DIR) / "refs" / "heads" / BRANCH
    try:
        return ref.read_text().strip()
    except OSError as e:
        raise LocalIOError(f"failed to read {ref}: {e}") from e


async def commit(output: Output) -> str:
    """Commit the working tree and return the resulting synchronization token."""
    log = output.log("local")
    msg = formatdate(localtime=True)

    # Nothing to commit is fine; the previous head is still the token.
    for args in (("add", "-A", "."), ("commit", "-m", msg)):
        try:
            await git(log, *args)
        except CommandError:
            pass

    return head()


async def push(host: Host, output: Output) -> None:
    """Force-push the local branch to the host's build directory."""
    log = output.log(host.name)
    try:
        await git(
            log,
            "push",
            "-f",
            host.git_ssh_url,
            f"{BRANCH}:{REMOTE_BRANCH}",
            ssh_command=host.git_ssh_command,
        )
    except CommandError as e:
        e.host = host.name
        raise
