"""Tests for synchronization through the .bran git directory."""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from bran import git
from bran.config import Host
from bran.errors import CommandError, LocalIOError


@pytest.fixture
def run():
    with patch("bran.git.process.run", new=AsyncMock()) as mock:
        yield mock


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def git_args(run) -> list[list[str]]:
    return [call.args[0] for call in run.await_args_list]


@pytest.mark.asyncio
async def test_init(console, run, workdir) -> None:
    await git.init(console.output)

    calls = git_args(run)
    assert calls[0] == ["git", "--git-dir=.bran", "--work-tree=.", "init"]
    assert ["git", "--git-dir=.bran", "--work-tree=.", "config", "core.autocrlf", "false"] in calls
    assert (workdir / ".bran" / "info" / "exclude").read_text() == ".bran"
    assert (workdir / ".bran" / "info" / "attributes").read_text() == "* -filter -diff -merge -text"
    assert console.out_lines[0] == "[local] $ git --git-dir=.bran --work-tree=. init"


@pytest.mark.asyncio
async def test_commit_returns_head(console, run, workdir) -> None:
    ref = workdir / ".bran" / "refs" / "heads"
    ref.mkdir(parents=True)
    (ref / "master").write_text("abc123\n")

    token = await git.commit(console.output)

    assert token == "abc123"
    calls = git_args(run)
    assert calls[0][3:] == ["add", "-A", "."]
    assert calls[1][3:5] == ["commit", "-m"]


@pytest.mark.asyncio
async def test_commit_with_nothing_to_commit(console, run, workdir) -> None:
    ref = workdir / ".bran" / "refs" / "heads"
    ref.mkdir(parents=True)
    (ref / "master").write_text("abc123\n")
    run.side_effect = [None, CommandError("Command failed with exit status 1", 1)]

    assert await git.commit(console.output) == "abc123"


@pytest.mark.asyncio
async def test_commit_without_init_is_fatal(console, run, workdir) -> None:
    with pytest.raises(LocalIOError):
        await git.commit(console.output)


@pytest.mark.asyncio
async def test_push_with_identity_file(console, run) -> None:
    host = Host(name="win", user="hodor", build_dir="winterfell", identity_file="id_rsa")

    await git.push(host, console.output)

    args = run.await_args.args[0]
    assert args == [
        "git",
        "--git-dir=.bran",
        "--work-tree=.",
        "push",
        "-f",
        "hodor@win:winterfell",
        "master:bran",
    ]
    assert run.await_args.kwargs["env"]["GIT_SSH_COMMAND"] == 'ssh -i "id_rsa"'
    assert console.out_lines[0].startswith("[win] $ git ")


@pytest.mark.asyncio
async def test_push_without_identity_file(console, run, host) -> None:
    await git.push(host, console.output)

    assert run.await_args.kwargs["env"] is None


@pytest.mark.asyncio
async def test_push_failure_names_host(console, run, host) -> None:
    run.side_effect = CommandError("Command failed with exit status 128", 128)

    with pytest.raises(CommandError) as exc_info:
        await git.push(host, console.output)

    assert exc_info.value.host == "westeros"


def test_head_reads_branch_ref(workdir) -> None:
    ref = Path(".bran") / "refs" / "heads"
    ref.mkdir(parents=True)
    (ref / "master").write_text("deadbeef\n")

    assert git.head() == "deadbeef"


@pytest.mark.asyncio
async def test_init_fails_when_info_dir_cannot_be_created(console, run, workdir) -> None:
    (workdir / ".bran").write_text("not a directory")

    with pytest.raises(LocalIOError, match="failed to create"):
        await git.init(console.output)
