"""Shared fixtures for bran tests."""

import io
from unittest.mock import patch

import pytest

from bran.config import Host
from bran.log import Output


class Console:
    """Captured stdout and stderr behind a non-interactive Output."""

    def __init__(self, tty: bool = False):
        self.stdout = io.StringIO()
        self.stderr = io.StringIO()
        self.output = Output(self.stdout, self.stderr, stdout_is_tty=tty, stderr_is_tty=tty)

    @property
    def out_lines(self) -> list[str]:
        return self.stdout.getvalue().splitlines()

    @property
    def err_lines(self) -> list[str]:
        return self.stderr.getvalue().splitlines()


@pytest.fixture
def console() -> Console:
    return Console()


@pytest.fixture
def host() -> Host:
    return Host(name="westeros", user="hodor", build_dir="winterfell")


@pytest.fixture
def make_hosts():
    """Build a host registry from names, in the given order."""

    def _make(*names: str) -> dict[str, Host]:
        return {name: Host(name=name, user="u", build_dir="/d") for name in names}

    return _make


class FakeReader:
    """Stand-in for an asyncssh stream reader."""

    def __init__(self, text: str):
        self.lines = text.splitlines(keepends=True)

    async def readline(self) -> str:
        return self.lines.pop(0) if self.lines else ""


class FakeProcess:
    def __init__(self, stdout: str = "", stderr: str = "", exit_status: int = 0):
        self.stdout = FakeReader(stdout)
        self.stderr = FakeReader(stderr)
        self.exit_status = exit_status

    async def __aenter__(self) -> "FakeProcess":
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None

    async def wait(self) -> "FakeProcess":
        return self


class FakeConnection:
    def __init__(self, ssh: "FakeSSH", address: str):
        self.ssh = ssh
        self.address = address
        self.closed = False

    def create_process(self, cmd: str, **kwargs) -> FakeProcess:
        self.ssh.commands.setdefault(self.address, []).append(cmd)
        self.ssh.process_kwargs.append(kwargs)
        for address, fragment, result in self.ssh.responses:
            if address in (None, self.address) and fragment in cmd:
                if isinstance(result, BaseException):
                    raise result
                return FakeProcess(**result)
        return FakeProcess()

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None


class FakeSSH:
    """Scriptable replacement for asyncssh.connect."""

    def __init__(self):
        self.commands: dict[str, list[str]] = {}
        self.connect_kwargs: dict[str, dict] = {}
        self.connections: list[FakeConnection] = []
        self.process_kwargs: list[dict] = []
        self.responses: list = []
        self.unreachable: set[str] = set()

    def respond(self, fragment: str, address: str | None = None, result=None, **kwargs) -> None:
        """Answer commands containing fragment with kwargs or by raising result."""
        self.responses.append((address, fragment, result if result is not None else kwargs))

    async def connect(self, address: str, **kwargs) -> FakeConnection:
        self.connect_kwargs[address] = kwargs
        if address in self.unreachable:
            raise OSError(111, "Connection refused")
        conn = FakeConnection(self, address)
        self.connections.append(conn)
        return conn


@pytest.fixture
def fake_ssh():
    ssh = FakeSSH()
    with patch("bran.remote.asyncssh.connect", new=ssh.connect):
        yield ssh
