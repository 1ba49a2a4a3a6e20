"""Parallel execution engine for bran."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .config import Host
from .errors import BranError
from .log import Output

SUMMARY_BANNER = "\n---------- Summary ----------\n"


class NodeStatus(Enum):
    """Status of a host's execution unit."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome:
    """Final verdict for one host."""

    host: str
    succeeded: bool


@dataclass(frozen=True)
class RunResult:
    """Outcomes of a run, in host registry order."""

    outcomes: tuple[Outcome, ...]

    @property
    def succeeded(self) -> bool:
        return all(outcome.succeeded for outcome in self.outcomes)

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    @property
    def failed_hosts(self) -> list[str]:
        return [outcome.host for outcome in self.outcomes if not outcome.succeeded]


# Work performed for one host; raises on failure.
Job = Callable[[Host, Output], Awaitable[None]]
StatusCallback = Callable[[str, NodeStatus], None]  # (host_name, status) -> None


class Executor:
    """Runs one job per host concurrently and collects their outcomes."""

    def __init__(
        self,
        hosts: Mapping[str, Host],
        output: Output,
        on_status: StatusCallback | None = None,
    ):
        self.hosts = hosts
        self.output = output
        self.on_status = on_status
        self.states: dict[str, NodeStatus] = {name: NodeStatus.PENDING for name in hosts}

    def _emit_status(self, host_name: str, status: NodeStatus) -> None:
        self.states[host_name] = status
        if self.on_status:
            self.on_status(host_name, status)

    async def run_all(self, job: Job, task: str = "Build") -> RunResult:
        """Run job on all hosts in parallel and wait for every one of them.

        Outcomes are reported in registry order regardless of completion
        order. A fatal error in any unit is re-raised once all units are done.
        """
        hosts = list(self.hosts.values())
        tasks = [
            asyncio.create_task(self._run_host(host, job, task), name=host.name)
            for host in hosts
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        outcomes = []
        fatal: BaseException | None = None
        for host, result in zip(hosts, results):
            if isinstance(result, Outcome):
                outcomes.append(result)
                continue
            if isinstance(result, BranError) and result.fatal:
                if fatal is None:
                    fatal = result
            else:
                self.output.log(host.name).error(f"{task} failed")
            self._emit_status(host.name, NodeStatus.FAILED)
            outcomes.append(Outcome(host.name, False))

        if fatal is not None:
            raise fatal

        return RunResult(tuple(outcomes))

    async def _run_host(self, host: Host, job: Job, task: str) -> Outcome:
        """Run job for a single host, converting per-host errors to a failed outcome."""
        log = self.output.log(host.name)
        self._emit_status(host.name, NodeStatus.RUNNING)

        try:
            await job(host, self.output)
        except BranError as e:
            if e.fatal:
                raise
            log.error(str(e))
            succeeded = False
        except Exception as e:
            log.error(f"Unexpected error: {e!r}")
            succeeded = False
        else:
            succeeded = True

        if succeeded:
            log.success(f"{task} succeeded")
            self._emit_status(host.name, NodeStatus.SUCCESS)
        else:
            log.error(f"{task} failed")
            self._emit_status(host.name, NodeStatus.FAILED)

        return Outcome(host.name, succeeded)


def print_summary(result: RunResult, output: Output, task: str = "Build") -> None:
    output.banner(SUMMARY_BANNER)

    for outcome in result.outcomes:
        log = output.log(outcome.host)
        if outcome.succeeded:
            log.success(f"{task} succeeded")
        else:
            log.error(f"{task} failed")


def aggregate(result: RunResult, output: Output, task: str = "Build") -> int:
    """Print the summary for multi-host runs and return the exit code."""
    if len(result.outcomes) > 1:
        print_summary(result, output, task)
    return result.exit_code
