#!/usr/bin/env python3
"""Main entry point for bran."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from . import __version__, git, jobs
from .config import DEFAULT_CONFIG, Config, load_config
from .errors import BranError
from .executor import Executor, Job, aggregate, print_summary
from .log import Output


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bran", description="A command line remote builder")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path(DEFAULT_CONFIG),
        help=f"Path to YAML configuration file (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--dashboard",
        action="store_true",
        help="Show live output in the TUI dashboard (build, push and run)",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("init", help="Initialize bran")
    subparsers.add_parser("push", help="Push files to all hosts")
    subparsers.add_parser("clean", help="Clean the build directory on all hosts")
    subparsers.add_parser("build", help="Push files to all hosts and run the build command")
    run_parser = subparsers.add_parser("run", help="Run an ad-hoc command on all hosts")
    run_parser.add_argument("cmd", nargs=argparse.REMAINDER, help="command to run")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        print()
        return 2

    if args.command == "run" and not args.cmd:
        parser.error("run: a command is required")

    try:
        config = load_config(args.config)
        return _dispatch(args, config, Output())
    except BranError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _dispatch(args: argparse.Namespace, config: Config, output: Output) -> int:
    if args.command == "init":
        asyncio.run(git.init(output))
        return _run(config, jobs.initialize, "Init", output)

    if args.command == "clean":
        return _run(config, jobs.clean, "Clean", output)

    if args.command == "run":
        job = jobs.sync_and_run(None, [" ".join(args.cmd)])
        return _run(config, job, "Run", output, args.dashboard)

    token = asyncio.run(git.commit(output))
    if args.command == "push":
        return _run(config, jobs.sync_and_run(token, []), "Push", output, args.dashboard)
    return _run(config, jobs.sync_and_run(token, config.build), "Build", output, args.dashboard)


def _run(config: Config, job: Job, task: str, output: Output, dashboard: bool = False) -> int:
    if dashboard:
        return _run_dashboard(config, job, task, output)

    executor = Executor(config.hosts, output)
    result = asyncio.run(executor.run_all(job, task))
    return aggregate(result, output, task)


def _run_dashboard(config: Config, job: Job, task: str, output: Output) -> int:
    """Run job with the dashboard, then print the summary to the console."""
    from .dashboard import Dashboard

    app = Dashboard(config.hosts, job, task)
    app.run()

    if app.error is not None:
        raise app.error
    if app.result is None:
        print(f"Error: {task.lower()} interrupted before all hosts finished", file=sys.stderr)
        return 1

    # Panels are not kept after exit; summarize even for a single host
    print_summary(app.result, output, task)
    return app.result.exit_code


if __name__ == "__main__":
    sys.exit(main())
