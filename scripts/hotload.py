#!/usr/bin/env python3
"""
Hotload Command Runner Script.

Runs a shell command once, then again after every debounced change in
the watched directory.
Requires Python 3.11+.

Usage:
    python scripts/hotload.py "make test" --filter "*.py"
    python scripts/hotload.py "python -m http.server" --restart
"""

import argparse
import subprocess
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from utils.config import HotloadSettings, get_settings
from utils.errors import WatchStartError
from utils.logger import configure_logging, get_logger
from watcher.file_watcher import watch_with_config


configure_logging()
logger = get_logger("hotload")


class CommandRunner:
    """
    Runs the user command for each hot reload.

    In restart mode the command is a long-lived process: the previous
    instance is terminated before a new one starts. Otherwise each run
    waits for the command to finish.
    """

    def __init__(self, command: str, restart: bool = False, grace_seconds: float = 5.0) -> None:
        self._command = command
        self._restart = restart
        self._grace = grace_seconds
        self._process: subprocess.Popen[bytes] | None = None

    def __call__(self) -> None:
        if self._restart:
            self._terminate()
            logger.info("starting_command", command=self._command)
            self._process = subprocess.Popen(self._command, shell=True)
            return

        logger.info("running_command", command=self._command)
        result = subprocess.run(self._command, shell=True, check=False)
        if result.returncode != 0:
            logger.error("command_failed", command=self._command, returncode=result.returncode)

    def _terminate(self) -> None:
        if self._process is None or self._process.poll() is not None:
            return
        logger.info("stopping_command", pid=self._process.pid)
        self._process.terminate()
        try:
            self._process.wait(timeout=self._grace)
        except subprocess.TimeoutExpired:
            logger.warning("killing_command", pid=self._process.pid)
            self._process.kill()
            self._process.wait()

    def close(self) -> None:
        self._terminate()


def build_settings(args: argparse.Namespace) -> HotloadSettings:
    """Overlay command-line flags on the configured hotload settings."""
    base = get_settings().hotload
    return base.model_copy(update={
        "enabled": True,
        "dir": args.dir if args.dir is not None else base.dir,
        "filter": args.filter if args.filter else base.filter,
        "ignore_patterns": [*base.ignore_patterns, *args.ignore],
        "debounce": args.debounce if args.debounce is not None else base.debounce,
        "recursive": base.recursive and not args.no_recursive,
        "git_ignore": base.git_ignore and not args.no_gitignore,
    })


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Re-run a command whenever source files change"
    )
    parser.add_argument("command", help="Shell command to run on every change")
    parser.add_argument(
        "--dir",
        type=Path,
        default=None,
        help="Directory to watch (default: configured dir or current directory)",
    )
    parser.add_argument(
        "--filter",
        action="append",
        default=[],
        help="Only watch files matching this glob (repeatable)",
    )
    parser.add_argument(
        "--ignore",
        action="append",
        default=[],
        help="Additional glob pattern to ignore (repeatable)",
    )
    parser.add_argument(
        "--debounce",
        type=int,
        default=None,
        help="Quiet period in milliseconds before re-running",
    )
    parser.add_argument(
        "--no-recursive",
        action="store_true",
        help="Only watch the top-level directory",
    )
    parser.add_argument(
        "--no-gitignore",
        action="store_true",
        help="Do not honor .gitignore exclusions",
    )
    parser.add_argument(
        "--restart",
        action="store_true",
        help="Treat the command as a long-running process and restart it",
    )

    args = parser.parse_args()
    settings = build_settings(args)

    if settings.dir is not None and not settings.dir.is_dir():
        print(f"Error: Path is not a directory: {settings.dir}")
        sys.exit(1)

    runner = CommandRunner(args.command, restart=args.restart)

    logger.info("initial_run", command=args.command)
    runner()

    try:
        watch_with_config(runner, settings)
    except WatchStartError as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        runner.close()


if __name__ == "__main__":
    main()
