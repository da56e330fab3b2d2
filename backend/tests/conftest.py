"""
Hotload Test Configuration.

Pytest fixtures and configuration.
Requires Python 3.11+.
"""

import threading
import time
from collections.abc import Callable, Generator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from utils.config import HotloadSettings
from watcher.session import WatchSession


@dataclass(frozen=True)
class FakeWatch:
    """Stand-in for watchdog's ObservedWatch."""

    path: str
    is_recursive: bool


class FakeObserver:
    """
    Observer double that records subscriptions and emits nothing.

    Tests feed events to the session directly.
    """

    def __init__(self) -> None:
        self.scheduled: dict[str, FakeWatch] = {}
        self.unscheduled: list[str] = []
        self.fail_paths: set[str] = set()
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def join(self, timeout: float | None = None) -> None:
        pass

    def schedule(self, handler: Any, path: str, recursive: bool = False) -> FakeWatch:
        if path in self.fail_paths:
            raise PermissionError(13, "Permission denied", path)
        watch = FakeWatch(path, recursive)
        self.scheduled[path] = watch
        return watch

    def unschedule(self, watch: FakeWatch) -> None:
        self.unscheduled.append(watch.path)
        self.scheduled.pop(watch.path, None)


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll predicate until it holds or timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class HookRecorder:
    """Zero-argument hook that records when it was called."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self) -> None:
        self.calls.append(time.monotonic())

    @property
    def count(self) -> int:
        return len(self.calls)


@pytest.fixture
def fake_observer() -> FakeObserver:
    """Create an observer double."""
    return FakeObserver()


@pytest.fixture
def hook() -> HookRecorder:
    """Create a recording hook."""
    return HookRecorder()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Create a small project tree for watching."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "main.go").write_text("package main\n\nfunc main() {}\n")
    (root / "go.mod").write_text("module example.com/demo\n")
    (root / "README.md").write_text("# Demo\n")

    pkg = root / "pkg"
    pkg.mkdir()
    (pkg / "util.go").write_text("package pkg\n")

    git = root / ".git"
    git.mkdir()
    (git / "HEAD").write_text("ref: refs/heads/main\n")

    modules = root / "node_modules" / "left-pad"
    modules.mkdir(parents=True)
    (modules / "index.js").write_text("module.exports = 1;\n")

    return root


@pytest.fixture
def run_session(
    fake_observer: FakeObserver, hook: HookRecorder
) -> Generator[Callable[..., WatchSession], None, None]:
    """
    Start sessions with a fake observer and run them on a thread.

    Every session started through the fixture is stopped on teardown.
    """
    running: list[tuple[WatchSession, threading.Thread]] = []

    def _run(root: Path, **overrides: Any) -> WatchSession:
        options: dict[str, Any] = {
            "enabled": True,
            "dir": root,
            "filter": [],
            "ignore_patterns": [],
            "recursive": True,
            "debounce": 50,
            "git_ignore": True,
        }
        options.update(overrides)
        session = WatchSession(
            HotloadSettings(**options),
            hook,
            observer_factory=lambda: fake_observer,
        )
        session.start()
        thread = threading.Thread(target=session.run, daemon=True)
        thread.start()
        running.append((session, thread))
        return session

    yield _run

    for session, thread in running:
        session.stop()
        thread.join(timeout=5.0)
