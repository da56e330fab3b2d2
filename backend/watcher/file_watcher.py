"""
Hotload File Watcher.

Entry points that run a watch session in the foreground or in a
background thread.
Requires Python 3.11+.
"""

import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from utils.config import HotloadSettings, get_settings
from utils.logger import LoggerMixin, get_logger
from watcher.session import WatchSession

logger = get_logger(__name__)


def watch_with_config(
    hook: Callable[[], Any],
    settings: HotloadSettings | None = None,
) -> None:
    """
    Watch the configured directory and fire hook after each burst of changes.

    Blocks until interrupted (Ctrl+C). Returns immediately when hot
    reload is disabled in the configuration.

    Args:
        hook: Zero-argument callback run once per quiet period
        settings: Hotload settings (application settings when omitted)

    Raises:
        WatchStartError: If the session cannot be started
    """
    settings = settings or get_settings().hotload
    if not settings.enabled:
        logger.warning("hotload_disabled")
        return

    session = WatchSession(settings, hook)
    logger.info(
        "starting_watcher",
        path=str(session.root),
        recursive=settings.recursive,
        debounce_ms=settings.debounce,
    )
    session.start()
    logger.info("hotload_active", hint="Press Ctrl+C to exit")

    try:
        session.run()
    except KeyboardInterrupt:
        logger.info("watcher_interrupted")


class FileWatcher(LoggerMixin):
    """
    Watches a directory for source changes in a background thread.

    Wraps a WatchSession so that it can be started, stopped and used as
    a context manager from application code.
    """

    def __init__(
        self,
        root_path: Path,
        on_change: Callable[[], Any],
        debounce_delay_ms: int | None = None,
        ignore_patterns: list[str] | None = None,
        filters: list[str] | None = None,
        recursive: bool = True,
        git_ignore: bool = True,
        observer_factory: Callable[[], BaseObserver] = Observer,
    ) -> None:
        """
        Initialize the file watcher.

        Args:
            root_path: Root directory to watch
            on_change: Callback fired once after each burst of changes
            debounce_delay_ms: Debounce delay in milliseconds
            ignore_patterns: Glob patterns to ignore
            filters: Allow-list globs (empty watches every file)
            recursive: Whether to watch subdirectories
            git_ignore: Whether to honor the root .gitignore
            observer_factory: Creates the watchdog observer
        """
        defaults = get_settings().hotload

        self._settings = HotloadSettings(
            enabled=True,
            dir=root_path,
            filter=filters if filters is not None else defaults.filter,
            recursive=recursive,
            debounce=debounce_delay_ms if debounce_delay_ms is not None else defaults.debounce,
            ignore_patterns=(
                ignore_patterns if ignore_patterns is not None else defaults.ignore_patterns
            ),
            git_ignore=git_ignore,
        )
        self._on_change = on_change
        self._observer_factory = observer_factory
        self._session: WatchSession | None = None
        self._thread: threading.Thread | None = None

    @property
    def settings(self) -> HotloadSettings:
        return self._settings

    @property
    def session(self) -> WatchSession | None:
        return self._session

    def start(self) -> None:
        """
        Start watching for file changes.

        Raises:
            WatchStartError: If the session cannot be started
        """
        if self._session is not None:
            return

        session = WatchSession(
            self._settings,
            self._on_change,
            observer_factory=self._observer_factory,
        )
        session.start()

        self._session = session
        self._thread = threading.Thread(
            target=session.run,
            name="hotload-watcher",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop watching for file changes."""
        if self._session is None:
            return

        self._session.stop()
        if self._thread is not None:
            self._thread.join(timeout=5.0)

        self._session = None
        self._thread = None

    @property
    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._session is not None and self._session.is_running

    def __enter__(self) -> "FileWatcher":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.stop()
