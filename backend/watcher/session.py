"""
Hotload Watch Session.

Owns the state of one watch invocation and runs its consumer loop.
Requires Python 3.11+.
"""

import os
import queue
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from snapshot.hash_calculator import HashCalculator
from snapshot.state_cache import StateCache, build_state_cache
from utils.config import HotloadSettings
from utils.errors import StateCacheError, WatchStartError
from utils.logger import LoggerMixin
from watcher.classifier import EventClassifier, SaveDetector
from watcher.debouncer import Debouncer
from watcher.events import (
    DebounceFired,
    QueueingEventHandler,
    QueueItem,
    RawEvent,
    StopRequested,
    Verdict,
    WatchFailure,
)
from watcher.ignore import IgnoreEvaluator, load_gitignore
from watcher.registrar import WatchRegistrar
from watcher.throttle import EventLogThrottle

# Throttle counters above this are reset at every firing
THROTTLE_RESET_THRESHOLD = 100


class WatchSession(LoggerMixin):
    """
    A single watch invocation: baseline, subscriptions, classification
    and debounced hook firing.

    All mutable state (cache, pending flag, save detection, log counters)
    is touched only by the thread running run(). The observer thread and
    the debounce timer communicate with it exclusively through the
    session queue, which also carries the stop request.
    """

    def __init__(
        self,
        settings: HotloadSettings,
        hook: Callable[[], Any],
        observer_factory: Callable[[], BaseObserver] = Observer,
        hasher: HashCalculator | None = None,
    ) -> None:
        """
        Initialize the session.

        Args:
            settings: Resolved hotload configuration
            hook: Zero-argument callback fired once per quiet period
            observer_factory: Creates the watchdog observer
            hasher: Hash calculator for file states
        """
        self._settings = settings
        self._hook = hook
        self._observer_factory = observer_factory
        self._hasher = hasher or HashCalculator()
        self._root = Path(os.path.abspath(settings.dir or os.getcwd()))

        self._queue: queue.Queue[QueueItem] = queue.Queue()
        self._debouncer = Debouncer(settings.debounce, on_expire=self._on_timer_expired)
        self._save_detector = SaveDetector()
        self._throttle = EventLogThrottle()

        self._observer: BaseObserver | None = None
        self._evaluator: IgnoreEvaluator | None = None
        self._registrar: WatchRegistrar | None = None
        self._classifier: EventClassifier | None = None

        self._change_pending = False
        self._hook_calls = 0
        self._running = threading.Event()
        self._finished = threading.Event()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def settings(self) -> HotloadSettings:
        return self._settings

    @property
    def cache(self) -> StateCache:
        if self._classifier is None:
            return {}
        return self._classifier.cache

    @property
    def change_pending(self) -> bool:
        return self._change_pending

    @property
    def hook_calls(self) -> int:
        return self._hook_calls

    @property
    def debouncer(self) -> Debouncer:
        return self._debouncer

    @property
    def registrar(self) -> WatchRegistrar | None:
        return self._registrar

    @property
    def is_running(self) -> bool:
        return self._running.is_set() and not self._finished.is_set()

    def start(self) -> None:
        """
        Build the baseline and subscribe directories.

        Raises:
            WatchStartError: If the root is unusable or the observer cannot
                be created; nothing is left running in that case
        """
        root = str(self._root)
        if not os.path.isdir(root):
            raise WatchStartError(f"watch root is not a directory: {root}", path=root)

        recursive = self._settings.recursive
        cache = build_state_cache(root, recursive, self._hasher)
        self.log.debug("state_cache_built", path=root, files=len(cache))

        gitignore = load_gitignore(root, self._settings.git_ignore)
        evaluator = IgnoreEvaluator(
            root,
            ignore_patterns=self._settings.ignore_patterns,
            filters=self._settings.filter,
            gitignore=gitignore,
        )

        try:
            observer = self._observer_factory()
            observer.start()
        except (OSError, RuntimeError) as e:
            raise WatchStartError(f"failed to create watcher: {e}", path=root) from e

        handler = QueueingEventHandler(self.submit, self.report_error)
        registrar = WatchRegistrar(
            observer,
            handler,
            evaluator,
            recursive=recursive,
            use_gitignore=self._settings.git_ignore,
        )
        try:
            watched = registrar.register_tree()
        except WatchStartError:
            observer.stop()
            observer.join(timeout=5.0)
            raise

        self._observer = observer
        self._evaluator = evaluator
        self._registrar = registrar
        self._classifier = EventClassifier(
            evaluator,
            cache,
            hasher=self._hasher,
            registrar=registrar,
            recursive=recursive,
            save_detector=self._save_detector,
            throttle=self._throttle,
        )
        self._running.set()

        self.log.info(
            "watcher_started",
            path=root,
            recursive=recursive,
            debounce_ms=self._debouncer.delay_ms,
            directories=watched,
            files=len(cache),
        )
        self.log.debug(
            "watcher_rules",
            filter=self._settings.filter,
            ignore_patterns=self._settings.ignore_patterns,
            gitignore_patterns=len(gitignore),
        )

    def run(self) -> None:
        """
        Consume the session queue until stop() is called.

        Blocks the calling thread. The observer is stopped on exit.
        """
        if self._classifier is None:
            raise RuntimeError("WatchSession.run() called before start()")

        try:
            while True:
                item = self._queue.get()
                if isinstance(item, StopRequested):
                    break
                self._handle(item)
        finally:
            self._shutdown()

    def stop(self) -> None:
        """Ask the consumer to finish. Safe to call from any thread."""
        self._queue.put(StopRequested())

    def wait_finished(self, timeout: float | None = None) -> bool:
        """Wait until run() has returned."""
        return self._finished.wait(timeout)

    def submit(self, event: RawEvent) -> None:
        """Enqueue a raw notification. Safe to call from any thread."""
        self._queue.put(event)

    def report_error(self, error: BaseException) -> None:
        """Enqueue an error from the notification primitive."""
        self._queue.put(WatchFailure(error))

    def _on_timer_expired(self, generation: int) -> None:
        # Timer thread: hand over to the consumer, touch nothing else
        self._queue.put(DebounceFired(generation))

    def _handle(self, item: QueueItem) -> None:
        if isinstance(item, RawEvent):
            verdict = self._classifier.classify(item)
            if verdict == Verdict.CHANGE:
                self._change_pending = True
                self._debouncer.arm()
        elif isinstance(item, WatchFailure):
            self.log.error("watcher_error", error=str(item.error))
        elif isinstance(item, DebounceFired):
            self._on_debounce_fired(item.generation)

    def _on_debounce_fired(self, generation: int) -> None:
        if not self._debouncer.complete(generation):
            # Superseded by a later change
            return
        if not self._change_pending:
            return

        self.log.info("debounced_change_detected")
        dropped = self._throttle.reset(THROTTLE_RESET_THRESHOLD)
        expired = self._save_detector.prune()
        if dropped or expired:
            self.log.debug("session_state_pruned", log_counters=dropped, truncations=expired)

        try:
            cache = build_state_cache(self._root, self._settings.recursive, self._hasher)
        except StateCacheError as e:
            self.log.error("state_cache_update_failed", error=str(e))
        else:
            self._classifier.replace_cache(cache)
            self.log.debug("state_cache_updated", files=len(cache))

        self._fire_hook()
        self._change_pending = False

    def _fire_hook(self) -> None:
        self._hook_calls += 1
        try:
            self._hook()
        except Exception:
            self.log.exception("hook_failed")

    def _shutdown(self) -> None:
        self._debouncer.cancel()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5.0)
            self._observer = None
        self._running.clear()
        self._finished.set()
        self.log.info("watcher_stopped", path=str(self._root))
