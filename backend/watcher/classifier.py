"""
Hotload Event Classifier.

Turns raw file-system notifications into verdicts: ignored, real change
or no-op. Truth is re-derived from stat and content hashes; the raw
operation only selects which comparison runs.
Requires Python 3.11+.
"""

import os
import stat
import time
from collections.abc import Callable

from snapshot.hash_calculator import HashCalculator
from snapshot.state_cache import FileState, StateCache, read_file_state
from utils.logger import LoggerMixin
from watcher.events import Op, RawEvent, Verdict
from watcher.ignore import IgnoreEvaluator
from watcher.registrar import WatchRegistrar
from watcher.throttle import EventLogThrottle

# Modification times closer than this are considered equal
MOD_TIME_TOLERANCE = 0.1

# A non-empty write this soon after a truncation completes an editor save
SAVE_PAIR_WINDOW = 1.0


class SaveDetector:
    """
    Recognizes two-phase editor saves (truncate to zero, then write).

    Keeps, per path, the moment the file was last seen truncated.
    """

    def __init__(
        self,
        window: float = SAVE_PAIR_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._window = window
        self._clock = clock
        self._truncated_at: dict[str, float] = {}

    def observe(self, path: str, size: int) -> bool:
        """
        Record a write of the given size.

        Args:
            path: Written file
            size: File size after the write

        Returns:
            True if the write is part of an editor save: either the
            truncation itself, or the content write pairing with a
            truncation seen within the window
        """
        now = self._clock()

        if size == 0:
            self._truncated_at[path] = now
            return True

        started = self._truncated_at.pop(path, None)
        if started is None:
            return False
        return now - started <= self._window

    def discard(self, path: str) -> None:
        self._truncated_at.pop(path, None)

    def prune(self) -> int:
        """
        Drop truncations older than the pairing window.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [p for p, t in self._truncated_at.items() if now - t > self._window]
        for path in expired:
            del self._truncated_at[path]
        return len(expired)

    def __contains__(self, path: object) -> bool:
        return path in self._truncated_at

    def __len__(self) -> int:
        return len(self._truncated_at)


class EventClassifier(LoggerMixin):
    """
    Per-path state machine over the session's state cache.

    A path is Tracked while it has a cache entry and Untracked otherwise.
    classify() applies the ignore rules, updates the cache and reports
    whether the notification was a real change.
    """

    def __init__(
        self,
        evaluator: IgnoreEvaluator,
        cache: StateCache,
        hasher: HashCalculator | None = None,
        registrar: WatchRegistrar | None = None,
        recursive: bool = True,
        save_detector: SaveDetector | None = None,
        throttle: EventLogThrottle | None = None,
    ) -> None:
        """
        Initialize the classifier.

        Args:
            evaluator: Ignore rules of the session
            cache: Baseline state cache; mutated in place
            hasher: Hash calculator used for new file states
            registrar: Extended when directories appear (recursive mode)
            recursive: Whether new directories are followed
            save_detector: Two-phase save tracker
            throttle: Debug log rate limiter
        """
        self._evaluator = evaluator
        self._cache = cache
        self._hasher = hasher or HashCalculator()
        self._registrar = registrar
        self._recursive = recursive
        self._save_detector = save_detector or SaveDetector()
        self._throttle = throttle or EventLogThrottle()

    @property
    def cache(self) -> StateCache:
        return self._cache

    @property
    def save_detector(self) -> SaveDetector:
        return self._save_detector

    @property
    def throttle(self) -> EventLogThrottle:
        return self._throttle

    def replace_cache(self, cache: StateCache) -> None:
        """Swap in a freshly built cache."""
        self._cache = cache

    def is_tracked(self, path: str) -> bool:
        return path in self._cache

    def classify(self, event: RawEvent) -> Verdict:
        """
        Classify one raw notification and update the cache.

        Args:
            event: Notification to classify

        Returns:
            Verdict.CHANGE for a real change, Verdict.IGNORED for an
            excluded path, Verdict.NOOP otherwise
        """
        path = os.path.abspath(event.path)
        op = event.op
        self._throttle.log_event(op.value if op is not None else "unknown", path)

        unwatched = 0
        if op in (Op.REMOVE, Op.RENAME) and self._registrar is not None:
            # Subscriptions die with their directory, ignored or not
            unwatched = self._registrar.forget(path)

        is_dir = os.path.isdir(path)
        if not is_dir and op in (Op.REMOVE, Op.RENAME):
            is_dir = unwatched > 0 or self._has_tracked_below(path)

        reason = self._evaluator.ignore_reason(path, is_dir=is_dir)
        if reason is not None:
            self._throttle.log_ignore(reason, path)
            return Verdict.IGNORED

        if op == Op.CREATE:
            changed = self._on_create(path)
        elif op in (Op.REMOVE, Op.RENAME):
            changed = self._on_remove(path)
        elif op == Op.WRITE:
            changed = self._on_write(path)
        else:
            changed = False

        return Verdict.CHANGE if changed else Verdict.NOOP

    def _has_tracked_below(self, path: str) -> bool:
        """Check if a vanished path was a directory holding tracked files."""
        prefix = path + os.sep
        return any(p.startswith(prefix) for p in self._cache)

    def _on_create(self, path: str) -> bool:
        try:
            st = os.stat(path)
        except OSError:
            return False

        if stat.S_ISDIR(st.st_mode):
            return self._on_directory_created(path)

        state = read_file_state(path, self._hasher, st)
        if state is None:
            return False

        self._cache[path] = state
        self.log.debug("file_created", path=path)
        return True

    def _on_directory_created(self, path: str) -> bool:
        """Follow a new directory and pick up files that arrived with it."""
        if not self._recursive or self._registrar is None:
            return False

        changed = False
        for directory in self._registrar.add_tree(path):
            try:
                entries = list(os.scandir(directory))
            except OSError as e:
                self.log.debug("directory_scan_failed", path=directory, error=str(e))
                continue

            for entry in entries:
                if entry.path in self._cache or not entry.is_file():
                    continue
                if self._evaluator.is_ignored(entry.path):
                    continue
                if self._on_create(entry.path):
                    changed = True

        return changed

    def _on_remove(self, path: str) -> bool:
        self._save_detector.discard(path)

        if self._cache.pop(path, None) is not None:
            self.log.debug("file_removed", path=path)
            return True

        # A removed directory takes its tracked files with it
        prefix = path + os.sep
        below = [p for p in self._cache if p.startswith(prefix)]
        for p in below:
            del self._cache[p]
        if below:
            self.log.debug("directory_removed", path=path, files=len(below))
        return bool(below)

    def _on_write(self, path: str) -> bool:
        old = self._cache.get(path)

        try:
            st = os.stat(path)
        except OSError:
            st = None

        if st is not None and stat.S_ISDIR(st.st_mode):
            return False

        new = read_file_state(path, self._hasher, st) if st is not None else None
        if new is None:
            if old is not None:
                del self._cache[path]
                self.log.debug("file_deleted_after_write", path=path)
                return True
            return False

        if old is None:
            self._cache[path] = new
            self.log.debug("new_file_detected", path=path)
            return True

        if old.has_real_hash and new.has_real_hash:
            if old.content_hash == new.content_hash:
                # Metadata-only touch
                self._cache[path] = new
                return False
            return self._record_change(path, new, "content_changed")

        size_changed = new.size != old.size
        time_changed = abs(new.mod_time - old.mod_time) > MOD_TIME_TOLERANCE
        if size_changed or time_changed:
            return self._record_change(path, new, "metadata_changed")

        return False

    def _record_change(self, path: str, new: FileState, reason: str) -> bool:
        self._cache[path] = new

        if self._save_detector.observe(path, new.size) and new.size == 0:
            self.log.debug("editor_save_truncation", path=path)
            return False

        self.log.debug(reason, path=path, size=new.size)
        return True
