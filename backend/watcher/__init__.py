"""
Hotload File Watcher Package.

Change detection and debounced hot reload triggering.
Requires Python 3.11+.
"""

from watcher.classifier import EventClassifier, SaveDetector
from watcher.debouncer import Debouncer
from watcher.events import Op, RawEvent, Verdict
from watcher.file_watcher import FileWatcher, watch_with_config
from watcher.ignore import GitIgnore, IgnoreEvaluator
from watcher.registrar import WatchRegistrar
from watcher.session import WatchSession

__all__ = [
    "EventClassifier",
    "SaveDetector",
    "Debouncer",
    "Op",
    "RawEvent",
    "Verdict",
    "FileWatcher",
    "watch_with_config",
    "GitIgnore",
    "IgnoreEvaluator",
    "WatchRegistrar",
    "WatchSession",
]
