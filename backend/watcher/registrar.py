"""
Hotload Watch Registrar.

Subscribes the watch root and its non-ignored subdirectories to a
watchdog observer, one non-recursive watch per directory.
Requires Python 3.11+.
"""

import os

from watchdog.events import FileSystemEventHandler
from watchdog.observers.api import BaseObserver, ObservedWatch

from utils.errors import WatchStartError
from utils.logger import LoggerMixin
from watcher.fsops import list_subdirectories, list_subdirectories_with_gitignore
from watcher.ignore import IgnoreEvaluator


class WatchRegistrar(LoggerMixin):
    """
    Manages the per-directory subscriptions of a watch session.

    Ignored directories (build output, dependencies, version control,
    user patterns, .gitignore) are never subscribed, and neither is
    anything below them.
    """

    def __init__(
        self,
        observer: BaseObserver,
        handler: FileSystemEventHandler,
        evaluator: IgnoreEvaluator,
        recursive: bool = True,
        use_gitignore: bool = True,
    ) -> None:
        """
        Initialize the registrar.

        Args:
            observer: Running watchdog observer
            handler: Handler receiving events of every subscribed directory
            evaluator: Ignore rules of the session
            recursive: Whether subdirectories are subscribed
            use_gitignore: Whether enumeration honors the root .gitignore
        """
        self._observer = observer
        self._handler = handler
        self._evaluator = evaluator
        self._recursive = recursive
        self._use_gitignore = use_gitignore
        self._watches: dict[str, ObservedWatch] = {}

    @property
    def watched_directories(self) -> list[str]:
        return sorted(self._watches)

    def is_watched(self, path: str) -> bool:
        return os.path.abspath(path) in self._watches

    def register_tree(self) -> int:
        """
        Subscribe the root and, in recursive mode, every surviving subdirectory.

        Returns:
            Number of subscribed directories

        Raises:
            WatchStartError: If the root cannot be subscribed or enumerated
        """
        root = self._evaluator.root
        try:
            self._schedule(root)
        except OSError as e:
            raise WatchStartError(
                f"failed to add root path '{root}' to watcher: {e}", path=root
            ) from e

        if self._recursive:
            try:
                subdirs = self._enumerate(root)
            except OSError as e:
                raise WatchStartError(
                    f"failed to list subdirectories of '{root}': {e}", path=root
                ) from e

            self.log.debug("adding_directories", count=len(subdirs) + 1)
            for path in subdirs:
                self.add_directory(path)

        return len(self._watches)

    def add_directory(self, path: str) -> bool:
        """
        Subscribe a single directory, best effort.

        Returns:
            True if the directory is watched afterwards
        """
        path = os.path.abspath(path)
        if path in self._watches:
            return True
        try:
            self._schedule(path)
        except OSError as e:
            self.log.warning("directory_watch_failed", path=path, error=str(e))
            return False
        self.log.debug("directory_watched", path=path)
        return True

    def add_tree(self, path: str) -> list[str]:
        """
        Subscribe a newly created directory and its surviving subdirectories.

        Returns:
            Directories that are watched after the call, starting with path
        """
        path = os.path.abspath(path)
        if not self._recursive or self._prune(path):
            return []

        added = [path] if self.add_directory(path) else []
        try:
            subdirs = self._enumerate(path)
        except OSError as e:
            self.log.warning("directory_list_failed", path=path, error=str(e))
            return added

        added.extend(d for d in subdirs if self.add_directory(d))
        return added

    def forget(self, path: str) -> int:
        """
        Drop the subscriptions of a removed directory and everything below it.

        Returns:
            Number of subscriptions dropped
        """
        path = os.path.abspath(path)
        prefix = path + os.sep
        gone = [p for p in self._watches if p == path or p.startswith(prefix)]
        for p in gone:
            watch = self._watches.pop(p)
            try:
                self._observer.unschedule(watch)
            except (KeyError, OSError) as e:
                self.log.debug("directory_unwatch_failed", path=p, error=str(e))
        if gone:
            self.log.debug("directories_unwatched", path=path, count=len(gone))
        return len(gone)

    def _schedule(self, path: str) -> None:
        self._watches[path] = self._observer.schedule(
            self._handler, path, recursive=False
        )

    def _prune(self, path: str) -> bool:
        return self._evaluator.is_ignored(
            path, is_dir=True, use_gitignore=self._use_gitignore
        )

    def _enumerate(self, directory: str) -> list[str]:
        gitignore = self._evaluator.gitignore
        if self._use_gitignore and gitignore.patterns:
            # Patterns are relative to the watch root, not to directory
            return list_subdirectories_with_gitignore(
                self._evaluator.root, gitignore, prune=self._prune, start=directory
            )
        return list_subdirectories(directory, self._prune)
