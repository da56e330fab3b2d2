"""
Hotload Directory Enumeration.

Lists subdirectories of a watch root, optionally honoring .gitignore.
Requires Python 3.11+.
"""

import os
from collections.abc import Callable
from pathlib import Path

from snapshot.state_cache import VCS_DIRS
from watcher.ignore import GitIgnore


def list_subdirectories(
    root: Path | str,
    prune: Callable[[str], bool] | None = None,
) -> list[str]:
    """
    List all subdirectories below root, recursively.

    The root itself is not included. Version-control directories are
    never descended into.

    Args:
        root: Directory to enumerate
        prune: Optional predicate; a directory for which it returns True
            is skipped together with everything below it

    Returns:
        Absolute directory paths in walk order

    Raises:
        OSError: If root cannot be read
    """
    root_str = os.path.abspath(os.fspath(root))
    subdirs: list[str] = []

    def _on_error(err: OSError) -> None:
        if os.path.abspath(err.filename or "") == root_str:
            raise err

    for dirpath, dirnames, _ in os.walk(root_str, onerror=_on_error):
        kept = []
        for name in sorted(dirnames):
            if name in VCS_DIRS:
                continue
            path = os.path.join(dirpath, name)
            if prune is not None and prune(path):
                continue
            kept.append(name)
            subdirs.append(path)
        dirnames[:] = kept

    return subdirs


def list_subdirectories_with_gitignore(
    root: Path | str,
    gitignore: GitIgnore,
    prune: Callable[[str], bool] | None = None,
    start: Path | str | None = None,
) -> list[str]:
    """
    List subdirectories below root, skipping those .gitignore excludes.

    Args:
        root: Directory to enumerate; gitignore paths are relative to it
        gitignore: Loaded ignore patterns
        prune: Optional extra predicate, as for list_subdirectories
        start: Directory below root to enumerate instead of root itself

    Returns:
        Absolute directory paths in walk order
    """
    root_str = os.path.abspath(os.fspath(root))

    def _pruned(path: str) -> bool:
        rel = os.path.relpath(path, root_str).replace(os.sep, "/")
        if gitignore.is_ignored(f"{rel}/"):
            return True
        return prune is not None and prune(path)

    return list_subdirectories(start if start is not None else root_str, prune=_pruned)
