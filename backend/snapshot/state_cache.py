"""
Hotload State Cache.

Per-file metadata snapshots used as the baseline for change detection.
Requires Python 3.11+.
"""

import os
import stat
from dataclasses import dataclass
from pathlib import Path

from snapshot.hash_calculator import HashCalculator, is_real_hash
from utils.errors import StateCacheError
from utils.logger import get_logger

logger = get_logger(__name__)

# Version-control metadata directories, never walked or watched
VCS_DIRS: frozenset[str] = frozenset({".git", ".hg", ".svn"})


@dataclass(frozen=True)
class FileState:
    """Snapshot of a single file."""

    mod_time: float
    size: int
    content_hash: str | None = None

    @property
    def has_real_hash(self) -> bool:
        """Check if this state carries a real content digest."""
        return is_real_hash(self.content_hash)


# Absolute path -> last known state
StateCache = dict[str, FileState]


def read_file_state(
    path: str, hasher: HashCalculator, st: os.stat_result | None = None
) -> FileState | None:
    """
    Read the current state of a file.

    Args:
        path: Absolute file path
        hasher: Hash calculator deciding significance and digests
        st: Already obtained stat result, if any

    Returns:
        FileState, or None if the file cannot be stat'ed or read
    """
    try:
        if st is None:
            st = os.stat(path)
        content_hash = hasher.hash_if_significant(path, st.st_size)
    except OSError as e:
        logger.debug("file_state_unavailable", path=path, error=str(e))
        return None
    return FileState(mod_time=st.st_mtime, size=st.st_size, content_hash=content_hash)


def build_state_cache(
    root: Path | str,
    recursive: bool = True,
    hasher: HashCalculator | None = None,
) -> StateCache:
    """
    Walk a directory tree and snapshot every regular file.

    Version-control directories are skipped entirely. In non-recursive
    mode only the files directly inside root are recorded. Files that
    vanish or cannot be read mid-walk are left out.

    Args:
        root: Directory to walk
        recursive: Whether to descend into subdirectories
        hasher: Hash calculator (a default one is created if omitted)

    Returns:
        Mapping of absolute path to FileState

    Raises:
        StateCacheError: If the root itself cannot be read
    """
    hasher = hasher or HashCalculator()
    root_str = os.path.abspath(os.fspath(root))
    cache: StateCache = {}

    def _on_error(err: OSError) -> None:
        # Only the root is fatal; unreadable subdirectories are skipped
        if os.path.abspath(err.filename or "") == root_str:
            raise StateCacheError(
                f"failed to build initial state cache for {root_str}: {err}",
                path=root_str,
            ) from err
        logger.warning("directory_unreadable", path=err.filename, error=str(err))

    if not os.path.isdir(root_str):
        raise StateCacheError(
            f"failed to build initial state cache for {root_str}: not a directory",
            path=root_str,
        )

    for dirpath, dirnames, filenames in os.walk(root_str, onerror=_on_error):
        if recursive:
            dirnames[:] = [d for d in dirnames if d not in VCS_DIRS]
        else:
            dirnames[:] = []

        for name in filenames:
            path = os.path.join(dirpath, name)
            try:
                st = os.stat(path)
            except OSError:
                continue
            if not stat.S_ISREG(st.st_mode):
                continue
            state = read_file_state(path, hasher, st)
            if state is not None:
                cache[path] = state

    return cache
