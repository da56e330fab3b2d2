"""
Hotload Ignore Rules.

Decides which paths are excluded from change detection: version-control
metadata, glob ignore patterns, the allow-list filter and .gitignore rules.
Directories are judged by a separate rule set.
Requires Python 3.11+.
"""

import fnmatch
import os
from collections.abc import Iterable
from pathlib import Path

import pathspec

from snapshot.state_cache import VCS_DIRS
from utils.logger import LoggerMixin, get_logger

logger = get_logger(__name__)

GITIGNORE_FILENAME = ".gitignore"

# Always ignored temporary, lock and system files
DEFAULT_IGNORE_PATTERNS: tuple[str, ...] = (
    "*.tmp",
    "*.swp",
    "*.log",
    "~*",
    "*~",
    ".DS_Store",
    "Thumbs.db",
    "*.lock",
    "*.pid",
    "*.temp",
)

# Well-known build, dependency and tooling directories that are never watched
DEFAULT_IGNORE_DIRS: frozenset[str] = frozenset({
    "node_modules",
    "vendor",
    ".vscode",
    ".idea",
    "dist",
    "build",
    "tmp",
    "temp",
    ".cache",
    ".next",
    ".nuxt",
    "__pycache__",
    ".venv",
    ".mypy_cache",
    ".pytest_cache",
})


class GitIgnore:
    """
    Patterns loaded from a .gitignore file.

    Matching follows git's wildmatch rules via pathspec. Paths are
    relative to the directory holding the ignore file; directories
    should be passed with a trailing slash.
    """

    def __init__(self, lines: Iterable[str] = ()) -> None:
        self._patterns = [
            line for line in (raw.strip() for raw in lines)
            if line and not line.startswith("#")
        ]
        self._spec = pathspec.GitIgnoreSpec.from_lines(self._patterns)

    @classmethod
    def from_file(cls, path: Path | str) -> "GitIgnore":
        """
        Load patterns from an ignore file.

        A missing file yields an empty matcher.

        Raises:
            OSError: If the file exists but cannot be read
        """
        try:
            with open(path, encoding="utf-8", errors="replace") as fh:
                return cls(fh.read().splitlines())
        except FileNotFoundError:
            return cls()

    @classmethod
    def from_dir(cls, directory: Path | str) -> "GitIgnore":
        """Load the .gitignore file of a directory."""
        return cls.from_file(os.path.join(directory, GITIGNORE_FILENAME))

    @property
    def patterns(self) -> list[str]:
        return list(self._patterns)

    def is_ignored(self, relative_path: str) -> bool:
        """Check if a root-relative path is excluded by the loaded patterns."""
        if not self._patterns:
            return False
        return self._spec.match_file(relative_path.replace(os.sep, "/"))

    def __len__(self) -> int:
        return len(self._patterns)


def load_gitignore(root: Path | str, enabled: bool) -> GitIgnore:
    """
    Load the root's .gitignore for a watch session.

    Disabled or unreadable ignore files produce an empty matcher; this
    never fails the session.
    """
    if not enabled:
        logger.info("gitignore_disabled")
        return GitIgnore()

    try:
        gitignore = GitIgnore.from_dir(root)
    except OSError as e:
        logger.warning("gitignore_load_failed", path=str(root), error=str(e))
        return GitIgnore()

    if gitignore.patterns:
        logger.info("gitignore_loaded", path=str(root), patterns=len(gitignore))
    return gitignore


def _clean_pattern(pattern: str) -> str:
    """Normalize a user pattern to forward slashes without a leading ./"""
    pattern = pattern.replace("\\", "/")
    while pattern.startswith("./"):
        pattern = pattern[2:]
    return pattern


def _matches(pattern: str, name: str, relative_path: str) -> bool:
    """
    Match a glob pattern against a bare name and a relative path.

    Patterns containing a slash are also matched against the relative
    path, and directory-style patterns (``dir/`` or ``dir/*``) match any
    path below a ``dir`` segment.
    """
    pattern = _clean_pattern(pattern)
    if not pattern:
        return False

    if fnmatch.fnmatch(name, pattern):
        return True

    if "/" in pattern:
        if fnmatch.fnmatch(relative_path, pattern):
            return True
        if pattern.endswith("/") or pattern.endswith("*"):
            prefix = pattern.rstrip("*")
            if prefix.endswith("/") and f"/{prefix}" in f"/{relative_path}":
                return True

    return False


def is_vcs_path(relative_path: str) -> bool:
    """Check if a path lies in (or is) a version-control metadata directory."""
    return any(part in VCS_DIRS for part in relative_path.split("/"))


def should_ignore_file(
    relative_path: str,
    filters: Iterable[str],
    ignore_patterns: Iterable[str],
) -> bool:
    """
    Check a file against ignore patterns and the allow-list filter.

    Args:
        relative_path: Root-relative path with forward slashes
        filters: Allow-list globs; when non-empty a file must match one
        ignore_patterns: User ignore globs (defaults are always added)

    Returns:
        True if the file must be ignored
    """
    name = relative_path.rsplit("/", 1)[-1]

    if is_vcs_path(relative_path):
        return True

    for pattern in (*ignore_patterns, *DEFAULT_IGNORE_PATTERNS):
        if _matches(pattern, name, relative_path):
            return True

    filters = list(filters)
    if not filters:
        return False

    for pattern in filters:
        pattern = _clean_pattern(pattern)
        if fnmatch.fnmatch(name, pattern) or fnmatch.fnmatch(relative_path, pattern):
            return False

    # Not on the allow-list
    return True


def should_ignore_directory(relative_path: str, ignore_patterns: Iterable[str]) -> bool:
    """
    Check a directory against the directory rule set.

    Args:
        relative_path: Root-relative directory path with forward slashes
        ignore_patterns: User ignore globs

    Returns:
        True if the directory must not be watched
    """
    relative_path = relative_path.rstrip("/")
    parts = relative_path.split("/")

    if any(part in VCS_DIRS or part in DEFAULT_IGNORE_DIRS for part in parts):
        return True

    name = parts[-1]
    for pattern in ignore_patterns:
        if _matches(pattern, name, f"{relative_path}/"):
            return True

    return False


class IgnoreEvaluator(LoggerMixin):
    """
    Applies every ignore rule of a watch session to absolute paths.

    Files: version-control metadata, ignore patterns (user plus defaults),
    allow-list filter, then .gitignore. Directories: version-control
    metadata, directory rules, then .gitignore.
    """

    def __init__(
        self,
        root: Path | str,
        ignore_patterns: Iterable[str] = (),
        filters: Iterable[str] = (),
        gitignore: GitIgnore | None = None,
    ) -> None:
        self._root = os.path.abspath(os.fspath(root))
        self._ignore_patterns = list(ignore_patterns)
        self._filters = list(filters)
        self._gitignore = gitignore or GitIgnore()

    @property
    def root(self) -> str:
        return self._root

    @property
    def gitignore(self) -> GitIgnore:
        return self._gitignore

    @property
    def ignore_patterns(self) -> list[str]:
        return list(self._ignore_patterns)

    def relative(self, path: str) -> str:
        """Root-relative path with forward slashes."""
        rel = os.path.relpath(os.path.abspath(path), self._root)
        if rel == os.curdir:
            return ""
        return rel.replace(os.sep, "/")

    def ignore_reason(
        self, path: str, is_dir: bool = False, use_gitignore: bool = True
    ) -> str | None:
        """
        Explain why a path is ignored.

        Args:
            path: Absolute path
            is_dir: Whether the path is a directory
            use_gitignore: Whether the .gitignore rules apply

        Returns:
            The name of the matching rule, or None if the path is watched
        """
        rel = self.relative(path)
        if not rel:
            return None

        if is_vcs_path(rel):
            return "vcs"

        if is_dir:
            if should_ignore_directory(rel, self._ignore_patterns):
                return "directory_rules"
            if use_gitignore and self._gitignore.is_ignored(f"{rel}/"):
                return "gitignore"
            return None

        if should_ignore_file(rel, [], self._ignore_patterns):
            return "ignore_patterns"
        if should_ignore_file(rel, self._filters, []):
            return "filter"
        if use_gitignore and self._gitignore.is_ignored(rel):
            return "gitignore"
        return None

    def is_ignored(
        self, path: str, is_dir: bool = False, use_gitignore: bool = True
    ) -> bool:
        """Check if a path is excluded from change detection."""
        return self.ignore_reason(path, is_dir, use_gitignore) is not None
