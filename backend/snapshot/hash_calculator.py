"""
Hotload Hash Calculator.

SHA-256 content hashing for change detection of significant files.
Requires Python 3.11+.
"""

import hashlib
import os
from pathlib import Path

from utils.logger import LoggerMixin

# Files above this size are never read; they get a size-tagged placeholder
MAX_HASH_SIZE = 1024 * 1024

LARGE_FILE_PREFIX = "large:"

_CHUNK_SIZE = 64 * 1024

SIGNIFICANT_EXTENSIONS: frozenset[str] = frozenset({
    # Source code
    ".go", ".py", ".js", ".ts", ".jsx", ".tsx", ".java", ".c", ".cpp", ".h", ".hpp",
    ".rs", ".php", ".rb", ".cs", ".swift", ".kt", ".scala", ".clj", ".elm",
    # Configuration
    ".yaml", ".yml", ".json", ".toml", ".xml", ".ini", ".conf", ".cfg",
    # Docs, scripts and data
    ".md", ".rst", ".txt", ".sql", ".sh", ".bash", ".zsh", ".fish",
    # Web
    ".html", ".css", ".scss", ".sass", ".less", ".vue", ".svelte",
    # Build descriptors
    ".dockerfile", ".makefile", ".cmake", ".gradle", ".maven", ".npm",
})

SIGNIFICANT_NAMES: frozenset[str] = frozenset({
    "dockerfile", "makefile", "rakefile", "gemfile", "pipfile",
    "package.json", "composer.json", "cargo.toml", "build.gradle",
})


def is_real_hash(value: str | None) -> bool:
    """Check if a hash value is a real digest rather than a placeholder."""
    return bool(value) and not value.startswith(LARGE_FILE_PREFIX)


class HashCalculator(LoggerMixin):
    """
    Calculates content hashes for significant files.

    Only source, configuration and build-descriptor files are hashed, and
    only up to max_size bytes. Everything else is compared by metadata.
    """

    def __init__(self, max_size: int = MAX_HASH_SIZE) -> None:
        """
        Initialize the hash calculator.

        Args:
            max_size: Largest file size (bytes) that gets a real digest
        """
        self._max_size = max_size

    @property
    def max_size(self) -> int:
        return self._max_size

    def is_significant(self, path: Path | str) -> bool:
        """
        Check if a file warrants hash-based change detection.

        Args:
            path: File path (only the name is inspected)

        Returns:
            True for known source/config/build file types
        """
        name = os.path.basename(os.fspath(path)).lower()
        _, ext = os.path.splitext(name)
        if ext in SIGNIFICANT_EXTENSIONS:
            return True
        return name in SIGNIFICANT_NAMES

    def hash_file(self, path: Path | str, size: int) -> str:
        """
        Compute the content hash of a file.

        Files above the size ceiling are not read; a "large:<size>"
        placeholder is returned instead.

        Args:
            path: File to hash
            size: Size reported by stat

        Returns:
            SHA-256 hex digest, or a size-tagged placeholder

        Raises:
            OSError: If the file cannot be read
        """
        if size > self._max_size:
            return f"{LARGE_FILE_PREFIX}{size}"

        digest = hashlib.sha256()
        with open(path, "rb") as fh:
            while chunk := fh.read(_CHUNK_SIZE):
                digest.update(chunk)
        return digest.hexdigest()

    def hash_if_significant(self, path: Path | str, size: int) -> str | None:
        """Hash the file when it is significant, else return None."""
        if not self.is_significant(path):
            return None
        return self.hash_file(path, size)
