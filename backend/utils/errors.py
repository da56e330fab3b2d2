"""
Hotload Exceptions.

Errors raised to callers of the watch engine.
Requires Python 3.11+.
"""

from pathlib import Path


class HotloadError(Exception):
    """Base class for all hotload errors."""


class WatchStartError(HotloadError):
    """A watch session could not be started; nothing was left running."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = path


class StateCacheError(WatchStartError):
    """The initial state cache could not be built for the watch root."""
