"""
Hotload Log Throttling.

Rate-limits repetitive debug output for noisy paths.
Requires Python 3.11+.
"""

from collections import Counter

from utils.logger import LoggerMixin


class EventLogThrottle(LoggerMixin):
    """
    Counts occurrences per (operation, path) and logs only some of them.

    Events are logged the first three times, then every tenth time.
    Ignored paths are logged once, then every twentieth time.
    Counting has no effect on change detection.
    """

    def __init__(self) -> None:
        self._counts: Counter[str] = Counter()

    def log_event(self, op: str, path: str) -> None:
        """Log a raw notification."""
        key = f"{op}:{path}"
        count = self._counts[key]
        self._counts[key] = count + 1

        if count < 3:
            self.log.debug("event", op=op, path=path)
        elif count % 10 == 0:
            self.log.debug("event", op=op, path=path, occurrences=count + 1)

    def log_ignore(self, reason: str, path: str) -> None:
        """Log that a path was ignored."""
        key = f"ignore:{reason}:{path}"
        count = self._counts[key]
        self._counts[key] = count + 1

        if count == 0:
            self.log.debug("path_ignored", reason=reason, path=path)
        elif count % 20 == 0:
            self.log.debug("path_ignored", reason=reason, path=path, occurrences=count + 1)

    def reset(self, threshold: int = 100) -> int:
        """
        Forget every counter that grew beyond threshold.

        Returns:
            Number of counters dropped
        """
        noisy = [k for k, count in self._counts.items() if count > threshold]
        for key in noisy:
            del self._counts[key]
        return len(noisy)

    def count(self, key: str) -> int:
        return self._counts[key]
