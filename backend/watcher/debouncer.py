"""
Hotload Debouncer.

Single-shot quiet-period timer for coalescing bursts of changes.
Requires Python 3.11+.
"""

import threading
from collections.abc import Callable

from utils.logger import LoggerMixin

DEFAULT_DEBOUNCE_MS = 300


class Debouncer(LoggerMixin):
    """
    Debounces rapid file changes.

    Every arm() restarts a single timer; only a full quiet period without
    another arm() lets it expire. On expiry the callback receives the
    timer's generation number and nothing else: the owner decides, on its
    own thread, whether that generation is still current. This keeps all
    state changes off the timer thread.
    """

    def __init__(
        self,
        delay_ms: int = DEFAULT_DEBOUNCE_MS,
        on_expire: Callable[[int], None] | None = None,
    ) -> None:
        """
        Initialize the debouncer.

        Args:
            delay_ms: Quiet period in milliseconds; zero or negative
                selects the 300 ms default
            on_expire: Called from the timer thread with the generation
                of the timer that expired
        """
        if delay_ms <= 0:
            delay_ms = DEFAULT_DEBOUNCE_MS
        self._delay_ms = delay_ms
        self._on_expire = on_expire
        self._timer: threading.Timer | None = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def delay_ms(self) -> int:
        return self._delay_ms

    def arm(self) -> int:
        """
        Start the timer, or restart it if it is already running.

        Returns:
            Generation of the newly armed timer
        """
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()

            self._generation += 1
            self._timer = threading.Timer(
                self._delay_ms / 1000.0,
                self._expire,
                args=(self._generation,),
            )
            self._timer.daemon = True
            self._timer.start()
            return self._generation

    def _expire(self, generation: int) -> None:
        if self._on_expire is not None:
            self._on_expire(generation)

    def complete(self, generation: int) -> bool:
        """
        Release the timer handle after its expiry was delivered.

        Args:
            generation: Generation reported by the expired timer

        Returns:
            False if the expiry is stale (the timer was reset or cancelled
            after it fired), True otherwise
        """
        with self._lock:
            if self._timer is None or generation != self._generation:
                return False
            self._timer = None
            return True

    def cancel(self) -> None:
        """Cancel the running timer, if any. Late expiries become stale."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1

    @property
    def active(self) -> bool:
        """Check if a timer is armed."""
        with self._lock:
            return self._timer is not None
