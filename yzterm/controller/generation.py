"""Monotonic generation counter fencing stale asynchronous results."""

import threading


class GenerationCounter:
    """Process-wide counter identifying the current target selection.

    Work captures ``current`` when it starts and checks ``is_current`` before
    touching shared state; a mismatch means the user has moved on and the
    result must be dropped.
    """

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    @property
    def current(self) -> int:
        with self._lock:
            return self._value

    def advance(self) -> int:
        """Invalidate all outstanding work and return the new value."""
        with self._lock:
            self._value += 1
            return self._value

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._value

    def __repr__(self) -> str:
        return f"GenerationCounter(current={self.current})"
