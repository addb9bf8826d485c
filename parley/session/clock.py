from __future__ import annotations

import itertools
import threading


class LogicalClock:
    """Monotonic sequence counter; each tick is strictly greater than the last."""

    def __init__(self, start: int = 0) -> None:
        self._counter = itertools.count(start + 1)
        self._lock = threading.Lock()
        self._last = start

    def tick(self) -> int:
        with self._lock:
            self._last = next(self._counter)
            return self._last

    @property
    def last(self) -> int:
        return self._last
