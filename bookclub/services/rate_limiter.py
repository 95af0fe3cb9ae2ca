"""Request limiters guarding outbound and admin calls."""
from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable, Deque, Dict


class FixedWindowRateLimiter:
    """At most ``limit`` acquisitions per ``window_seconds``.

    The window restarts on the first acquisition attempted at or after
    ``window_start + window_seconds``. A denial is final for the caller:
    nothing is queued.
    """

    def __init__(self, limit: int, window_seconds: float, *, clock: Callable[[], float] = time.time):
        if limit < 0:
            raise ValueError("limit_non_negative")
        if window_seconds <= 0:
            raise ValueError("window_positive")
        self.limit = int(limit)
        self.window_seconds = float(window_seconds)
        self._clock = clock
        self._window_start = clock()
        self._count = 0
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        now = self._clock()
        with self._lock:
            if now - self._window_start >= self.window_seconds:
                self._window_start = now
                self._count = 0
            if self._count >= self.limit:
                return False
            self._count += 1
            return True

    @property
    def count(self) -> int:
        with self._lock:
            return self._count


class SlidingWindowLimiter:
    """Per-key sliding window, used for the admin schema endpoint (keyed by client IP)."""

    def __init__(self, limit: int, window_seconds: float, *, clock: Callable[[], float] = time.time):
        self.limit = int(limit)
        self.window_seconds = float(window_seconds)
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> bool:
        """Record an attempt for ``key``; False when the key is over its limit."""
        now = self._clock()
        cutoff = now - self.window_seconds
        with self._lock:
            self._prune(cutoff)
            hits = self._hits.setdefault(key, deque())
            if len(hits) >= self.limit:
                return False
            hits.append(now)
            return True

    def _prune(self, cutoff: float) -> None:
        for key in list(self._hits):
            hits = self._hits[key]
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if not hits:
                del self._hits[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


__all__ = ["FixedWindowRateLimiter", "SlidingWindowLimiter"]
