"""Process-local TTL cache for resolved cover URLs."""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

CacheKey = Tuple[str, str]


@dataclass
class _CoverCacheEntry:
    url: str
    expires_at: float


def make_key(title: Optional[str], author: Optional[str]) -> CacheKey:
    """Caller-facing key: the raw title and author, author empty when absent."""
    return (title or "", author or "")


class CoverCache:
    """Time-expiring (title, author) -> url map.

    Entries are never deleted on read; an expired entry simply stops being
    returned until it is overwritten or `sweep` purges it.
    """

    def __init__(self, ttl_seconds: float, *, clock: Callable[[], float] = time.time):
        if ttl_seconds <= 0:
            raise ValueError("ttl_positive")
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._entries: Dict[CacheKey, _CoverCacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> Optional[str]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or now >= entry.expires_at:
            return None
        return entry.url

    def put(self, key: CacheKey, url: str) -> None:
        entry = _CoverCacheEntry(url=url, expires_at=self._clock() + self.ttl_seconds)
        with self._lock:
            self._entries[key] = entry

    def sweep(self) -> int:
        """Drop expired entries; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["CacheKey", "CoverCache", "make_key"]
