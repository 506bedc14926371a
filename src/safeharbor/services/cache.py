# src/safeharbor/services/cache.py
"""In-process TTL cache of final moderation results."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

from safeharbor.services.types import ModerationResult


@dataclass(frozen=True)
class CacheEntry:
    result: ModerationResult
    created_at: float


class ResultCache:
    """Content-hash keyed memoization with lazy expiry.

    Entries are never swept in the background; an expired entry is dropped
    when it is next looked up, or overwritten by the next ``put``. The clock
    is injectable so expiry can be tested without sleeping.
    """

    def __init__(
        self,
        ttl_seconds: float = 30 * 60,
        *,
        clock: Callable[[], float] = time.monotonic,
        enabled: bool = True,
    ) -> None:
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be non-negative")
        self.ttl_seconds = ttl_seconds
        self.enabled = enabled
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> ModerationResult | None:
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._clock() - entry.created_at > self.ttl_seconds:
                del self._entries[key]
                entry = None
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
            return entry.result

    def put(self, key: str, result: ModerationResult) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._entries[key] = CacheEntry(result=result, created_at=self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def hit_rate(self) -> float:
        """Fraction of lookups served from the cache."""
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0
