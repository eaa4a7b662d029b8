"""
Bounded content-hash caches for parse and normalization results.

Caches are explicit objects handed to the components that use them, never
module-level state, so their lifetime and reset behaviour are visible to
callers and tests. Values are pure functions of the key, so a cache only
ever changes speed, never output.
"""

from __future__ import annotations

import hashlib
import threading
from collections import OrderedDict
from typing import Any, Callable, Generic, TypeVar

V = TypeVar("V")

DEFAULT_CAPACITY = 1000
EVICTION_FRACTION = 0.2


def content_hash(text: str) -> str:
    """SHA-256 hex digest of a string, used as the cache key for SQL text."""
    return hashlib.sha256(text.encode("utf-8", errors="surrogatepass")).hexdigest()


class ContentCache(Generic[V]):
    """
    Thread-safe insert-if-absent cache with a capacity ceiling.

    When the ceiling is reached the oldest 20% of entries are evicted in
    one go, keeping eviction cost amortised on long-lived processes that
    see many distinct queries.

    Example:
        cache: ContentCache[str] = ContentCache(capacity=500)
        signature = cache.get_or_compute(sql, lambda: normalize_uncached(sql))
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._entries: OrderedDict[str, V] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, text: str) -> V | None:
        """Cached value for text, or None."""
        key = content_hash(text)
        with self._lock:
            value = self._entries.get(key)
            if value is None:
                self._misses += 1
            else:
                self._hits += 1
            return value

    def get_or_compute(self, text: str, compute: Callable[[], V]) -> V:
        """
        Return the cached value for text, computing and storing it if absent.

        compute runs outside the lock. If two threads race on the same key
        the first stored value wins and both callers receive it.
        """
        key = content_hash(text)
        with self._lock:
            if key in self._entries:
                self._hits += 1
                return self._entries[key]
            self._misses += 1

        value = compute()

        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                return existing
            if len(self._entries) >= self.capacity:
                self._evict_oldest()
            self._entries[key] = value
            return value

    def _evict_oldest(self) -> None:
        # Caller holds the lock
        count = max(1, int(self.capacity * EVICTION_FRACTION))
        for _ in range(min(count, len(self._entries))):
            self._entries.popitem(last=False)
            self._evictions += 1

    def clear(self) -> None:
        """Clear all cached entries and statistics."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, text: object) -> bool:
        if not isinstance(text, str):
            return False
        key = content_hash(text)
        with self._lock:
            return key in self._entries

    @property
    def hit_rate(self) -> float:
        """Cache hit rate (0.0 to 1.0)."""
        total = self._hits + self._misses
        return self._hits / total if total > 0 else 0.0

    @property
    def size(self) -> int:
        """Current number of cached entries."""
        return len(self)

    def stats(self) -> dict[str, Any]:
        """Get cache statistics for observability."""
        with self._lock:
            return {
                "size": len(self._entries),
                "capacity": self.capacity,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "hit_rate": self.hit_rate,
            }
