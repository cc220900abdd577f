"""In-memory TTL cache for aggregation results.

Entries expire ``ttl`` seconds after they are stored. Expired entries are
treated as absent on lookup and removed by a periodic sweep. Stored values
are frozen dataclasses, so they are handed out without copying.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from ..news.errors import CacheError

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass
class CacheEntry:
    key: str
    value: Any
    expires_at: float


@dataclass
class CacheStats:
    """Snapshot of cache counters."""

    entry_count: int
    hits: int
    misses: int

    @property
    def hit_rate(self) -> float:
        """Hits as a percentage of lookups."""
        lookups = self.hits + self.misses
        return (self.hits / lookups) * 100 if lookups else 0.0

    def to_dict(self) -> dict:
        """Convert to dict for JSON serialization."""
        return {
            "keys": self.entry_count,
            "hits": self.hits,
            "misses": self.misses,
            "hitRate": f"{self.hit_rate:.2f}%",
        }


class ResponseCache:
    """
    Thread-safe key/value store with per-entry expiry.

    Two callers racing on the same missing key may both compute; the later
    store wins. Counters and the entry map are only touched under the lock.
    """

    def __init__(
        self,
        default_ttl: int = 900,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache.

        Args:
            default_ttl: Seconds an entry lives when no ttl is given
            clock: Monotonic time source (tests pass a fake)
        """
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value for key, or default."""
        value = self._lookup(key)
        return default if value is _MISSING else value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Store value under key.

        Raises:
            CacheError: if ttl is not a positive number
        """
        if ttl is None:
            ttl = self.default_ttl
        if not isinstance(ttl, (int, float)) or ttl <= 0:
            raise CacheError(f"Invalid TTL for {key}: {ttl!r}")

        try:
            with self._lock:
                self._entries[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl)
        except TypeError as e:
            raise CacheError(str(e)) from e
        logger.debug("[CACHE] Set %s (TTL: %ss)", key, ttl)

    def delete(self, key: str) -> bool:
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug("[CACHE] Deleted %s", key)
        return removed

    def flush(self) -> None:
        """Drop every entry. Counters are kept."""
        with self._lock:
            self._entries.clear()
        logger.info("[CACHE] Flushed")

    def keys(self) -> list[str]:
        """Keys of live entries."""
        now = self._clock()
        with self._lock:
            return [k for k, e in self._entries.items() if e.expires_at > now]

    def stats(self) -> CacheStats:
        now = self._clock()
        with self._lock:
            live = sum(1 for e in self._entries.values() if e.expires_at > now)
            return CacheStats(entry_count=live, hits=self._hits, misses=self._misses)

    def purge_expired(self) -> int:
        """Remove expired entries. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.expires_at <= now]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("[CACHE] Purged %d expired entries", len(expired))
        return len(expired)

    async def get_or_compute(
        self,
        key: str,
        ttl: Optional[float],
        compute: Callable[[], Awaitable[Any]],
        cache_if: Optional[Callable[[Any], bool]] = None,
    ) -> Any:
        """
        Return the cached value for key, computing and storing it on a miss.

        Args:
            key: Cache key
            ttl: Seconds the computed value stays fresh
            compute: Coroutine function producing the value
            cache_if: Optional predicate; values it rejects are returned
                but not stored

        Exceptions raised by compute propagate and nothing is stored.
        """
        try:
            value = self._lookup(key)
        except CacheError as e:
            logger.warning("[CACHE] Lookup failed for %s, treating as miss: %s", key, e)
            value = _MISSING

        if value is not _MISSING:
            return value

        value = await compute()

        if cache_if is None or cache_if(value):
            try:
                self.set(key, value, ttl)
            except CacheError as e:
                logger.warning("[CACHE] Could not store %s: %s", key, e)

        return value

    async def run_sweeper(self, interval: float) -> None:
        """Purge expired entries every ``interval`` seconds until cancelled."""
        logger.info("[CACHE] Sweeping expired entries every %ss", interval)
        while True:
            await asyncio.sleep(interval)
            self.purge_expired()

    def _lookup(self, key: str) -> Any:
        now = self._clock()
        try:
            with self._lock:
                entry = self._entries.get(key)
                if entry is not None and entry.expires_at <= now:
                    del self._entries[key]
                    logger.debug("[CACHE] Expired %s", key)
                    entry = None

                if entry is None:
                    self._misses += 1
                    logger.debug("[CACHE] Miss for %s", key)
                    return _MISSING

                self._hits += 1
                logger.debug("[CACHE] Hit for %s", key)
                return entry.value
        except TypeError as e:
            # Unhashable key and similar store failures
            raise CacheError(str(e)) from e
