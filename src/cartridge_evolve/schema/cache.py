"""Bounded schema cache with LRU eviction and idle-time expiry."""

import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, Dict, List, Optional

import structlog

from .target import TargetSchema

logger = structlog.get_logger(__name__)


class CacheEntry:
    """A cached target schema with access tracking."""

    def __init__(self, fingerprint: str, schema: TargetSchema, now: float):
        self.fingerprint = fingerprint
        self.schema = schema
        self.created_at = now
        self.last_accessed = now
        self.access_count = 0

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        """An entry expires once it has been idle for longer than the TTL."""
        return now - self.last_accessed > ttl_seconds

    def access(self, now: float) -> TargetSchema:
        self.access_count += 1
        self.last_accessed = now
        return self.schema


@dataclass(frozen=True)
class CacheStats:
    """Read-only snapshot of cache statistics."""

    size: int
    max_size: int
    hit_count: int
    miss_count: int
    eviction_count: int
    expired_count: int

    @property
    def hit_rate(self) -> float:
        lookups = self.hit_count + self.miss_count
        return self.hit_count / lookups if lookups else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "size": self.size,
            "max_size": self.max_size,
            "hit_count": self.hit_count,
            "miss_count": self.miss_count,
            "eviction_count": self.eviction_count,
            "expired_count": self.expired_count,
            "hit_rate": self.hit_rate,
        }


class SchemaCache:
    """Thread-safe LRU cache of target schemas keyed by fingerprint.

    Entries expire after ``ttl_seconds`` without access, so a frequently used
    entry lives indefinitely. When ``max_size`` is exceeded the least recently
    used entry is evicted. Expired entries count towards ``eviction_count``
    as well as ``expired_count``. Expired entries are purged before the size
    or key list is reported.
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl_seconds: float = 300.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        """Initialize the schema cache.

        Args:
            max_size: Maximum number of entries
            ttl_seconds: Idle time after which an entry expires
            clock: Monotonic time source, replaceable in tests
        """
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic

        # OrderedDict keeps recency order: oldest first
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = RLock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def __len__(self) -> int:
        with self._lock:
            self.purge_expired()
            return len(self._entries)

    def __contains__(self, fingerprint: str) -> bool:
        with self._lock:
            entry = self._entries.get(fingerprint)
            return entry is not None and not entry.is_expired(self._clock(), self.ttl_seconds)

    def get(self, fingerprint: str) -> Optional[TargetSchema]:
        """Get a cached schema and refresh its access time.

        Returns:
            The cached schema, or None on a miss or an expired entry
        """
        with self._lock:
            now = self._clock()
            entry = self._entries.get(fingerprint)

            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(now, self.ttl_seconds):
                del self._entries[fingerprint]
                self._expirations += 1
                self._evictions += 1
                self._misses += 1
                logger.debug("Cache entry expired", fingerprint=fingerprint)
                return None

            self._entries.move_to_end(fingerprint)
            self._hits += 1
            return entry.access(now)

    def put_if_absent(self, fingerprint: str, schema: TargetSchema) -> TargetSchema:
        """Store a schema unless a live entry already exists.

        When two callers race to store the same fingerprint the first stored
        schema is kept and returned to both.

        Returns:
            The schema held in the cache after the call
        """
        with self._lock:
            now = self._clock()
            existing = self._entries.get(fingerprint)
            if existing is not None:
                if not existing.is_expired(now, self.ttl_seconds):
                    self._entries.move_to_end(fingerprint)
                    return existing.access(now)
                self._expirations += 1
                self._evictions += 1

            self._entries[fingerprint] = CacheEntry(fingerprint, schema, now)
            self._entries.move_to_end(fingerprint)
            self._evict_over_capacity()
            return schema

    def invalidate(self, fingerprint: str) -> bool:
        """Remove an entry.

        Returns:
            True if an entry was removed, False if none was cached
        """
        with self._lock:
            return self._entries.pop(fingerprint, None) is not None

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [
                key for key, entry in self._entries.items()
                if entry.is_expired(now, self.ttl_seconds)
            ]
            for key in expired:
                del self._entries[key]
            self._expirations += len(expired)
            self._evictions += len(expired)
            return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> List[str]:
        """Fingerprints currently cached, least recently used first."""
        with self._lock:
            self.purge_expired()
            return list(self._entries.keys())

    def stats(self) -> CacheStats:
        """Snapshot of the statistics; expired entries are purged first."""
        with self._lock:
            self.purge_expired()
            return CacheStats(
                size=len(self._entries),
                max_size=self.max_size,
                hit_count=self._hits,
                miss_count=self._misses,
                eviction_count=self._evictions,
                expired_count=self._expirations,
            )

    def _evict_over_capacity(self) -> None:
        # Expired entries go first, then least recently used ones
        if len(self._entries) > self.max_size:
            self.purge_expired()

        while len(self._entries) > self.max_size:
            fingerprint, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug("Evicted least recently used schema", fingerprint=fingerprint)
