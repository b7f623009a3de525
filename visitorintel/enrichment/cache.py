"""In-memory expiring cache shared by the company resolver and the IP pipeline.

Entries carry their own TTL and are expired lazily: an entry past its
deadline is removed the next time it is touched. When the cache reaches
``max_entries`` an insert first sweeps every expired entry; the bound is
advisory, so an insert still succeeds when nothing has expired yet.

Thread Safety:
    All operations take an internal lock. ``get_or_compute`` runs the
    compute callable outside the lock, so two callers missing the same key
    may both compute; the last store wins.
"""

from __future__ import annotations

import logging
import sys
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60
DEFAULT_MAX_ENTRIES = 10_000

# Fixed per-entry bookkeeping estimate (entry object plus two floats).
_ENTRY_OVERHEAD_BYTES = 120


class _Missing:
    """Sentinel type for "no live entry" that cannot collide with cached values."""

    _instance: Optional[_Missing] = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def _validate_ttl(ttl_seconds: float) -> None:
    if ttl_seconds <= 0:
        raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")


@dataclass(slots=True)
class CacheEntry:
    """Stored value with its creation and expiry timestamps (epoch seconds)."""

    value: Any
    created_at: float
    expires_at: float

    def __post_init__(self) -> None:
        if self.expires_at <= self.created_at:
            raise ValueError(
                f"expires_at ({self.expires_at}) must be later than created_at ({self.created_at})"
            )

    def is_expired(self, now: float) -> bool:
        """Return True once ``now`` is strictly past the expiry deadline."""
        return now > self.expires_at


@dataclass(slots=True, frozen=True)
class CacheEntryInfo:
    """Per-entry metadata exposed through :meth:`ExpiringCache.stats`."""

    key: str
    expired: bool
    created_at: float
    expires_at: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "expired": self.expired,
            "created_at": _iso(self.created_at),
            "expires_at": _iso(self.expires_at),
        }


@dataclass(slots=True)
class CacheStats:
    """Point-in-time snapshot of the cache contents and counters.

    Attributes:
        total_entries: Entries currently held, expired or not
        active_entries: Entries still within their TTL
        expired_entries: Entries past their TTL that nothing has touched yet
        approximate_memory_bytes: Rough size of keys, values and bookkeeping
        entries: Metadata for every held entry
        hits: Lookups served from a live entry
        misses: Lookups that found nothing live
        stores: Successful inserts and overwrites
        evictions: Entries removed because they had expired
    """

    total_entries: int = 0
    active_entries: int = 0
    expired_entries: int = 0
    approximate_memory_bytes: int = 0
    entries: list[CacheEntryInfo] = field(default_factory=list)
    hits: int = 0
    misses: int = 0
    stores: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        """Lookup hit rate (0.0 to 1.0)."""
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def to_dict(self, include_entries: bool = True) -> Dict[str, Any]:
        """Convert the snapshot to a dictionary for reporting."""
        payload: Dict[str, Any] = {
            "total_entries": self.total_entries,
            "active_entries": self.active_entries,
            "expired_entries": self.expired_entries,
            "approximate_memory_bytes": self.approximate_memory_bytes,
            "hits": self.hits,
            "misses": self.misses,
            "stores": self.stores,
            "evictions": self.evictions,
            "hit_rate": self.hit_rate,
        }
        if include_entries:
            payload["entries"] = [info.to_dict() for info in self.entries]
        return payload


class ExpiringCache:
    """Bounded key/value store with per-entry TTL and lazy expiry.

    Example:
        >>> cache = ExpiringCache(max_entries=100)
        >>> cache.set("ip:1.2.3.4", {"status": "filtered"}, ttl_seconds=3600)
        >>> cache.get("ip:1.2.3.4")
        {'status': 'filtered'}
        >>> cache.stats().active_entries
        1
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize an empty cache.

        Args:
            max_entries: Entry count that triggers an expired-entry sweep on insert
            default_ttl: TTL in seconds used when ``set`` is called without one
            clock: Callable returning the current epoch time; injectable for tests

        Raises:
            ValueError: If ``max_entries`` or ``default_ttl`` is not positive
        """
        if max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        _validate_ttl(default_ttl)

        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._lock = threading.Lock()
        self._counters = {"hits": 0, "misses": 0, "stores": 0, "evictions": 0}

    def lookup(self, key: Hashable) -> Any:
        """Return the live value for ``key`` or :data:`MISSING`.

        Unlike :meth:`get`, a cached ``None`` is distinguishable from absence.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._counters["misses"] += 1
                return MISSING
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._counters["evictions"] += 1
                self._counters["misses"] += 1
                logger.debug("Cache entry expired on read: %s", key)
                return MISSING
            self._counters["hits"] += 1
            return entry.value

    def get(self, key: Hashable) -> Any:
        """Return the live value for ``key``, or None when absent or expired."""
        value = self.lookup(key)
        if value is MISSING:
            return None
        logger.debug("Cache hit for key: %s", key)
        return value

    def has(self, key: Hashable) -> bool:
        """Return True if ``key`` holds a live entry, expiring it otherwise."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._counters["evictions"] += 1
                return False
            return True

    def set(self, key: Hashable, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """Insert or overwrite ``key``.

        Args:
            key: Cache key
            value: Value to store; returned as-is on later hits
            ttl_seconds: Lifetime in seconds, defaults to ``default_ttl``

        Raises:
            ValueError: If ``ttl_seconds`` is not positive
        """
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        _validate_ttl(ttl)

        with self._lock:
            if len(self._entries) >= self.max_entries:
                logger.info("Cache reached %d entries, clearing expired entries", len(self._entries))
                self._remove_expired_locked()
            now = self._clock()
            self._entries[key] = CacheEntry(value=value, created_at=now, expires_at=now + ttl)
            self._counters["stores"] += 1
        logger.debug("Cache set key: %s, expires in %ss", key, ttl)

    def delete(self, key: Hashable) -> bool:
        """Remove ``key``; return True if an entry was removed."""
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug("Cache deleted key: %s", key)
        return removed

    def clear(self) -> int:
        """Remove every entry and return how many were held."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("Cache cleared %d entries", count)
        return count

    def cleanup_expired(self) -> int:
        """Remove all expired entries and return the number removed.

        Called automatically under capacity pressure; owners may also call it
        from their own scheduler to bound memory between inserts.
        """
        with self._lock:
            return self._remove_expired_locked()

    def get_or_compute(
        self,
        key: Hashable,
        compute: Callable[[], Any],
        ttl_seconds: Optional[float] = None,
    ) -> Any:
        """Return the live value for ``key`` or compute, store and return it.

        Exceptions raised by ``compute`` propagate and nothing is stored.
        """
        cached = self.lookup(key)
        if cached is not MISSING:
            return cached
        logger.debug("Cache miss for key: %s, computing", key)
        value = compute()
        self.set(key, value, ttl_seconds)
        return value

    async def aget_or_compute(
        self,
        key: Hashable,
        compute: Callable[[], Awaitable[Any]],
        ttl_seconds: Optional[float] = None,
    ) -> Any:
        """Async variant of :meth:`get_or_compute` for coroutine producers."""
        cached = self.lookup(key)
        if cached is not MISSING:
            return cached
        logger.debug("Cache miss for key: %s, awaiting compute", key)
        value = await compute()
        self.set(key, value, ttl_seconds)
        return value

    def stats(self) -> CacheStats:
        """Return a snapshot of the cache without evicting anything."""
        with self._lock:
            now = self._clock()
            entries = [
                CacheEntryInfo(
                    key=str(key),
                    expired=entry.is_expired(now),
                    created_at=entry.created_at,
                    expires_at=entry.expires_at,
                )
                for key, entry in self._entries.items()
            ]
            memory = sum(
                sys.getsizeof(key) + sys.getsizeof(entry.value) + _ENTRY_OVERHEAD_BYTES
                for key, entry in self._entries.items()
            )
            counters = dict(self._counters)

        expired = sum(1 for info in entries if info.expired)
        return CacheStats(
            total_entries=len(entries),
            active_entries=len(entries) - expired,
            expired_entries=expired,
            approximate_memory_bytes=memory,
            entries=entries,
            **counters,
        )

    def _remove_expired_locked(self) -> int:
        now = self._clock()
        expired_keys = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired_keys:
            del self._entries[key]
        if expired_keys:
            self._counters["evictions"] += len(expired_keys)
            logger.info("Cache cleaned up %d expired entries", len(expired_keys))
        return len(expired_keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return self.has(key)  # type: ignore[arg-type]


__all__ = [
    "DEFAULT_MAX_ENTRIES",
    "DEFAULT_TTL_SECONDS",
    "MISSING",
    "CacheEntry",
    "CacheEntryInfo",
    "CacheStats",
    "ExpiringCache",
]
