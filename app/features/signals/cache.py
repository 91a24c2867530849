"""Process-wide TTL cache shielding rate-limited signal providers.

Keys are small and enumerable (one per region/year pair for holidays, one per
place/day for weather), so entries expire by TTL only. A soft upper bound
exists so an unexpected key explosion (e.g. many coordinate pairs) cannot grow
memory without limit.

The store is guarded by a lock. Request handlers and the sweeper both run on
the event loop today, but the lock keeps the cache correct if it is ever
touched from worker threads.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from app.core.config import get_settings

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload and the instant it stops being valid.

    Attributes:
        key: Cache key.
        payload: Opaque cached value.
        expires_at: Absolute expiry instant (UTC).
    """

    key: str
    payload: Any
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """Return True once ``now`` has reached ``expires_at``."""
        return now >= self.expires_at


class TTLCache:
    """Key/value store with per-entry expiry and periodic sweep.

    ``get`` never returns an expired payload: an expired entry found on lookup
    is deleted and reported as a miss. ``sweep`` removes all expired entries
    eagerly and is run on a timer by ``start_sweeper``.

    Operations never raise; a miss (``None``) is the normal refresh trigger.
    """

    def __init__(self, max_entries: int | None = None, clock: Clock = _utcnow) -> None:
        """Initialize the cache.

        Args:
            max_entries: Soft bound on entry count (None for unbounded).
            clock: Source of the current UTC time (injectable for tests).
        """
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._max_entries = max_entries
        self._clock = clock
        self._sweeper: asyncio.Task[None] | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str) -> Any | None:
        """Return the cached payload, or None on miss or expiry.

        Args:
            key: Cache key.

        Returns:
            Cached payload, or None.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[key]
                logger.debug("cache.entry_expired", key=key)
                return None
        return entry.payload

    def set(self, key: str, payload: Any, ttl_minutes: float) -> None:
        """Store ``payload`` under ``key``, overwriting any existing entry.

        Args:
            key: Cache key.
            payload: Value to cache.
            ttl_minutes: Lifetime from now, in minutes.
        """
        now = self._clock()
        entry = CacheEntry(key=key, payload=payload, expires_at=now + timedelta(minutes=ttl_minutes))
        with self._lock:
            self._entries[key] = entry
            if self._max_entries is not None and len(self._entries) > self._max_entries:
                self._evict_locked(now)
        logger.debug("cache.set", key=key, ttl_minutes=ttl_minutes)

    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        with self._lock:
            removed = self._remove_expired_locked(now)
            remaining = len(self._entries)
        if removed:
            logger.info("cache.sweep_completed", removed=removed, size=remaining)
        return removed

    def _remove_expired_locked(self, now: datetime) -> int:
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def _evict_locked(self, now: datetime) -> None:
        # Expired entries go first, then whatever expires soonest.
        self._remove_expired_locked(now)
        if self._max_entries is None:
            return
        while len(self._entries) > self._max_entries:
            soonest = min(self._entries.values(), key=lambda e: e.expires_at)
            del self._entries[soonest.key]
            logger.warning("cache.entry_evicted", key=soonest.key, max_entries=self._max_entries)

    # ------------------------------------------------------------------
    # Periodic sweep
    # ------------------------------------------------------------------

    def start_sweeper(self, interval_seconds: float) -> None:
        """Start the background sweep task on the running event loop.

        Args:
            interval_seconds: Delay between sweeps.
        """
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.create_task(self._sweep_forever(interval_seconds))
        logger.info("cache.sweeper_started", interval_seconds=interval_seconds)

    async def stop_sweeper(self) -> None:
        """Cancel the background sweep task and wait for it to finish."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        logger.info("cache.sweeper_stopped")

    async def _sweep_forever(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep()


# Singleton instance shared by all signal fetchers in this process
_signal_cache: TTLCache | None = None


def get_signal_cache() -> TTLCache:
    """Get the process-wide signal cache.

    Returns:
        TTLCache singleton.
    """
    global _signal_cache
    if _signal_cache is None:
        _signal_cache = TTLCache(max_entries=get_settings().cache_max_entries)
    return _signal_cache


def reset_signal_cache() -> None:
    """Drop the singleton cache. Useful for testing."""
    global _signal_cache
    _signal_cache = None
