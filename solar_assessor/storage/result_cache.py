"""Ephemeral keyed store for assessment records."""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    expires_at: Optional[float]

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class ResultCache:
    """
    In-memory key/value store with per-entry expiry.

    Expired entries are dropped lazily on read and by ``purge_expired``,
    which the optional background sweeper calls periodically. A single lock
    guards every operation, so ``update`` is atomic per key. Nothing
    survives a restart.

    Args:
        default_ttl: Seconds an entry lives when ``put`` gets no ttl;
            None keeps entries until deleted
        sweep_interval: Seconds between sweeper passes
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        default_ttl: Optional[float] = 3600.0,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic
    ):
        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._sweeper: Optional[asyncio.Task] = None

    def _expiry(self, ttl: Optional[float]) -> Optional[float]:
        ttl = self.default_ttl if ttl is None else ttl
        if ttl is None:
            return None
        return self._clock() + ttl

    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Store ``value`` under ``key``, replacing any previous entry.

        Args:
            key: Cache key
            value: Value to store
            ttl: Lifetime in seconds; the cache default when omitted
        """
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._expiry(ttl))
        logger.debug(f"Cached '{key}' (ttl={self.default_ttl if ttl is None else ttl})")

    def get(self, key: str) -> Optional[Any]:
        """Return the live value for ``key``, or None when missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expired(self._clock()):
                del self._entries[key]
                logger.debug(f"Cache entry '{key}' expired")
                return None
            return entry.value

    def update(self, key: str, fn: Callable[[Any], Any]) -> Optional[Any]:
        """
        Atomically replace the value under ``key`` with ``fn(value)``.

        The entry keeps its original expiry.

        Returns:
            The new value, or None when the key is missing or expired
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expired(self._clock()):
                del self._entries[key]
                return None
            entry.value = fn(entry.value)
            return entry.value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def keys(self, prefix: str = "") -> List[str]:
        """List live keys starting with ``prefix``."""
        now = self._clock()
        with self._lock:
            return [
                key for key, entry in self._entries.items()
                if key.startswith(prefix) and not entry.expired(now)
            ]

    def purge_expired(self) -> int:
        """Remove every expired entry and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info(f"Purged {len(expired)} expired cache entries")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def start_sweeper(self) -> asyncio.Task:
        """Start the periodic purge on the running event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever())
        return self._sweeper

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.purge_expired()
