"""
Cache - TTL wrapper.

============================================================
PURPOSE
============================================================
Best-effort TTL cache around any async fetch function.

- Entries expire lazily: an expired entry is deleted when read
- cleanup() sweeps every expired or corrupted entry on demand
- Backend failures are logged and treated as a miss; the cache
  never blocks the request path

============================================================
CONCURRENCY
============================================================
No in-flight de-duplication. Two concurrent callers for the same
key may both miss and both fetch; the last write wins and later
callers converge on the cached value.

============================================================
USAGE
============================================================
    cache = TTLCache(DiskCacheBackend(".cache"))
    data = await cache.get_or_fetch(
        "coingecko:coin:ethereum",
        lambda: client.fetch_json(url),
        ttl=1800,
    )

============================================================
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from cache.backends import CacheBackend, MemoryCacheBackend
from core.clock import ClockProtocol, SystemClock
from core.exceptions import CacheError


logger = logging.getLogger(__name__)


class TTLCache:
    """TTL-keyed persistence wrapper over a CacheBackend."""

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        clock: Optional[ClockProtocol] = None,
        default_ttl: int = 1800,
    ):
        self._backend = backend or MemoryCacheBackend()
        self._clock = clock or SystemClock()
        self._default_ttl = default_ttl
        self._hits = 0
        self._misses = 0

    @property
    def backend(self) -> CacheBackend:
        return self._backend

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on miss/expiry."""
        try:
            envelope = self._backend.read(key)
        except CacheError as e:
            logger.warning(f"[cache] Dropping unreadable entry {key}: {e.message}")
            self._safe_remove(key)
            self._misses += 1
            return None

        if envelope is None:
            self._misses += 1
            return None

        if self._is_expired(envelope):
            logger.debug(f"[cache] Expired {key}")
            self._safe_remove(key)
            self._misses += 1
            return None

        self._hits += 1
        return envelope.get("data")

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Store value for ttl seconds. Returns False if the write failed."""
        now_ms = self._clock.timestamp_ms()
        ttl_seconds = self._default_ttl if ttl is None else ttl
        envelope = {
            "data": value,
            "timestamp": now_ms,
            "expiresAt": now_ms + int(ttl_seconds * 1000),
        }
        try:
            self._backend.write(key, envelope)
            return True
        except CacheError as e:
            logger.warning(f"[cache] Write failed for {key}: {e.message}")
            return False

    def delete(self, key: str) -> bool:
        return self._safe_remove(key)

    def clear(self) -> int:
        """Remove every entry. Returns the count removed."""
        try:
            removed = self._backend.clear()
        except CacheError as e:
            logger.warning(f"[cache] Clear failed: {e.message}")
            return 0
        logger.info(f"[cache] Cleared {removed} entries")
        return removed

    def cleanup(self) -> int:
        """Remove all expired or corrupted entries. Returns the count removed."""
        removed = 0
        for key in list(self._backend.keys()):
            try:
                envelope = self._backend.read(key)
            except CacheError:
                envelope = None
                if self._safe_remove(key):
                    removed += 1
                continue
            if envelope is not None and self._is_expired(envelope):
                if self._safe_remove(key):
                    removed += 1
        if removed:
            logger.info(f"[cache] Cleanup removed {removed} entries")
        return removed

    async def get_or_fetch(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[Any]],
        ttl: Optional[int] = None,
        force_refresh: bool = False,
    ) -> Any:
        """
        Return a cached value or fetch, store and return a fresh one.

        Args:
            key: Cache key (provider + canonical id)
            fetcher: Zero-arg coroutine factory producing the value
            ttl: Time to live in seconds
            force_refresh: Skip the read, still write the result

        None results are returned but never stored.
        Exceptions from the fetcher propagate unchanged.
        """
        if not force_refresh:
            cached = self.get(key)
            if cached is not None:
                logger.debug(f"[cache] Hit {key}")
                return cached

        value = await fetcher()
        if value is not None:
            self.set(key, value, ttl)
        return value

    def stats(self) -> dict:
        return {
            "backend": self._backend.name,
            "hits": self._hits,
            "misses": self._misses,
        }

    def _is_expired(self, envelope: dict) -> bool:
        expires_at = envelope.get("expiresAt")
        if not isinstance(expires_at, (int, float)):
            return True
        return self._clock.timestamp_ms() >= expires_at

    def _safe_remove(self, key: str) -> bool:
        try:
            return self._backend.remove(key)
        except CacheError as e:
            logger.warning(f"[cache] Delete failed for {key}: {e.message}")
            return False
