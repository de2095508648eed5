"""
Cache Package.

TTL-keyed persistence for upstream provider responses.
"""

from cache.backends import (
    CacheBackend,
    DiskCacheBackend,
    MemoryCacheBackend,
    sanitize_key,
)
from cache.ttl_cache import TTLCache


def create_cache(backend: str = "disk", directory: str = ".cache", clock=None) -> TTLCache:
    """Build a TTLCache for the configured backend name."""
    if backend == "memory":
        return TTLCache(MemoryCacheBackend(), clock=clock)
    return TTLCache(DiskCacheBackend(directory), clock=clock)


__all__ = [
    "CacheBackend",
    "DiskCacheBackend",
    "MemoryCacheBackend",
    "TTLCache",
    "create_cache",
    "sanitize_key",
]
