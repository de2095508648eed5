"""
Cache - Storage backends.

============================================================
PURPOSE
============================================================
Key/value storage for cache envelopes.

An envelope is the JSON object
    {"data": <payload>, "timestamp": <ms>, "expiresAt": <ms>}
Backends store and return envelopes verbatim; expiry decisions
belong to TTLCache.

============================================================
BACKENDS
============================================================
- DiskCacheBackend: one JSON file per key under a directory
- MemoryCacheBackend: process-local dict (tests, ephemeral runs)

Both raise CacheError on I/O problems. TTLCache catches it.

============================================================
"""

import json
import logging
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from core.exceptions import CacheError


logger = logging.getLogger(__name__)

MAX_KEY_LENGTH = 200
_UNSAFE_KEY_CHARS = re.compile(r"[^a-z0-9\-_]")


def sanitize_key(key: str) -> str:
    """Filesystem-safe slug for a cache key."""
    return _UNSAFE_KEY_CHARS.sub("_", key.lower())[:MAX_KEY_LENGTH]


class CacheBackend(ABC):
    """Abstract envelope store."""

    name: str = "backend"

    @abstractmethod
    def read(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the envelope for key, or None if absent."""
        pass

    @abstractmethod
    def write(self, key: str, envelope: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> bool:
        """Remove key. Returns True if something was removed."""
        pass

    @abstractmethod
    def keys(self) -> Iterator[str]:
        """Iterate over stored (sanitized) keys."""
        pass

    def clear(self) -> int:
        removed = 0
        for key in list(self.keys()):
            if self.remove(key):
                removed += 1
        return removed


# ============================================================
# DISK
# ============================================================

class DiskCacheBackend(CacheBackend):
    """
    One ``<sanitized-key>.json`` file per entry.

    A file that cannot be decoded raises CacheError on read so the
    caller can treat it as corrupted and remove it.
    """

    name = "disk"

    def __init__(self, directory: str = ".cache"):
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        return self._directory / f"{sanitize_key(key)}.json"

    def _ensure_directory(self) -> None:
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(f"Cannot create cache directory {self._directory}", cause=e)

    def read(self, key: str) -> Optional[Dict[str, Any]]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as fh:
                envelope = json.load(fh)
        except (OSError, ValueError) as e:
            raise CacheError(f"Corrupted cache entry {path.name}", key=key, cause=e)
        if not isinstance(envelope, dict) or "expiresAt" not in envelope:
            raise CacheError(f"Malformed cache envelope {path.name}", key=key)
        return envelope

    def write(self, key: str, envelope: Dict[str, Any]) -> None:
        self._ensure_directory()
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as fh:
                json.dump(envelope, fh)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            raise CacheError(f"Failed to write cache entry {path.name}", key=key, cause=e)

    def remove(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CacheError(f"Failed to delete cache entry {path.name}", key=key, cause=e)

    def keys(self) -> Iterator[str]:
        if not self._directory.exists():
            return iter(())
        return (p.stem for p in self._directory.glob("*.json"))


# ============================================================
# MEMORY
# ============================================================

class MemoryCacheBackend(CacheBackend):
    """Dict-backed store. Envelopes are JSON round-tripped to mirror disk semantics."""

    name = "memory"

    def __init__(self):
        self._store: Dict[str, str] = {}

    def read(self, key: str) -> Optional[Dict[str, Any]]:
        raw = self._store.get(sanitize_key(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            raise CacheError("Corrupted in-memory cache entry", key=key, cause=e)

    def write(self, key: str, envelope: Dict[str, Any]) -> None:
        try:
            self._store[sanitize_key(key)] = json.dumps(envelope)
        except (TypeError, ValueError) as e:
            raise CacheError("Value is not JSON serializable", key=key, cause=e)

    def remove(self, key: str) -> bool:
        return self._store.pop(sanitize_key(key), None) is not None

    def keys(self) -> Iterator[str]:
        return iter(list(self._store.keys()))

    def __len__(self) -> int:
        return len(self._store)
