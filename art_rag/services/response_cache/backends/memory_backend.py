"""In-process cache backend used as the fallback store."""

import copy
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from art_rag.services.response_cache.backends.base import ICacheBackend


@dataclass
class CacheEntry:
    """A cache entry with optional expiration."""

    key: str
    value: Any
    stored_at: float
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        """Check if the entry has expired."""
        if self.expires_at is None:
            return False
        return now >= self.expires_at


class MemoryBackend(ICacheBackend):
    """In-memory cache backend.

    Mimics the Redis backend within a single process. Entries are removed
    lazily when read past their expiry. Values are deep-copied on the way
    in and out so callers cannot mutate stored entries.
    """

    kind = "memory"

    def __init__(self, clock: Callable[[], float] = time.time):
        """Initialize memory backend.

        Args:
            clock: Returns the current time in seconds; injectable for tests.
        """
        self._storage: Dict[str, CacheEntry] = {}
        self._enabled = False
        self._clock = clock
        self.evictions = 0

    @property
    def enabled(self) -> bool:
        """Check if the backend is enabled."""
        return self._enabled

    async def connect(self) -> None:
        """Enable the cache backend."""
        self._enabled = True

    async def disconnect(self) -> None:
        """Disable the cache backend and clear storage."""
        self._enabled = False
        self._storage.clear()

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self._storage.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._storage[key]
            self.evictions += 1
            return None
        return entry

    async def get(self, key: str) -> Optional[Any]:
        """Get a value from the cache."""
        if not self._enabled:
            return None

        entry = self._live_entry(key)
        if entry is None:
            return None
        return copy.deepcopy(entry.value)

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None
    ) -> bool:
        """Set a value in the cache."""
        if not self._enabled:
            return False

        now = self._clock()
        expires_at = now + ttl if ttl is not None else None
        self._storage[key] = CacheEntry(
            key=key,
            value=copy.deepcopy(value),
            stored_at=now,
            expires_at=expires_at,
        )
        return True

    async def delete(self, key: str) -> bool:
        """Delete a key from the cache."""
        if not self._enabled:
            return False

        return self._storage.pop(key, None) is not None

    async def clear_prefix(self, prefix: str) -> int:
        """Remove every key under prefix."""
        keys = [key for key in self._storage if key.startswith(prefix)]
        for key in keys:
            del self._storage[key]
        return len(keys)

    async def count_prefix(self, prefix: str) -> int:
        """Count live keys under prefix."""
        return len([key for key in list(self._storage) if key.startswith(prefix) and self._live_entry(key)])

    # Testing utilities

    def get_all_keys(self) -> List[str]:
        """Get all stored keys, expired or not (testing utility)."""
        return list(self._storage.keys())

    def get_raw_entry(self, key: str) -> Optional[CacheEntry]:
        """Get a raw cache entry (testing utility)."""
        return self._storage.get(key)
