"""Base interface for response cache backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Any


@dataclass
class CacheStats:
    """Statistics for cache performance monitoring."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    errors: int = 0
    evictions: int = 0

    @property
    def total_requests(self) -> int:
        """Total number of cache lookups."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests

    def record_hit(self) -> None:
        self.hits += 1

    def record_miss(self) -> None:
        self.misses += 1

    def record_set(self) -> None:
        self.sets += 1

    def record_delete(self) -> None:
        self.deletes += 1

    def record_error(self) -> None:
        self.errors += 1

    def reset(self) -> None:
        """Reset all statistics."""
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.deletes = 0
        self.errors = 0
        self.evictions = 0


class ICacheBackend(ABC):
    """Abstract base class for cache backends.

    Backends store JSON-compatible values. Connection-level failures are
    raised as BackendUnavailableError, other failures as CacheBackendError;
    the response cache store decides how to recover.
    """

    kind: str = "unknown"

    @property
    @abstractmethod
    def enabled(self) -> bool:
        """Check if the backend is enabled and connected."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Connect to the cache backend."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect from the cache backend."""
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get a value from the cache.

        Args:
            key: The cache key.

        Returns:
            The cached value, or None if not found or expired.
        """
        ...

    @abstractmethod
    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None
    ) -> bool:
        """Set a value in the cache.

        Args:
            key: The cache key.
            value: The value to cache (must be JSON serializable).
            ttl: Time-to-live in seconds (None for no expiration).

        Returns:
            True if stored.
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key. Returns True if it existed."""
        ...

    @abstractmethod
    async def clear_prefix(self, prefix: str) -> int:
        """Remove every key starting with prefix. Returns the number removed."""
        ...

    @abstractmethod
    async def count_prefix(self, prefix: str) -> int:
        """Count live keys starting with prefix."""
        ...
