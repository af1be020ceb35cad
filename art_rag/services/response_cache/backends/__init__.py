"""Cache backend implementations.

Provides the storage backends for the response cache:
- RedisBackend: Shared Redis-based caching (preferred)
- MemoryBackend: In-process caching (fallback)
"""

from art_rag.services.response_cache.backends.base import ICacheBackend, CacheStats
from art_rag.services.response_cache.backends.redis_backend import RedisBackend
from art_rag.services.response_cache.backends.memory_backend import MemoryBackend, CacheEntry

__all__ = [
    "ICacheBackend",
    "CacheStats",
    "RedisBackend",
    "MemoryBackend",
    "CacheEntry",
]
