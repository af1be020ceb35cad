"""Response cache for answered questions.

Usage:
    from art_rag.services.response_cache import ResponseCacheStore, CacheConfig

    store = ResponseCacheStore(RedisBackend(url), config=CacheConfig(ttl=3600))
    await store.connect()
"""

from art_rag.services.response_cache.key_generator import CacheKeyGenerator
from art_rag.services.response_cache.store import BackendState, CacheConfig, ResponseCacheStore

__all__ = [
    "BackendState",
    "CacheConfig",
    "CacheKeyGenerator",
    "ResponseCacheStore",
]
