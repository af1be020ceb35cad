"""Response cache store with preferred/fallback backends.

The store maps a fingerprint of (question, options) to a previously built
ResponseEnvelope. Reads and writes go to the preferred backend (Redis)
until it reports a connection-level failure; from then on the store runs
on the in-process fallback backend for the rest of the process lifetime.
No operation on the store raises: errors become misses or False results
and are logged as warnings.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from art_rag.core.errors import BackendUnavailableError, CacheBackendError
from art_rag.core.logging import get_logger
from art_rag.models.query import ResolvedOptions, ResponseEnvelope
from art_rag.services.response_cache.backends.base import CacheStats, ICacheBackend
from art_rag.services.response_cache.backends.memory_backend import MemoryBackend
from art_rag.services.response_cache.key_generator import CacheKeyGenerator

logger = get_logger(__name__)

SELF_TEST_QUESTION = "__cache_self_test__"


class BackendState(str, Enum):
    PREFERRED_ACTIVE = "preferred_active"
    FALLBACK_ONLY = "fallback_only"


@dataclass
class CacheConfig:
    """Response cache configuration."""

    ttl: int = 3600
    prefix: str = "art_rag:"


class ResponseCacheStore:
    """Cache of response envelopes keyed by question fingerprint.

    Usage:
        store = ResponseCacheStore(RedisBackend(url), config=CacheConfig())
        await store.connect()

        envelope = await store.get(question, options)
        if envelope is None:
            ...
            await store.set(question, options, envelope)
    """

    def __init__(
        self,
        preferred: Optional[ICacheBackend] = None,
        fallback: Optional[ICacheBackend] = None,
        config: Optional[CacheConfig] = None,
    ):
        self._preferred = preferred
        self._fallback = fallback or MemoryBackend()
        self._config = config or CacheConfig()
        self._state = BackendState.PREFERRED_ACTIVE if preferred else BackendState.FALLBACK_ONLY
        self._stats = CacheStats()

    @property
    def state(self) -> BackendState:
        return self._state

    @property
    def is_degraded(self) -> bool:
        """True when a configured preferred backend has been abandoned."""
        return self._preferred is not None and self._state is BackendState.FALLBACK_ONLY

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def active_backend(self) -> ICacheBackend:
        if self._state is BackendState.PREFERRED_ACTIVE:
            return self._preferred
        return self._fallback

    @property
    def backend_kind(self) -> str:
        return self.active_backend.kind

    async def connect(self) -> None:
        """Connect backends. A preferred backend that fails to connect is abandoned."""
        await self._fallback.connect()

        if self._state is BackendState.PREFERRED_ACTIVE:
            try:
                await self._preferred.connect()
                logger.info(f"Response cache using {self._preferred.kind} backend")
            except CacheBackendError as e:
                self._degrade(e)
        else:
            logger.info(f"Response cache using {self._fallback.kind} backend")

    async def disconnect(self) -> None:
        if self._preferred is not None:
            await self._preferred.disconnect()
        await self._fallback.disconnect()

    def _degrade(self, error: Exception) -> None:
        """One-way switch to the fallback backend."""
        if self._state is BackendState.FALLBACK_ONLY:
            return
        self._state = BackendState.FALLBACK_ONLY
        logger.warning(
            f"Preferred cache backend unavailable, using {self._fallback.kind} fallback "
            f"for the rest of the process: {error}"
        )

    def key_for(self, question: str, options: ResolvedOptions) -> str:
        return CacheKeyGenerator.response(question, options, prefix=self._config.prefix)

    def fingerprint(self, question: str, options: ResolvedOptions) -> str:
        """Deterministic digest of (question, options)."""
        return CacheKeyGenerator.fingerprint(question, options)

    async def _call(self, operation: str, *args: Any) -> Any:
        """Run a backend operation, degrading on connection-level failure.

        A call that fails on the preferred backend because it is unreachable
        is not retried on the fallback; the failure is reported to the caller
        and only subsequent calls use the fallback.
        """
        backend = self.active_backend
        try:
            return await getattr(backend, operation)(*args)
        except BackendUnavailableError as e:
            if backend is self._preferred:
                self._degrade(e)
            raise

    async def get(self, question: str, options: ResolvedOptions) -> Optional[ResponseEnvelope]:
        """Look up a cached envelope. Errors count as misses."""
        key = self.key_for(question, options)
        try:
            value = await self._call("get", key)
            envelope = ResponseEnvelope.model_validate(value) if value is not None else None
        except (CacheBackendError, ValidationError) as e:
            self._stats.record_error()
            self._stats.record_miss()
            logger.warning(f"Cache get error for {key}: {e}")
            return None

        if envelope is None:
            self._stats.record_miss()
            return None

        self._stats.record_hit()
        return envelope

    async def set(
        self,
        question: str,
        options: ResolvedOptions,
        payload: ResponseEnvelope,
        ttl: Optional[int] = None,
    ) -> bool:
        """Store an envelope. Returns False instead of raising on failure."""
        key = self.key_for(question, options)
        # Non-positive ttl means the configured default
        ttl = ttl if ttl and ttl > 0 else self._config.ttl
        try:
            value = payload.model_dump(mode="json", by_alias=True)
            stored = await self._call("set", key, value, ttl)
        except (CacheBackendError, PydanticSerializationError, TypeError, ValueError) as e:
            self._stats.record_error()
            logger.warning(f"Cache set error for {key}: {e}")
            return False

        if stored:
            self._stats.record_set()
        return bool(stored)

    async def delete(self, question: str, options: ResolvedOptions) -> bool:
        key = self.key_for(question, options)
        try:
            deleted = await self._call("delete", key)
        except CacheBackendError as e:
            self._stats.record_error()
            logger.warning(f"Cache delete error for {key}: {e}")
            return False

        if deleted:
            self._stats.record_delete()
        return bool(deleted)

    async def clear(self) -> bool:
        """Remove every entry under the store's prefix."""
        try:
            removed = await self._call("clear_prefix", self._config.prefix)
        except CacheBackendError as e:
            self._stats.record_error()
            logger.warning(f"Cache clear error: {e}")
            return False

        logger.info(f"Cleared {removed} response cache entries")
        return True

    async def stats(self) -> Dict[str, Any]:
        """Counters and backend information."""
        try:
            entry_count: Optional[int] = await self._call("count_prefix", self._config.prefix)
        except CacheBackendError as e:
            logger.warning(f"Cache entry count failed: {e}")
            entry_count = None

        return {
            "backendKind": self.backend_kind,
            "state": self._state.value,
            "hitCount": self._stats.hits,
            "missCount": self._stats.misses,
            "setCount": self._stats.sets,
            "deleteCount": self._stats.deletes,
            "errorCount": self._stats.errors,
            "hitRate": self._stats.hit_rate,
            "entryCount": entry_count,
            "ttl": self._config.ttl,
            "prefix": self._config.prefix,
        }

    async def self_test(self, probe: ResponseEnvelope) -> bool:
        """Write, read back, delete and verify absence of a probe entry."""
        options = probe.metadata.search_options_used
        if not await self.set(SELF_TEST_QUESTION, options, probe, ttl=60):
            return False
        fetched = await self.get(SELF_TEST_QUESTION, options)
        if fetched is None or fetched.answer != probe.answer:
            logger.warning("Cache self-test read back a different value")
            return False
        await self.delete(SELF_TEST_QUESTION, options)
        return await self.get(SELF_TEST_QUESTION, options) is None
