"""Redis cache backend implementation."""

import json
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    TimeoutError as RedisTimeoutError,
    RedisError,
)

from art_rag.core.errors import BackendUnavailableError, CacheBackendError
from art_rag.core.logging import get_logger
from art_rag.services.response_cache.backends.base import ICacheBackend

logger = get_logger(__name__)

# Errors that mean the server cannot be reached at all
CONNECTION_ERRORS = (RedisConnectionError, RedisTimeoutError, ConnectionError, TimeoutError, OSError)


class RedisBackend(ICacheBackend):
    """Redis-based cache backend.

    Values are stored as JSON strings. Expiry is left to the server via
    SETEX; prefix clear and count use SCAN so they never block the server
    the way KEYS would.
    """

    kind = "redis"

    def __init__(self, redis_url: Optional[str] = None, client: Optional[redis.Redis] = None):
        """Initialize Redis backend.

        Args:
            redis_url: Redis connection URL.
            client: Pre-built client (used by tests).
        """
        self._redis_url = redis_url
        self._client: Optional[redis.Redis] = client
        self._enabled = client is not None

    @property
    def enabled(self) -> bool:
        """Check if Redis is enabled and connected."""
        return self._enabled and self._client is not None

    @property
    def client(self) -> Optional[redis.Redis]:
        return self._client

    async def connect(self) -> None:
        """Connect to Redis and verify the connection with PING.

        Raises:
            BackendUnavailableError: If no URL is configured or the server
                cannot be reached.
        """
        if self._client is None:
            if not self._redis_url:
                raise BackendUnavailableError("Redis URL not configured", backend=self.kind, operation="connect")
            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True
            )

        async with self._translate_errors("connect"):
            await self._client.ping()
        self._enabled = True
        logger.info("Connected to Redis cache")

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._client:
            try:
                await self._client.aclose()
            except CONNECTION_ERRORS as e:
                logger.warning(f"Error closing Redis connection: {e}")
            self._client = None
            self._enabled = False
            logger.info("Disconnected from Redis cache")

    @asynccontextmanager
    async def _translate_errors(self, operation: str):
        try:
            yield
        except CONNECTION_ERRORS as e:
            raise BackendUnavailableError(
                f"Redis unavailable during {operation}: {e}", backend=self.kind, operation=operation
            ) from e
        except RedisError as e:
            raise CacheBackendError(
                f"Redis {operation} failed: {e}", backend=self.kind, operation=operation
            ) from e

    def _require_client(self, operation: str) -> redis.Redis:
        if not self.enabled:
            raise BackendUnavailableError("Redis is not connected", backend=self.kind, operation=operation)
        return self._client

    async def get(self, key: str) -> Optional[Any]:
        """Get a value from Redis."""
        client = self._require_client("get")
        async with self._translate_errors("get"):
            value = await client.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError) as e:
            raise CacheBackendError(f"Corrupt cache value for {key}: {e}", backend=self.kind, operation="get") from e

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None
    ) -> bool:
        """Set a value in Redis with optional TTL."""
        client = self._require_client("set")
        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise CacheBackendError(f"Unserializable cache value for {key}: {e}", backend=self.kind, operation="set") from e
        async with self._translate_errors("set"):
            if ttl:
                await client.setex(key, timedelta(seconds=ttl), serialized)
            else:
                await client.set(key, serialized)
        return True

    async def delete(self, key: str) -> bool:
        """Delete a key from Redis."""
        client = self._require_client("delete")
        async with self._translate_errors("delete"):
            result = await client.delete(key)
        return result > 0

    async def clear_prefix(self, prefix: str) -> int:
        """Delete all keys matching prefix*."""
        client = self._require_client("clear")
        deleted = 0
        async with self._translate_errors("clear"):
            batch = []
            async for key in client.scan_iter(match=f"{prefix}*", count=500):
                batch.append(key)
                if len(batch) >= 500:
                    deleted += await client.delete(*batch)
                    batch = []
            if batch:
                deleted += await client.delete(*batch)
        return deleted

    async def count_prefix(self, prefix: str) -> int:
        """Count keys matching prefix*."""
        client = self._require_client("count")
        count = 0
        async with self._translate_errors("count"):
            async for _ in client.scan_iter(match=f"{prefix}*", count=500):
                count += 1
        return count
