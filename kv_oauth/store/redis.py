"""Redis key-value store.

Production backend for multi-worker deployments.
Built on the asyncio client of redis-py.

Composite keys are flattened to ``"{prefix}:{part}:{part}"``. Entry
expiry uses native Redis TTLs, and :meth:`RedisKeyValueStore.take`
uses ``GETDEL`` so single-use reads are atomic on the server.
"""

from __future__ import annotations

import logging

from typing import Any, cast

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..exceptions import StoreUnavailable
from .base import Key, KeyValueStore


logger = logging.getLogger("kv_oauth.store")


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed key-value store for horizontal scaling.

    Parameters
    ----------
    redis_url : str
        Redis connection URL.
    prefix : str
        Key prefix for namespacing (default "kv_oauth").
    pool_size : int
        Connection pool size (default 10).
    redis_client : Redis, optional
        Pre-configured Redis client (for testing with fakeredis). Must
        not use ``decode_responses=True``.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        prefix: str = "kv_oauth",
        pool_size: int = 10,
        *,
        redis_client: Redis | None = None,
    ) -> None:
        """Initialize the Redis store."""
        self._redis_url = redis_url
        self._prefix = prefix
        self._pool_size = pool_size
        self._client: Any = redis_client

    def _key(self, key: Key) -> str:
        """Build a Redis key with prefix."""
        return ":".join((self._prefix, *key))

    def _redis(self) -> Any:
        """Get the shared Redis client, creating it on first use."""
        if self._client is None:
            self._client = Redis.from_url(
                self._redis_url,
                max_connections=self._pool_size,
            )
        return self._client

    async def get(self, key: Key) -> bytes | None:
        """Read a value from Redis."""
        try:
            result = await self._redis().get(self._key(key))
        except RedisError as exc:
            msg = f"Redis GET failed: {exc}"
            raise StoreUnavailable(msg, operation="get", key=key) from exc
        return cast("bytes | None", result)

    async def set(self, key: Key, value: bytes, ttl: float | None = None) -> None:
        """Write a value to Redis with optional TTL."""
        redis_key = self._key(key)
        try:
            if ttl is not None:
                # Millisecond precision, never zero (Redis rejects px=0)
                await self._redis().set(redis_key, value, px=max(1, int(ttl * 1000)))
            else:
                await self._redis().set(redis_key, value)
        except RedisError as exc:
            msg = f"Redis SET failed: {exc}"
            raise StoreUnavailable(msg, operation="set", key=key) from exc

    async def delete(self, key: Key) -> None:
        """Delete a value from Redis."""
        try:
            await self._redis().delete(self._key(key))
        except RedisError as exc:
            msg = f"Redis DEL failed: {exc}"
            raise StoreUnavailable(msg, operation="delete", key=key) from exc

    async def take(self, key: Key) -> bytes | None:
        """Atomically read and delete a value with GETDEL."""
        try:
            result = await self._redis().getdel(self._key(key))
        except RedisError as exc:
            msg = f"Redis GETDEL failed: {exc}"
            raise StoreUnavailable(msg, operation="take", key=key) from exc
        return cast("bytes | None", result)

    async def close(self) -> None:
        """Close the Redis client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug("Redis store closed")
