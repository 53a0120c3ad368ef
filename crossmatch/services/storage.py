"""Durable key-value storage behind the result cache and batch results.

`KeyValueStore` is the flat namespaced store every persistence operation is
expressed in. `MemoryStore` keeps values in process memory; `RedisStore`
persists them in Redis as JSON.
"""

import json
import logging
from typing import Any, Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..config import CacheSettings
from ..errors import CacheReadFailure, CacheWriteFailure

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Flat key-value store with batch operations."""

    async def get(self, keys: list[str]) -> dict[str, Any]:
        """Return the stored values of the keys that exist."""
        ...

    async def set(self, entries: dict[str, Any]) -> None:
        ...

    async def remove(self, keys: list[str]) -> None:
        ...

    async def get_all(self) -> dict[str, Any]:
        ...


class MemoryStore:
    """Process-local store, used when Redis is disabled and in tests."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    async def get(self, keys: list[str]) -> dict[str, Any]:
        return {key: self._data[key] for key in keys if key in self._data}

    async def set(self, entries: dict[str, Any]) -> None:
        self._data.update(entries)

    async def remove(self, keys: list[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    async def get_all(self) -> dict[str, Any]:
        return dict(self._data)


class RedisStore:
    """Redis backed store with JSON encoded values.

    Read errors surface as `CacheReadFailure` and write errors as
    `CacheWriteFailure`; callers decide whether they are fatal.
    """

    def __init__(self, redis_url: str, client: "redis.Redis | None" = None):
        """Initialize the store.

        Args:
            redis_url: Redis server URL.
            client: Preconfigured client, created from `redis_url` when omitted.
        """
        self.redis_url = redis_url
        self._redis = client

    def _client(self) -> "redis.Redis":
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                decode_responses=True,
                retry_on_timeout=True,
                health_check_interval=30,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        return self._redis

    async def ping(self) -> bool:
        """Check the connection.

        Returns:
            True if Redis answered, False otherwise.
        """
        try:
            await self._client().ping()
            logger.info("Connected to Redis")
            return True
        except RedisError as e:
            logger.warning(f"Could not connect to Redis: {e}")
            return False

    async def get(self, keys: list[str]) -> dict[str, Any]:
        if not keys:
            return {}
        try:
            values = await self._client().mget(keys)
        except RedisError as e:
            raise CacheReadFailure(f"Redis read failed: {e}", e) from e

        result = {}
        for key, value in zip(keys, values):
            if value is None:
                continue
            try:
                result[key] = json.loads(value)
            except json.JSONDecodeError as e:
                raise CacheReadFailure(f"Corrupt value under {key}: {e}", e) from e
        return result

    async def set(self, entries: dict[str, Any]) -> None:
        if not entries:
            return
        try:
            async with self._client().pipeline(transaction=False) as pipe:
                for key, value in entries.items():
                    pipe.set(key, json.dumps(value, default=str))
                await pipe.execute()
        except RedisError as e:
            raise CacheWriteFailure(f"Redis write failed: {e}", e) from e

    async def remove(self, keys: list[str]) -> None:
        if not keys:
            return
        try:
            await self._client().delete(*keys)
        except RedisError as e:
            raise CacheWriteFailure(f"Redis delete failed: {e}", e) from e

    async def get_all(self) -> dict[str, Any]:
        try:
            keys = [key async for key in self._client().scan_iter(count=500)]
        except RedisError as e:
            raise CacheReadFailure(f"Redis scan failed: {e}", e) from e
        return await self.get(keys)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


def create_store(settings: CacheSettings) -> KeyValueStore:
    """Redis store when enabled in settings, otherwise an in-memory store."""
    if settings.enabled:
        logger.info(f"Using Redis store at {settings.redis_url}")
        return RedisStore(settings.redis_url)
    logger.info("Redis disabled, using in-memory store")
    return MemoryStore()
