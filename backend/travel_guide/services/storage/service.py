"""Persistent key-value store implementation.

This module provides an abstract async key-value store interface plus a Redis
implementation (for persistence across restarts) and an in-memory one (for
local runs and tests).

Stores hold string values under string keys with per-key atomicity.
There are no TTLs and no transactions. Expiry and capacity are handled one level up
by ``BoundedTTLCache``. Every failure is raised as ``StorageError`` so the
caller can decide to fail open.
"""

from abc import ABC, abstractmethod

import redis.asyncio as redis
from redis.exceptions import RedisError

from travel_guide.models import StorageError


class KeyValueStore(ABC):
    """Abstract base class for persistent key-value stores."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Read the value stored under ``key``.

        Args:
            key: The store key to look up.

        Returns:
            The stored string, or None if the key is absent.

        Raises:
            StorageError: If the store could not be read.
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value.

        Raises:
            StorageError: If the store could not be written.
        """
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete ``key``. Removing a missing key is not an error.

        Raises:
            StorageError: If the store could not be written.
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store. Lives as long as the process."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)


class RedisKeyValueStore(KeyValueStore):
    """Redis-based implementation of the key-value store.

    Attributes:
        _client: The Redis async client instance, created lazily.
        _key_prefix: Prefix applied to every key so several apps can share
            one Redis database.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        key_prefix: str = "travel_guide:",
    ) -> None:
        """Initialize the Redis store.

        Args:
            redis_url: Redis connection URL. Defaults to localhost:6379.
            key_prefix: Prefix for all keys written by this store.
        """
        self._redis_url = redis_url
        self._key_prefix = key_prefix
        self._client: redis.Redis | None = None

    async def connect(self) -> None:
        """Create the Redis client. Called lazily on first use."""
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )

    async def disconnect(self) -> None:
        """Close the Redis connection."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def close(self) -> None:
        await self.disconnect()

    async def _ensure_connected(self) -> redis.Redis:
        if self._client is None:
            await self.connect()
        return self._client  # type: ignore

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    async def get(self, key: str) -> str | None:
        try:
            client = await self._ensure_connected()
            return await client.get(self._key(key))
        except (RedisError, OSError) as e:
            raise StorageError(f"Redis get failed for {key}: {e}") from e

    async def set(self, key: str, value: str) -> None:
        try:
            client = await self._ensure_connected()
            await client.set(self._key(key), value)
        except (RedisError, OSError) as e:
            raise StorageError(f"Redis set failed for {key}: {e}") from e

    async def remove(self, key: str) -> None:
        try:
            client = await self._ensure_connected()
            await client.delete(self._key(key))
        except (RedisError, OSError) as e:
            raise StorageError(f"Redis delete failed for {key}: {e}") from e
