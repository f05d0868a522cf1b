"""Durable key-value storage.

This module provides an abstract string key/value store and two
implementations: Redis for durable persistence across restarts, and an
in-memory dict for tests and for running without Redis.

The persisted cache tier and the offline mutation queue are the only
users. Values are opaque strings; callers own the JSON encoding.
"""

import logging
from abc import ABC, abstractmethod

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class KeyValueStorage(ABC):
    """Abstract base class for string key/value persistence."""

    @abstractmethod
    async def get_item(self, key: str) -> str | None:
        """Retrieve the stored string for a key.

        Args:
            key: The storage key to look up.

        Returns:
            The stored string if present, None otherwise.
        """
        pass

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """Store a string under a key, replacing any previous value.

        Args:
            key: The storage key.
            value: The string to store.
        """
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Remove a key. Removing a missing key is not an error.

        Args:
            key: The storage key to remove.
        """
        pass

    async def close(self) -> None:
        """Release any underlying connection."""
        return None


class InMemoryKeyValueStorage(KeyValueStorage):
    """Process-local storage backed by a dict.

    Nothing survives a restart. Used when no Redis URL is configured.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


class RedisKeyValueStorage(KeyValueStorage):
    """Redis-based implementation of the key/value store.

    Keys are stored without expiry; freshness is decided by the callers
    from timestamps inside the stored values.

    Attributes:
        _client: The Redis async client instance.
    """

    def __init__(self, redis_url: str = "redis://localhost:6379") -> None:
        """Initialize the Redis storage.

        Args:
            redis_url: Redis connection URL. Defaults to localhost:6379.
        """
        self._redis_url = redis_url
        self._client: redis.Redis | None = None

    async def connect(self) -> None:
        """Establish connection to Redis."""
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            logger.info(f"[STORAGE] Redis client created for {self._redis_url}")

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _ensure_connected(self) -> redis.Redis:
        if self._client is None:
            await self.connect()
        return self._client  # type: ignore

    async def get_item(self, key: str) -> str | None:
        client = await self._ensure_connected()
        return await client.get(key)

    async def set_item(self, key: str, value: str) -> None:
        client = await self._ensure_connected()
        await client.set(key, value)

    async def remove_item(self, key: str) -> None:
        client = await self._ensure_connected()
        await client.delete(key)


def create_storage(redis_url: str | None) -> KeyValueStorage:
    """Pick Redis when a URL is configured, otherwise in-memory storage."""
    if redis_url:
        return RedisKeyValueStorage(redis_url)
    logger.info("[STORAGE] No REDIS_URL set, using in-memory storage")
    return InMemoryKeyValueStorage()
