"""Durable key-value storage (Redis or in-memory)."""

from .service import (
    InMemoryKeyValueStorage,
    KeyValueStorage,
    RedisKeyValueStorage,
    create_storage,
)

__all__ = [
    "InMemoryKeyValueStorage",
    "KeyValueStorage",
    "RedisKeyValueStorage",
    "create_storage",
]
