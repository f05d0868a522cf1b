"""Unit tests for key/value storage."""

import pytest

from localguide.services.storage import (
    InMemoryKeyValueStorage,
    RedisKeyValueStorage,
    create_storage,
)


class TestInMemoryKeyValueStorage:
    def setup_method(self) -> None:
        self.storage = InMemoryKeyValueStorage()

    @pytest.mark.asyncio
    async def test_set_get_remove(self) -> None:
        await self.storage.set_item("k", "v")
        assert await self.storage.get_item("k") == "v"
        await self.storage.remove_item("k")
        assert await self.storage.get_item("k") is None

    @pytest.mark.asyncio
    async def test_remove_missing_key(self) -> None:
        await self.storage.remove_item("missing")
        assert self.storage.keys() == []


class TestCreateStorage:
    def test_without_url_uses_memory(self) -> None:
        assert isinstance(create_storage(None), InMemoryKeyValueStorage)

    def test_with_url_uses_redis(self) -> None:
        assert isinstance(create_storage("redis://localhost:6379/0"), RedisKeyValueStorage)
