"""
Unit tests for the ephemeral key-value stores.
"""

import json
import pytest
from unittest.mock import AsyncMock

from spacehub.core.kv_store import InMemoryKVStore, RedisKVStore, create_kv_store


class TestInMemoryKVStore:
    """Tests for the process-local store."""

    @pytest.mark.asyncio
    async def test_set_and_get_json_value(self):
        store = InMemoryKVStore()
        await store.set("oauth:state:abc", {"user_id": 1, "is_new_user": True}, 60)

        assert await store.get("oauth:state:abc") == {"user_id": 1, "is_new_user": True}

    @pytest.mark.asyncio
    async def test_missing_key(self):
        assert await InMemoryKVStore().get("nope") is None

    @pytest.mark.asyncio
    async def test_entry_expires(self):
        store = InMemoryKVStore()
        await store.set("mfa:temp:t", 5, 0)

        assert await store.get("mfa:temp:t") is None
        assert await store.pop("mfa:temp:t") is None

    @pytest.mark.asyncio
    async def test_delete(self):
        store = InMemoryKVStore()
        await store.set("k", "v", 60)
        await store.delete("k")
        await store.delete("k")

        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_pop_is_one_time(self):
        store = InMemoryKVStore()
        await store.set("k", [1, 2], 60)

        assert await store.pop("k") == [1, 2]
        assert await store.pop("k") is None


class TestRedisKVStore:
    """Tests for the Redis-backed store against a mocked client."""

    @pytest.mark.asyncio
    async def test_set_uses_setex_with_json(self):
        client = AsyncMock()
        store = RedisKVStore(client)

        await store.set("k", {"a": 1}, 120)

        client.setex.assert_awaited_once_with("k", 120, json.dumps({"a": 1}))

    @pytest.mark.asyncio
    async def test_get_decodes(self):
        client = AsyncMock()
        client.get.return_value = '{"a": 1}'

        assert await RedisKVStore(client).get("k") == {"a": 1}

    @pytest.mark.asyncio
    async def test_get_missing(self):
        client = AsyncMock()
        client.get.return_value = None

        assert await RedisKVStore(client).get("k") is None

    @pytest.mark.asyncio
    async def test_pop_uses_getdel(self):
        client = AsyncMock()
        client.getdel.return_value = "7"

        assert await RedisKVStore(client).pop("k") == 7
        client.getdel.assert_awaited_once_with("k")

    @pytest.mark.asyncio
    async def test_close(self):
        client = AsyncMock()
        await RedisKVStore(client).close()
        client.aclose.assert_awaited_once()


class TestCreateKVStore:
    def test_empty_url_gives_in_memory_store(self):
        assert isinstance(create_kv_store(""), InMemoryKVStore)

    def test_url_gives_redis_store(self):
        store = create_kv_store("redis://localhost:6379/0")
        assert isinstance(store, RedisKVStore)
