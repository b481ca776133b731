"""Tests for the Redis cache store with a mocked client."""

from unittest.mock import AsyncMock, MagicMock

import orjson
import pytest

from revent.cache import CacheEntry, CacheKeys, RedisCacheStore


@pytest.fixture
def pipe() -> MagicMock:
    pipe = MagicMock()
    pipe.__aenter__.return_value = pipe
    pipe.execute = AsyncMock(return_value=[1, 3])
    return pipe


@pytest.fixture
def client(pipe) -> AsyncMock:
    client = AsyncMock()
    client.pipeline = MagicMock(return_value=pipe)
    return client


@pytest.fixture
def store(client) -> RedisCacheStore:
    return RedisCacheStore(client, CacheKeys("test"))


class TestRedisCacheStore:
    async def test_get_missing_entry(self, store, client):
        client.hgetall.return_value = {}

        assert await store.get("root") is None
        client.hgetall.assert_awaited_once_with("test:cache:root")

    async def test_get_decodes_hash(self, store, client):
        client.hgetall.return_value = {
            b"payload": orjson.dumps([{"name": "Notes", "type": "dir"}]),
            b"validator": b'W/"abc"',
            b"fetched_at": b"1700000000.5",
        }

        entry = await store.get("root")

        assert entry == CacheEntry("root", [{"name": "Notes", "type": "dir"}], 'W/"abc"', 1700000000.5)

    async def test_get_partial_hash_is_a_miss(self, store, client):
        client.hgetall.return_value = {b"fetched_at": b"1700000000.0"}

        assert await store.get("root") is None

    async def test_put_replaces_whole_hash(self, store, pipe):
        await store.put(CacheEntry("pyqs--cse", ["a"], "v1", 1700000000.0))

        pipe.delete.assert_called_once_with("test:cache:pyqs--cse")
        _, kwargs = pipe.hset.call_args
        assert kwargs["mapping"]["payload"] == orjson.dumps(["a"])
        assert kwargs["mapping"]["validator"] == "v1"
        assert float(kwargs["mapping"]["fetched_at"]) == 1700000000.0
        pipe.execute.assert_awaited_once()

    async def test_touch_existing_entry(self, store, client):
        client.eval.return_value = 1

        assert await store.touch("root", 1700000100.0) is True
        args = client.eval.call_args.args
        assert args[1:3] == (1, "test:cache:root")

    async def test_touch_missing_entry(self, store, client):
        client.eval.return_value = 0

        assert await store.touch("root", 1700000100.0) is False

    async def test_health_check(self, store, client):
        client.ping.return_value = True
        assert await store.health_check() is True

        client.ping.side_effect = ConnectionError("refused")
        assert await store.health_check() is False
