"""Tests for task stores."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from revent.cache import CacheKeys
from revent.errors import TaskAlreadyExists, TaskStoreUnavailable
from revent.scheduling import InMemoryTaskStore, RedisTaskStore, ScheduledTask

QUEUE = "projects/p/locations/l/queues/q"


def _task(entity_id: str = "evt-1", kind: str = "START", deliver_at: int = 1000) -> ScheduledTask:
    return ScheduledTask(
        name=f"{QUEUE}/tasks/{entity_id}-{kind.lower()}",
        entity_id=entity_id,
        offset_kind=kind,
        deliver_at=deliver_at,
    )


class TestScheduledTask:
    def test_body_is_base64_json(self):
        task = _task()

        assert ScheduledTask.decode_body(task.encode_body()) == {
            "entityId": "evt-1",
            "offsetKind": "START",
        }

    def test_to_dict(self):
        data = _task(deliver_at=1234).to_dict()

        assert data["name"].endswith("/tasks/evt-1-start")
        assert data["scheduleTime"] == {"seconds": 1234}

    def test_from_dict_restores_task(self):
        task = _task("evt-9", "BEFORE", 42)
        assert ScheduledTask.from_dict(task.to_dict()) == task


class TestInMemoryTaskStore:
    async def test_create_collides_on_name(self):
        store = InMemoryTaskStore()
        await store.create(_task())

        with pytest.raises(TaskAlreadyExists):
            await store.create(_task(deliver_at=2000))

    async def test_delete(self):
        store = InMemoryTaskStore()
        await store.create(_task())

        assert await store.delete(_task().name) is True
        assert await store.delete(_task().name) is False

    async def test_claim_due_removes_tasks_in_order(self):
        store = InMemoryTaskStore()
        await store.create(_task("a", deliver_at=300))
        await store.create(_task("b", deliver_at=100))
        await store.create(_task("c", deliver_at=900))

        claimed = await store.claim_due(500)

        assert [t.entity_id for t in claimed] == ["b", "a"]
        assert [t.entity_id for t in await store.list_tasks()] == ["c"]
        assert await store.claim_due(500) == []

    async def test_claim_due_respects_limit(self):
        store = InMemoryTaskStore()
        for i in range(5):
            await store.create(_task(f"e{i}", deliver_at=i))

        assert len(await store.claim_due(100, limit=2)) == 2
        assert len(await store.list_tasks()) == 3


@pytest.fixture
def pipe() -> MagicMock:
    pipe = MagicMock()
    pipe.__aenter__.return_value = pipe
    pipe.execute = AsyncMock(return_value=[1, 1])
    return pipe


@pytest.fixture
def client(pipe) -> AsyncMock:
    client = AsyncMock()
    client.pipeline = MagicMock(return_value=pipe)
    return client


@pytest.fixture
def redis_store(client) -> RedisTaskStore:
    return RedisTaskStore(client, CacheKeys("test"))


class TestRedisTaskStore:
    async def test_create_sets_body_and_schedule(self, redis_store, client):
        client.set.return_value = True
        task = _task()

        await redis_store.create(task)

        args, kwargs = client.set.call_args
        assert args[0] == f"test:task:{task.name}"
        assert json.loads(args[1]) == task.to_dict()
        assert kwargs == {"nx": True}
        client.zadd.assert_awaited_once_with("test:tasks:due", {task.name: 1000})

    async def test_create_collision(self, redis_store, client):
        client.set.return_value = None

        with pytest.raises(TaskAlreadyExists):
            await redis_store.create(_task())
        client.zadd.assert_not_awaited()

    async def test_create_redis_failure(self, redis_store, client):
        client.set.side_effect = RedisConnectionError("refused")

        with pytest.raises(TaskStoreUnavailable):
            await redis_store.create(_task())

    async def test_delete(self, redis_store, pipe):
        assert await redis_store.delete(_task().name) is True

        pipe.delete.assert_called_once_with(f"test:task:{_task().name}")
        pipe.zrem.assert_called_once_with("test:tasks:due", _task().name)

    async def test_delete_missing(self, redis_store, pipe):
        pipe.execute.return_value = [0, 0]

        assert await redis_store.delete(_task().name) is False

    async def test_get(self, redis_store, client):
        task = _task()
        client.get.return_value = json.dumps(task.to_dict()).encode()

        assert await redis_store.get(task.name) == task

    async def test_claim_due(self, redis_store, client):
        task = _task(deliver_at=100)
        client.zrangebyscore.return_value = [task.name.encode()]
        client.zrem.return_value = 1
        client.eval.return_value = json.dumps(task.to_dict()).encode()

        claimed = await redis_store.claim_due(500)

        assert claimed == [task]
        args = client.eval.call_args.args
        assert args[1:] == (2, f"test:task:{task.name}", "test:tasks:due", "500", task.name)

    async def test_claim_lost_to_other_dispatcher(self, redis_store, client):
        client.zrangebyscore.return_value = [_task().name.encode()]
        client.zrem.return_value = 0

        assert await redis_store.claim_due(500) == []
        client.eval.assert_not_awaited()

    async def test_claim_of_rescheduled_task_is_skipped(self, redis_store, client):
        task = _task(deliver_at=9000)
        client.zrangebyscore.return_value = [task.name.encode()]
        client.zrem.return_value = 1
        # Script found a future body, re-added it to the schedule and kept it
        client.eval.return_value = None

        assert await redis_store.claim_due(500) == []
        client.delete.assert_not_awaited()

    async def test_claim_redis_failure(self, redis_store, client):
        client.zrangebyscore.side_effect = RedisConnectionError("refused")

        with pytest.raises(TaskStoreUnavailable):
            await redis_store.claim_due(500)
