"""Task store for delayed notifications.

A task is identified by a deterministic name so that scheduling the same
logical notification twice collides instead of duplicating. The store offers:
- create-if-absent (raises TaskAlreadyExists on collision)
- delete by name
- atomic claim of due tasks (claiming destroys the task)

Example:
    store = RedisTaskStore(client)
    await store.create(task)
    for task in await store.claim_due(time.time()):
        await deliver(task)
"""

from __future__ import annotations

import base64
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar, cast

from redis.exceptions import RedisError

from revent.cache.keys import CacheKeys
from revent.errors import TaskAlreadyExists, TaskStoreUnavailable

if TYPE_CHECKING:
    from redis.asyncio import Redis

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Delete and return the task body only if it is still due; a body replaced
# by a reschedule is put back on the schedule instead
_CLAIM_SCRIPT = """
local data = redis.call("get", KEYS[1])
if not data then
    return false
end
local seconds = tonumber(cjson.decode(data)["scheduleTime"]["seconds"])
if seconds > tonumber(ARGV[1]) then
    redis.call("zadd", KEYS[2], seconds, ARGV[2])
    return false
end
redis.call("del", KEYS[1])
return data
"""


def _await_redis(result: Awaitable[T] | T) -> Awaitable[T]:
    """Cast redis-py async results to an awaitable for mypy."""
    return cast(Awaitable[T], result)


def task_name(queue_path: str, entity_id: str, offset_kind: str) -> str:
    """Deterministic task name for one notification of one entity."""
    return f"{queue_path}/tasks/{entity_id}-{offset_kind.lower()}"


@dataclass(frozen=True, slots=True)
class ScheduledTask:
    """A notification to deliver at ``deliver_at`` (epoch seconds)."""

    name: str
    entity_id: str
    offset_kind: str
    deliver_at: int

    @property
    def payload(self) -> dict[str, str]:
        return {"entityId": self.entity_id, "offsetKind": self.offset_kind}

    def encode_body(self) -> str:
        """Base64 encoding of the JSON payload."""
        return base64.b64encode(json.dumps(self.payload).encode()).decode("ascii")

    @staticmethod
    def decode_body(body: str) -> dict[str, Any]:
        return cast(dict[str, Any], json.loads(base64.b64decode(body)))

    def to_dict(self) -> dict[str, Any]:
        """Serialize task to its stored form."""
        return {
            "name": self.name,
            "body": self.encode_body(),
            "scheduleTime": {"seconds": self.deliver_at},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduledTask:
        """Deserialize task from its stored form."""
        payload = cls.decode_body(data["body"])
        return cls(
            name=data["name"],
            entity_id=payload["entityId"],
            offset_kind=payload["offsetKind"],
            deliver_at=int(data["scheduleTime"]["seconds"]),
        )


class TaskStore(ABC):
    """Abstract durable store of named, time-delayed tasks."""

    @abstractmethod
    async def create(self, task: ScheduledTask) -> None:
        """Store a new task.

        Raises:
            TaskAlreadyExists: a task with the same name is stored
            TaskStoreUnavailable: the store failed
        """

    @abstractmethod
    async def delete(self, name: str) -> bool:
        """Delete a task by name. Returns False if it did not exist."""

    @abstractmethod
    async def get(self, name: str) -> ScheduledTask | None:
        """Return a stored task by name."""

    @abstractmethod
    async def claim_due(self, now: float, limit: int = 50) -> list[ScheduledTask]:
        """Remove and return up to ``limit`` tasks with ``deliver_at <= now``."""

    @abstractmethod
    async def list_tasks(self) -> list[ScheduledTask]:
        """Return all stored tasks ordered by delivery time."""

    async def health_check(self) -> bool:
        return True


class InMemoryTaskStore(TaskStore):
    """Process-local task store for single-instance deployments and tests."""

    def __init__(self) -> None:
        self._tasks: dict[str, ScheduledTask] = {}

    async def create(self, task: ScheduledTask) -> None:
        if task.name in self._tasks:
            raise TaskAlreadyExists(task.name)
        self._tasks[task.name] = task

    async def delete(self, name: str) -> bool:
        return self._tasks.pop(name, None) is not None

    async def get(self, name: str) -> ScheduledTask | None:
        return self._tasks.get(name)

    async def claim_due(self, now: float, limit: int = 50) -> list[ScheduledTask]:
        due = sorted(
            (t for t in self._tasks.values() if t.deliver_at <= now),
            key=lambda t: t.deliver_at,
        )[:limit]
        for task in due:
            del self._tasks[task.name]
        return due

    async def list_tasks(self) -> list[ScheduledTask]:
        return sorted(self._tasks.values(), key=lambda t: t.deliver_at)


class RedisTaskStore(TaskStore):
    """Redis-backed task store.

    Uses:
    - one string key per task holding its JSON body (SET NX for create)
    - a sorted set of task names scored by delivery time
    """

    def __init__(self, client: Redis, keys: CacheKeys | None = None):
        self.client = client
        self.keys = keys or CacheKeys()

    async def create(self, task: ScheduledTask) -> None:
        try:
            created = await _await_redis(
                self.client.set(self.keys.task(task.name), json.dumps(task.to_dict()), nx=True)
            )
            if not created:
                raise TaskAlreadyExists(task.name)
            await _await_redis(
                self.client.zadd(self.keys.task_schedule(), {task.name: task.deliver_at})
            )
        except RedisError as e:
            raise TaskStoreUnavailable(f"Failed to create task {task.name}: {e}") from e

    async def delete(self, name: str) -> bool:
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.delete(self.keys.task(name))
                pipe.zrem(self.keys.task_schedule(), name)
                deleted, _ = await pipe.execute()
        except RedisError as e:
            raise TaskStoreUnavailable(f"Failed to delete task {name}: {e}") from e
        return bool(deleted)

    async def get(self, name: str) -> ScheduledTask | None:
        try:
            data = await _await_redis(self.client.get(self.keys.task(name)))
        except RedisError as e:
            raise TaskStoreUnavailable(f"Failed to read task {name}: {e}") from e
        if data is None:
            return None
        return ScheduledTask.from_dict(json.loads(data))

    async def claim_due(self, now: float, limit: int = 50) -> list[ScheduledTask]:
        schedule = self.keys.task_schedule()
        claimed: list[ScheduledTask] = []

        try:
            names = await _await_redis(
                self.client.zrangebyscore(schedule, "-inf", now, start=0, num=limit)
            )
            for raw_name in names:
                name = raw_name.decode() if isinstance(raw_name, bytes) else raw_name

                # ZREM is the claim: only one dispatcher gets 1 back
                if not await _await_redis(self.client.zrem(schedule, name)):
                    continue

                data = await _await_redis(
                    self.client.eval(
                        _CLAIM_SCRIPT, 2, self.keys.task(name), schedule, repr(now), name
                    )
                )
                if data is None:
                    continue

                claimed.append(ScheduledTask.from_dict(json.loads(data)))
        except RedisError as e:
            raise TaskStoreUnavailable(f"Failed to claim due tasks: {e}") from e

        return claimed

    async def list_tasks(self) -> list[ScheduledTask]:
        try:
            names = await _await_redis(self.client.zrange(self.keys.task_schedule(), 0, -1))
        except RedisError as e:
            raise TaskStoreUnavailable(f"Failed to list tasks: {e}") from e

        tasks: list[ScheduledTask] = []
        for raw_name in names:
            name = raw_name.decode() if isinstance(raw_name, bytes) else raw_name
            task = await self.get(name)
            if task is not None:
                tasks.append(task)
        return tasks

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            await cast(Awaitable[bool], self.client.ping())
            return True
        except Exception:
            return False
