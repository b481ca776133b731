"""Tests for the task dispatcher."""

import asyncio

from revent.scheduling import InMemoryTaskStore, ScheduledTask, TaskDispatcher


def _task(entity_id: str, deliver_at: int) -> ScheduledTask:
    return ScheduledTask(f"q/tasks/{entity_id}-start", entity_id, "START", deliver_at)


class TestTaskDispatcher:
    async def test_run_once_delivers_due_tasks(self):
        store = InMemoryTaskStore()
        await store.create(_task("due", 100))
        await store.create(_task("later", 10_000))
        delivered: list[ScheduledTask] = []

        async def handler(task: ScheduledTask) -> None:
            delivered.append(task)

        dispatcher = TaskDispatcher(store, handler, clock=lambda: 500.0)

        assert await dispatcher.run_once() == 1
        assert [t.entity_id for t in delivered] == ["due"]
        assert [t.entity_id for t in await store.list_tasks()] == ["later"]

    async def test_drains_more_than_one_batch(self):
        store = InMemoryTaskStore()
        for i in range(5):
            await store.create(_task(f"e{i}", i))
        delivered: list[str] = []

        async def handler(task: ScheduledTask) -> None:
            delivered.append(task.entity_id)

        dispatcher = TaskDispatcher(store, handler, batch_size=2, clock=lambda: 100.0)

        assert await dispatcher.run_once() == 5
        assert sorted(delivered) == [f"e{i}" for i in range(5)]

    async def test_failed_delivery_is_not_retried(self):
        store = InMemoryTaskStore()
        await store.create(_task("boom", 1))
        await store.create(_task("ok", 2))
        calls: list[str] = []

        async def handler(task: ScheduledTask) -> None:
            calls.append(task.entity_id)
            if task.entity_id == "boom":
                raise RuntimeError("push gateway down")

        dispatcher = TaskDispatcher(store, handler, clock=lambda: 100.0)

        assert await dispatcher.run_once() == 1
        assert await dispatcher.run_once() == 0
        assert calls == ["boom", "ok"]

    async def test_start_and_stop(self):
        store = InMemoryTaskStore()
        await store.create(_task("due", 1))
        delivered = asyncio.Event()

        async def handler(task: ScheduledTask) -> None:
            delivered.set()

        dispatcher = TaskDispatcher(store, handler, interval=0.01, clock=lambda: 100.0)
        await dispatcher.start()
        await asyncio.wait_for(delivered.wait(), timeout=1.0)
        await dispatcher.stop()

        assert await store.list_tasks() == []
