"""Tests for delayed notification scheduling."""

from datetime import UTC, datetime, timedelta

import pytest

from revent.errors import TaskStoreUnavailable
from revent.scheduling import (
    InMemoryTaskStore,
    NotificationOffset,
    NotificationScheduler,
    OffsetKind,
    default_offsets,
    task_name,
)

QUEUE = "projects/p/locations/l/queues/q"
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def store() -> InMemoryTaskStore:
    return InMemoryTaskStore()


@pytest.fixture
def scheduler(store) -> NotificationScheduler:
    return NotificationScheduler(store, QUEUE, clock=lambda: NOW)


class TestTaskNames:
    def test_deterministic_name(self):
        assert task_name(QUEUE, "evt-1", "BEFORE") == f"{QUEUE}/tasks/evt-1-before"

    def test_scheduler_names_per_kind(self, scheduler):
        assert scheduler.task_name("evt-1", OffsetKind.START) == f"{QUEUE}/tasks/evt-1-start"
        assert scheduler.task_name("evt-1", "BEFORE") == f"{QUEUE}/tasks/evt-1-before"


class TestDefaultOffsets:
    def test_before_and_start(self):
        before, start = default_offsets(15)
        assert before == NotificationOffset(OffsetKind.BEFORE, timedelta(minutes=-15))
        assert start == NotificationOffset(OffsetKind.START, timedelta(0))


class TestScheduleAll:
    async def test_schedules_both_offsets(self, scheduler, store):
        start = NOW + timedelta(hours=2)

        tasks = await scheduler.schedule_all("evt-1", start)

        assert [t.offset_kind for t in tasks] == ["BEFORE", "START"]
        stored = await store.list_tasks()
        assert [t.deliver_at for t in stored] == [
            int((start - timedelta(minutes=30)).timestamp()),
            int(start.timestamp()),
        ]
        assert stored[0].payload == {"entityId": "evt-1", "offsetKind": "BEFORE"}

    async def test_scheduling_twice_keeps_one_task_per_kind(self, scheduler, store):
        start = NOW + timedelta(hours=2)

        await scheduler.schedule_all("evt-1", start)
        await scheduler.schedule_all("evt-1", start)

        assert len(await store.list_tasks()) == 2

    async def test_reschedule_replaces_delivery_time(self, scheduler, store):
        await scheduler.schedule_all("evt-1", NOW + timedelta(hours=2))
        moved = NOW + timedelta(days=1)

        await scheduler.schedule_all("evt-1", moved)

        start_task = await store.get(scheduler.task_name("evt-1", OffsetKind.START))
        assert start_task is not None
        assert start_task.deliver_at == int(moved.timestamp())
        assert len(await store.list_tasks()) == 2

    async def test_past_before_offset_is_skipped(self, scheduler, store):
        start = NOW + timedelta(minutes=10)

        tasks = await scheduler.schedule_all("evt-1", start)

        assert [t.offset_kind for t in tasks] == ["START"]
        assert await store.get(scheduler.task_name("evt-1", OffsetKind.BEFORE)) is None

    async def test_moving_start_closer_drops_past_before_task(self, scheduler, store):
        await scheduler.schedule_all("evt-1", NOW + timedelta(hours=2))

        tasks = await scheduler.schedule_all("evt-1", NOW + timedelta(minutes=10))

        assert [t.offset_kind for t in tasks] == ["START"]
        assert await store.get(scheduler.task_name("evt-1", OffsetKind.BEFORE)) is None
        assert len(await store.list_tasks()) == 1

    async def test_past_event_schedules_nothing(self, scheduler, store):
        tasks = await scheduler.schedule_all("evt-1", NOW - timedelta(hours=1))

        assert tasks == []
        assert await store.list_tasks() == []

    async def test_offset_exactly_now_is_skipped(self, scheduler):
        tasks = await scheduler.schedule_all("evt-1", NOW)

        assert tasks == []

    async def test_naive_instant_is_utc(self, scheduler):
        start = (NOW + timedelta(hours=1)).replace(tzinfo=None)

        tasks = await scheduler.schedule_all("evt-1", start)

        assert tasks[-1].deliver_at == int((NOW + timedelta(hours=1)).timestamp())

    async def test_store_failure_propagates(self):
        class FailingStore(InMemoryTaskStore):
            async def create(self, task):
                raise TaskStoreUnavailable("down")

        scheduler = NotificationScheduler(FailingStore(), QUEUE, clock=lambda: NOW)

        with pytest.raises(TaskStoreUnavailable):
            await scheduler.schedule_all("evt-1", NOW + timedelta(hours=2))

    async def test_custom_offsets(self, store):
        offsets = [NotificationOffset(OffsetKind.BEFORE, timedelta(hours=-1))]
        scheduler = NotificationScheduler(store, QUEUE, offsets=offsets, clock=lambda: NOW)

        tasks = await scheduler.schedule_all("evt-1", NOW + timedelta(hours=3))

        assert len(tasks) == 1
        assert tasks[0].deliver_at == int((NOW + timedelta(hours=2)).timestamp())


class TestCancelAll:
    async def test_deletes_pending_tasks(self, scheduler, store):
        await scheduler.schedule_all("evt-1", NOW + timedelta(hours=2))
        await scheduler.schedule_all("evt-2", NOW + timedelta(hours=2))

        deleted = await scheduler.cancel_all("evt-1")

        assert deleted == 2
        assert {t.entity_id for t in await store.list_tasks()} == {"evt-2"}

    async def test_nothing_to_cancel(self, scheduler):
        assert await scheduler.cancel_all("evt-1") == 0
