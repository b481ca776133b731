"""Delayed notification scheduler.

Schedules one task per (entity, offset kind) relative to an entity's
timestamp, e.g. "30 minutes before start" and "at start":

    scheduler = NotificationScheduler(store, queue_path)
    await scheduler.schedule_all("evt-1", start_time)

Task names are deterministic, so re-scheduling after the timestamp changes
collides with the previous task. The collision is resolved by deleting the
old task and creating the new one; the old delivery time never has to be
known. Delete and re-create are two calls; a crash between them leaves the
entity without a task until its next update.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

from revent.errors import TaskAlreadyExists
from revent.observability.metrics import record_task_scheduled
from revent.scheduling.store import ScheduledTask, TaskStore, task_name

logger = logging.getLogger(__name__)


class OffsetKind(str, Enum):
    """Named notification offsets."""

    BEFORE = "BEFORE"
    START = "START"


@dataclass(frozen=True, slots=True)
class NotificationOffset:
    """One notification instance relative to the entity timestamp."""

    kind: OffsetKind
    delta: timedelta

    def deliver_at(self, instant: datetime) -> datetime:
        return instant + self.delta


def default_offsets(before_minutes: int = 30) -> tuple[NotificationOffset, ...]:
    """The BEFORE and START offsets."""
    return (
        NotificationOffset(OffsetKind.BEFORE, timedelta(minutes=-before_minutes)),
        NotificationOffset(OffsetKind.START, timedelta(0)),
    )


def _utc_now() -> datetime:
    return datetime.now(UTC)


class NotificationScheduler:
    """Maintains exactly one pending task per (entity, offset kind)."""

    def __init__(
        self,
        store: TaskStore,
        queue_path: str,
        offsets: Sequence[NotificationOffset] | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.queue_path = queue_path
        self.offsets = tuple(offsets) if offsets is not None else default_offsets()
        self.clock = clock

    def task_name(self, entity_id: str, kind: OffsetKind | str) -> str:
        """Deterministic task name for ``entity_id`` and ``kind``."""
        return task_name(self.queue_path, entity_id, OffsetKind(kind).value)

    async def schedule_all(
        self, entity_id: str, relevant_instant: datetime
    ) -> list[ScheduledTask]:
        """Schedule every offset of ``relevant_instant`` that is still in the future.

        Offsets already in the past are skipped and any task still pending for
        them is deleted. Task store errors other than a name collision
        propagate to the caller.

        Returns:
            Tasks created by this call
        """
        if relevant_instant.tzinfo is None:
            relevant_instant = relevant_instant.replace(tzinfo=UTC)

        now = self.clock()
        scheduled: list[ScheduledTask] = []

        for offset in self.offsets:
            name = self.task_name(entity_id, offset.kind)
            deliver_at = offset.deliver_at(relevant_instant)
            if deliver_at <= now:
                # A task left from an earlier start time would fire for the wrong start
                if await self.store.delete(name):
                    logger.info(
                        f"Dropped stale {offset.kind.value} notification for {entity_id}"
                    )
                    record_task_scheduled(offset.kind.value, "cancelled")
                logger.debug(
                    f"Skipping {offset.kind.value} notification for {entity_id}: "
                    f"{deliver_at.isoformat()} already passed"
                )
                record_task_scheduled(offset.kind.value, "skipped")
                continue

            task = ScheduledTask(
                name=name,
                entity_id=entity_id,
                offset_kind=offset.kind.value,
                deliver_at=int(deliver_at.timestamp()),
            )
            replaced = await self._create_or_replace(task)

            verb = "Rescheduled" if replaced else "Scheduled"
            logger.info(
                f"{verb} {offset.kind.value} notification for {entity_id} "
                f"at {deliver_at.isoformat()}"
            )
            record_task_scheduled(offset.kind.value, "rescheduled" if replaced else "created")
            scheduled.append(task)

        return scheduled

    async def cancel_all(self, entity_id: str) -> int:
        """Delete every pending task of ``entity_id``.

        Returns:
            Number of tasks deleted
        """
        deleted = 0
        for offset in self.offsets:
            if await self.store.delete(self.task_name(entity_id, offset.kind)):
                deleted += 1
                record_task_scheduled(offset.kind.value, "cancelled")

        if deleted:
            logger.info(f"Cancelled {deleted} pending notifications for {entity_id}")
        return deleted

    async def _create_or_replace(self, task: ScheduledTask) -> bool:
        """Create ``task``; on a name collision delete the old task and retry once.

        Returns:
            True if an existing task was replaced
        """
        try:
            await self.store.create(task)
            return False
        except TaskAlreadyExists:
            logger.debug(f"Task {task.name} exists, replacing it")

        await self.store.delete(task.name)
        await self.store.create(task)
        return True
