"""Delayed notification scheduling for revent.

Provides:
- Deterministically named tasks (one per entity and offset kind)
- In-memory and Redis task stores with create-if-absent semantics
- A scheduler that replaces tasks when an entity timestamp changes
- A dispatcher that delivers due tasks
"""

from revent.scheduling.dispatcher import DeliveryHandler, TaskDispatcher
from revent.scheduling.scheduler import (
    NotificationOffset,
    NotificationScheduler,
    OffsetKind,
    default_offsets,
)
from revent.scheduling.store import (
    InMemoryTaskStore,
    RedisTaskStore,
    ScheduledTask,
    TaskStore,
    task_name,
)

__all__ = [
    # Store
    "ScheduledTask",
    "TaskStore",
    "InMemoryTaskStore",
    "RedisTaskStore",
    "task_name",
    # Scheduler
    "OffsetKind",
    "NotificationOffset",
    "NotificationScheduler",
    "default_offsets",
    # Dispatcher
    "DeliveryHandler",
    "TaskDispatcher",
]
