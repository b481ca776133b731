"""Task dispatcher.

Polls the task store for due tasks and hands each one to the delivery
handler exactly once. Claiming a task removes it from the store, so a
delivered task is never seen again.

Example:
    dispatcher = TaskDispatcher(store, handler=notifications.deliver_task)
    await dispatcher.start()
    ...
    await dispatcher.stop()

    # Or standalone (blocks until SIGINT/SIGTERM)
    await dispatcher.run()
"""

from __future__ import annotations

import asyncio
import logging
import signal
import time
from collections.abc import Awaitable, Callable

from revent.observability.metrics import record_task_delivery
from revent.scheduling.store import ScheduledTask, TaskStore

logger = logging.getLogger(__name__)

# Type alias for delivery handlers
DeliveryHandler = Callable[[ScheduledTask], Awaitable[None]]


class TaskDispatcher:
    """Background loop delivering due tasks.

    Delivery failures are logged and counted; the task is not retried.
    """

    def __init__(
        self,
        store: TaskStore,
        handler: DeliveryHandler,
        interval: float = 1.0,
        batch_size: int = 50,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.handler = handler
        self.interval = interval
        self.batch_size = batch_size
        self.clock = clock
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._shutdown_event = asyncio.Event()

    async def start(self) -> None:
        """Start polling in a background task."""
        if self._running:
            return

        self._running = True
        self._shutdown_event.clear()
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Task dispatcher started (interval {self.interval}s)")

    async def stop(self) -> None:
        """Stop polling and wait for the current batch to finish."""
        self._running = False
        self._shutdown_event.set()

        if self._task:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Task dispatcher stopped")

    async def run(self) -> None:
        """Run the dispatcher until a shutdown signal arrives."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._shutdown_event.set)

        await self.start()
        await self._shutdown_event.wait()
        await self.stop()

    async def run_once(self) -> int:
        """Claim and deliver every task due now.

        Returns:
            Number of tasks delivered successfully
        """
        delivered = 0
        while True:
            tasks = await self.store.claim_due(self.clock(), self.batch_size)
            for task in tasks:
                if await self._deliver(task):
                    delivered += 1
            if len(tasks) < self.batch_size:
                return delivered

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.run_once()
            except Exception:
                logger.exception("Error polling task store")

            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=self.interval)
            except TimeoutError:
                continue

    async def _deliver(self, task: ScheduledTask) -> bool:
        try:
            await self.handler(task)
        except Exception:
            logger.exception(f"Delivery failed for task {task.name}")
            record_task_delivery("failed")
            return False

        logger.info(f"Delivered {task.offset_kind} task for {task.entity_id}")
        record_task_delivery("delivered")
        return True
