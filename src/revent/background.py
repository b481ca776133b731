"""Background runner for detached follow-up work.

Cache writes, notification scheduling and push delivery triggered by a
request or change event run here instead of inline. Their failures are
reported through the runner's own error channel (log, metric, optional
callback) and never reach the caller that submitted them.

Example:
    runner = BackgroundRunner(workers=4)
    await runner.start()
    runner.submit("schedule:evt-1", lambda: scheduler.schedule_all("evt-1", start))
    await runner.drain()
    await runner.stop()
"""

from __future__ import annotations

import asyncio
import contextvars
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from revent.observability.metrics import record_background_failure

logger = logging.getLogger(__name__)

JobFactory = Callable[[], Awaitable[Any]]
ErrorHandler = Callable[[str, BaseException], None]


@dataclass(frozen=True, slots=True)
class BackgroundJob:
    """A named unit of detached work."""

    name: str
    factory: JobFactory
    context: contextvars.Context = field(default_factory=contextvars.copy_context)


async def _call(factory: JobFactory) -> None:
    await factory()


class BackgroundRunner:
    """Fixed pool of asyncio workers draining a bounded queue.

    Jobs are processed in FIFO order per worker and run in a copy of the
    context they were submitted from, so log context bound by the caller
    carries over. ``submit`` never blocks: when the queue is full the job is
    dropped and reported as a failure.
    """

    def __init__(
        self,
        workers: int = 4,
        max_size: int = 1000,
        on_error: ErrorHandler | None = None,
    ):
        self.workers = max(1, workers)
        self.on_error = on_error
        self._queue: asyncio.Queue[BackgroundJob] = asyncio.Queue(maxsize=max_size)
        self._tasks: list[asyncio.Task[None]] = []
        self._running = False
        self.failures = 0

    def submit(self, name: str, factory: JobFactory) -> bool:
        """Queue a job for detached execution.

        Returns False if the job was dropped because the queue is full.
        """
        try:
            self._queue.put_nowait(BackgroundJob(name=name, factory=factory))
            return True
        except asyncio.QueueFull:
            error = RuntimeError("background queue full")
            self._report(name, error)
            return False

    async def start(self) -> None:
        """Start the worker tasks."""
        if self._running:
            return

        self._running = True
        self._tasks = [
            asyncio.create_task(self._worker_loop(i), name=f"background-{i}")
            for i in range(self.workers)
        ]
        logger.info(f"Background runner started with {self.workers} workers")

    async def stop(self, timeout: float = 5.0) -> None:
        """Stop the workers, giving queued jobs ``timeout`` seconds to finish."""
        if not self._running:
            return

        try:
            await asyncio.wait_for(self.drain(), timeout=timeout)
        except TimeoutError:
            logger.warning(f"Background runner stopped with {self.pending_count} pending jobs")

        self._running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Background runner stopped")

    async def _worker_loop(self, index: int) -> None:
        while self._running:
            try:
                job = await self._queue.get()
            except asyncio.CancelledError:
                break

            try:
                await asyncio.create_task(_call(job.factory), context=job.context)
            except asyncio.CancelledError:
                self._queue.task_done()
                raise
            except Exception as e:
                self._report(job.name, e)
            self._queue.task_done()

    def _report(self, name: str, error: BaseException) -> None:
        self.failures += 1
        logger.error(f"Background job failed: {name}", exc_info=error)
        record_background_failure(name.split(":", 1)[0])
        if self.on_error is not None:
            try:
                self.on_error(name, error)
            except Exception:
                logger.exception("Error in background error handler")

    @property
    def pending_count(self) -> int:
        """Number of jobs waiting to be processed."""
        return self._queue.qsize()

    async def drain(self) -> None:
        """Wait for all queued jobs to be processed."""
        await self._queue.join()
