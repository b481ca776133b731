"""Tests for the background runner."""

import asyncio

from revent.background import BackgroundRunner
from revent.observability.logging import LogContext, entity_id_var


class TestBackgroundRunner:
    async def test_runs_submitted_jobs(self, runner):
        done: list[str] = []

        async def job(name: str) -> None:
            done.append(name)

        runner.submit("a", lambda: job("a"))
        runner.submit("b", lambda: job("b"))
        await runner.drain()

        assert sorted(done) == ["a", "b"]
        assert runner.pending_count == 0

    async def test_jobs_keep_the_submitters_log_context(self, runner):
        seen: list[str] = []

        async def job() -> None:
            seen.append(entity_id_var.get())

        with LogContext(entity_id="evt-1"):
            runner.submit("schedule:evt-1", job)
        runner.submit("schedule:none", job)
        await runner.drain()

        assert sorted(seen) == ["", "evt-1"]

    async def test_failure_goes_to_error_channel(self):
        errors: list[tuple[str, BaseException]] = []
        runner = BackgroundRunner(workers=1, on_error=lambda name, e: errors.append((name, e)))
        await runner.start()

        async def boom() -> None:
            raise RuntimeError("store down")

        assert runner.submit("cache-write:list:root", boom) is True
        await runner.drain()
        await runner.stop()

        assert runner.failures == 1
        assert errors[0][0] == "cache-write:list:root"
        assert isinstance(errors[0][1], RuntimeError)

    async def test_failure_does_not_stop_workers(self, runner):
        done = asyncio.Event()

        async def boom() -> None:
            raise RuntimeError("x")

        async def ok() -> None:
            done.set()

        runner.submit("boom", boom)
        runner.submit("ok", ok)
        await asyncio.wait_for(done.wait(), timeout=1.0)

    async def test_full_queue_drops_job(self):
        runner = BackgroundRunner(workers=1, max_size=1)

        async def noop() -> None:
            pass

        assert runner.submit("first", noop) is True
        assert runner.submit("second", noop) is False
        assert runner.failures == 1

    async def test_stop_waits_for_queued_jobs(self):
        runner = BackgroundRunner(workers=1)
        await runner.start()
        done: list[int] = []

        async def slow(i: int) -> None:
            await asyncio.sleep(0.01)
            done.append(i)

        for i in range(3):
            runner.submit(f"slow:{i}", lambda i=i: slow(i))
        await runner.stop()

        assert done == [0, 1, 2]
