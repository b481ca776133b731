"""Global pytest configuration and fixtures.

Provides fakes shared across the unit suites:
- a controllable clock
- a scripted origin fetcher
- a started background runner
"""

from __future__ import annotations

from collections import deque
from collections.abc import AsyncIterator
from typing import Any

import pytest
import pytest_asyncio

from revent.background import BackgroundRunner
from revent.origin.fetcher import Fetcher, FetchResult


class FakeClock:
    """Callable clock returning a settable epoch time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedFetcher(Fetcher):
    """Fetcher answering from a queue of results or exceptions."""

    def __init__(self) -> None:
        self.responses: deque[FetchResult | Exception] = deque()
        self.calls: list[tuple[str, str | None]] = []

    def ok(self, payload: Any, validator: str = "", **metadata: Any) -> None:
        self.responses.append(
            FetchResult(not_modified=False, payload=payload, validator=validator, metadata=metadata)
        )

    def not_modified(self, validator: str) -> None:
        self.responses.append(FetchResult(not_modified=True, validator=validator))

    def fail(self, error: Exception) -> None:
        self.responses.append(error)

    async def fetch(self, resource: str, validator: str | None = None) -> FetchResult:
        self.calls.append((resource, validator))
        if not self.responses:
            raise AssertionError(f"Unexpected fetch of {resource!r}")
        response = self.responses.popleft()
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fetcher() -> ScriptedFetcher:
    return ScriptedFetcher()


@pytest_asyncio.fixture
async def runner() -> AsyncIterator[BackgroundRunner]:
    runner = BackgroundRunner(workers=2, max_size=100)
    await runner.start()
    yield runner
    await runner.stop()
