"""API test fixtures.

The app runs against an in-memory runtime whose GitHub client talks to a
fake origin through ``httpx.MockTransport``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from revent.api.app import create_app
from revent.changes import InMemoryAuditSink
from revent.config import Settings
from revent.notifications import Notifier, PushMessage
from revent.runtime import Runtime

CONTENTS_PREFIX = "/repos/org/repo/contents"


class FakeGitHub:
    """Minimal GitHub API honouring If-None-Match."""

    def __init__(self) -> None:
        self.etag = '"v1"'
        self.fail_with: int | None = None
        self.requests: list[httpx.Request] = []
        self.contents: dict[str, list[dict[str, Any]]] = {
            "": [{"name": "Notes", "path": "Notes", "type": "dir"}],
            "Notes": [{"name": "os.pdf", "path": "Notes/os.pdf", "type": "file"}],
        }
        self.tree: dict[str, Any] = {
            "truncated": False,
            "tree": [
                {"path": "Notes", "type": "tree", "sha": "t1"},
                {"path": "Notes/os.pdf", "type": "blob", "sha": "b1", "size": 10},
            ],
        }

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with)
        if request.headers.get("if-none-match") == self.etag:
            return httpx.Response(304)

        path = request.url.path
        if "/git/trees/" in path:
            return httpx.Response(200, json=self.tree, headers={"ETag": self.etag})

        folder = path[len(CONTENTS_PREFIX) :].strip("/")
        if folder not in self.contents:
            return httpx.Response(404, json={"message": "Not Found"})
        return httpx.Response(200, json=self.contents[folder], headers={"ETag": self.etag})


class RecordingNotifier(Notifier):
    def __init__(self) -> None:
        self.sent: list[PushMessage] = []

    async def send(self, message: PushMessage) -> None:
        self.sent.append(message)


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        GITHUB_API_URL="https://api.github.test",
        GITHUB_OWNER="org",
        GITHUB_REPO="repo",
        GITHUB_TOKEN="token",
        DISPATCHER_ENABLED=False,
        STORAGE_BACKEND="memory",
        NOTIFIER_BACKEND="log",
    )


@pytest_asyncio.fixture
async def runtime(test_settings, github, notifier, clock) -> AsyncIterator[Runtime]:
    http = httpx.AsyncClient(transport=httpx.MockTransport(github))
    runtime = Runtime.from_settings(
        test_settings, http=http, notifier=notifier, audit=InMemoryAuditSink()
    )
    runtime.list_cache.clock = clock
    runtime.tree_cache.clock = clock
    await runtime.start()
    yield runtime
    await runtime.stop()


@pytest_asyncio.fixture
async def client(test_settings, runtime) -> AsyncIterator[AsyncClient]:
    app = create_app(test_settings, runtime)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
