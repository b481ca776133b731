"""Process runtime for revent.

The runtime owns every long-lived resource: the Redis client, the httpx
client, the stores and the components built on them. It is created once by
the process bootstrap (``create_app`` or the CLI) and passed to whoever needs
it; nothing in revent reaches for a module-level client.

Example:
    runtime = Runtime.from_settings(settings)
    await runtime.start()
    result = await runtime.list_cache.get("Notes", settings.list_ttl_seconds)
    await runtime.stop()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from revent.background import BackgroundRunner
from revent.cache import (
    TREE_KEY,
    CacheKeys,
    CacheStore,
    InMemoryCacheStore,
    RedisCacheStore,
    RevalidatingCache,
    create_redis,
    list_cache_key,
)
from revent.changes import AuditSink, ChangeHandler, LogAuditSink
from revent.config import Settings
from revent.notifications import LogNotifier, NotificationService, Notifier, WebhookNotifier
from revent.origin import GitHubContentsFetcher, GitHubTreeFetcher, github_headers
from revent.scheduling import (
    InMemoryTaskStore,
    NotificationScheduler,
    RedisTaskStore,
    TaskDispatcher,
    TaskStore,
    default_offsets,
)
from revent.storage import DocumentStore, InMemoryDocumentStore, RedisDocumentStore

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """All components of a running revent process."""

    settings: Settings
    http: httpx.AsyncClient
    runner: BackgroundRunner
    cache_store: CacheStore
    task_store: TaskStore
    documents: DocumentStore
    list_cache: RevalidatingCache
    tree_cache: RevalidatingCache
    scheduler: NotificationScheduler
    notifications: NotificationService
    dispatcher: TaskDispatcher
    changes: ChangeHandler
    redis: Redis | None = None
    _started: bool = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http: httpx.AsyncClient | None = None,
        notifier: Notifier | None = None,
        audit: AuditSink | None = None,
    ) -> Runtime:
        """Build the component graph described by ``settings``.

        ``http``, ``notifier`` and ``audit`` may be supplied to replace the
        configured ones, e.g. with a mock transport in tests.
        """
        redis_client: Redis | None = None
        cache_store: CacheStore
        task_store: TaskStore
        documents: DocumentStore

        backend = settings.storage_backend.lower()
        if backend == "redis":
            redis_client = create_redis(settings.redis_url)
            keys = CacheKeys(settings.redis_prefix)
            cache_store = RedisCacheStore(redis_client, keys)
            task_store = RedisTaskStore(redis_client, keys)
            documents = RedisDocumentStore(redis_client, keys)
        elif backend == "memory":
            cache_store = InMemoryCacheStore()
            task_store = InMemoryTaskStore()
            documents = InMemoryDocumentStore()
        else:
            raise ValueError(f"Unknown storage backend: {settings.storage_backend}")

        http = http or httpx.AsyncClient(timeout=settings.http_timeout)
        runner = BackgroundRunner(
            workers=settings.background_workers,
            max_size=settings.background_queue_size,
        )

        headers = github_headers(settings)
        contents = GitHubContentsFetcher(
            http,
            owner=settings.github_owner,
            repo=settings.github_repo,
            api_url=settings.github_api_url,
            headers=headers,
        )
        tree = GitHubTreeFetcher(
            http,
            owner=settings.github_owner,
            repo=settings.github_repo,
            branch=settings.github_branch,
            api_url=settings.github_api_url,
            headers=headers,
        )

        if notifier is None:
            notifier = _build_notifier(settings, http)

        scheduler = NotificationScheduler(
            task_store,
            settings.queue_path,
            offsets=default_offsets(settings.notify_before_minutes),
        )
        notifications = NotificationService(
            documents,
            notifier,
            topic=settings.notification_topic,
            before_minutes=settings.notify_before_minutes,
        )

        return cls(
            settings=settings,
            http=http,
            runner=runner,
            cache_store=cache_store,
            task_store=task_store,
            documents=documents,
            list_cache=RevalidatingCache(
                cache_store, contents, runner, name="list", key_func=list_cache_key
            ),
            tree_cache=RevalidatingCache(
                cache_store, tree, runner, name="tree", key_func=lambda _: TREE_KEY
            ),
            scheduler=scheduler,
            notifications=notifications,
            dispatcher=TaskDispatcher(
                task_store,
                notifications.deliver_task,
                interval=settings.dispatch_interval,
                batch_size=settings.dispatch_batch_size,
            ),
            changes=ChangeHandler(
                documents, scheduler, notifications, runner, audit or LogAuditSink()
            ),
            redis=redis_client,
        )

    async def start(self, dispatcher: bool | None = None) -> None:
        """Start the background runner and, if enabled, the dispatcher."""
        if self._started:
            return

        await self.runner.start()
        if self.settings.dispatcher_enabled if dispatcher is None else dispatcher:
            await self.dispatcher.start()
        self._started = True
        logger.info(f"Runtime started (storage: {self.settings.storage_backend})")

    async def stop(self) -> None:
        """Stop components and close clients."""
        if not self._started:
            return

        await self.dispatcher.stop()
        await self.runner.stop()
        await self.http.aclose()
        if self.redis is not None:
            await self.redis.aclose()
        self._started = False
        logger.info("Runtime stopped")

    async def health(self) -> dict[str, bool]:
        """Ping every store."""
        return {
            "cache": await self.cache_store.health_check(),
            "tasks": await self.task_store.health_check(),
            "documents": await self.documents.health_check(),
        }


def _build_notifier(settings: Settings, http: httpx.AsyncClient) -> Notifier:
    backend = settings.notifier_backend.lower()
    if backend == "webhook":
        if not settings.notifier_webhook_url:
            raise ValueError("NOTIFIER_WEBHOOK_URL is required for the webhook notifier")
        return WebhookNotifier(http, settings.notifier_webhook_url)
    if backend == "log":
        return LogNotifier()
    raise ValueError(f"Unknown notifier backend: {settings.notifier_backend}")
