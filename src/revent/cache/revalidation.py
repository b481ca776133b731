"""Conditional revalidation cache.

Keeps a local mirror of a rate-limited origin fresh without hammering it:

1. No entry: fetch unconditionally and store the result.
2. Entry younger than the TTL: serve it without any network I/O.
3. Entry at or past the TTL: revalidate with the stored validator.
   - 304: bump ``fetched_at`` only, serve the cached payload.
   - 200: replace the entry, serve the new payload.
   - origin unavailable: serve the old payload flagged ``stale``.

Cache writes are handed to the background runner so a slow or failing
store never delays or fails the read that triggered them. Concurrent
revalidations of the same key are not coalesced; the last write wins.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from revent.cache.keys import path_to_cache_key
from revent.cache.store import CacheEntry, CacheStore
from revent.errors import OriginNotFound, OriginUnavailable
from revent.observability.metrics import record_cache_lookup, record_origin_error

if TYPE_CHECKING:
    from revent.background import BackgroundRunner
    from revent.origin.fetcher import Fetcher, FetchResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CacheResult:
    """Answer of a cache read."""

    payload: Any
    from_cache: bool
    stale: bool = False
    age: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RefreshResult:
    """Answer of a forced revalidation."""

    payload: Any
    skipped: bool
    metadata: dict[str, Any] = field(default_factory=dict)


class RevalidatingCache:
    """TTL + conditional GET + stale fallback over a cache store."""

    def __init__(
        self,
        store: CacheStore,
        fetcher: Fetcher,
        runner: BackgroundRunner,
        name: str = "default",
        key_func: Callable[[str], str] = path_to_cache_key,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.fetcher = fetcher
        self.runner = runner
        self.name = name
        self.key_func = key_func
        self.clock = clock

    async def get(self, resource: str, ttl_seconds: float) -> CacheResult:
        """Return the payload for ``resource``, revalidating when older than the TTL.

        Raises:
            OriginUnavailable: origin failed and nothing is cached
            OriginNotFound: origin reports the resource does not exist
        """
        key = self.key_func(resource)
        now = self.clock()
        entry = await self._read(key)

        if entry is None:
            logger.info(f"[{self.name}] No cache, fetching from origin: {key}")
            record_cache_lookup(self.name, "miss")
            result = await self._fetch(resource, None)
            self._store_later(CacheEntry(key, result.payload, result.validator, now))
            return CacheResult(
                payload=result.payload,
                from_cache=False,
                metadata=result.metadata,
            )

        age = entry.age(now)
        if age < ttl_seconds:
            logger.debug(f"[{self.name}] Cache hit (fresh): {key}")
            record_cache_lookup(self.name, "fresh")
            return CacheResult(payload=entry.payload, from_cache=True, age=age)

        logger.info(f"[{self.name}] Cache stale, revalidating with origin: {key}")
        try:
            result = await self._fetch(resource, entry.validator or None)
        except OriginUnavailable as e:
            logger.warning(f"[{self.name}] Returning stale cache due to error: {key}: {e}")
            record_cache_lookup(self.name, "stale")
            return CacheResult(payload=entry.payload, from_cache=True, stale=True, age=age)

        if result.not_modified:
            logger.info(f"[{self.name}] Origin returned 304, cache still valid: {key}")
            record_cache_lookup(self.name, "revalidated")
            self._touch_later(key, now)
            return CacheResult(payload=entry.payload, from_cache=True, age=age)

        logger.info(f"[{self.name}] Origin returned new data: {key}")
        record_cache_lookup(self.name, "refreshed")
        self._store_later(CacheEntry(key, result.payload, result.validator, now))
        return CacheResult(payload=result.payload, from_cache=False, metadata=result.metadata)

    async def refresh(self, resource: str) -> RefreshResult:
        """Revalidate ``resource`` now, ignoring the TTL.

        Unlike ``get`` there is no stale fallback and the store write is
        awaited, so any failure reaches the caller.
        """
        key = self.key_func(resource)
        now = self.clock()
        entry = await self.store.get(key)

        validator = entry.validator if entry is not None else None
        result = await self._fetch(resource, validator or None)

        if result.not_modified and entry is not None:
            logger.info(f"[{self.name}] Origin unchanged (304), skipping update: {key}")
            await self.store.touch(key, now)
            return RefreshResult(payload=entry.payload, skipped=True)

        await self.store.put(CacheEntry(key, result.payload, result.validator, now))
        logger.info(f"[{self.name}] Cache refreshed: {key}")
        return RefreshResult(payload=result.payload, skipped=False, metadata=result.metadata)

    async def _fetch(self, resource: str, validator: str | None) -> FetchResult:
        try:
            return await self.fetcher.fetch(resource, validator)
        except OriginNotFound:
            record_origin_error(self.name, "not_found")
            raise
        except OriginUnavailable:
            record_origin_error(self.name, "unavailable")
            raise

    async def _read(self, key: str) -> CacheEntry | None:
        # A broken store degrades to a miss; the origin can still answer
        try:
            return await self.store.get(key)
        except Exception:
            logger.exception(f"[{self.name}] Failed to read cache entry: {key}")
            return None

    def _store_later(self, entry: CacheEntry) -> None:
        self.runner.submit(f"cache-write:{self.name}:{entry.key}", lambda: self.store.put(entry))

    def _touch_later(self, key: str, fetched_at: float) -> None:
        self.runner.submit(
            f"cache-touch:{self.name}:{key}",
            lambda: self.store.touch(key, fetched_at),
        )
