"""Redis cache store for revent.

Each entry is a single Redis hash (payload, validator, fetched_at) so a
write replaces all fields at once and readers never observe a partial entry.
"""

from __future__ import annotations

from collections.abc import Awaitable
from typing import TYPE_CHECKING, cast

import orjson
import redis.asyncio as redis

from revent.cache.keys import CacheKeys
from revent.cache.store import CacheEntry, CacheStore

if TYPE_CHECKING:
    from redis.asyncio import Redis

# Only touch fetched_at when the hash already exists
_TOUCH_SCRIPT = """
if redis.call("exists", KEYS[1]) == 1 then
    redis.call("hset", KEYS[1], "fetched_at", ARGV[1])
    return 1
end
return 0
"""


def create_redis(url: str) -> Redis:
    """Create a pooled Redis client.

    The caller owns the client and must close it with ``aclose()``.
    """
    return redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=False,  # We're storing bytes
    )


def _text(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


class RedisCacheStore(CacheStore):
    """Cache entries stored as Redis hashes."""

    def __init__(self, client: Redis, keys: CacheKeys | None = None):
        self.client = client
        self.keys = keys or CacheKeys()

    async def get(self, key: str) -> CacheEntry | None:
        raw = await cast(Awaitable[dict[bytes, bytes]], self.client.hgetall(self.keys.entry(key)))
        if not raw:
            return None

        payload = raw.get(b"payload")
        fetched_at = raw.get(b"fetched_at")
        if payload is None or fetched_at is None:
            return None

        return CacheEntry(
            key=key,
            payload=orjson.loads(payload),
            validator=_text(raw.get(b"validator", b"")),
            fetched_at=float(_text(fetched_at)),
        )

    async def put(self, entry: CacheEntry) -> None:
        redis_key = self.keys.entry(entry.key)
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.delete(redis_key)
            pipe.hset(
                redis_key,
                mapping={
                    "payload": orjson.dumps(entry.payload),
                    "validator": entry.validator,
                    "fetched_at": repr(entry.fetched_at),
                },
            )
            await pipe.execute()

    async def touch(self, key: str, fetched_at: float) -> bool:
        result = await cast(
            Awaitable[int],
            self.client.eval(_TOUCH_SCRIPT, 1, self.keys.entry(key), repr(fetched_at)),
        )
        return bool(result)

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            await cast(Awaitable[bool], self.client.ping())
            return True
        except Exception:
            return False
