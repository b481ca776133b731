"""Cache layer for revent.

Mirrors origin resources with conditional revalidation:
- TTL fast path with no network I/O
- ETag-based conditional GET after the TTL expires
- Stale fallback when the origin is unavailable
- In-memory or Redis entry storage
"""

from revent.cache.keys import (
    ROOT_KEY,
    TREE_KEY,
    CacheKeys,
    list_cache_key,
    path_to_cache_key,
)
from revent.cache.redis import RedisCacheStore, create_redis
from revent.cache.revalidation import CacheResult, RefreshResult, RevalidatingCache
from revent.cache.store import CacheEntry, CacheStore, InMemoryCacheStore

__all__ = [
    # Keys
    "CacheKeys",
    "ROOT_KEY",
    "TREE_KEY",
    "list_cache_key",
    "path_to_cache_key",
    # Stores
    "CacheEntry",
    "CacheStore",
    "InMemoryCacheStore",
    "RedisCacheStore",
    "create_redis",
    # Revalidation
    "CacheResult",
    "RefreshResult",
    "RevalidatingCache",
]
