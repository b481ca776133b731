"""Cache entry model and store interface.

A store maps a logical cache key to exactly one CacheEntry. Entries are
overwritten on refresh and never expire on their own.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A mirrored origin resource."""

    key: str
    payload: Any
    validator: str
    fetched_at: float

    def age(self, now: float) -> float:
        """Seconds since the entry was last confirmed by the origin."""
        return now - self.fetched_at


class CacheStore(ABC):
    """Abstract keyed store for cache entries."""

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        """Return the entry for ``key`` or None."""

    @abstractmethod
    async def put(self, entry: CacheEntry) -> None:
        """Write a complete entry, replacing any previous one."""

    @abstractmethod
    async def touch(self, key: str, fetched_at: float) -> bool:
        """Update only ``fetched_at`` of an existing entry.

        Returns False if no entry exists; never creates a partial entry.
        """

    async def health_check(self) -> bool:
        return True


class InMemoryCacheStore(CacheStore):
    """Process-local cache store.

    Suitable for single-instance deployments and tests.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    async def get(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    async def put(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry

    async def touch(self, key: str, fetched_at: float) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        self._entries[key] = replace(entry, fetched_at=fetched_at)
        return True

    def __len__(self) -> int:
        return len(self._entries)
