"""Mirrored entity documents.

The change handler mirrors every ingested write here so that deferred work
(notification delivery, club name lookups) reads the current entity state
rather than the snapshot captured when the work was scheduled.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable
from copy import deepcopy
from typing import TYPE_CHECKING, Any, cast

import orjson

from revent.cache.keys import CacheKeys

if TYPE_CHECKING:
    from redis.asyncio import Redis

Document = dict[str, Any]


class DocumentStore(ABC):
    """Abstract document store keyed by (collection, document id)."""

    @abstractmethod
    async def get(self, collection: str, document_id: str) -> Document | None:
        """Return the document or None."""

    @abstractmethod
    async def put(self, collection: str, document_id: str, document: Document) -> None:
        """Create or replace a document."""

    @abstractmethod
    async def delete(self, collection: str, document_id: str) -> bool:
        """Delete a document. Returns False if it did not exist."""

    async def health_check(self) -> bool:
        return True


class InMemoryDocumentStore(DocumentStore):
    """Process-local document store."""

    def __init__(self) -> None:
        self._documents: dict[tuple[str, str], Document] = {}

    async def get(self, collection: str, document_id: str) -> Document | None:
        document = self._documents.get((collection, document_id))
        return deepcopy(document) if document is not None else None

    async def put(self, collection: str, document_id: str, document: Document) -> None:
        self._documents[(collection, document_id)] = deepcopy(document)

    async def delete(self, collection: str, document_id: str) -> bool:
        return self._documents.pop((collection, document_id), None) is not None


class RedisDocumentStore(DocumentStore):
    """Documents stored as JSON strings in Redis."""

    def __init__(self, client: Redis, keys: CacheKeys | None = None):
        self.client = client
        self.keys = keys or CacheKeys()

    async def get(self, collection: str, document_id: str) -> Document | None:
        data = await self.client.get(self.keys.document(collection, document_id))
        if data is None:
            return None
        return cast(Document, orjson.loads(data))

    async def put(self, collection: str, document_id: str, document: Document) -> None:
        await self.client.set(self.keys.document(collection, document_id), orjson.dumps(document))

    async def delete(self, collection: str, document_id: str) -> bool:
        return bool(await self.client.delete(self.keys.document(collection, document_id)))

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            await cast(Awaitable[bool], self.client.ping())
            return True
        except Exception:
            return False
