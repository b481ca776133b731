"""Entity document storage."""

from revent.storage.documents import (
    Document,
    DocumentStore,
    InMemoryDocumentStore,
    RedisDocumentStore,
)

__all__ = ["Document", "DocumentStore", "InMemoryDocumentStore", "RedisDocumentStore"]
