"""Audit trail of ingested writes.

Each write produces one entry naming the collection, document, operation and
the acting user. The user comes from the request's actor when present,
otherwise from metadata embedded by the client in the document:
``_deleteMetadata`` on the previous state for deletes, ``_metadata`` on the
new state otherwise. Metadata keys are stripped from the logged data.

Audit failures are logged and never interrupt the write.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

SYSTEM_USER = "system"
METADATA_KEY = "_metadata"
DELETE_METADATA_KEY = "_deleteMetadata"


@dataclass(frozen=True, slots=True)
class Actor:
    """Authenticated user that performed a write."""

    user_id: str
    email: str | None = None


@dataclass(frozen=True, slots=True)
class AuditEntry:
    """One audited write."""

    collection: str
    document_id: str
    operation: str
    user_id: str = SYSTEM_USER
    user_email: str = SYSTEM_USER
    before_data: dict[str, Any] | None = None
    after_data: dict[str, Any] | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "collection": self.collection,
            "documentId": self.document_id,
            "operation": self.operation,
            "timestamp": self.timestamp.isoformat(),
            "userId": self.user_id,
            "userEmail": self.user_email,
            "beforeData": self.before_data,
            "afterData": self.after_data,
        }


def _strip(data: dict[str, Any] | None) -> dict[str, Any] | None:
    if data is None:
        return None
    cleaned = deepcopy(data)
    cleaned.pop(METADATA_KEY, None)
    cleaned.pop(DELETE_METADATA_KEY, None)
    return cleaned


def build_audit_entry(
    collection: str,
    document_id: str,
    operation: str,
    before_data: dict[str, Any] | None,
    after_data: dict[str, Any] | None,
    actor: Actor | None = None,
) -> AuditEntry:
    """Build an audit entry, attributing it to the acting user."""
    user_id = SYSTEM_USER
    user_email = SYSTEM_USER

    if actor is not None:
        user_id = actor.user_id
        if actor.email:
            user_email = actor.email
    else:
        metadata: dict[str, Any] = {}
        if operation.startswith("delete_") and before_data:
            metadata = before_data.get(DELETE_METADATA_KEY) or {}
        elif after_data:
            metadata = after_data.get(METADATA_KEY) or {}
        user_id = metadata.get("userId") or user_id
        user_email = metadata.get("userEmail") or user_email

    return AuditEntry(
        collection=collection,
        document_id=document_id,
        operation=operation,
        user_id=user_id,
        user_email=user_email,
        before_data=_strip(before_data),
        after_data=_strip(after_data),
    )


class AuditSink(ABC):
    """Destination of audit entries."""

    @abstractmethod
    async def record(self, entry: AuditEntry) -> None:
        """Persist one entry."""


class LogAuditSink(AuditSink):
    """Writes audit entries to the structured log."""

    def __init__(self, logger_name: str = "revent.audit"):
        self.logger = logging.getLogger(logger_name)

    async def record(self, entry: AuditEntry) -> None:
        self.logger.info(
            f"{entry.operation} {entry.collection}/{entry.document_id} by {entry.user_id}",
            extra={"audit": entry.to_dict()},
        )


class InMemoryAuditSink(AuditSink):
    """Keeps the most recent entries in memory."""

    def __init__(self, max_entries: int = 1000):
        self.entries: deque[AuditEntry] = deque(maxlen=max_entries)

    async def record(self, entry: AuditEntry) -> None:
        self.entries.append(entry)
