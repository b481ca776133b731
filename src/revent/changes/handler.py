"""Change ingestion for tracked collections.

Every write to a tracked collection flows through ``ChangeHandler.handle``:

1. The new state is mirrored into the document store (the primary write).
2. The write is classified and named (``create_event``, ``add_announcement`` ...).
3. Follow-up work is handed to the background runner:
   - events: (re)schedule reminders when created or when ``startTime``
     changed; cancel pending reminders when deleted
   - announcements: broadcast a newly added announcement
4. An audit entry is recorded.

Steps 3 and 4 are best effort; their failures are logged and never change
the outcome returned for the write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from revent.background import BackgroundRunner
from revent.changes.audit import DELETE_METADATA_KEY, METADATA_KEY, Actor, AuditSink, build_audit_entry
from revent.changes.classifier import ChangeResult, OperationKind, classify
from revent.changes.timestamps import parse_instant
from revent.errors import ClassificationAmbiguous, UnknownCollection
from revent.notifications.service import NotificationService
from revent.observability.logging import LogContext
from revent.scheduling.scheduler import NotificationScheduler
from revent.storage.documents import DocumentStore

logger = logging.getLogger(__name__)

Snapshot = dict[str, Any]

EVENTS = "events"
ANNOUNCEMENTS = "announcements"
MAP_MARKERS = "mapMarkers"

ANNOUNCEMENTS_FIELD = "announcementsList"
START_TIME_FIELD = "startTime"

_VERBS = {
    OperationKind.CREATED: "create",
    OperationKind.UPDATED: "update",
    OperationKind.DELETED: "delete",
}

# Collection name -> entity label used in operation names
TRACKED_COLLECTIONS = {
    EVENTS: "event",
    ANNOUNCEMENTS: "announcement",
    MAP_MARKERS: "map_marker",
}


@dataclass(frozen=True, slots=True)
class ChangeOutcome:
    """Result of ingesting one write."""

    collection: str
    document_id: str
    operation: str
    result: ChangeResult | None = None


class ChangeHandler:
    """Ingests writes to tracked collections."""

    def __init__(
        self,
        documents: DocumentStore,
        scheduler: NotificationScheduler,
        notifications: NotificationService,
        runner: BackgroundRunner,
        audit: AuditSink,
    ) -> None:
        self.documents = documents
        self.scheduler = scheduler
        self.notifications = notifications
        self.runner = runner
        self.audit = audit

    async def handle(
        self,
        collection: str,
        document_id: str,
        before: Snapshot | None,
        after: Snapshot | None,
        actor: Actor | None = None,
    ) -> ChangeOutcome:
        """Ingest one write.

        Raises:
            UnknownCollection: the collection is not tracked
            ValueError: neither before nor after state was given
        """
        if collection not in TRACKED_COLLECTIONS:
            raise UnknownCollection(collection)
        if before is None and after is None:
            raise ValueError("A change needs a before or an after state")

        with LogContext(collection=collection, entity_id=document_id):
            if after is not None:
                await self.documents.put(collection, document_id, after)
            else:
                await self.documents.delete(collection, document_id)

            if collection == EVENTS:
                outcome, logged = self._handle_event(document_id, before, after)
            elif collection == ANNOUNCEMENTS:
                outcome, logged = self._handle_announcements(document_id, before, after)
            else:
                outcome, logged = self._handle_document(collection, document_id, before, after)

            await self._record_audit(outcome, logged[0], logged[1], actor)
            return outcome

    def _handle_document(
        self,
        collection: str,
        document_id: str,
        before: Snapshot | None,
        after: Snapshot | None,
    ) -> tuple[ChangeOutcome, tuple[Snapshot | None, Snapshot | None]]:
        result = classify(before, after)
        operation = f"{_VERBS[result.operation_kind]}_{TRACKED_COLLECTIONS[collection]}"
        return ChangeOutcome(collection, document_id, operation, result), (before, after)

    def _handle_event(
        self,
        event_id: str,
        before: Snapshot | None,
        after: Snapshot | None,
    ) -> tuple[ChangeOutcome, tuple[Snapshot | None, Snapshot | None]]:
        outcome, logged = self._handle_document(EVENTS, event_id, before, after)

        if after is None:
            self.runner.submit(f"cancel:{event_id}", lambda: self.scheduler.cancel_all(event_id))
            return outcome, logged

        start = parse_instant(after.get(START_TIME_FIELD))
        previous = parse_instant(before.get(START_TIME_FIELD)) if before is not None else None

        if before is not None and start == previous:
            return outcome, logged

        if start is None:
            logger.warning(f"Invalid startTime for event {event_id}, skipping notification scheduling")
            return outcome, logged

        self._schedule_later(event_id, start)
        return outcome, logged

    def _schedule_later(self, event_id: str, start: datetime) -> None:
        self.runner.submit(
            f"schedule:{event_id}",
            lambda: self.scheduler.schedule_all(event_id, start),
        )

    def _handle_announcements(
        self,
        club_id: str,
        before: Snapshot | None,
        after: Snapshot | None,
    ) -> tuple[ChangeOutcome, tuple[Snapshot | None, Snapshot | None]]:
        before_list = (before or {}).get(ANNOUNCEMENTS_FIELD) or []
        after_list = (after or {}).get(ANNOUNCEMENTS_FIELD) or []
        after_meta = (after or {}).get(METADATA_KEY)
        delete_meta = (before or {}).get(DELETE_METADATA_KEY)

        try:
            result = classify(before, after, ANNOUNCEMENTS_FIELD)
        except ClassificationAmbiguous as e:
            logger.warning(f"Ambiguous announcement removal for club {club_id}: {e}")
            outcome = ChangeOutcome(ANNOUNCEMENTS, club_id, "delete_announcement")
            return outcome, (
                {
                    "clubId": club_id,
                    "totalCount": len(before_list),
                    "ambiguous": True,
                    DELETE_METADATA_KEY: delete_meta,
                },
                {"clubId": club_id, "totalCount": len(after_list), METADATA_KEY: after_meta},
            )

        kind = result.operation_kind
        logged_before: Snapshot | None = None
        logged_after: Snapshot | None = None

        if kind is OperationKind.CREATED:
            operation = "create_club_announcements"
            logged_after = {
                "clubId": club_id,
                "totalCount": len(after_list),
                "summary": "Created announcements document",
                METADATA_KEY: after_meta,
            }
        elif kind is OperationKind.DELETED:
            operation = "delete_club_announcements"
            logged_before = {
                "clubId": club_id,
                "totalCount": len(before_list),
                "summary": "Deleted entire announcements document",
                DELETE_METADATA_KEY: delete_meta,
            }
        elif kind is OperationKind.LIST_APPENDED:
            operation = "add_announcement"
            logged_before = {"clubId": club_id, "totalCount": len(before_list)}
            logged_after = {
                "clubId": club_id,
                "totalCount": len(after_list),
                "index": result.changed_index,
                "announcement": result.changed_element,
                METADATA_KEY: after_meta,
            }
            announcement = result.changed_element or {}
            self.runner.submit(
                f"announce:{club_id}",
                lambda: self.notifications.announce(club_id, announcement),
            )
        elif kind is OperationKind.LIST_REMOVED:
            operation = "delete_announcement"
            logged_before = {
                "clubId": club_id,
                "totalCount": len(before_list),
                "index": result.changed_index,
                "announcement": result.changed_element,
                DELETE_METADATA_KEY: delete_meta,
            }
            logged_after = {"clubId": club_id, "totalCount": len(after_list), METADATA_KEY: after_meta}
        else:
            operation = "update_announcement"
            logged_before = {
                "clubId": club_id,
                "totalCount": len(before_list),
                "index": result.changed_index,
                "announcement": result.previous_element,
            }
            logged_after = {
                "clubId": club_id,
                "totalCount": len(after_list),
                "index": result.changed_index,
                "announcement": result.changed_element,
                METADATA_KEY: after_meta,
            }

        return ChangeOutcome(ANNOUNCEMENTS, club_id, operation, result), (logged_before, logged_after)

    async def _record_audit(
        self,
        outcome: ChangeOutcome,
        before: Snapshot | None,
        after: Snapshot | None,
        actor: Actor | None,
    ) -> None:
        try:
            entry = build_audit_entry(
                outcome.collection, outcome.document_id, outcome.operation, before, after, actor
            )
            await self.audit.record(entry)
        except Exception:
            logger.exception(f"Error creating log entry for {outcome.operation}")
