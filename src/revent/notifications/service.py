"""Notification delivery.

Builds payloads from the current entity state and hands them to the
notifier. Scheduled tasks only carry (entity id, offset kind); the event is
re-read at delivery time so edits made after scheduling are reflected.
"""

from __future__ import annotations

import logging
from typing import Any

from revent.errors import EntityNotFound
from revent.notifications.notifier import Notifier
from revent.notifications.payloads import (
    DEFAULT_TOPIC,
    build_announcement_notification,
    build_event_notification,
)
from revent.scheduling.scheduler import OffsetKind
from revent.scheduling.store import ScheduledTask
from revent.storage.documents import DocumentStore

logger = logging.getLogger(__name__)

EVENTS_COLLECTION = "events"
CLUBS_COLLECTION = "clubs"


class NotificationService:
    """Sends event reminders and announcement broadcasts."""

    def __init__(
        self,
        documents: DocumentStore,
        notifier: Notifier,
        topic: str = DEFAULT_TOPIC,
        before_minutes: int = 30,
    ) -> None:
        self.documents = documents
        self.notifier = notifier
        self.topic = topic
        self.before_minutes = before_minutes

    async def deliver_event(self, event_id: str, offset_kind: OffsetKind | str) -> None:
        """Send the reminder for ``event_id``.

        Raises:
            EntityNotFound: the event no longer exists
            ValueError: unknown offset kind
        """
        kind = OffsetKind(offset_kind)
        event = await self.documents.get(EVENTS_COLLECTION, event_id)
        if event is None:
            raise EntityNotFound(EVENTS_COLLECTION, event_id)

        message = build_event_notification(
            event_id, event, kind, before_minutes=self.before_minutes, topic=self.topic
        )
        await self.notifier.send(message)
        logger.info(f"Event notification sent: {kind.value} for {event_id}")

    async def deliver_task(self, task: ScheduledTask) -> None:
        """Delivery handler for the task dispatcher."""
        await self.deliver_event(task.entity_id, task.offset_kind)

    async def announce(self, club_id: str, announcement: dict[str, Any]) -> None:
        """Broadcast a new announcement of ``club_id``."""
        club = await self.documents.get(CLUBS_COLLECTION, club_id)
        club_name = (club or {}).get("name") or "Unknown Club"

        message = build_announcement_notification(
            club_id, club_name, announcement, topic=self.topic
        )
        await self.notifier.send(message)
        logger.info(f"Notification sent for announcement: {message.body}")
