"""Push notification payload builders."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from revent.scheduling.scheduler import OffsetKind

DEFAULT_TOPIC = "general"
ANDROID_CHANNEL = "general_channel"


@dataclass(frozen=True, slots=True)
class PushMessage:
    """A topic notification ready for the transport."""

    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)
    topic: str = DEFAULT_TOPIC

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "notification": {"title": self.title, "body": self.body},
            "data": dict(self.data),
            "android": {
                "priority": "high",
                "notification": {"channelId": ANDROID_CHANNEL, "priority": "high"},
            },
            "apns": {"payload": {"aps": {"contentAvailable": True}}},
        }


def build_event_notification(
    event_id: str,
    event: dict[str, Any],
    offset_kind: OffsetKind | str,
    before_minutes: int = 30,
    topic: str = DEFAULT_TOPIC,
) -> PushMessage:
    """Reminder for an event, before it starts or when it starts."""
    kind = OffsetKind(offset_kind)
    title = event.get("title") or "Event Reminder"
    venue = event.get("venue") or "the venue"

    if kind is OffsetKind.BEFORE:
        body = f"{title} starts in {before_minutes} minutes at {venue}"
    else:
        body = f"{title} is starting now at {venue}!"

    return PushMessage(
        title=title,
        body=body,
        data={
            "type": "event",
            "eventId": event_id,
            "notificationType": kind.value,
            "clubId": event.get("clubId") or "",
        },
        topic=topic,
    )


def build_announcement_notification(
    club_id: str,
    club_name: str,
    announcement: dict[str, Any],
    topic: str = DEFAULT_TOPIC,
) -> PushMessage:
    """Broadcast for a newly added club announcement."""
    title = str(announcement.get("title") or "")
    return PushMessage(
        title=f"New Announcement from {club_name}",
        body=title,
        data={
            "type": "announcement",
            "clubId": club_id,
            "announcementTitle": title,
        },
        topic=topic,
    )
