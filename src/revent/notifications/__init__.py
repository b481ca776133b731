"""Push notifications for events and announcements."""

from revent.notifications.notifier import (
    LogNotifier,
    NotificationError,
    Notifier,
    WebhookNotifier,
)
from revent.notifications.payloads import (
    PushMessage,
    build_announcement_notification,
    build_event_notification,
)
from revent.notifications.service import NotificationService

__all__ = [
    "PushMessage",
    "build_event_notification",
    "build_announcement_notification",
    "Notifier",
    "NotificationError",
    "LogNotifier",
    "WebhookNotifier",
    "NotificationService",
]
