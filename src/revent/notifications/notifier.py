"""Notification transports.

The core only needs "deliver a payload"; the transport is pluggable:
- LogNotifier: writes the payload to the structured log
- WebhookNotifier: POSTs the payload as JSON to a push gateway
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import httpx

from revent.notifications.payloads import PushMessage

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """The transport failed to accept a notification."""


class Notifier(ABC):
    """Abstract notification transport."""

    @abstractmethod
    async def send(self, message: PushMessage) -> None:
        """Deliver ``message`` or raise NotificationError."""


class LogNotifier(Notifier):
    """Logs notifications instead of pushing them."""

    async def send(self, message: PushMessage) -> None:
        logger.info(
            f"Notification to '{message.topic}': {message.title}",
            extra={"notification": message.to_dict()},
        )


class WebhookNotifier(Notifier):
    """Posts notifications to an HTTP push gateway."""

    def __init__(self, client: httpx.AsyncClient, url: str):
        self.client = client
        self.url = url

    async def send(self, message: PushMessage) -> None:
        try:
            response = await self.client.post(self.url, json=message.to_dict())
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationError(f"Push gateway rejected notification: {e}") from e
        logger.debug(f"Notification sent to '{message.topic}': {message.title}")
