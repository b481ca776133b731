"""Notification delivery endpoint.

``POST /notifications/event`` delivers one scheduled reminder. It is the
HTTP target of delayed tasks when they are dispatched by an external queue,
and accepts the task body as scheduled (``entityId``/``offsetKind``) or the
legacy shape (``eventId``/``type``).
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from pydantic import AliasChoices, BaseModel, Field

from revent.api.deps import RuntimeDep
from revent.api.errors import BadRequestError
from revent.scheduling import OffsetKind

router = APIRouter(prefix="/notifications", tags=["notifications"])


class EventNotificationRequest(BaseModel):
    entity_id: str | None = Field(
        default=None, validation_alias=AliasChoices("entityId", "eventId")
    )
    offset_kind: str | None = Field(
        default=None, validation_alias=AliasChoices("offsetKind", "type")
    )


@router.post("/event")
async def send_event_notification(
    body: EventNotificationRequest, runtime: RuntimeDep
) -> dict[str, Any]:
    if not body.entity_id or not body.offset_kind:
        raise BadRequestError("Missing eventId or type")
    try:
        kind = OffsetKind(body.offset_kind)
    except ValueError:
        raise BadRequestError(f"Unknown notification type: {body.offset_kind}")

    await runtime.notifications.deliver_event(body.entity_id, kind)
    return {"success": True, "message": "Notification sent"}
