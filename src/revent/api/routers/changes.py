"""Write ingestion endpoint.

``POST /changes/{collection}/{document_id}`` reports one write with its
before and after state. Creates omit ``before``, deletes omit ``after``.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from revent.api.deps import RuntimeDep
from revent.api.errors import BadRequestError
from revent.changes import Actor

router = APIRouter(prefix="/changes", tags=["changes"])


class ActorModel(BaseModel):
    model_config = {"populate_by_name": True}

    user_id: str = Field(alias="userId")
    email: str | None = None


class ChangeRequest(BaseModel):
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    actor: ActorModel | None = None


@router.post("/{collection}/{document_id}")
async def ingest_change(
    collection: str,
    document_id: str,
    body: ChangeRequest,
    runtime: RuntimeDep,
) -> dict[str, Any]:
    """Ingest one write to a tracked collection."""
    if body.before is None and body.after is None:
        raise BadRequestError("A change needs a before or an after state")

    actor = Actor(body.actor.user_id, body.actor.email) if body.actor else None
    outcome = await runtime.changes.handle(
        collection, document_id, body.before, body.after, actor
    )

    response: dict[str, Any] = {"operation": outcome.operation}
    if outcome.result is not None and outcome.result.changed_index is not None:
        response["changedIndex"] = outcome.result.changed_index
    return response
