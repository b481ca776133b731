"""GitHub resource endpoints.

Serves folder listings and the repository tree from the revalidation cache:
- GET  /github/list?path=  - folder listing (TTL + ETag revalidation)
- GET  /github/tree        - full repository tree (revalidated on every read)
- POST /github/refresh     - force a tree revalidation (CI hook)
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Query

from revent.api.deps import RuntimeDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/github", tags=["github"])


@router.get("/list")
async def list_folder(
    runtime: RuntimeDep,
    path: str = Query(default="", description="Folder path inside the repository"),
) -> dict[str, Any]:
    """List a repository folder."""
    result = await runtime.list_cache.get(path, runtime.settings.list_ttl_seconds)

    response: dict[str, Any] = {
        "data": result.payload,
        "cached": result.from_cache,
        "age": int(result.age),
    }
    if result.stale:
        response["stale"] = True
    return response


@router.get("/tree")
async def get_tree(runtime: RuntimeDep) -> dict[str, Any]:
    """Return every file and folder of the repository."""
    result = await runtime.tree_cache.get("", runtime.settings.tree_ttl_seconds)

    response: dict[str, Any] = {
        "files": result.payload,
        "fromCache": result.from_cache,
        "truncated": bool(result.metadata.get("truncated", False)),
    }
    if result.stale:
        response["stale"] = True
    return response


@router.post("/refresh")
async def refresh_tree(runtime: RuntimeDep) -> dict[str, Any]:
    """Revalidate the tree now, ignoring its TTL."""
    logger.info("Force refreshing tree cache")
    result = await runtime.tree_cache.refresh("")
    item_count = len(result.payload or [])

    if result.skipped:
        return {
            "success": True,
            "message": "Cache already up-to-date (repo unchanged)",
            "itemCount": item_count,
            "skipped": True,
        }

    logger.info(f"Tree cache refreshed: {item_count} items")
    return {
        "success": True,
        "message": "Tree cache refreshed successfully",
        "itemCount": item_count,
        "skipped": False,
        "truncated": bool(result.metadata.get("truncated", False)),
    }
