"""Health check endpoints.

- /health       - Liveness (always OK while the process serves requests)
- /health/ready - Readiness (pings the cache, task and document stores)
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from revent.api.deps import RuntimeDep

router = APIRouter(tags=["health"])

SERVICE_NAME = "Revent Sync Service"
CHECK_TIMEOUT = 5.0  # seconds


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single store."""

    name: str
    status: HealthStatus
    latency_ms: float
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            result["message"] = self.message
        return result


async def _check(name: str, probe: Any) -> ComponentHealth:
    start = time.monotonic()
    try:
        healthy = await asyncio.wait_for(probe(), timeout=CHECK_TIMEOUT)
        message = None if healthy else f"{name} check failed"
    except TimeoutError:
        healthy, message = False, f"{name} check timed out"
    except Exception as e:
        healthy, message = False, str(e)

    return ComponentHealth(
        name=name,
        status=HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY,
        latency_ms=(time.monotonic() - start) * 1000,
        message=message,
    )


@router.get("/health")
async def live() -> dict[str, str]:
    """Liveness probe."""
    return {
        "status": HealthStatus.HEALTHY.value,
        "timestamp": datetime.now(UTC).isoformat(),
        "service": SERVICE_NAME,
    }


@router.get("/health/ready")
async def ready(runtime: RuntimeDep) -> JSONResponse:
    """Readiness probe.

    Returns 200 when every store answers its ping, 503 otherwise.
    """
    components = await asyncio.gather(
        _check("cache", runtime.cache_store.health_check),
        _check("tasks", runtime.task_store.health_check),
        _check("documents", runtime.documents.health_check),
    )

    all_healthy = all(c.status == HealthStatus.HEALTHY for c in components)
    overall = HealthStatus.HEALTHY if all_healthy else HealthStatus.UNHEALTHY
    return JSONResponse(
        content={"status": overall.value, "components": [c.to_dict() for c in components]},
        status_code=200 if all_healthy else 503,
    )
