"""FastAPI application factory for revent.

Creates the application with:
- GitHub mirror endpoints served from the revalidation cache
- Write ingestion and notification delivery endpoints
- Health probes and Prometheus metrics
- Result/Message error responses
- Runtime lifecycle (background runner, task dispatcher, clients)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse
from starlette.types import ExceptionHandler

from revent.api.errors import (
    ApiError,
    api_exception_handler,
    domain_exception_handler,
    generic_exception_handler,
)
from revent.api.middleware import CorrelationMiddleware
from revent.api.routers import changes, github, health, notifications
from revent.api.routers import metrics as metrics_router
from revent.config import Settings
from revent.config import settings as default_settings
from revent.errors import ReventError
from revent.observability import configure_logging
from revent.observability.metrics import MetricsMiddleware, get_metrics
from revent.runtime import Runtime

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the runtime on startup and stop it on shutdown."""
    runtime: Runtime = app.state.runtime

    logger.info(f"Starting revent ({runtime.settings.env})")
    await runtime.start()
    logger.info("revent startup complete")

    yield

    logger.info("Shutting down revent")
    await runtime.stop()
    logger.info("revent shutdown complete")


def create_app(settings: Settings | None = None, runtime: Runtime | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    When ``runtime`` is omitted one is built from ``settings``. The runtime is
    attached to ``app.state`` right away; it is started by the lifespan.
    """
    settings = settings or (runtime.settings if runtime else default_settings)

    # Configure structured logging (JSON in production, console in dev)
    configure_logging(json_format=settings.env != "dev", level=settings.log_level)
    get_metrics()

    app = FastAPI(
        title="revent",
        description="Campus events sync service",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    app.state.runtime = runtime or Runtime.from_settings(settings)

    app.add_middleware(CorrelationMiddleware)
    if settings.enable_metrics:
        app.add_middleware(MetricsMiddleware)

    app.add_exception_handler(ApiError, cast(ExceptionHandler, api_exception_handler))
    app.add_exception_handler(ReventError, cast(ExceptionHandler, domain_exception_handler))
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))

    app.include_router(health.router)
    if settings.enable_metrics:
        app.include_router(metrics_router.router)
    app.include_router(github.router)
    app.include_router(notifications.router)
    app.include_router(changes.router)

    return app
