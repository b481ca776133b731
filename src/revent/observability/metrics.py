"""Prometheus metrics for revent.

Provides metrics collection and exposure:
- HTTP request metrics (latency, count)
- Revalidation cache outcomes and origin errors
- Notification task scheduling and delivery
- Background job failures

Usage:
    from revent.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.cache_lookups_total.labels(cache="list", outcome="fresh").inc()
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from revent.config import settings

if TYPE_CHECKING:
    from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    # HTTP metrics
    http_requests_total: Any = None
    http_request_duration_seconds: Any = None

    # Revalidation cache metrics
    cache_lookups_total: Any = None
    origin_errors_total: Any = None

    # Scheduler metrics
    tasks_scheduled_total: Any = None
    task_deliveries_total: Any = None

    # Background runner metrics
    background_failures_total: Any = None

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: CollectorRegistry | None = field(default=None, repr=False)

    def initialize(self) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = CollectorRegistry()

        self.http_requests_total = Counter(
            "revent_http_requests_total",
            "Total HTTP requests",
            ["method", "path", "status"],
            registry=self._registry,
        )

        self.http_request_duration_seconds = Histogram(
            "revent_http_request_duration_seconds",
            "HTTP request latency in seconds",
            ["method", "path"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
            registry=self._registry,
        )

        self.cache_lookups_total = Counter(
            "revent_cache_lookups_total",
            "Revalidation cache lookups by outcome",
            ["cache", "outcome"],
            registry=self._registry,
        )

        self.origin_errors_total = Counter(
            "revent_origin_errors_total",
            "Failed origin fetches",
            ["cache", "kind"],
            registry=self._registry,
        )

        self.tasks_scheduled_total = Counter(
            "revent_tasks_scheduled_total",
            "Notification tasks by scheduling outcome",
            ["offset_kind", "outcome"],
            registry=self._registry,
        )

        self.task_deliveries_total = Counter(
            "revent_task_deliveries_total",
            "Notification task deliveries by outcome",
            ["outcome"],
            registry=self._registry,
        )

        self.background_failures_total = Counter(
            "revent_background_failures_total",
            "Failed detached background jobs",
            ["job"],
            registry=self._registry,
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware for HTTP request metrics."""

    def __init__(self, app: "ASGIApp") -> None:
        super().__init__(app)
        self.metrics = get_metrics()

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        """Record metrics for HTTP requests."""
        if request.url.path in ("/health", "/health/ready", "/metrics"):
            return await call_next(request)

        method = request.method
        path = self._normalize_path(request.url.path)
        start_time = time.perf_counter()
        status_code = 500  # Default in case of exception

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - start_time

            if self.metrics.http_requests_total:
                self.metrics.http_requests_total.labels(
                    method=method,
                    path=path,
                    status=status_code,
                ).inc()

            if self.metrics.http_request_duration_seconds:
                self.metrics.http_request_duration_seconds.labels(
                    method=method,
                    path=path,
                ).observe(duration)

    def _normalize_path(self, path: str) -> str:
        """Replace document identifiers with placeholders.

        Examples:
            /changes/events/abc123 -> /changes/events/{id}
        """
        parts = path.strip("/").split("/")
        if len(parts) == 3 and parts[0] == "changes":
            return f"/changes/{parts[1]}/{{id}}"
        return path


def record_cache_lookup(cache: str, outcome: str) -> None:
    """Record a revalidation cache outcome (fresh, revalidated, refreshed, stale, miss)."""
    metrics = get_metrics()
    if metrics.cache_lookups_total:
        metrics.cache_lookups_total.labels(cache=cache, outcome=outcome).inc()


def record_origin_error(cache: str, kind: str) -> None:
    """Record a failed origin fetch."""
    metrics = get_metrics()
    if metrics.origin_errors_total:
        metrics.origin_errors_total.labels(cache=cache, kind=kind).inc()


def record_task_scheduled(offset_kind: str, outcome: str) -> None:
    """Record a scheduling decision (created, rescheduled, skipped, cancelled)."""
    metrics = get_metrics()
    if metrics.tasks_scheduled_total:
        metrics.tasks_scheduled_total.labels(offset_kind=offset_kind, outcome=outcome).inc()


def record_task_delivery(outcome: str) -> None:
    """Record a task delivery (delivered, failed)."""
    metrics = get_metrics()
    if metrics.task_deliveries_total:
        metrics.task_deliveries_total.labels(outcome=outcome).inc()


def record_background_failure(job: str) -> None:
    """Record a failed background job."""
    metrics = get_metrics()
    if metrics.background_failures_total:
        metrics.background_failures_total.labels(job=job).inc()
