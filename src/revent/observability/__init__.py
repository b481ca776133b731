"""Observability module for revent.

Provides metrics and structured logging:
- Prometheus metrics
- Request instrumentation
- JSON structured logging with correlation context
"""

from revent.observability.logging import (
    LogContext,
    configure_logging,
    entity_id_var,
    request_id_var,
)
from revent.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    metrics_registry,
)

__all__ = [
    # Logging
    "configure_logging",
    "LogContext",
    "request_id_var",
    "entity_id_var",
    # Metrics
    "metrics_registry",
    "get_metrics",
    "MetricsMiddleware",
]
