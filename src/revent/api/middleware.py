"""Correlation context middleware.

Binds a request ID to the logging context for the duration of a request and
echoes it back in the ``x-request-id`` response header.
"""

from __future__ import annotations

import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from revent.observability.logging import request_id_var


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Propagates ``x-request-id`` to request state, log records and the response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = (
            request.headers.get("x-request-id")
            or request.headers.get("x-cloud-trace-context", "").split("/")[0]
            or str(uuid.uuid4())
        )

        token = request_id_var.set(request_id)
        try:
            request.state.request_id = request_id
            response = await call_next(request)
            response.headers["x-request-id"] = request_id
            return response
        finally:
            request_id_var.reset(token)
