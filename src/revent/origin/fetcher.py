"""Conditional HTTP fetcher.

Performs GET requests against a content origin, sending the stored validator
as ``If-None-Match`` and recognizing ``304 Not Modified``. Transport errors
and non-success responses are mapped to domain errors:

- timeouts, connection errors, 403/429 and 5xx -> OriginUnavailable
- 404 -> OriginNotFound
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

from revent.errors import OriginNotFound, OriginUnavailable

logger = logging.getLogger(__name__)

RATE_LIMIT_STATUSES = frozenset({403, 429})


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Outcome of a successful origin fetch."""

    not_modified: bool
    payload: Any = None
    validator: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


class Fetcher(ABC):
    """Abstract origin fetcher used by the revalidation cache."""

    @abstractmethod
    async def fetch(self, resource: str, validator: str | None = None) -> FetchResult:
        """Fetch ``resource``, conditionally if ``validator`` is given."""


class HttpFetcher(Fetcher):
    """Fetcher backed by a shared ``httpx.AsyncClient``.

    The client is owned by the caller; its timeout bounds every request.
    Subclasses map a resource name to a URL and parse the response body.
    """

    def __init__(self, client: httpx.AsyncClient, headers: dict[str, str] | None = None):
        self.client = client
        self.headers = dict(headers or {})

    @abstractmethod
    def url_for(self, resource: str) -> str:
        """Return the absolute URL for ``resource``."""

    def parse(self, response: httpx.Response) -> tuple[Any, dict[str, Any]]:
        """Return (payload, metadata) for a 200 response."""
        return response.json(), {}

    async def fetch(self, resource: str, validator: str | None = None) -> FetchResult:
        url = self.url_for(resource)
        headers = dict(self.headers)
        if validator:
            headers["If-None-Match"] = validator

        try:
            response = await self.client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            raise OriginUnavailable(f"Timed out fetching {url}") from e
        except httpx.RequestError as e:
            raise OriginUnavailable(f"Request to {url} failed: {e}") from e

        status = response.status_code

        if status == 304:
            if not validator:
                raise OriginUnavailable(f"Unexpected 304 for unconditional GET {url}", status)
            return FetchResult(not_modified=True, validator=validator)

        if status == 404:
            raise OriginNotFound(resource)

        if status in RATE_LIMIT_STATUSES:
            raise OriginUnavailable("Origin rate limit exceeded or invalid token", status)

        if status != 200:
            raise OriginUnavailable(f"Origin returned HTTP {status} for {url}", status)

        try:
            payload, metadata = self.parse(response)
        except ValueError as e:
            raise OriginUnavailable(f"Malformed response from {url}: {e}", status) from e

        return FetchResult(
            not_modified=False,
            payload=payload,
            validator=response.headers.get("etag", ""),
            metadata=metadata,
        )
