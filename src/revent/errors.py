"""Domain errors for the revent service.

These are raised by the cache, scheduler and classifier layers. The API
layer maps them to HTTP responses in ``revent.api.errors``.
"""

from __future__ import annotations


class ReventError(Exception):
    """Base class for all revent domain errors."""


class OriginUnavailable(ReventError):
    """The content origin could not be reached or refused to answer.

    Covers network failures, timeouts, rate limiting and 5xx responses.
    Triggers stale fallback when a cache entry exists.
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class OriginNotFound(ReventError):
    """The origin reports that the requested resource does not exist."""

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"Resource '{resource}' does not exist at the origin")


class TaskAlreadyExists(ReventError):
    """A task with the same deterministic name is already stored."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Task '{name}' already exists")


class TaskStoreUnavailable(ReventError):
    """The task store failed for a reason other than a name collision."""


class ClassificationAmbiguous(ReventError):
    """A list removal could not be attributed to a single element.

    Raised when every element of the previous list still has a structurally
    equal counterpart in the new list, e.g. one of two identical items was
    removed.
    """

    def __init__(self, field: str, before_count: int, after_count: int):
        self.field = field
        self.before_count = before_count
        self.after_count = after_count
        super().__init__(
            f"Cannot determine removed element of '{field}' "
            f"({before_count} -> {after_count} items)"
        )


class EntityNotFound(ReventError):
    """A mirrored document does not exist."""

    def __init__(self, collection: str, document_id: str):
        self.collection = collection
        self.document_id = document_id
        super().__init__(f"{collection}/{document_id} not found")


class UnknownCollection(ReventError):
    """Writes to this collection are not ingested."""

    def __init__(self, collection: str):
        self.collection = collection
        super().__init__(f"Collection '{collection}' is not tracked")
