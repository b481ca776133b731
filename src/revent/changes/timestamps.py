"""Parsing of entity timestamp fields.

Snapshots arrive as JSON, so a timestamp may be an ISO-8601 string, epoch
seconds, or a serialized Firestore timestamp (``{"seconds", "nanoseconds"}``
or the admin SDK's ``{"_seconds", "_nanoseconds"}``).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any


def _from_epoch(seconds: Any) -> datetime | None:
    # Out-of-range values (epoch milliseconds, inf, NaN) are not timestamps
    try:
        return datetime.fromtimestamp(seconds, tz=UTC)
    except (ValueError, OverflowError, OSError, TypeError):
        return None


def parse_instant(value: Any) -> datetime | None:
    """Return an aware UTC datetime, or None if ``value`` is not a timestamp."""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)

    if isinstance(value, (int, float)):
        return _from_epoch(value)

    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)

    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
            if not isinstance(nanos, (int, float)) or isinstance(nanos, bool):
                return None
            return _from_epoch(seconds + nanos / 1e9)

    return None
