"""
Firestore query and timestamp helpers.

NOTE: For firebase_admin SDK, we use positional arguments to `where`, which
still work. The deprecation warning is just a warning.
"""

from datetime import datetime, timezone
from typing import Any, Optional


def where_filter(query, field_path: str, op_string: str, value):
    """
    Helper function for Firestore queries.

    Usage:
        query = where_filter(collection, "status", "==", "pending")
        query = where_filter(query, "registered_at", ">=", one_hour_ago)
    """
    return query.where(field_path, op_string, value)


def utc_now() -> datetime:
    """Timezone-aware current time. All stored timestamps are UTC-aware."""
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so they compare with stored timestamps."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_datetime(value: Any) -> Any:
    """
    Convert a Firestore timestamp value to a plain datetime.

    Handles DatetimeWithNanoseconds (already a datetime), Timestamp objects
    exposing `to_datetime`, and ISO strings. Anything else is returned as-is.
    """
    if value is None or isinstance(value, datetime):
        return value
    if hasattr(value, "to_datetime"):
        return value.to_datetime()
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value
