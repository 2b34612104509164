"""Timezone-aware datetime helpers.

Timestamps read back from SQLite come out naive even when the column is
declared with ``timezone=True``; ``ensure_utc`` normalizes them so they can
be compared with ``utc_now()``.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current UTC datetime with timezone info."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
