"""Utility functions for ProManager."""

from datetime import UTC, datetime, time, timedelta


def utc_now() -> datetime:
    """
    Get the current time.

    Returns:
        Timezone-aware datetime in UTC

    """
    return datetime.now(tz=UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Normalize a datetime to timezone-aware UTC.

    Args:
        dt: Datetime object; naive values are taken as UTC

    Returns:
        Timezone-aware datetime in UTC, or None

    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_utc_iso(dt: datetime | None) -> str | None:
    """
    Convert datetime to a fixed-width RFC 3339 string in UTC.

    The result always has microsecond precision and a ``+00:00`` offset, e.g.
    ``2024-01-15T10:30:45.000000+00:00``.

    Args:
        dt: Datetime object to convert, or None

    Returns:
        RFC 3339 string, or None

    """
    if dt is None:
        return None
    # If datetime is naive, assume it's already UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def from_utc_iso(iso_str: str | None) -> datetime | None:
    """
    Parse an RFC 3339 / ISO 8601 string to a UTC datetime.

    Args:
        iso_str: ISO format string, or None

    Returns:
        Timezone-aware datetime in UTC, or None

    """
    if iso_str is None:
        return None
    dt = datetime.fromisoformat(iso_str)
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


def day_start(dt: datetime, days: int = 0) -> datetime:
    """
    Get midnight UTC of the calendar day of ``dt``, shifted by ``days``.

    Args:
        dt: Any datetime; naive values are taken as UTC

    Keyword Args:
        days: Number of days to shift the result by

    Returns:
        Timezone-aware datetime at 00:00:00 UTC

    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    day = dt.astimezone(UTC).date() + timedelta(days=days)
    return datetime.combine(day, time.min, tzinfo=UTC)


def today_window(now: datetime) -> tuple[datetime, datetime]:
    """
    Half-open window covering the UTC calendar day of ``now``.

    Args:
        now: The current time

    Returns:
        ``(start, end)`` where ``start <= due < end`` means "due today"

    """
    return day_start(now), day_start(now, 1)


def upcoming_window(now: datetime, days: int = 7) -> tuple[datetime, datetime]:
    """
    Half-open window covering the ``days`` full UTC days after today.

    Args:
        now: The current time

    Keyword Args:
        days: How many days after today to include

    Returns:
        ``(start, end)`` from tomorrow 00:00:00 up to, but excluding, the
        midnight that follows the last included day

    """
    return day_start(now, 1), day_start(now, days + 1)
