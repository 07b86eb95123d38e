"""Datetime helpers shared across the application."""

from __future__ import annotations

from datetime import UTC, datetime, tzinfo
from zoneinfo import ZoneInfo

__all__ = [
    "ensure_utc",
    "parse_datetime",
    "serialize_datetime",
    "to_utc_date",
    "resolve_timezone",
]


def ensure_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` converted to UTC, treating naive values as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_datetime(value: str | None) -> datetime | None:
    """Parse an ISO 8601 / RFC 3339 string into an aware ``datetime``."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    return ensure_utc(parsed)


def serialize_datetime(value: datetime | None) -> str | None:
    """Serialise ``value`` to ISO 8601 in UTC."""
    if value is None:
        return None
    normalized = ensure_utc(value) or value
    return normalized.isoformat()


def to_utc_date(value: datetime) -> str:
    """Format ``value`` as a JMAP ``UTCDate`` (``YYYY-MM-DDTHH:MM:SSZ``)."""
    normalized = ensure_utc(value) or value
    return normalized.strftime("%Y-%m-%dT%H:%M:%SZ")


def resolve_timezone(name: str) -> tzinfo:
    """Return the timezone for ``name``; ``UTC`` never needs tzdata."""
    if name.upper() == "UTC":
        return UTC
    return ZoneInfo(name)
