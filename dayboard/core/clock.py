"""Date/time helpers shared by the core.

Instants are written as UTC ISO strings with millisecond precision and a
trailing "Z" so that they sort lexicographically in the store.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Format an instant as e.g. "2024-01-10T08:30:00.000Z"."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """Parse an ISO date or instant. Naive values are taken as UTC.

    Raises ValueError on malformed input.
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def date_part(value: str) -> date:
    """Calendar date of an ISO date/instant string, as written."""
    return date.fromisoformat(value[:10])


def time_part(value: str) -> str:
    """Time-of-day suffix of an ISO instant ("08:00:00.000Z"), or the value itself."""
    if "T" in value:
        return value.split("T", 1)[1]
    return value


def local_today(tz_name: str | None = None) -> date:
    """Today's date in the configured timezone."""
    if tz_name is None:
        from dayboard.config import settings
        tz_name = settings.TIMEZONE
    return datetime.now(ZoneInfo(tz_name)).date()


def day_bounds(day: date) -> tuple[str, str]:
    """[start, next-day start) instants for a calendar day, as store strings."""
    nxt = day + timedelta(days=1)
    return f"{day.isoformat()}T00:00:00.000Z", f"{nxt.isoformat()}T00:00:00.000Z"


def whole_hours(start: datetime, end: datetime) -> int:
    """Hours between two instants, truncated toward zero."""
    return int((end - start).total_seconds() / 3600)
