"""
Calendiq — Date utilities.

Every instant is stored and compared as a timezone-aware UTC datetime and
serialized as ISO-8601 with millisecond precision and a "Z" suffix, so the
text form sorts the same way the instants do.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone


def utcnow() -> datetime:
    """Current instant at the millisecond precision instants are stored with."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def parse_instant(value: str | datetime) -> datetime:
    """Normalize an ISO string or datetime to an aware UTC datetime.

    Naive values are interpreted as UTC. Raises ValueError on unparseable text.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Unsupported instant value: {value!r}")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_instant(value: datetime) -> str:
    """Serialize an instant as e.g. 2026-02-24T09:00:00.000Z."""
    dt = parse_instant(value)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def start_of_day(day: date | datetime) -> datetime:
    if isinstance(day, datetime):
        day = parse_instant(day).date()
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def end_of_day(day: date | datetime) -> datetime:
    if isinstance(day, datetime):
        day = parse_instant(day).date()
    return datetime.combine(day, time(23, 59, 59, 999000), tzinfo=timezone.utc)
