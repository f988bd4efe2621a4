"""
Calendiq — Data Models.

Three independent local tables: events, the singleton user profile, and the
append-only chat log. Events are the only records mutated in place.

The wire form used by the remote API is camelCase JSON with instants as
ISO-8601 UTC strings.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any

from calendiq.core.dates import format_instant, parse_instant, utcnow


class EventCategory(str, Enum):
    WORK = "work"
    PERSONAL = "personal"
    HEALTH = "health"
    SOCIAL = "social"
    FINANCE = "finance"
    EDUCATION = "education"
    CUSTOM = "custom"


class EventStatus(str, Enum):
    CONFIRMED = "confirmed"
    TENTATIVE = "tentative"
    CANCELLED = "cancelled"


class EventPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Minutes before start: none/at time, 5m, 10m, 15m, 30m, 1h, 1 day
REMINDER_OPTIONS: tuple[int, ...] = (0, 5, 10, 15, 30, 60, 1440)


def new_event_id() -> str:
    return str(uuid.uuid4())


@dataclass
class EventDraft:
    """Everything about an event except its identity and lifecycle stamps."""

    title: str
    start: datetime
    end: datetime
    all_day: bool = False
    description: str = ""
    location: str = ""

    # Visual & organization
    color: str | None = None
    tags: list[str] = field(default_factory=list)
    priority: EventPriority | None = None
    status: EventStatus | None = None
    category: EventCategory | None = None
    category_color: str | None = None
    auto_categorization_confidence: float | None = None  # 0..1, set by the assistant

    # Recurrence metadata: stored and filterable, never expanded
    rrule: str | None = None
    recurring_event_id: str | None = None
    exception_dates: list[str] = field(default_factory=list)
    is_recurring: bool | None = None

    # Reminders
    reminder: int | None = None          # minutes before start, see REMINDER_OPTIONS
    notification_sent: bool = False


@dataclass
class Event(EventDraft):
    """A stored calendar event."""

    id: str = field(default_factory=new_event_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


# Fields a caller may set on create or change on update.
DRAFT_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(EventDraft))

_INSTANT_FIELDS = {"start", "end", "created_at", "updated_at"}
_ENUM_FIELDS: dict[str, type[Enum]] = {
    "category": EventCategory,
    "status": EventStatus,
    "priority": EventPriority,
}


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_snake(name: str) -> str:
    out = []
    for ch in name:
        if ch.isupper():
            out.append("_")
            out.append(ch.lower())
        else:
            out.append(ch)
    return "".join(out)


def _wire_value(name: str, value: Any) -> Any:
    if value is None:
        return None
    if name in _INSTANT_FIELDS:
        return format_instant(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return list(value)
    return value


def event_to_dict(event: EventDraft) -> dict[str, Any]:
    """Serialize an Event (or EventDraft) to its camelCase wire form."""
    return {
        to_camel(f.name): _wire_value(f.name, getattr(event, f.name))
        for f in fields(event)
    }


def changes_to_dict(changes: dict[str, Any]) -> dict[str, Any]:
    """Serialize typed partial field changes to their wire form."""
    return {to_camel(name): _wire_value(name, value) for name, value in changes.items()}


def event_from_dict(data: dict[str, Any]) -> Event:
    """Build an Event from its wire form (camelCase or snake_case keys).

    Values are trusted: this reads records that were already validated.
    """
    known = {f.name for f in fields(Event)}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        name = to_snake(key)
        if name not in known:
            continue
        if value is not None and name in _INSTANT_FIELDS:
            value = parse_instant(value)
        elif value is not None and name in _ENUM_FIELDS:
            value = _ENUM_FIELDS[name](value)
        elif value is None and name in ("tags", "exception_dates"):
            value = []
        kwargs[name] = value
    return Event(**kwargs)


@dataclass
class EventFilter:
    """Criteria for EventDB.query; every criterion set must hold."""

    category: EventCategory | None = None
    priority: EventPriority | None = None
    status: EventStatus | None = None
    date_range: tuple[datetime, datetime] | None = None   # on start, inclusive
    tags: list[str] = field(default_factory=list)         # any tag matches
    is_recurring: bool | None = None


@dataclass
class UserProfile:
    """The single local user. Always stored under id 1."""

    first_name: str
    last_name: str
    birth_date: str        # ISO date YYYY-MM-DD
    pin_hash: str          # SHA-256 hex of the 4-digit PIN
    created_at: str = ""
    locale: str = "en"
    theme: str = "system"
    id: int = 1


@dataclass
class ChatMessage:
    """One assistant exchange. Never mutated after creation."""

    id: str
    user_message: str
    timestamp: datetime
    ai_response: str | None = None
    action_type: str | None = None     # CREATE_EVENT, UPDATE_EVENT, ..., ERROR
    action_payload: Any = None
