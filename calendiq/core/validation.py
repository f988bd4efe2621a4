"""
Calendiq — Event input validation.

Normalizes user/assistant/API input into typed event fields and enforces the
event invariants before anything touches storage:
- title is a non-empty string
- start and end are instants and end is strictly after start
- enums and reminder offsets take one of their allowed values
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable

from calendiq.core.dates import parse_instant
from calendiq.core.errors import ValidationError
from calendiq.data.models import (
    DRAFT_FIELDS,
    REMINDER_OPTIONS,
    EventCategory,
    EventDraft,
    EventPriority,
    EventStatus,
    to_snake,
)


def _instant(value: Any):
    try:
        return parse_instant(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid date/time: {value!r}") from exc


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"Expected text, got {value!r}")
    return value


def _text(value: Any) -> str:
    return _optional_text(value) or ""


def _flag(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"Expected true/false, got {value!r}")
    return value


def _optional_flag(value: Any) -> bool | None:
    return None if value is None else _flag(value)


def _labels(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple, set)) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"Expected a list of labels, got {value!r}")
    return list(value)


def _enum(enum_cls):
    def coerce(value: Any):
        if value is None or value == "":
            return None
        try:
            return enum_cls(value)
        except ValueError as exc:
            allowed = ", ".join(m.value for m in enum_cls)
            raise ValidationError(f"Invalid {enum_cls.__name__} {value!r} (allowed: {allowed})") from exc
    return coerce


def _reminder(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value not in REMINDER_OPTIONS:
        raise ValidationError(f"Invalid reminder {value!r}, expected one of {REMINDER_OPTIONS}")
    return value


def _confidence(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0 <= value <= 1:
        raise ValidationError(f"Invalid categorization confidence {value!r}")
    return float(value)


_COERCERS: dict[str, Callable[[Any], Any]] = {
    "title": _text,
    "start": _instant,
    "end": _instant,
    "all_day": _flag,
    "description": _text,
    "location": _text,
    "color": _optional_text,
    "tags": _labels,
    "priority": _enum(EventPriority),
    "status": _enum(EventStatus),
    "category": _enum(EventCategory),
    "category_color": _optional_text,
    "auto_categorization_confidence": _confidence,
    "rrule": _optional_text,
    "recurring_event_id": _optional_text,
    "exception_dates": _labels,
    "is_recurring": _optional_flag,
    "reminder": _reminder,
    "notification_sent": _flag,
}

# Never writable through update; silently dropped like the remote API does.
_IMMUTABLE = {"id", "created_at", "updated_at"}


def coerce_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Map camelCase/snake_case input onto typed draft fields.

    Raises ValidationError on unknown fields or bad values.
    """
    coerced: dict[str, Any] = {}
    for key, value in data.items():
        name = to_snake(key)
        if name in _IMMUTABLE:
            continue
        if name not in _COERCERS:
            raise ValidationError(f"Unknown event field: {key!r}")
        coerced[name] = _COERCERS[name](value)
    return coerced


def validate_draft(draft: EventDraft) -> EventDraft:
    """Check the event invariants; returns the draft unchanged."""
    if not draft.title or not draft.title.strip():
        raise ValidationError("Title is required")
    if draft.start is None:
        raise ValidationError("Start is required")
    if draft.end is None:
        raise ValidationError("End is required")
    if draft.end <= draft.start:
        raise ValidationError("End must be after start")
    return draft


def draft_from_dict(data: dict[str, Any]) -> EventDraft:
    """Build and validate an EventDraft from wire or form input."""
    values = coerce_fields(data)
    for required in ("title", "start", "end"):
        if values.get(required) in (None, ""):
            raise ValidationError(f"{required.title()} is required")
    return validate_draft(EventDraft(**values))


def normalize_draft(draft: EventDraft) -> EventDraft:
    """Re-coerce a caller-built draft (e.g. naive datetimes) and validate it."""
    values = {name: getattr(draft, name) for name in DRAFT_FIELDS}
    if values["start"] is None or values["end"] is None:
        raise ValidationError("Start and end are required")
    return validate_draft(EventDraft(**coerce_fields(values)))


def apply_updates(
    current: EventDraft, updates: dict[str, Any],
) -> tuple[EventDraft, dict[str, Any]]:
    """Return (merged record, coerced changes) after validating the merge."""
    changes = coerce_fields(updates)
    merged = replace(current, **changes)
    validate_draft(merged)
    return merged, changes

