"""
Calendiq — Event Conflict Checker.

Warns about double-booked time ranges. Detection only: nothing here moves,
cancels or rejects an event.

Works on whatever event list the caller hands in (normally the coordinator's
in-memory mirror), so results are only as fresh as that list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from calendiq.core.dates import parse_instant
from calendiq.data.models import Event, EventStatus

logger = logging.getLogger(__name__)


def intervals_overlap(
    start1: str | datetime,
    end1: str | datetime,
    start2: str | datetime,
    end2: str | datetime,
) -> bool:
    """Half-open [start1, end1) vs [start2, end2). Touching ends do not overlap.

    Symmetric in its two ranges.
    """
    return (
        parse_instant(start1) < parse_instant(end2)
        and parse_instant(end1) > parse_instant(start2)
    )


@dataclass
class ConflictResult:
    """Result of a conflict check against a list of events."""

    has_conflict: bool
    conflicting_events: list[Event] = field(default_factory=list)


def detect_conflicts(
    events: Iterable[Event],
    start: str | datetime,
    end: str | datetime,
    exclude_event_id: str | None = None,
) -> list[Event]:
    """Return every event that overlaps the candidate range.

    Cancelled events and the event being edited (exclude_event_id) are never
    reported. All-day events are compared by their stored instants like any
    other event. Input order is preserved.
    """
    start_dt = parse_instant(start)
    end_dt = parse_instant(end)

    conflicting = []
    for ev in events:
        if exclude_event_id and ev.id == exclude_event_id:
            continue
        if ev.status == EventStatus.CANCELLED:
            continue
        if intervals_overlap(start_dt, end_dt, ev.start, ev.end or ev.start):
            conflicting.append(ev)

    if conflicting:
        logger.debug(
            "%d conflict(s) for %s–%s: %s",
            len(conflicting), start_dt.isoformat(), end_dt.isoformat(),
            ", ".join(ev.title for ev in conflicting),
        )
    return conflicting


def has_conflict(
    events: Iterable[Event],
    start: str | datetime,
    end: str | datetime,
    exclude_event_id: str | None = None,
) -> bool:
    return len(detect_conflicts(events, start, end, exclude_event_id)) > 0


def check_conflict(
    events: Iterable[Event],
    start: str | datetime,
    end: str | datetime,
    exclude_event_id: str | None = None,
) -> ConflictResult:
    """Bundle the conflicting events with a has_conflict flag for the UI."""
    conflicting = detect_conflicts(events, start, end, exclude_event_id)
    return ConflictResult(has_conflict=bool(conflicting), conflicting_events=conflicting)
