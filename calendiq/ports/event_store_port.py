"""Event store port — abstract interface for the local event table.

The coordinator depends on this protocol, never on a specific storage engine.
Implementations raise NotFoundError for unknown ids and StorageError for
engine failures.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from calendiq.data.models import Event, EventDraft, EventFilter


class EventStorePort(Protocol):
    """Key-indexed event table with secondary-index range queries."""

    def create(self, draft: EventDraft) -> Event: ...

    def update(self, event_id: str, changes: dict[str, Any]) -> Event: ...

    def delete(self, event_id: str) -> None: ...

    def get_by_id(self, event_id: str) -> Event | None: ...

    def get_all(self) -> list[Event]: ...

    def get_by_date_range(self, start: datetime, end: datetime) -> list[Event]: ...

    def query(self, event_filter: EventFilter) -> list[Event]: ...
