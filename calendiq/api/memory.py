"""In-memory repository backing the remote event API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from calendiq.core.dates import parse_instant


class EventRepository:
    """Dict-backed store for wire-form event records, keyed by id.

    Records are kept exactly as clients sent them (camelCase keys) plus the
    server-managed id and timestamps.
    """

    def __init__(self) -> None:
        self._store: dict[str, dict[str, Any]] = {}

    def add(self, record: dict[str, Any]) -> None:
        self._store[record["id"]] = record

    def get(self, event_id: str) -> dict[str, Any] | None:
        return self._store.get(event_id)

    def list_all(self) -> list[dict[str, Any]]:
        return list(self._store.values())

    def list_filtered(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        tags: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Records whose start lies in [start_date, end_date] and that carry any of `tags`."""
        records = self.list_all()
        if start_date is not None and end_date is not None:
            records = [
                r for r in records
                if start_date <= parse_instant(r["start"]) <= end_date
            ]
        if tags:
            wanted = set(tags)
            records = [r for r in records if wanted.intersection(r.get("tags") or [])]
        return records

    def replace(self, event_id: str, record: dict[str, Any]) -> None:
        self._store[event_id] = record

    def delete(self, event_id: str) -> bool:
        return self._store.pop(event_id, None) is not None

    def clear(self) -> None:
        self._store.clear()
