"""Remote event port — abstract interface for the remote event mirror.

The coordinator depends on this protocol, never on a specific transport.
Every method raises RemoteSyncError on failure.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from calendiq.data.models import Event


class RemoteEventPort(Protocol):
    """Stateless mirror of the local event table."""

    async def list_events(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        tags: list[str] | None = None,
    ) -> list[Event]: ...

    async def get_event(self, event_id: str) -> Event: ...

    async def create_event(self, event: Event) -> Event: ...

    async def update_event(self, event_id: str, changes: dict[str, Any]) -> Event: ...

    async def delete_event(self, event_id: str) -> None: ...

    async def health_check(self) -> bool: ...
