"""Calendiq error taxonomy.

Local-path errors (validation, not-found, storage) reach the caller.
RemoteSyncError is absorbed by the coordinator after the local commit.
"""

from __future__ import annotations


class CalendiqError(Exception):
    """Base class for every error raised by Calendiq."""


class ValidationError(CalendiqError):
    """Create/update input rejected before any storage write."""


class NotFoundError(CalendiqError):
    """An update or delete referenced an unknown record."""

    def __init__(self, record_id: str, kind: str = "Event") -> None:
        super().__init__(f"{kind} {record_id} not found")
        self.record_id = record_id


class StorageError(CalendiqError):
    """The local persistence layer failed."""


class RemoteSyncError(CalendiqError):
    """A call against the remote event API failed."""


class OfflineError(CalendiqError):
    """An operation that needs the network was attempted while offline."""


class AssistantError(CalendiqError):
    """The assistant endpoint failed or returned an unusable action."""
