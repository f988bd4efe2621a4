"""
Calendiq — Assistant action contract.

Shared JSON contract between the assistant endpoint (server side, LLM backed)
and the coordinator (client side). One reply carries exactly one action,
discriminated by its "type" tag.

JSON example:
{
    "action": {
        "type": "CREATE_EVENT",
        "payload": {"title": "Dentist", "start": "2026-02-24T14:00:00.000Z",
                    "end": "2026-02-24T15:00:00.000Z", "category": "health"}
    },
    "message": "Added your dentist appointment."
}
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from calendiq.core.dates import parse_instant
from calendiq.core.errors import ValidationError
from calendiq.data.models import EventCategory, EventFilter, EventPriority, EventStatus


class CreateEventPayload(BaseModel):
    """Event fields the assistant may fill in when creating."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    start: str          # ISO 8601
    end: str            # ISO 8601
    description: str | None = None
    location: str | None = None
    all_day: bool | None = Field(default=None, alias="allDay")
    category: Literal["work", "personal", "health", "social", "finance", "education"] | None = None
    category_color: str | None = Field(default=None, alias="categoryColor")
    reminder: int | None = None      # minutes before event
    priority: Literal["low", "medium", "high"] | None = None

    def to_event_fields(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class CreateEventAction(BaseModel):
    type: Literal["CREATE_EVENT"] = "CREATE_EVENT"
    payload: CreateEventPayload


class UpdateEventAction(BaseModel):
    type: Literal["UPDATE_EVENT"] = "UPDATE_EVENT"
    id: str
    payload: dict[str, Any]


class DeleteEventAction(BaseModel):
    type: Literal["DELETE_EVENT"] = "DELETE_EVENT"
    id: str


class QueryEventsAction(BaseModel):
    type: Literal["QUERY_EVENTS"] = "QUERY_EVENTS"
    filter: dict[str, Any] | None = None

    def to_event_filter(self) -> EventFilter:
        """Translate the loosely-typed filter into an EventFilter.

        Accepts: category, priority, status, tags, isRecurring and
        dateRange {start, end}.
        """
        raw = self.filter or {}
        try:
            date_range = None
            if raw.get("dateRange"):
                date_range = (
                    parse_instant(raw["dateRange"]["start"]),
                    parse_instant(raw["dateRange"]["end"]),
                )
            return EventFilter(
                category=EventCategory(raw["category"]) if raw.get("category") else None,
                priority=EventPriority(raw["priority"]) if raw.get("priority") else None,
                status=EventStatus(raw["status"]) if raw.get("status") else None,
                date_range=date_range,
                tags=list(raw.get("tags") or []),
                is_recurring=raw.get("isRecurring"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid query filter {raw!r}: {exc}") from exc


class NoAction(BaseModel):
    type: Literal["NO_ACTION"] = "NO_ACTION"
    message: str


AssistantAction = Annotated[
    Union[CreateEventAction, UpdateEventAction, DeleteEventAction, QueryEventsAction, NoAction],
    Field(discriminator="type"),
]


class AssistantReply(BaseModel):
    """What the assistant endpoint returns for one chat message."""

    action: AssistantAction
    message: str = ""
