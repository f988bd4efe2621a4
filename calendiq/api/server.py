"""FastAPI application — the remote event API and the assistant endpoint.

Every response uses the `{success, ...}` envelope the client expects, so
routes return JSONResponse directly instead of relying on HTTPException.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from calendiq.api.memory import EventRepository
from calendiq.core.dates import format_instant, parse_instant, utcnow
from calendiq.core.errors import AssistantError
from calendiq.core.parser import parse_assistant_message
from calendiq.data.models import new_event_id

logger = logging.getLogger(__name__)


def _ok(status_code: int = 200, **body: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": True, **body})


def _fail(status_code: int, error: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": False, "error": error, **extra},
    )


def _internal_error(exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error in events API: %s", exc)
    return _fail(500, "Internal server error", message=str(exc))


async def _json_object(request: Request) -> dict[str, Any] | None:
    """Request body as a dict, or None when it is missing or not a JSON object."""
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _invalid_dates(data: dict[str, Any]) -> str | None:
    """Error message for a `start` or `end` in the body that is not an instant."""
    for key in ("start", "end"):
        if key not in data:
            continue
        try:
            parse_instant(data[key])
        except (TypeError, ValueError) as exc:
            return f"Invalid {key} date: {exc}"
    return None


def create_app(repo: EventRepository | None = None) -> FastAPI:
    """Build the API app. A fresh in-memory repository is used unless one is given."""
    app = FastAPI(title="Calendiq Events API")
    repo = repo if repo is not None else EventRepository()
    app.state.repo = repo

    # ── Events ────────────────────────────────────────────────────────

    @app.get("/api/events")
    def list_events(
        start_date: str | None = Query(None, alias="startDate"),
        end_date: str | None = Query(None, alias="endDate"),
        tags: str | None = None,
    ) -> JSONResponse:
        try:
            start = parse_instant(start_date) if start_date else None
            end = parse_instant(end_date) if end_date else None
        except ValueError as exc:
            return _fail(400, f"Invalid date filter: {exc}")

        try:
            tag_list = [t for t in tags.split(",") if t] if tags else None
            events = repo.list_filtered(start, end, tag_list)
        except Exception as exc:
            return _internal_error(exc)
        return _ok(events=events, count=len(events))

    @app.post("/api/events")
    async def create_event(request: Request) -> JSONResponse:
        data = await _json_object(request)
        if not data or not data.get("title") or not data.get("start"):
            return _fail(400, "Title and start date are required")
        error = _invalid_dates(data)
        if error:
            return _fail(400, error)

        try:
            now = format_instant(utcnow())
            record = {
                **data,
                "id": data.get("id") or new_event_id(),
                "createdAt": data.get("createdAt") or now,
                "updatedAt": now,
            }
            repo.add(record)
        except Exception as exc:
            return _internal_error(exc)

        logger.info("Created event: %s", record["id"])
        return _ok(201, event=record)

    @app.get("/api/events/{event_id}")
    def get_event(event_id: str) -> JSONResponse:
        record = repo.get(event_id)
        if record is None:
            return _fail(404, "Event not found")
        return _ok(event=record)

    @app.put("/api/events/{event_id}")
    async def update_event(event_id: str, request: Request) -> JSONResponse:
        current = repo.get(event_id)
        if current is None:
            return _fail(404, "Event not found")
        updates = await _json_object(request)
        if updates is None:
            return _fail(400, "Request body must be a JSON object")
        if "title" in updates and not updates["title"]:
            return _fail(400, "Title cannot be empty")
        error = _invalid_dates(updates)
        if error:
            return _fail(400, error)

        try:
            record = {
                **current,
                **updates,
                "id": event_id,
                "updatedAt": format_instant(utcnow()),
            }
            repo.replace(event_id, record)
        except Exception as exc:
            return _internal_error(exc)

        logger.info("Updated event: %s", event_id)
        return _ok(event=record)

    @app.delete("/api/events/{event_id}")
    def delete_event(event_id: str) -> JSONResponse:
        if not repo.delete(event_id):
            return _fail(404, "Event not found")
        logger.info("Deleted event: %s", event_id)
        return _ok(message="Event deleted successfully")

    # ── Assistant ─────────────────────────────────────────────────────

    @app.post("/api/ai")
    async def assistant(request: Request) -> JSONResponse:
        data = await _json_object(request)
        message = (data or {}).get("message")
        if not isinstance(message, str) or not message.strip():
            return _fail(400, "Message is required")

        try:
            reply = await parse_assistant_message(message)
        except AssistantError as exc:
            logger.error("Assistant request failed: %s", exc)
            return _fail(500, "Failed to process AI request", details=str(exc))

        return _ok(
            action=reply.action.model_dump(by_alias=True, exclude_none=True),
            message=reply.message,
        )

    return app
