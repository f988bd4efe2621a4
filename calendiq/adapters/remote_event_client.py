"""Remote event API client — implements RemoteEventPort over HTTP.

Stateless: no local copy, no retry queue. Every request is bounded by a
short timeout and every failure (transport, timeout, non-2xx status, or a
`success: false` envelope) is raised as RemoteSyncError for the caller to
absorb.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx

from calendiq.core.dates import format_instant
from calendiq.core.errors import RemoteSyncError
from calendiq.data.models import Event, changes_to_dict, event_from_dict, event_to_dict

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 5


class HttpRemoteEventClient:
    """HTTP implementation of RemoteEventPort.

    Args:
        base_url: API root, e.g. "http://localhost:8000/api".
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests, in-process ASGI apps).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = _TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url, timeout=self._timeout, transport=self._transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict:
        try:
            async with self._client() as client:
                resp = await client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Remote %s %s failed: %s", method, path, exc)
            raise RemoteSyncError(f"{method} {path} failed: {exc}") from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if resp.is_error or data.get("success") is False:
            error = data.get("error") or resp.reason_phrase
            logger.warning("Remote %s %s returned %d: %s", method, path, resp.status_code, error)
            raise RemoteSyncError(f"{method} {path} returned {resp.status_code}: {error}")
        return data

    @staticmethod
    def _event_from(data: dict, method: str, path: str) -> Event:
        raw = data.get("event")
        if not isinstance(raw, dict):
            raise RemoteSyncError(f"{method} {path}: response has no event")
        try:
            return event_from_dict(raw)
        except (TypeError, ValueError) as exc:
            raise RemoteSyncError(f"{method} {path}: malformed event: {exc}") from exc

    async def list_events(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        tags: list[str] | None = None,
    ) -> list[Event]:
        params: dict[str, str] = {}
        if start_date is not None:
            params["startDate"] = format_instant(start_date)
        if end_date is not None:
            params["endDate"] = format_instant(end_date)
        if tags:
            params["tags"] = ",".join(tags)

        data = await self._request("GET", "/events", params=params)
        try:
            events = [event_from_dict(raw) for raw in data.get("events", [])]
        except (TypeError, ValueError) as exc:
            raise RemoteSyncError(f"GET /events: malformed event: {exc}") from exc
        logger.info("Fetched %d remote event(s)", len(events))
        return events

    async def get_event(self, event_id: str) -> Event:
        path = f"/events/{event_id}"
        return self._event_from(await self._request("GET", path), "GET", path)

    async def create_event(self, event: Event) -> Event:
        data = await self._request("POST", "/events", json=event_to_dict(event))
        created = self._event_from(data, "POST", "/events")
        logger.info("Remote event created: %s", created.id)
        return created

    async def update_event(self, event_id: str, changes: dict[str, Any]) -> Event:
        path = f"/events/{event_id}"
        data = await self._request("PUT", path, json=changes_to_dict(changes))
        logger.info("Remote event updated: %s", event_id)
        return self._event_from(data, "PUT", path)

    async def delete_event(self, event_id: str) -> None:
        await self._request("DELETE", f"/events/{event_id}")
        logger.info("Remote event deleted: %s", event_id)

    async def health_check(self) -> bool:
        """True when the event list endpoint answers 2xx. Never raises."""
        try:
            async with self._client() as client:
                resp = await client.get("/events")
            return resp.is_success
        except httpx.HTTPError as exc:
            logger.info("Remote health check failed: %s", exc)
            return False
