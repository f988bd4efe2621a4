"""
Calendiq — Event Coordinator.

Single entry point for every event mutation, under an offline-first policy:

1. validate the input (ValidationError, nothing written)
2. write the Local Event Store and await it (errors propagate)
3. update the in-memory mirror and return to the caller
4. if online, push the change to the remote API in a detached task whose
   failure is logged and recorded, never raised, retried or rolled back

The caller's result resolves at step 3. Remote pushes for the same event id
run in the order their mutations were issued.

Also owns connectivity handling (health probe on reconnect) and the
assistant entry points, which require the network and fail fast offline.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from calendiq.core.actions import (
    AssistantReply,
    CreateEventAction,
    DeleteEventAction,
    QueryEventsAction,
    UpdateEventAction,
)
from calendiq.core.conflict_checker import ConflictResult, check_conflict, detect_conflicts
from calendiq.core.dates import end_of_day, start_of_day
from calendiq.core.errors import AssistantError, NotFoundError, OfflineError, ValidationError
from calendiq.core.validation import apply_updates, draft_from_dict, normalize_draft
from calendiq.data.models import Event, EventDraft

if TYPE_CHECKING:
    from calendiq.data.db import ChatDB
    from calendiq.ports.assistant_port import AssistantPort
    from calendiq.ports.connectivity_port import ConnectivityMonitor
    from calendiq.ports.event_store_port import EventStorePort
    from calendiq.ports.remote_port import RemoteEventPort

logger = logging.getLogger(__name__)

_RemoteCall = Callable[["RemoteEventPort"], Awaitable[Any]]


class SyncState(Enum):
    """Where the latest mutation of an event stands."""

    LOCAL_PENDING = "local_pending"
    LOCAL_COMMITTED = "local_committed"
    REMOTE_SKIPPED = "remote_skipped"      # offline, or no remote configured
    REMOTE_SUCCEEDED = "remote_succeeded"
    REMOTE_FAILED = "remote_failed"


@dataclass
class AssistantOutcome:
    """What a chat message did to the calendar."""

    reply: AssistantReply
    event: Event | None = None                               # created/updated event
    events: list[Event] = field(default_factory=list)        # QUERY_EVENTS results


class EventCoordinator:
    """Offline-first event mutations over an injected store and remote."""

    def __init__(
        self,
        store: EventStorePort,
        remote: RemoteEventPort | None = None,
        connectivity: ConnectivityMonitor | None = None,
        assistant: AssistantPort | None = None,
        chat_db: ChatDB | None = None,
    ) -> None:
        self._store = store
        self._remote = remote
        self._connectivity = connectivity
        self._assistant = assistant
        self._chat_db = chat_db

        self._events: dict[str, Event] = {}
        self._sync_states: dict[str, SyncState] = {}
        self._versions: dict[str, int] = {}
        self._pending: set[asyncio.Task] = set()
        self._tails: dict[str, asyncio.Task] = {}
        self._unsubscribe: Callable[[], None] | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load(self) -> list[Event]:
        """Fill the mirror from the store and start listening for connectivity."""
        if self._connectivity is not None and self._unsubscribe is None:
            self._unsubscribe = self._connectivity.subscribe(self._on_connectivity_change)
        return await self.refresh_events()

    async def refresh_events(self) -> list[Event]:
        events = await asyncio.to_thread(self._store.get_all)
        self._events = {ev.id: ev for ev in events}
        logger.info("Loaded %d event(s)", len(events))
        return self.events

    async def wait_for_sync(self) -> None:
        """Await every remote push in flight (shutdown and tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.wait_for_sync()

    # ------------------------------------------------------------------
    # Read-only projection
    # ------------------------------------------------------------------

    @property
    def events(self) -> list[Event]:
        """Snapshot of the mirror. Re-read after every mutation."""
        return [copy.deepcopy(ev) for ev in self._events.values()]

    def get_event_by_id(self, event_id: str) -> Event | None:
        event = self._events.get(event_id)
        return copy.deepcopy(event) if event is not None else None

    def events_on(self, day: date | datetime) -> list[Event]:
        """Events that overlap the given UTC day, by start."""
        first, last = start_of_day(day), end_of_day(day)
        return sorted(
            (copy.deepcopy(ev) for ev in self._events.values() if ev.start <= last and ev.end > first),
            key=lambda ev: (ev.start, ev.id),
        )

    def sync_state(self, event_id: str) -> SyncState | None:
        return self._sync_states.get(event_id)

    def is_online(self) -> bool:
        if self._connectivity is None:
            return True
        return self._connectivity.is_online()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_event(self, draft: EventDraft | dict[str, Any]) -> Event:
        """Commit a new event locally; mirror it remotely when online."""
        if isinstance(draft, dict):
            draft = draft_from_dict(draft)
        else:
            draft = normalize_draft(draft)

        event = await asyncio.to_thread(self._store.create, draft)
        self._events[event.id] = event
        version = self._commit(event.id)
        logger.info("Created event %s '%s'", event.id, event.title)

        self._dispatch_remote(event.id, version, "create", lambda remote: remote.create_event(event))
        return copy.deepcopy(event)

    async def update_event(self, event_id: str, updates: dict[str, Any]) -> Event:
        """Merge partial fields into an event; only those fields change."""
        current = await asyncio.to_thread(self._store.get_by_id, event_id)
        if current is None:
            raise NotFoundError(event_id)
        _, changes = apply_updates(current, updates)

        previous_state = self._sync_states.get(event_id)
        self._sync_states[event_id] = SyncState.LOCAL_PENDING
        try:
            updated = await asyncio.to_thread(self._store.update, event_id, changes)
        except Exception:
            self._restore_state(event_id, previous_state)
            raise
        self._events[event_id] = updated
        version = self._commit(event_id)
        logger.info("Updated event %s (%s)", event_id, ", ".join(sorted(changes)) or "no changes")

        self._dispatch_remote(
            event_id, version, "update", lambda remote: remote.update_event(event_id, changes),
        )
        return copy.deepcopy(updated)

    async def delete_event(self, event_id: str) -> None:
        """Delete locally; unknown ids raise NotFoundError and reach no remote."""
        previous_state = self._sync_states.get(event_id)
        self._sync_states[event_id] = SyncState.LOCAL_PENDING
        try:
            await asyncio.to_thread(self._store.delete, event_id)
        except Exception:
            self._restore_state(event_id, previous_state)
            raise
        self._events.pop(event_id, None)
        version = self._commit(event_id)
        logger.info("Deleted event %s", event_id)

        self._dispatch_remote(event_id, version, "delete", lambda remote: remote.delete_event(event_id))

    # ------------------------------------------------------------------
    # Conflicts (over the mirror)
    # ------------------------------------------------------------------

    def detect_conflicts(
        self,
        start: str | datetime,
        end: str | datetime,
        exclude_event_id: str | None = None,
    ) -> list[Event]:
        return detect_conflicts(self.events, start, end, exclude_event_id)

    def has_conflict(
        self,
        start: str | datetime,
        end: str | datetime,
        exclude_event_id: str | None = None,
    ) -> bool:
        return len(self.detect_conflicts(start, end, exclude_event_id)) > 0

    def check_conflict(
        self,
        start: str | datetime,
        end: str | datetime,
        exclude_event_id: str | None = None,
    ) -> ConflictResult:
        return check_conflict(self.events, start, end, exclude_event_id)

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    async def _on_connectivity_change(self, online: bool) -> None:
        if online:
            logger.info("Back online, probing remote event API")
            await self.reconcile()
        else:
            logger.info("Offline, remote sync paused")

    async def reconcile(self) -> bool:
        """Best-effort reconnect pass: a health probe, logged only.

        Pushing or pulling changes made while offline is not attempted.
        """
        if self._remote is None:
            return False
        try:
            healthy = await self._remote.health_check()
        except Exception as exc:
            logger.warning("Remote health probe failed: %s", exc)
            return False
        if healthy:
            logger.info("Remote event API reachable")
        else:
            logger.warning("Remote event API unhealthy")
        return healthy

    # ------------------------------------------------------------------
    # Assistant
    # ------------------------------------------------------------------

    async def create_event_from_text(self, text: str) -> Event:
        """Create an event from free text via the assistant.

        Needs the network: raises OfflineError when offline, without creating
        anything locally. Assistant failures propagate.
        """
        reply = await self._interpret(text)
        if not isinstance(reply.action, CreateEventAction):
            raise AssistantError(
                f"Assistant did not propose an event (got {reply.action.type})"
            )
        return await self.create_event(reply.action.payload.to_event_fields())

    async def handle_assistant_message(self, text: str) -> AssistantOutcome:
        """Run one chat message through the assistant and apply its action.

        Every exchange that reached the assistant is appended to the chat
        history; failures are recorded as ERROR and re-raised.
        """
        if not text or not text.strip():
            raise ValidationError("Message is empty")

        try:
            reply = await self._interpret(text)
            outcome = await self._apply_action(reply)
        except OfflineError:
            logger.warning("Offline, assistant message not sent")
            raise
        except Exception as exc:
            logger.error("Assistant message failed: %s", exc)
            await self._record_chat(
                text,
                ai_response="Sorry, I couldn't do that. Please try again or add the event manually.",
                action_type="ERROR",
            )
            raise

        action = reply.action
        payload = getattr(action, "payload", None)
        if hasattr(payload, "model_dump"):
            payload = payload.model_dump(by_alias=True, exclude_none=True)
        await self._record_chat(
            text,
            ai_response=reply.message or None,
            action_type=action.type,
            action_payload=payload,
        )
        logger.info("Assistant action: %s", action.type)
        return outcome

    async def _interpret(self, text: str) -> AssistantReply:
        if self._assistant is None:
            raise AssistantError("No assistant configured")
        if not self.is_online():
            raise OfflineError("The assistant needs an internet connection")
        return await self._assistant.interpret(text)

    async def _apply_action(self, reply: AssistantReply) -> AssistantOutcome:
        action = reply.action
        if isinstance(action, CreateEventAction):
            event = await self.create_event(action.payload.to_event_fields())
            return AssistantOutcome(reply=reply, event=event)
        if isinstance(action, UpdateEventAction):
            event = await self.update_event(action.id, action.payload)
            return AssistantOutcome(reply=reply, event=event)
        if isinstance(action, DeleteEventAction):
            await self.delete_event(action.id)
            return AssistantOutcome(reply=reply)
        if isinstance(action, QueryEventsAction):
            events = await asyncio.to_thread(self._store.query, action.to_event_filter())
            return AssistantOutcome(reply=reply, events=events)
        # NO_ACTION: conversation only
        return AssistantOutcome(reply=reply)

    async def _record_chat(self, text: str, **fields: Any) -> None:
        if self._chat_db is None:
            return
        await asyncio.to_thread(self._chat_db.create, text, **fields)

    # ------------------------------------------------------------------
    # Remote sync internals
    # ------------------------------------------------------------------

    def _commit(self, event_id: str) -> int:
        version = self._versions.get(event_id, 0) + 1
        self._versions[event_id] = version
        self._sync_states[event_id] = SyncState.LOCAL_COMMITTED
        return version

    def _restore_state(self, event_id: str, state: SyncState | None) -> None:
        if state is None:
            self._sync_states.pop(event_id, None)
        else:
            self._sync_states[event_id] = state

    def _settle(self, event_id: str, version: int, operation: str, state: SyncState) -> None:
        # A newer mutation owns the state once it has been issued.
        if self._versions.get(event_id) != version:
            return
        if operation == "delete":
            # Deleted ids cannot be mutated again
            self._versions.pop(event_id, None)
            self._sync_states.pop(event_id, None)
            logger.debug("Delete of event %s settled as %s", event_id, state.value)
            return
        self._sync_states[event_id] = state

    def _dispatch_remote(
        self, event_id: str, version: int, operation: str, call: _RemoteCall,
    ) -> None:
        """Fire-and-forget the remote half of a mutation."""
        if self._remote is None:
            self._settle(event_id, version, operation, SyncState.REMOTE_SKIPPED)
            return
        if not self.is_online():
            logger.info("Offline, %s of event %s kept local only", operation, event_id)
            self._settle(event_id, version, operation, SyncState.REMOTE_SKIPPED)
            return

        previous = self._tails.get(event_id)
        task = asyncio.create_task(self._push(event_id, version, operation, call, previous))
        self._tails[event_id] = task
        self._pending.add(task)

        def _done(finished: asyncio.Task) -> None:
            self._pending.discard(finished)
            if self._tails.get(event_id) is finished:
                del self._tails[event_id]

        task.add_done_callback(_done)

    async def _push(
        self,
        event_id: str,
        version: int,
        operation: str,
        call: _RemoteCall,
        previous: asyncio.Task | None,
    ) -> None:
        if previous is not None:
            await asyncio.wait([previous])
        try:
            await call(self._remote)
        except Exception as exc:
            logger.warning(
                "Remote %s of event %s failed, local copy kept: %s", operation, event_id, exc,
            )
            self._settle(event_id, version, operation, SyncState.REMOTE_FAILED)
            return
        logger.debug("Remote %s of event %s succeeded", operation, event_id)
        self._settle(event_id, version, operation, SyncState.REMOTE_SUCCEEDED)
