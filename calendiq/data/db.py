"""
Calendiq — Local Database.

The authoritative copy of everything the user owns: events, the singleton
user profile, and the chat history, each in its own SQLite table. No
foreign keys and no cascades between them.

Every sqlite3 failure surfaces as StorageError.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from calendiq.core.dates import format_instant, parse_instant, utcnow
from calendiq.core.errors import NotFoundError, StorageError
from calendiq.data.models import (
    DRAFT_FIELDS,
    ChatMessage,
    Event,
    EventCategory,
    EventDraft,
    EventFilter,
    EventPriority,
    EventStatus,
    UserProfile,
    new_event_id,
)

logger = logging.getLogger(__name__)

_PROFILE_ID = 1


class _SQLiteTable(ABC):
    """Shared connection handling for the local tables."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from calendiq.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success, always close."""
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as exc:
            logger.error("Cannot open database %s: %s", self._db_path, exc)
            raise StorageError(f"Cannot open database: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            logger.error("Database error on %s: %s", self._db_path, exc)
            raise StorageError(f"Database error: {exc}") from exc
        finally:
            conn.close()

    @abstractmethod
    def _init_db(self) -> None:
        """Create the table and its indexes if missing."""


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class EventDB(_SQLiteTable):
    """SQLite-backed event table. Implements EventStorePort."""

    def _init_db(self) -> None:
        """Create the events table and its secondary indexes."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    id                  TEXT    PRIMARY KEY,
                    title               TEXT    NOT NULL,
                    description         TEXT    NOT NULL DEFAULT '',
                    location            TEXT    NOT NULL DEFAULT '',
                    start_at            TEXT    NOT NULL,
                    end_at              TEXT    NOT NULL,
                    all_day             INTEGER NOT NULL DEFAULT 0,
                    color               TEXT,
                    tags                TEXT    NOT NULL DEFAULT '[]',
                    priority            TEXT,
                    status              TEXT,
                    category            TEXT,
                    category_color      TEXT,
                    auto_categorization_confidence REAL,
                    rrule               TEXT,
                    recurring_event_id  TEXT,
                    exception_dates     TEXT    NOT NULL DEFAULT '[]',
                    is_recurring        INTEGER,
                    reminder            INTEGER,
                    notification_sent   INTEGER NOT NULL DEFAULT 0,
                    created_at          TEXT    NOT NULL,
                    updated_at          TEXT    NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_start ON events (start_at)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_end ON events (end_at)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_status ON events (status)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_category ON events (category)")
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_events_recurring ON events (recurring_event_id)"
            )
        logger.debug("Events table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_event(row: sqlite3.Row) -> Event:
        is_recurring = row["is_recurring"]
        return Event(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            location=row["location"],
            start=parse_instant(row["start_at"]),
            end=parse_instant(row["end_at"]),
            all_day=bool(row["all_day"]),
            color=row["color"],
            tags=json.loads(row["tags"]),
            priority=EventPriority(row["priority"]) if row["priority"] else None,
            status=EventStatus(row["status"]) if row["status"] else None,
            category=EventCategory(row["category"]) if row["category"] else None,
            category_color=row["category_color"],
            auto_categorization_confidence=row["auto_categorization_confidence"],
            rrule=row["rrule"],
            recurring_event_id=row["recurring_event_id"],
            exception_dates=json.loads(row["exception_dates"]),
            is_recurring=None if is_recurring is None else bool(is_recurring),
            reminder=row["reminder"],
            notification_sent=bool(row["notification_sent"]),
            created_at=parse_instant(row["created_at"]),
            updated_at=parse_instant(row["updated_at"]),
        )

    @staticmethod
    def _event_to_params(event: Event) -> dict[str, Any]:
        return {
            "id": event.id,
            "title": event.title,
            "description": event.description or "",
            "location": event.location or "",
            "start_at": format_instant(event.start),
            "end_at": format_instant(event.end),
            "all_day": int(event.all_day),
            "color": event.color,
            "tags": json.dumps(list(event.tags)),
            "priority": event.priority.value if event.priority else None,
            "status": event.status.value if event.status else None,
            "category": event.category.value if event.category else None,
            "category_color": event.category_color,
            "auto_categorization_confidence": event.auto_categorization_confidence,
            "rrule": event.rrule,
            "recurring_event_id": event.recurring_event_id,
            "exception_dates": json.dumps(list(event.exception_dates)),
            "is_recurring": None if event.is_recurring is None else int(event.is_recurring),
            "reminder": event.reminder,
            "notification_sent": int(event.notification_sent),
            "created_at": format_instant(event.created_at),
            "updated_at": format_instant(event.updated_at),
        }

    def create(self, draft: EventDraft) -> Event:
        """Insert a new event with a fresh id; created_at == updated_at."""
        now = utcnow()
        event = Event(
            **{name: getattr(draft, name) for name in DRAFT_FIELDS},
            id=new_event_id(),
            created_at=now,
            updated_at=now,
        )
        params = self._event_to_params(event)
        columns = ", ".join(params)
        placeholders = ", ".join(f":{name}" for name in params)
        with self._connect() as conn:
            conn.execute(f"INSERT INTO events ({columns}) VALUES ({placeholders})", params)
        logger.info("Event stored: %s '%s'", event.id, event.title)
        return event

    def update(self, event_id: str, changes: dict[str, Any]) -> Event:
        """Merge typed field changes into a stored event and refresh updated_at."""
        changes = {k: v for k, v in changes.items() if k in DRAFT_FIELDS}
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM events WHERE id = ?", (event_id,)).fetchone()
            if row is None:
                raise NotFoundError(event_id)

            current = self._row_to_event(row)
            # updated_at never moves backwards, even if the wall clock does
            updated = replace(
                current, **changes, updated_at=max(utcnow(), current.updated_at),
            )
            params = self._event_to_params(updated)
            assignments = ", ".join(f"{name} = :{name}" for name in params if name != "id")
            conn.execute(f"UPDATE events SET {assignments} WHERE id = :id", params)

        logger.info("Event updated: %s (%s)", event_id, ", ".join(sorted(changes)) or "touch")
        return updated

    def delete(self, event_id: str) -> None:
        """Remove an event. Unknown ids raise NotFoundError."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
        if cursor.rowcount == 0:
            raise NotFoundError(event_id)
        logger.info("Event deleted: %s", event_id)

    def get_by_id(self, event_id: str) -> Event | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM events WHERE id = ?", (event_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_event(row)

    def get_all(self) -> list[Event]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM events ORDER BY start_at, id").fetchall()
        return [self._row_to_event(r) for r in rows]

    def get_by_date_range(self, start: datetime, end: datetime) -> list[Event]:
        """Events whose start lies in [start, end], both ends inclusive."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM events WHERE start_at BETWEEN ? AND ? ORDER BY start_at, id",
                (format_instant(start), format_instant(end)),
            ).fetchall()
        return [self._row_to_event(r) for r in rows]

    def query(self, event_filter: EventFilter) -> list[Event]:
        """Date-range pre-filter on the start index, then in-memory criteria."""
        if event_filter.date_range is not None:
            candidates = self.get_by_date_range(*event_filter.date_range)
        else:
            candidates = self.get_all()
        return [ev for ev in candidates if _matches(ev, event_filter)]

    def clear(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM events")
        logger.info("Events table cleared")


def _matches(event: Event, event_filter: EventFilter) -> bool:
    if event_filter.category and event.category != event_filter.category:
        return False
    if event_filter.priority and event.priority != event_filter.priority:
        return False
    if event_filter.status and event.status != event_filter.status:
        return False
    if event_filter.is_recurring is not None and event.is_recurring != event_filter.is_recurring:
        return False
    if event_filter.tags and not set(event_filter.tags) & set(event.tags):
        return False
    return True


# ---------------------------------------------------------------------------
# User profile (singleton)
# ---------------------------------------------------------------------------


class UserProfileDB(_SQLiteTable):
    """SQLite-backed storage for the single local user profile."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS user_profile (
                    id          INTEGER PRIMARY KEY,
                    first_name  TEXT NOT NULL,
                    last_name   TEXT NOT NULL,
                    birth_date  TEXT NOT NULL,
                    pin_hash    TEXT NOT NULL,
                    locale      TEXT NOT NULL DEFAULT 'en',
                    theme       TEXT NOT NULL DEFAULT 'system',
                    created_at  TEXT NOT NULL
                )
            """)
        logger.debug("User profile table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_profile(row: sqlite3.Row) -> UserProfile:
        return UserProfile(
            id=row["id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            birth_date=row["birth_date"],
            pin_hash=row["pin_hash"],
            locale=row["locale"],
            theme=row["theme"],
            created_at=row["created_at"],
        )

    def get(self) -> UserProfile | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM user_profile WHERE id = ?", (_PROFILE_ID,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_profile(row)

    def exists(self) -> bool:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) FROM user_profile").fetchone()
        return row[0] > 0

    def create(self, profile: UserProfile) -> UserProfile:
        """Store the profile under the fixed id. A second create fails."""
        created = replace(
            profile, id=_PROFILE_ID, created_at=profile.created_at or format_instant(utcnow()),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO user_profile
                    (id, first_name, last_name, birth_date, pin_hash, locale, theme, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    created.id, created.first_name, created.last_name, created.birth_date,
                    created.pin_hash, created.locale, created.theme, created.created_at,
                ),
            )
        logger.info("User profile created for '%s'", created.first_name)
        return created

    def update(self, **changes: Any) -> UserProfile:
        """Partial merge into the stored profile."""
        current = self.get()
        if current is None:
            raise NotFoundError(str(_PROFILE_ID), kind="User profile")
        changes.pop("id", None)
        changes.pop("created_at", None)
        updated = replace(current, **changes)
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE user_profile
                SET first_name = ?, last_name = ?, birth_date = ?, pin_hash = ?,
                    locale = ?, theme = ?
                WHERE id = ?
                """,
                (
                    updated.first_name, updated.last_name, updated.birth_date,
                    updated.pin_hash, updated.locale, updated.theme, _PROFILE_ID,
                ),
            )
        logger.info("User profile updated (%s)", ", ".join(sorted(changes)))
        return updated

    def clear(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM user_profile")
        logger.info("User profile cleared")


# ---------------------------------------------------------------------------
# Chat history (append-only)
# ---------------------------------------------------------------------------


class ChatDB(_SQLiteTable):
    """SQLite-backed append-only log of assistant exchanges."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS chat_messages (
                    id              TEXT PRIMARY KEY,
                    user_message    TEXT NOT NULL,
                    ai_response     TEXT,
                    timestamp       TEXT NOT NULL,
                    action_type     TEXT,
                    action_payload  TEXT
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_chat_timestamp ON chat_messages (timestamp)"
            )
        logger.debug("Chat table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_message(row: sqlite3.Row) -> ChatMessage:
        payload = row["action_payload"]
        return ChatMessage(
            id=row["id"],
            user_message=row["user_message"],
            ai_response=row["ai_response"],
            timestamp=parse_instant(row["timestamp"]),
            action_type=row["action_type"],
            action_payload=json.loads(payload) if payload is not None else None,
        )

    def create(
        self,
        user_message: str,
        ai_response: str | None = None,
        action_type: str | None = None,
        action_payload: Any = None,
        timestamp: datetime | None = None,
    ) -> ChatMessage:
        """Append one exchange to the history."""
        message = ChatMessage(
            id=new_event_id(),
            user_message=user_message,
            ai_response=ai_response,
            timestamp=parse_instant(timestamp) if timestamp else utcnow(),
            action_type=action_type,
            action_payload=action_payload,
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO chat_messages
                    (id, user_message, ai_response, timestamp, action_type, action_payload)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    message.id, message.user_message, message.ai_response,
                    format_instant(message.timestamp), message.action_type,
                    json.dumps(action_payload) if action_payload is not None else None,
                ),
            )
        logger.debug("Chat message stored: %s (%s)", message.id, action_type)
        return message

    def get_all(self) -> list[ChatMessage]:
        """Full history, oldest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM chat_messages ORDER BY timestamp, rowid"
            ).fetchall()
        return [self._row_to_message(r) for r in rows]

    def clear(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM chat_messages")
        logger.info("Chat history cleared")


# ---------------------------------------------------------------------------
# Reset
# ---------------------------------------------------------------------------


def reset_app_data(db_path: str | None = None) -> None:
    """Wipe events, the user profile and the chat history."""
    EventDB(db_path).clear()
    UserProfileDB(db_path).clear()
    ChatDB(db_path).clear()
    logger.info("Application data cleared")


def clear_user_profile(db_path: str | None = None) -> None:
    """Remove the profile only; events and chat history stay."""
    UserProfileDB(db_path).clear()
