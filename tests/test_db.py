"""Tests for calendiq.data.db — EventDB (SQLite storage)."""

import sqlite3
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from calendiq.core.errors import NotFoundError, StorageError
from calendiq.data.db import (
    ChatDB,
    EventDB,
    UserProfileDB,
    _SQLiteTable,
    clear_user_profile,
    reset_app_data,
)
from calendiq.data.models import (
    EventCategory,
    EventDraft,
    EventFilter,
    EventPriority,
    EventStatus,
    UserProfile,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def _draft(title="Standup", start=None, end=None, **kwargs):
    start = start or utc(2026, 2, 24, 9, 0)
    end = end or start + timedelta(minutes=30)
    return EventDraft(title=title, start=start, end=end, **kwargs)


class TestEventDBCreate:
    def test_create_assigns_id_and_timestamps(self, event_db):
        event = event_db.create(_draft())
        assert event.id
        assert event.title == "Standup"
        assert event.created_at == event.updated_at

    def test_create_generates_unique_ids(self, event_db):
        ids = {event_db.create(_draft(title=f"E{i}")).id for i in range(5)}
        assert len(ids) == 5

    def test_create_persists_all_fields(self, event_db):
        event = event_db.create(_draft(
            title="Physio",
            description="Knee",
            location="Clinic",
            tags=["health", "weekly"],
            priority=EventPriority.HIGH,
            status=EventStatus.TENTATIVE,
            category=EventCategory.HEALTH,
            category_color="#00ff00",
            auto_categorization_confidence=0.8,
            rrule="FREQ=WEEKLY",
            is_recurring=True,
            exception_dates=["2026-03-03"],
            reminder=60,
        ))
        stored = event_db.get_by_id(event.id)
        assert stored == event

    def test_get_by_id_missing_returns_none(self, event_db):
        assert event_db.get_by_id("nope") is None


class TestEventDBUpdate:
    def test_update_changes_only_given_fields(self, event_db):
        event = event_db.create(_draft(location="Room 1"))
        updated = event_db.update(event.id, {"title": "Daily standup"})
        assert updated.title == "Daily standup"
        assert updated.location == "Room 1"
        assert updated.start == event.start
        assert updated.id == event.id
        assert updated.created_at == event.created_at
        assert event_db.get_by_id(event.id) == updated

    def test_updated_at_never_goes_backwards(self, event_db):
        event = event_db.create(_draft())
        updated = event_db.update(event.id, {"title": "Later"})
        assert updated.updated_at >= event.updated_at

    def test_updated_at_survives_clock_going_back(self, event_db):
        event = event_db.create(_draft())
        with patch("calendiq.data.db.utcnow", return_value=event.updated_at - timedelta(hours=1)):
            updated = event_db.update(event.id, {"title": "Later"})
        assert updated.updated_at == event.updated_at

    def test_update_ignores_identity_fields(self, event_db):
        event = event_db.create(_draft())
        updated = event_db.update(event.id, {"id": "hijack", "created_at": utc(2000, 1, 1)})
        assert updated.id == event.id
        assert updated.created_at == event.created_at

    def test_update_missing_raises_not_found(self, event_db):
        with pytest.raises(NotFoundError) as exc_info:
            event_db.update("missing", {"title": "x"})
        assert exc_info.value.record_id == "missing"


class TestEventDBDelete:
    def test_delete_removes_event(self, event_db):
        event = event_db.create(_draft())
        event_db.delete(event.id)
        assert event_db.get_by_id(event.id) is None
        assert event_db.get_all() == []

    def test_delete_missing_raises_not_found(self, event_db):
        with pytest.raises(NotFoundError):
            event_db.delete("missing")


class TestEventDBQueries:
    def test_get_all_sorted_by_start(self, event_db):
        event_db.create(_draft(title="Late", start=utc(2026, 2, 24, 15, 0)))
        event_db.create(_draft(title="Early", start=utc(2026, 2, 24, 8, 0)))
        assert [e.title for e in event_db.get_all()] == ["Early", "Late"]

    def test_date_range_is_inclusive_on_start(self, event_db):
        event_db.create(_draft(title="AtStart", start=utc(2026, 2, 24, 0, 0)))
        event_db.create(_draft(title="AtEnd", start=utc(2026, 2, 25, 0, 0)))
        event_db.create(_draft(title="After", start=utc(2026, 2, 25, 0, 1)))
        events = event_db.get_by_date_range(utc(2026, 2, 24), utc(2026, 2, 25))
        assert [e.title for e in events] == ["AtStart", "AtEnd"]

    def test_query_by_category_and_priority(self, event_db):
        event_db.create(_draft(title="A", category=EventCategory.WORK, priority=EventPriority.HIGH))
        event_db.create(_draft(title="B", category=EventCategory.WORK, priority=EventPriority.LOW))
        event_db.create(_draft(title="C", category=EventCategory.SOCIAL, priority=EventPriority.HIGH))
        result = event_db.query(EventFilter(
            category=EventCategory.WORK, priority=EventPriority.HIGH,
        ))
        assert [e.title for e in result] == ["A"]

    def test_query_tags_match_any(self, event_db):
        event_db.create(_draft(title="A", tags=["team"]))
        event_db.create(_draft(title="B", tags=["family"]))
        event_db.create(_draft(title="C", tags=[]))
        result = event_db.query(EventFilter(tags=["team", "family"]))
        assert {e.title for e in result} == {"A", "B"}

    def test_query_status_and_recurring(self, event_db):
        event_db.create(_draft(title="A", status=EventStatus.CANCELLED, is_recurring=True))
        event_db.create(_draft(title="B", status=EventStatus.CONFIRMED, is_recurring=True))
        result = event_db.query(EventFilter(status=EventStatus.CONFIRMED, is_recurring=True))
        assert [e.title for e in result] == ["B"]

    def test_query_with_date_range(self, event_db):
        event_db.create(_draft(title="In", start=utc(2026, 2, 24, 9, 0), category=EventCategory.WORK))
        event_db.create(_draft(title="Out", start=utc(2026, 3, 1, 9, 0), category=EventCategory.WORK))
        result = event_db.query(EventFilter(
            category=EventCategory.WORK,
            date_range=(utc(2026, 2, 24), utc(2026, 2, 25)),
        ))
        assert [e.title for e in result] == ["In"]

    def test_empty_filter_returns_everything(self, event_db):
        event_db.create(_draft(title="A"))
        event_db.create(_draft(title="B"))
        assert len(event_db.query(EventFilter())) == 2


class TestStorageErrors:
    def test_sqlite_error_wrapped(self, event_db):
        with patch("calendiq.data.db.sqlite3.connect", side_effect=sqlite3.OperationalError("disk I/O")):
            with pytest.raises(StorageError):
                event_db.get_all()

    def test_base_table_cannot_be_opened_directly(self, tmp_db_path):
        with pytest.raises(TypeError):
            _SQLiteTable(db_path=tmp_db_path)


class TestReset:
    def test_reset_app_data_wipes_everything(self, tmp_db_path):
        events = EventDB(db_path=tmp_db_path)
        users = UserProfileDB(db_path=tmp_db_path)
        chats = ChatDB(db_path=tmp_db_path)
        events.create(_draft())
        users.create(UserProfile(first_name="Ada", last_name="L", birth_date="1990-01-01", pin_hash="h"))
        chats.create("hello")

        reset_app_data(tmp_db_path)

        assert events.get_all() == []
        assert users.get() is None
        assert chats.get_all() == []

    def test_clear_user_profile_keeps_events(self, tmp_db_path):
        events = EventDB(db_path=tmp_db_path)
        users = UserProfileDB(db_path=tmp_db_path)
        events.create(_draft())
        users.create(UserProfile(first_name="Ada", last_name="L", birth_date="1990-01-01", pin_hash="h"))

        clear_user_profile(tmp_db_path)

        assert users.exists() is False
        assert len(events.get_all()) == 1
