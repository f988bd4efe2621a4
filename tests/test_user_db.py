"""Tests for calendiq.data.db — UserProfileDB and ChatDB."""

from datetime import datetime, timezone

import pytest

from calendiq.core.errors import NotFoundError, StorageError
from calendiq.data.models import UserProfile


def _profile(**overrides):
    values = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "birth_date": "1990-12-10",
        "pin_hash": "abc123",
    }
    values.update(overrides)
    return UserProfile(**values)


class TestUserProfileDB:
    def test_empty_by_default(self, user_db):
        assert user_db.get() is None
        assert user_db.exists() is False

    def test_create_and_get(self, user_db):
        created = user_db.create(_profile())
        assert created.id == 1
        assert created.created_at
        assert user_db.get() == created
        assert user_db.exists() is True

    def test_id_is_always_one(self, user_db):
        created = user_db.create(_profile(id=42))
        assert created.id == 1

    def test_second_create_fails(self, user_db):
        user_db.create(_profile())
        with pytest.raises(StorageError):
            user_db.create(_profile(first_name="Grace"))

    def test_update_merges_fields(self, user_db):
        user_db.create(_profile())
        updated = user_db.update(theme="dark", locale="tr")
        assert updated.theme == "dark"
        assert updated.locale == "tr"
        assert updated.first_name == "Ada"
        assert user_db.get() == updated

    def test_update_without_profile_raises(self, user_db):
        with pytest.raises(NotFoundError, match="User profile"):
            user_db.update(theme="dark")

    def test_clear(self, user_db):
        user_db.create(_profile())
        user_db.clear()
        assert user_db.get() is None


class TestChatDB:
    def test_create_and_get_all_oldest_first(self, chat_db):
        chat_db.create("first", timestamp=datetime(2026, 2, 24, 9, 0, tzinfo=timezone.utc))
        chat_db.create("second", timestamp=datetime(2026, 2, 24, 10, 0, tzinfo=timezone.utc))
        assert [m.user_message for m in chat_db.get_all()] == ["first", "second"]

    def test_payload_round_trips_as_json(self, chat_db):
        msg = chat_db.create(
            "add lunch",
            ai_response="Done",
            action_type="CREATE_EVENT",
            action_payload={"title": "Lunch", "tags": ["food"]},
        )
        stored = chat_db.get_all()[0]
        assert stored.id == msg.id
        assert stored.action_type == "CREATE_EVENT"
        assert stored.action_payload == {"title": "Lunch", "tags": ["food"]}
        assert stored.ai_response == "Done"

    def test_missing_payload_stays_none(self, chat_db):
        chat_db.create("hi")
        assert chat_db.get_all()[0].action_payload is None

    def test_history_oldest_first(self, chat_db):
        for hour in (11, 9, 12, 10):
            chat_db.create(f"m{hour}", timestamp=datetime(2026, 2, 24, hour, tzinfo=timezone.utc))
        assert [m.user_message for m in chat_db.get_all()] == ["m9", "m10", "m11", "m12"]

    def test_clear(self, chat_db):
        chat_db.create("hi")
        chat_db.clear()
        assert chat_db.get_all() == []
