"""Shared test fixtures and configuration.

Sets up fake environment variables so calendiq.config never points at a
real remote or database, and provides common fixtures like temp DBs.
"""

import os

# Patch env vars BEFORE any calendiq imports
os.environ.setdefault("LLM_API_KEY", "fake-llm-key-for-tests")
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("REMOTE_API_URL", "")
os.environ.setdefault("DATABASE_PATH", ":memory:")

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_calendiq.db")


@pytest.fixture
def event_db(tmp_db_path):
    """Return an EventDB instance backed by a temp file."""
    from calendiq.data.db import EventDB
    return EventDB(db_path=tmp_db_path)


@pytest.fixture
def user_db(tmp_db_path):
    """Return a UserProfileDB instance backed by a temp file."""
    from calendiq.data.db import UserProfileDB
    return UserProfileDB(db_path=tmp_db_path)


@pytest.fixture
def chat_db(tmp_db_path):
    """Return a ChatDB instance backed by a temp file."""
    from calendiq.data.db import ChatDB
    return ChatDB(db_path=tmp_db_path)
