"""Composition root — builds the app's services from config.

Nothing else in Calendiq constructs stores or clients on its own: the
coordinator receives everything it uses from here, and the returned
AppServices owns their lifecycle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from calendiq.adapters.assistant_client import HttpAssistantClient
from calendiq.adapters.connectivity import HttpConnectivityMonitor, ManualConnectivityMonitor
from calendiq.adapters.remote_event_client import HttpRemoteEventClient
from calendiq.config import settings
from calendiq.core.event_coordinator import EventCoordinator
from calendiq.core.pin import hash_pin, verify_pin
from calendiq.data.db import ChatDB, EventDB, UserProfileDB
from calendiq.data.models import UserProfile

logger = logging.getLogger(__name__)


def create_remote_client() -> HttpRemoteEventClient | None:
    """Return the remote event client, or None when REMOTE_API_URL is unset."""
    if not settings.REMOTE_API_URL:
        return None
    return HttpRemoteEventClient(
        settings.REMOTE_API_URL, timeout=settings.REMOTE_TIMEOUT_SECONDS,
    )


def create_assistant_client() -> HttpAssistantClient | None:
    if not settings.REMOTE_API_URL:
        return None
    return HttpAssistantClient(settings.REMOTE_API_URL)


@dataclass
class AppServices:
    """Everything the UI layer talks to."""

    coordinator: EventCoordinator
    event_db: EventDB
    user_db: UserProfileDB
    chat_db: ChatDB
    connectivity: ManualConnectivityMonitor

    def create_profile(
        self, first_name: str, last_name: str, birth_date: str, pin: str,
    ) -> UserProfile:
        """First-run setup: store the profile with the PIN hashed."""
        return self.user_db.create(UserProfile(
            first_name=first_name,
            last_name=last_name,
            birth_date=birth_date,
            pin_hash=hash_pin(pin),
        ))

    def unlock(self, pin: str) -> bool:
        """Check a PIN against the stored profile. False when no profile exists."""
        profile = self.user_db.get()
        if profile is None:
            return False
        ok = verify_pin(pin, profile.pin_hash)
        if not ok:
            logger.warning("Incorrect PIN entered")
        return ok

    def change_pin(self, pin: str) -> UserProfile:
        return self.user_db.update(pin_hash=hash_pin(pin))

    async def close(self) -> None:
        await self.coordinator.close()
        if isinstance(self.connectivity, HttpConnectivityMonitor):
            await self.connectivity.stop()


async def create_services(db_path: str | None = None, poll: bool = True) -> AppServices:
    """Wire stores, clients and the coordinator, then load the event mirror.

    Args:
        db_path: SQLite file; defaults to DATABASE_PATH.
        poll: Start HTTP connectivity polling when a remote is configured.
    """
    db_path = db_path or settings.DATABASE_PATH
    event_db = EventDB(db_path=db_path)
    user_db = UserProfileDB(db_path=db_path)
    chat_db = ChatDB(db_path=db_path)

    remote = create_remote_client()
    if remote is not None:
        connectivity: ManualConnectivityMonitor = HttpConnectivityMonitor(
            remote, interval=settings.CONNECTIVITY_POLL_SECONDS,
        )
    else:
        # Local-only: nothing to reach, so never report a transition.
        connectivity = ManualConnectivityMonitor(online=True)

    coordinator = EventCoordinator(
        store=event_db,
        remote=remote,
        connectivity=connectivity,
        assistant=create_assistant_client(),
        chat_db=chat_db,
    )
    await coordinator.load()

    if poll and isinstance(connectivity, HttpConnectivityMonitor):
        connectivity.start()

    logger.info(
        "Calendiq services ready (db=%s, remote=%s)",
        db_path, settings.REMOTE_API_URL or "disabled",
    )
    return AppServices(
        coordinator=coordinator,
        event_db=event_db,
        user_db=user_db,
        chat_db=chat_db,
        connectivity=connectivity,
    )
