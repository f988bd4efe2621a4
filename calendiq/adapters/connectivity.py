"""Connectivity monitors — implement ConnectivityMonitor.

ManualConnectivityMonitor is driven by its owner (an embedding UI that
already knows about network changes, or a test). HttpConnectivityMonitor
polls the remote API health endpoint and reports transitions itself.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from calendiq.ports.connectivity_port import ConnectivityListener
    from calendiq.ports.remote_port import RemoteEventPort

logger = logging.getLogger(__name__)


class ManualConnectivityMonitor:
    """Push-based monitor: the owner calls set_online() on every change."""

    def __init__(self, online: bool = True) -> None:
        self._online = online
        self._listeners: list[ConnectivityListener] = []

    def is_online(self) -> bool:
        return self._online

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def set_online(self, online: bool) -> None:
        """Record the new state; listeners hear only actual transitions."""
        if online == self._online:
            return
        self._online = online
        logger.info("Connectivity changed: %s", "online" if online else "offline")
        for listener in list(self._listeners):
            try:
                await listener(online)
            except Exception as exc:
                logger.error("Connectivity listener failed: %s", exc)


class HttpConnectivityMonitor(ManualConnectivityMonitor):
    """Polls the remote health probe every `interval` seconds."""

    def __init__(
        self, remote: RemoteEventPort, interval: float = 30.0, online: bool = True,
    ) -> None:
        super().__init__(online=online)
        self._remote = remote
        self._interval = interval
        self._task: asyncio.Task | None = None

    async def probe(self) -> bool:
        """Probe once and publish the result."""
        try:
            online = await self._remote.health_check()
        except Exception as exc:
            logger.warning("Connectivity probe failed: %s", exc)
            online = False
        await self.set_online(online)
        return online

    async def _run(self) -> None:
        while True:
            await self.probe()
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())
            logger.info("Connectivity polling every %.0fs", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
