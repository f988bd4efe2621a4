"""Connectivity port — abstract online/offline signal.

Core modules depend on this protocol, never on how connectivity is detected.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Protocol

# Called with the new state on every online/offline transition.
ConnectivityListener = Callable[[bool], Awaitable[None]]


class ConnectivityMonitor(Protocol):
    """Current connectivity plus push notification of transitions."""

    def is_online(self) -> bool: ...

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        ...
