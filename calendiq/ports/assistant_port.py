"""Assistant port — natural-language to calendar-action interface.

Implementations raise AssistantError on transport failures or unusable replies.
"""

from __future__ import annotations

from typing import Protocol

from calendiq.core.actions import AssistantReply


class AssistantPort(Protocol):
    """Turns one chat message into one structured calendar action."""

    async def interpret(self, message: str) -> AssistantReply: ...
