"""Assistant endpoint client — implements AssistantPort over HTTP.

POSTs `{message}` to `{base_url}/ai` and validates the returned action
against the tagged-union contract. There is no local fallback: any failure
is raised as AssistantError.
"""

from __future__ import annotations

import logging

import httpx
import pydantic

from calendiq.core.actions import AssistantReply
from calendiq.core.errors import AssistantError

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 20


class HttpAssistantClient:
    """HTTP implementation of AssistantPort."""

    def __init__(
        self,
        base_url: str,
        timeout: float = _TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def interpret(self, message: str) -> AssistantReply:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport,
            ) as client:
                resp = await client.post("/ai", json={"message": message})
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Assistant request failed: %s", exc)
            raise AssistantError(f"Assistant request failed: {exc}") from exc

        try:
            reply = AssistantReply.model_validate(
                {"action": data.get("action"), "message": data.get("message") or ""}
            )
        except (AttributeError, pydantic.ValidationError) as exc:
            logger.error("Assistant returned an invalid action: %s, raw: %s", exc, data)
            raise AssistantError(f"Assistant returned an invalid action: {exc}") from exc

        logger.info("Assistant proposed %s", reply.action.type)
        return reply
