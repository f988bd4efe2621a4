"""
Calendiq — Assistant Parser.

Server side of the assistant endpoint: turns one free-text chat message into
exactly one calendar action (create, update, delete, query, or nothing) using
the configured LLM provider.

Unlike the client, the parser never invents a fallback action: a response it
cannot parse or validate raises AssistantError and the endpoint reports it.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime

import pydantic

from calendiq.core.actions import AssistantReply
from calendiq.core.dates import format_instant, utcnow
from calendiq.core.errors import AssistantError
from calendiq.core.llm import complete

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# System prompt for LLM
# ---------------------------------------------------------------------------

_SYSTEM_PROMPT = """\
You are a calendar assistant for Calendiq. You help the user manage a personal calendar.
Read the user's message and decide on exactly ONE calendar action.

Current date/time (UTC): {now}

**Action 1: Create Event**
{{"type": "CREATE_EVENT", "payload": {{"title": "string", "start": "ISO-8601", "end": "ISO-8601", "description": "string", "location": "string", "allDay": false, "category": "work", "priority": "medium", "reminder": 15}}}}

- "start" and "end" are full ISO-8601 instants in UTC, e.g. "2026-02-24T14:00:00.000Z".
- If no end is given, the event lasts one hour.
- Interpret relative dates ("tomorrow", "next Monday") relative to the current date.
- Automatically categorize the event:
  - "work": meetings, presentations, deadlines, projects
  - "personal": home tasks, personal appointments, errands
  - "health": doctor visits, gym, exercise, wellness
  - "social": dinners, parties, meetups with friends
  - "finance": bill payments, bank appointments, taxes
  - "education": classes, courses, training, learning
- Priority levels: low, medium, high.
- Default reminder: 15 minutes before the event.

**Action 2: Update Event**
{{"type": "UPDATE_EVENT", "id": "event id", "payload": {{"field": "new value"}}}}

**Action 3: Delete Event**
{{"type": "DELETE_EVENT", "id": "event id"}}

**Action 4: Query Events**
{{"type": "QUERY_EVENTS", "filter": {{"dateRange": {{"start": "ISO-8601", "end": "ISO-8601"}}, "category": "work", "priority": "high", "tags": ["string"]}}}}

- Every filter key is optional.

**Action 5: No Action**
{{"type": "NO_ACTION", "message": "string"}}

- Use this when the message is not about the calendar or is too vague to act on.

**General Rules:**
- Return ONE JSON object: {{"action": <one action above>, "message": "short friendly reply to the user"}}
- Return ONLY the JSON object. No markdown, no explanation, no extra text.
"""


# ---------------------------------------------------------------------------
# Response Cleaning
# ---------------------------------------------------------------------------

def _clean_llm_response(raw_text: str) -> str:
    """Remove markdown code block delimiters from LLM's raw response."""
    cleaned_text = raw_text.strip()
    if cleaned_text.startswith("```json"):
        cleaned_text = cleaned_text.removeprefix("```json")
    elif cleaned_text.startswith("```"):
        cleaned_text = cleaned_text.removeprefix("```")
    if cleaned_text.endswith("```"):
        cleaned_text = cleaned_text.removesuffix("```")
    return cleaned_text.strip()


# ---------------------------------------------------------------------------
# Parser function
# ---------------------------------------------------------------------------

async def parse_assistant_message(
    user_message: str, now: datetime | None = None,
) -> AssistantReply:
    """Ask the LLM for one action and validate it against the action contract.

    Raises:
        AssistantError: the provider failed, or its reply is not valid JSON
            in the expected shape.
    """
    system_prompt = _SYSTEM_PROMPT.format(now=format_instant(now or utcnow()))

    try:
        raw_text = await complete(
            system=system_prompt,
            user_message=user_message,
            max_tokens=1024,
        )
    except Exception as exc:
        logger.error("LLM call failed: %s", exc)
        raise AssistantError(f"LLM call failed: {exc}") from exc

    raw_text = _clean_llm_response(raw_text)
    logger.debug("LLM raw response: %s", raw_text)

    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse LLM response as JSON: %s, raw: '%s'", exc, raw_text)
        raise AssistantError("Assistant reply was not valid JSON") from exc

    # A bare action without the {action, message} wrapper
    if isinstance(data, dict) and "type" in data and "action" not in data:
        data = {"action": data, "message": ""}

    try:
        reply = AssistantReply.model_validate(data)
    except pydantic.ValidationError as exc:
        logger.error("LLM returned an invalid action: %s, raw: '%s'", exc, raw_text)
        raise AssistantError(f"Assistant reply did not match any action: {exc}") from exc

    logger.info("Parsed assistant action %s for: %s", reply.action.type, user_message[:80])
    return reply
