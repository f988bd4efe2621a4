"""Tests for calendiq.core.parser — LLM-backed assistant message parsing."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from calendiq.core.actions import (
    CreateEventAction,
    DeleteEventAction,
    NoAction,
    QueryEventsAction,
    UpdateEventAction,
)
from calendiq.core.errors import AssistantError
from calendiq.core.parser import _clean_llm_response, parse_assistant_message


# ---------------------------------------------------------------------------
# Unit tests for _clean_llm_response
# ---------------------------------------------------------------------------


class TestCleanLlmResponse:
    def test_strips_json_code_block(self):
        raw = '```json\n{"action": {}}\n```'
        assert _clean_llm_response(raw) == '{"action": {}}'

    def test_strips_bare_code_block(self):
        assert _clean_llm_response('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_strips_whitespace(self):
        assert _clean_llm_response("  hello  ") == "hello"


# ---------------------------------------------------------------------------
# Tests for parse_assistant_message (LLM mocked)
# ---------------------------------------------------------------------------


def _llm(payload):
    return AsyncMock(return_value=json.dumps(payload))


class TestParseAssistantMessage:
    @pytest.mark.asyncio
    async def test_create_event(self):
        llm_response = {
            "action": {
                "type": "CREATE_EVENT",
                "payload": {
                    "title": "Dentist",
                    "start": "2026-02-25T14:00:00.000Z",
                    "end": "2026-02-25T15:00:00.000Z",
                    "category": "health",
                    "priority": "medium",
                    "reminder": 15,
                },
            },
            "message": "Added your dentist appointment.",
        }
        with patch("calendiq.core.parser.complete", _llm(llm_response)):
            reply = await parse_assistant_message("dentist tomorrow at 2pm")
        assert isinstance(reply.action, CreateEventAction)
        assert reply.action.payload.title == "Dentist"
        assert reply.action.payload.category == "health"
        assert reply.message == "Added your dentist appointment."

    @pytest.mark.asyncio
    async def test_update_delete_query(self):
        cases = [
            ({"type": "UPDATE_EVENT", "id": "e1", "payload": {"title": "Sync"}}, UpdateEventAction),
            ({"type": "DELETE_EVENT", "id": "e1"}, DeleteEventAction),
            ({"type": "QUERY_EVENTS", "filter": {"priority": "high"}}, QueryEventsAction),
            ({"type": "NO_ACTION", "message": "Hi!"}, NoAction),
        ]
        for action, expected in cases:
            with patch("calendiq.core.parser.complete", _llm({"action": action, "message": ""})):
                reply = await parse_assistant_message("...")
            assert isinstance(reply.action, expected)

    @pytest.mark.asyncio
    async def test_bare_action_is_wrapped(self):
        with patch("calendiq.core.parser.complete", _llm({"type": "DELETE_EVENT", "id": "e1"})):
            reply = await parse_assistant_message("cancel it")
        assert isinstance(reply.action, DeleteEventAction)
        assert reply.message == ""

    @pytest.mark.asyncio
    async def test_markdown_fenced_response(self):
        raw = '```json\n{"action": {"type": "NO_ACTION", "message": "ok"}}\n```'
        with patch("calendiq.core.parser.complete", AsyncMock(return_value=raw)):
            reply = await parse_assistant_message("hello")
        assert isinstance(reply.action, NoAction)

    @pytest.mark.asyncio
    async def test_prompt_contains_current_time(self):
        mock = _llm({"action": {"type": "NO_ACTION", "message": "ok"}})
        now = datetime(2026, 2, 24, 9, 0, tzinfo=timezone.utc)
        with patch("calendiq.core.parser.complete", mock):
            await parse_assistant_message("hello", now=now)
        system = mock.call_args.kwargs["system"]
        assert "2026-02-24T09:00:00.000Z" in system
        assert '"education"' in system
        assert mock.call_args.kwargs["user_message"] == "hello"

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self):
        with patch("calendiq.core.parser.complete", AsyncMock(return_value="Sure! I added it.")):
            with pytest.raises(AssistantError, match="not valid JSON"):
                await parse_assistant_message("dentist")

    @pytest.mark.asyncio
    async def test_unknown_action_raises(self):
        with patch("calendiq.core.parser.complete", _llm({"action": {"type": "BOOK_FLIGHT"}})):
            with pytest.raises(AssistantError):
                await parse_assistant_message("flight to Rome")

    @pytest.mark.asyncio
    async def test_bad_category_raises(self):
        llm_response = {
            "action": {
                "type": "CREATE_EVENT",
                "payload": {
                    "title": "Party",
                    "start": "2026-02-25T20:00:00Z",
                    "end": "2026-02-25T23:00:00Z",
                    "category": "fun",
                },
            },
        }
        with patch("calendiq.core.parser.complete", _llm(llm_response)):
            with pytest.raises(AssistantError):
                await parse_assistant_message("party")

    @pytest.mark.asyncio
    async def test_provider_failure_raises(self):
        with patch("calendiq.core.parser.complete", AsyncMock(side_effect=RuntimeError("quota"))):
            with pytest.raises(AssistantError, match="LLM call failed"):
                await parse_assistant_message("dentist")
