"""Tests for calendiq.adapters.assistant_client — assistant endpoint client."""

import json

import httpx
import pytest

from calendiq.adapters.assistant_client import HttpAssistantClient
from calendiq.core.actions import CreateEventAction, NoAction, QueryEventsAction
from calendiq.core.errors import AssistantError


def _client(handler):
    return HttpAssistantClient("http://remote.test/api", transport=httpx.MockTransport(handler))


class TestInterpret:
    @pytest.mark.asyncio
    async def test_posts_message_and_parses_create(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "success": True,
                "action": {
                    "type": "CREATE_EVENT",
                    "payload": {
                        "title": "Gym",
                        "start": "2026-02-24T18:00:00.000Z",
                        "end": "2026-02-24T19:00:00.000Z",
                        "category": "health",
                    },
                },
                "message": "Booked your gym session.",
            })

        reply = await _client(handler).interpret("gym at 6pm")

        assert seen == {"path": "/api/ai", "body": {"message": "gym at 6pm"}}
        assert isinstance(reply.action, CreateEventAction)
        assert reply.action.payload.category == "health"
        assert reply.message == "Booked your gym session."

    @pytest.mark.asyncio
    async def test_parses_query_and_no_action(self):
        client = _client(lambda r: httpx.Response(200, json={
            "success": True,
            "action": {"type": "QUERY_EVENTS", "filter": {"category": "work"}},
        }))
        reply = await client.interpret("what work do I have?")
        assert isinstance(reply.action, QueryEventsAction)
        assert reply.message == ""

        client = _client(lambda r: httpx.Response(200, json={
            "success": True,
            "action": {"type": "NO_ACTION", "message": "Hello!"},
            "message": "Hello!",
        }))
        reply = await client.interpret("hi")
        assert isinstance(reply.action, NoAction)

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        client = _client(lambda r: httpx.Response(500, json={"success": False, "error": "x"}))
        with pytest.raises(AssistantError, match="request failed"):
            await client.interpret("hi")

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        with pytest.raises(AssistantError):
            await _client(handler).interpret("hi")

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self):
        client = _client(lambda r: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(AssistantError):
            await client.interpret("hi")

    @pytest.mark.asyncio
    async def test_unknown_action_type_raises(self):
        client = _client(lambda r: httpx.Response(200, json={
            "success": True, "action": {"type": "LAUNCH_ROCKET"},
        }))
        with pytest.raises(AssistantError, match="invalid action"):
            await client.interpret("hi")

    @pytest.mark.asyncio
    async def test_create_missing_title_raises(self):
        client = _client(lambda r: httpx.Response(200, json={
            "success": True,
            "action": {"type": "CREATE_EVENT", "payload": {"start": "2026-02-24T18:00:00Z"}},
        }))
        with pytest.raises(AssistantError):
            await client.interpret("something")
