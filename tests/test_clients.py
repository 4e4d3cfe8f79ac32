# tests/test_clients.py
# SaaS 클라이언트 테스트 (httpx MockTransport)

import pytest
import sys
import os
import json

import httpx

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from core.errors import SlackAPIError
from integrations.hubspot_client import HubSpotClient
from integrations.slack_client import SlackClient


class Recorder:
    """요청 기록 + 고정 응답"""

    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.payload = payload if payload is not None else {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def make_hubspot(recorder):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return HubSpotClient("pat-test", http_client=http_client)


def make_slack(recorder):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return SlackClient("xoxb-test", http_client=http_client)


class TestHubSpotClient:
    """HubSpot 클라이언트"""

    @pytest.mark.asyncio
    async def test_search_contact_by_email(self):
        recorder = Recorder(payload={"total": 1, "results": [{"id": "551"}]})
        client = make_hubspot(recorder)

        contact = await client.search_contact_by_email("ana@example.com")

        assert contact == {"id": "551"}
        request = recorder.last
        assert request.method == "POST"
        assert request.url.path == "/crm/v3/objects/contacts/search"
        assert request.headers["Authorization"] == "Bearer pat-test"
        body = json.loads(request.content)
        assert body["filterGroups"][0]["filters"][0] == {
            "propertyName": "email", "operator": "EQ", "value": "ana@example.com"
        }
        await client.close()

    @pytest.mark.asyncio
    async def test_search_no_results(self):
        client = make_hubspot(Recorder(payload={"total": 0, "results": []}))

        assert await client.search_contact_by_email("nobody@example.com") is None
        await client.close()

    @pytest.mark.asyncio
    async def test_get_contact_properties(self):
        recorder = Recorder(payload={"id": "551", "properties": {}})
        client = make_hubspot(recorder)

        await client.get_contact("551", ["email", "firstname"])

        assert recorder.last.url.path == "/crm/v3/objects/contacts/551"
        assert recorder.last.url.params["properties"] == "email,firstname"
        await client.close()

    @pytest.mark.asyncio
    async def test_create_note_association(self):
        recorder = Recorder(payload={"id": "note_1"})
        client = make_hubspot(recorder)

        await client.create_note("551", "hola", 1767344400000)

        body = json.loads(recorder.last.content)
        assert body["properties"] == {"hs_note_body": "hola", "hs_timestamp": 1767344400000}
        association = body["associations"][0]
        assert association["to"] == {"id": "551"}
        assert association["types"][0]["associationTypeId"] == 202
        await client.close()

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        """4xx/5xx → httpx.HTTPStatusError"""
        client = make_hubspot(Recorder(status_code=429, payload={"message": "rate limited"}))

        with pytest.raises(httpx.HTTPStatusError):
            await client.create_contact({"email": "ana@example.com"})
        await client.close()


class TestSlackClient:
    """Slack 클라이언트"""

    @pytest.mark.asyncio
    async def test_conversations_info(self):
        recorder = Recorder(payload={"ok": True, "channel": {"id": "C1", "name": "growth-marketing"}})
        client = make_slack(recorder)

        channel = await client.conversations_info("C1")

        assert channel["name"] == "growth-marketing"
        assert recorder.last.method == "GET"
        assert recorder.last.url.path == "/api/conversations.info"
        assert recorder.last.url.params["channel"] == "C1"
        assert recorder.last.headers["Authorization"] == "Bearer xoxb-test"
        await client.close()

    @pytest.mark.asyncio
    async def test_post_message(self):
        recorder = Recorder(payload={"ok": True, "ts": "1.2"})
        client = make_slack(recorder)

        response = await client.post_message("#general", "hi", [{"type": "section"}])

        assert response["ts"] == "1.2"
        assert recorder.last.method == "POST"
        body = json.loads(recorder.last.content)
        assert body == {"channel": "#general", "text": "hi", "blocks": [{"type": "section"}]}
        await client.close()

    @pytest.mark.asyncio
    async def test_not_ok_raises(self):
        """ok=false → SlackAPIError"""
        client = make_slack(Recorder(payload={"ok": False, "error": "channel_not_found"}))

        with pytest.raises(SlackAPIError) as exc_info:
            await client.conversations_info("C404")

        assert exc_info.value.error == "channel_not_found"
        assert "conversations.info" in str(exc_info.value)
        await client.close()

    @pytest.mark.asyncio
    async def test_users_list(self):
        client = make_slack(Recorder(payload={"ok": True, "members": [{"id": "U1"}]}))

        assert await client.users_list() == [{"id": "U1"}]
        await client.close()
