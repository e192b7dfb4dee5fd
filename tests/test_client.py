"""
Tests for the engine HTTP client.

The aiohttp session is replaced by a fake that answers from a script, so no
network is involved.
"""
import asyncio
import json

import pytest

from voice_ci.client import EngineClient, EngineHTTPError, get_engine_base_url
from voice_ci.events import CallEnded, CallStarted, LatencySample


class FakeResponse:
    """A str payload is a raw body; anything else is already-decoded JSON."""

    def __init__(self, status, payload):
        self.status = status
        self._payload = payload

    async def json(self, content_type=None):
        if isinstance(self._payload, str):
            return json.loads(self._payload)
        return self._payload

    async def text(self):
        if isinstance(self._payload, str):
            return self._payload
        return json.dumps(self._payload)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class FakeSession:
    """Records requests and answers with the next scripted response."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        status, payload = self.responses.pop(0)
        return FakeResponse(status, payload)

    async def close(self):
        self.closed = True


def run_with(responses, action):
    """Run action(client) against a fake session; return (result, session)."""
    session = FakeSession(responses)

    async def go():
        client = EngineClient("http://engine.test:4000/")
        client._session = session
        try:
            return await action(client)
        finally:
            await client.aclose()

    return asyncio.run(go()), session


def test_base_url_from_env(monkeypatch):
    monkeypatch.setenv("VOICE_CI_URL", "http://127.0.0.1:4000/")
    assert get_engine_base_url() == "http://127.0.0.1:4000"

    monkeypatch.delenv("VOICE_CI_URL")
    assert get_engine_base_url() is None


def test_send_event_posts_wire_shape():
    result, session = run_with(
        [(200, {"roomId": "r", "status": "running"})],
        lambda c: c.send_event("r", LatencySample(ms=100)),
    )

    assert result["status"] == "running"
    method, url, kwargs = session.requests[0]
    assert method == "POST"
    assert url == "http://engine.test:4000/event"
    assert kwargs["json"] == {"roomId": "r", "event": {"type": "latency", "ms": 100}}
    assert session.closed


def test_create_room_and_get_state():
    async def action(client):
        await client.create_room("r")
        await client.create_room()
        return await client.get_state("r")

    result, session = run_with(
        [(201, {"roomId": "r"}), (201, {"roomId": "room-1"}), (200, {"roomId": "r", "status": "running"})],
        action,
    )

    assert result == {"roomId": "r", "status": "running"}
    assert session.requests[0][2]["json"] == {"roomId": "r"}
    assert session.requests[1][2]["json"] == {}
    assert session.requests[2][:2] == ("GET", "http://engine.test:4000/state")
    assert session.requests[2][2]["params"] == {"roomId": "r"}


def test_error_status_raises():
    with pytest.raises(EngineHTTPError) as exc_info:
        run_with(
            [(404, {"detail": "Room not found: r"})],
            lambda c: c.send_event("r", CallStarted(ts=1)),
        )

    assert exc_info.value.status == 404
    assert exc_info.value.detail == "Room not found: r"


def test_non_json_error_page_raises_http_error():
    with pytest.raises(EngineHTTPError) as exc_info:
        run_with(
            [(502, "<html>Bad Gateway</html>")],
            lambda c: c.get_state("r"),
        )

    assert exc_info.value.status == 502
    assert exc_info.value.detail == "<html>Bad Gateway</html>"


def test_plain_text_server_error_raises_http_error():
    with pytest.raises(EngineHTTPError) as exc_info:
        run_with(
            [(500, "Internal Server Error")],
            lambda c: c.send_event("r", CallStarted(ts=1)),
        )

    assert exc_info.value.status == 500
    assert exc_info.value.detail == "Internal Server Error"


def test_replay_stops_at_first_fail():
    events = [CallStarted(ts=0), LatencySample(ms=9000), LatencySample(ms=10), CallEnded(ts=100)]
    responses = [
        (201, {"roomId": "r", "status": "running"}),
        (200, {"status": "running"}),
        (200, {"status": "fail"}),
        (200, {"roomId": "r", "status": "fail", "events": 2}),
    ]

    result, session = run_with(responses, lambda c: c.replay("r", events))

    assert result["events"] == 2
    paths = [url.rsplit("/", 1)[-1] for _, url, _ in session.requests]
    assert paths == ["rooms", "event", "event", "state"]


def test_request_outside_context_manager():
    async def go():
        await EngineClient("http://engine.test").health()

    with pytest.raises(RuntimeError):
        asyncio.run(go())
