"""
Tests for the protocol bridge transport.

HTTP calls go through httpx.MockTransport; the SSE listener thread is fed
by patched requests/sseclient objects.
"""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import httpx
import pytest

from conftest import wait_until
from courier.errors import TransportError
from courier.modules.transport import (
    BridgeTransport,
    ConnectionClosed,
    ConnectionOpened,
    CredentialsUpdated,
    PairingCodeIssued,
    parse_bridge_event,
)


def make_transport(handler, token=None):
    client = httpx.AsyncClient(
        base_url="http://bridge",
        transport=httpx.MockTransport(handler),
    )
    return BridgeTransport(
        "http://bridge", client_name="Courier Test", token=token, http_client=client,
    )


class Recorder:
    """Bridge request handler that records requests and answers 200."""

    def __init__(self, responses=None):
        self.requests = []
        self.responses = responses or {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, request.url.path, body))
        status, payload = self.responses.get((request.method, request.url.path), (200, {}))
        return httpx.Response(status, json=payload)


def sse(event, data=""):
    return SimpleNamespace(event=event, data=json.dumps(data) if data != "" else "")


def test_parse_bridge_events():
    assert parse_bridge_event("qr", '{"qr": "2@abc"}') == PairingCodeIssued(code="2@abc")
    assert parse_bridge_event("open", "") == ConnectionOpened()
    assert parse_bridge_event("close", '{"status_code": 401, "message": "logged out"}') == (
        ConnectionClosed(reason=401, detail="logged out")
    )
    assert parse_bridge_event("close", "{}") == ConnectionClosed(reason=None)
    assert parse_bridge_event("creds", '{"me": "1"}') == CredentialsUpdated(credentials={"me": "1"})
    assert parse_bridge_event("keepalive", "{}") is None
    assert parse_bridge_event("qr", "{}") is None


def test_terminal_classification():
    assert ConnectionClosed(reason=401).is_terminal
    assert not ConnectionClosed(reason=428).is_terminal
    assert not ConnectionClosed(reason=None).is_terminal


@pytest.mark.asyncio
async def test_send_payloads():
    recorder = Recorder()
    transport = make_transport(recorder)

    with patch("courier.modules.transport.bridge.Thread"):
        handle = await transport.connect({"me": "1"}, on_event=None)
    await handle.send_text("44123@s.whatsapp.net", "hello")
    await handle.send_media("g1", "http://x/y.mp4", "video", "look")

    assert recorder.requests == [
        ("POST", "/sessions", {"session_id": "default", "credentials": {"me": "1"}, "client_name": "Courier Test"}),
        ("POST", "/sessions/default/messages", {"jid": "44123@s.whatsapp.net", "text": "hello"}),
        ("POST", "/sessions/default/messages", {"jid": "g1", "video": {"url": "http://x/y.mp4"}, "caption": "look"}),
    ]
    await transport.aclose()


@pytest.mark.asyncio
async def test_fetch_groups_accepts_list():
    recorder = Recorder({("GET", "/sessions/default/groups"): (200, [{"id": "g1", "subject": "A", "participants": []}])})
    transport = make_transport(recorder)

    with patch("courier.modules.transport.bridge.Thread"):
        handle = await transport.connect(None, on_event=None)
    groups = await handle.fetch_groups()

    assert groups == {"g1": {"id": "g1", "subject": "A", "participants": []}}


@pytest.mark.asyncio
async def test_error_status_raises_transport_error():
    recorder = Recorder({("POST", "/sessions/default/messages"): (404, {"message": "not on network"})})
    transport = make_transport(recorder)

    with patch("courier.modules.transport.bridge.Thread"):
        handle = await transport.connect(None, on_event=None)
    with pytest.raises(TransportError) as exc_info:
        await handle.send_text("x", "hi")

    assert exc_info.value.status_code == 404
    assert "not on network" in str(exc_info.value)


@pytest.mark.asyncio
async def test_connection_failure_raises_transport_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    transport = make_transport(handler)

    with pytest.raises(TransportError):
        await transport.connect(None, on_event=None)


@pytest.mark.asyncio
async def test_event_stream_delivers_events_in_order():
    """The listener thread hands each event to the loop and stops after close."""
    received = []

    async def on_event(event):
        received.append(event)

    stream = [
        sse("qr", {"qr": "2@abc"}),
        sse("keepalive", {}),
        sse("creds", {"me": "1"}),
        sse("open"),
        sse("close", {"status_code": 401, "message": "logged out"}),
        sse("qr", {"qr": "after-close"}),
    ]
    response = MagicMock(status_code=200)

    with patch("courier.modules.transport.bridge.requests.get", return_value=response) as get, \
            patch("courier.modules.transport.bridge.sseclient.SSEClient") as sse_client:
        sse_client.return_value.events.return_value = iter(stream)
        transport = make_transport(Recorder(), token="secret")
        await transport.connect(None, on_event)
        await wait_until(lambda: len(received) == 4)

    assert received == [
        PairingCodeIssued(code="2@abc"),
        CredentialsUpdated(credentials={"me": "1"}),
        ConnectionOpened(),
        ConnectionClosed(reason=401, detail="logged out"),
    ]
    assert get.call_args.args[0] == "http://bridge/sessions/default/events"
    assert get.call_args.kwargs["headers"]["Authorization"] == "Bearer secret"
    await wait_until(lambda: response.close.called)


@pytest.mark.asyncio
async def test_event_stream_end_is_recoverable_close():
    received = []

    async def on_event(event):
        received.append(event)

    with patch("courier.modules.transport.bridge.requests.get", return_value=MagicMock(status_code=200)), \
            patch("courier.modules.transport.bridge.sseclient.SSEClient") as sse_client:
        sse_client.return_value.events.return_value = iter([sse("open")])
        transport = make_transport(Recorder())
        await transport.connect(None, on_event)
        await wait_until(lambda: len(received) == 2)

    assert received[0] == ConnectionOpened()
    assert isinstance(received[1], ConnectionClosed)
    assert received[1].reason is None
    assert not received[1].is_terminal


@pytest.mark.asyncio
async def test_close_stops_listener_and_deletes_session():
    recorder = Recorder({("DELETE", "/sessions/default"): (404, {"message": "gone"})})
    transport = make_transport(recorder)

    with patch("courier.modules.transport.bridge.Thread"):
        handle = await transport.connect(None, on_event=None)
    await handle.close()

    assert recorder.requests[-1][:2] == ("DELETE", "/sessions/default")
