"""
Protocol bridge transport.

The wire protocol of the messaging network is owned by a bridge sidecar.
This transport drives it over HTTP and consumes its lifecycle events as a
Server-Sent Events stream:

- POST   /sessions                   start a socket (optionally with credentials)
- GET    /sessions/{id}/events       SSE stream: qr, open, close, creds
- POST   /sessions/{id}/messages     send a text or media message
- GET    /sessions/{id}/groups       participating groups
- POST   /sessions/{id}/logout       revoke the session remotely
- DELETE /sessions/{id}              drop the socket
"""

import asyncio
import json
import logging
from threading import Event, Thread
from typing import Any, Dict, Mapping, Optional

import httpx
import requests
import sseclient

from ...errors import TransportError
from .interfaces import (
    ConnectionClosed,
    ConnectionOpened,
    CredentialsUpdated,
    EventSink,
    PairingCodeIssued,
    TransportEvent,
)

logger = logging.getLogger(__name__)


def parse_bridge_event(name: str, data: str) -> Optional[TransportEvent]:
    """
    Translate one SSE event from the bridge into a typed transport event.

    Args:
        name: SSE event name
        data: Raw SSE data field (JSON)

    Returns:
        Transport event, or None for keepalives and unknown events
    """
    payload = json.loads(data) if data else {}

    if name == "qr":
        code = payload.get("qr")
        return PairingCodeIssued(code=code) if code else None
    if name == "open":
        return ConnectionOpened()
    if name == "close":
        status_code = payload.get("status_code")
        return ConnectionClosed(
            reason=int(status_code) if status_code is not None else None,
            detail=payload.get("message"),
        )
    if name == "creds":
        return CredentialsUpdated(credentials=payload)
    return None


class BridgeHandle:
    """One socket on the bridge, identified by its session id."""

    def __init__(
        self,
        transport: "BridgeTransport",
        session_id: str,
        on_event: EventSink,
        loop: asyncio.AbstractEventLoop,
    ):
        self._transport = transport
        self.session_id = session_id
        self._on_event = on_event
        self._loop = loop
        self._stopped = Event()
        self._response: Optional[requests.Response] = None
        self._thread: Optional[Thread] = None

    async def start(self, credentials: Optional[Dict[str, Any]]) -> None:
        """Create the socket on the bridge and begin listening for events."""
        await self._transport.request(
            "POST",
            "/sessions",
            json={
                "session_id": self.session_id,
                "credentials": credentials,
                "client_name": self._transport.client_name,
            },
        )
        self._thread = Thread(target=self._listen, daemon=True, name=f"bridge-events-{self.session_id}")
        self._thread.start()

    def _listen(self) -> None:
        """
        Read the event stream until it ends or the handle is closed.

        Runs on a daemon thread. Each event is handed to the event loop and
        this thread waits until it has been handled, so credential updates
        are persisted before the next event is read.
        """
        url = f"{self._transport.base_url}/sessions/{self.session_id}/events"
        closed_event: Optional[ConnectionClosed] = None

        try:
            response = requests.get(
                url,
                headers=self._transport.headers,
                stream=True,
                timeout=(self._transport.request_timeout, None),
            )
            self._response = response

            if response.status_code != 200:
                raise TransportError(
                    f"Event stream rejected: {response.status_code}", response.status_code
                )

            client = sseclient.SSEClient(response)
            for sse in client.events():
                if self._stopped.is_set():
                    return
                try:
                    event = parse_bridge_event(sse.event, sse.data)
                except (json.JSONDecodeError, TypeError, ValueError) as e:
                    logger.error(f"Failed to parse bridge event {sse.event!r}: {e}")
                    continue
                if event is None:
                    continue

                self._deliver(event)
                if isinstance(event, ConnectionClosed):
                    closed_event = event
                    return

        except Exception as e:
            if self._stopped.is_set():
                return
            logger.warning(f"Bridge event stream for {self.session_id} failed: {e}")
            closed_event = ConnectionClosed(reason=None, detail=str(e))
            self._deliver(closed_event)
            return

        finally:
            if self._response is not None:
                self._response.close()

        if closed_event is None and not self._stopped.is_set():
            self._deliver(ConnectionClosed(reason=None, detail="Event stream ended"))

    def _deliver(self, event: TransportEvent) -> None:
        """Run the event sink on the loop and wait for it to finish."""
        if self._stopped.is_set() or self._loop.is_closed():
            return
        future = asyncio.run_coroutine_threadsafe(self._on_event(event), self._loop)
        try:
            future.result()
        except Exception as e:
            logger.error(f"Event handler failed for {type(event).__name__}: {e}")

    async def send_text(self, address: str, text: str) -> None:
        await self._transport.request(
            "POST",
            f"/sessions/{self.session_id}/messages",
            json={"jid": address, "text": text},
        )

    async def send_media(self, address: str, url: str, kind: str, caption: str) -> None:
        await self._transport.request(
            "POST",
            f"/sessions/{self.session_id}/messages",
            json={"jid": address, kind: {"url": url}, "caption": caption},
        )

    async def fetch_groups(self) -> Mapping[str, Mapping[str, Any]]:
        response = await self._transport.request("GET", f"/sessions/{self.session_id}/groups")
        groups = response.json()
        if isinstance(groups, list):
            return {group["id"]: group for group in groups}
        return groups

    async def logout(self) -> None:
        await self._transport.request("POST", f"/sessions/{self.session_id}/logout")

    async def close(self) -> None:
        """Stop the listener and drop the socket on the bridge (best effort)."""
        self._stopped.set()
        if self._response is not None:
            self._response.close()
        try:
            await self._transport.request("DELETE", f"/sessions/{self.session_id}")
        except TransportError as e:
            logger.debug(f"Bridge session {self.session_id} already gone: {e}")


class BridgeTransport:
    """SessionTransport backed by a protocol bridge sidecar."""

    def __init__(
        self,
        base_url: str,
        client_name: str,
        token: Optional[str] = None,
        request_timeout: float = 30.0,
        session_id: str = "default",
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the bridge transport.

        Args:
            base_url: Bridge base URL, e.g. http://localhost:3000
            client_name: Device name announced to the network
            token: Optional bearer token for the bridge
            request_timeout: Per-request timeout in seconds
            session_id: Fixed local identity of the single session
            http_client: Optional preconfigured async client (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.client_name = client_name
        self.request_timeout = request_timeout
        self.session_id = session_id
        self.headers = {"Accept": "application/json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"
        self._client = http_client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=self.request_timeout,
            )
        return self._client

    async def request(self, method: str, path: str, json: Optional[dict] = None) -> httpx.Response:
        """
        Issue a bridge request.

        Raises:
            TransportError: On connection failure or a non-2xx answer
        """
        try:
            response = await self._get_client().request(method, path, json=json)
        except httpx.HTTPError as e:
            raise TransportError(f"Bridge request {method} {path} failed: {e}") from e

        if response.status_code >= 400:
            try:
                message = response.json().get("message") or response.text
            except ValueError:
                message = response.text
            raise TransportError(
                f"Bridge returned {response.status_code}: {message}", response.status_code
            )
        return response

    async def connect(
        self, credentials: Optional[Dict[str, Any]], on_event: EventSink
    ) -> BridgeHandle:
        handle = BridgeHandle(self, self.session_id, on_event, asyncio.get_running_loop())
        await handle.start(credentials)
        logger.info(f"Bridge session {self.session_id} started")
        return handle

    async def aclose(self) -> None:
        """Close the shared HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
