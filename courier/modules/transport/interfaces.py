"""Session transport interfaces following Black Box Design principles."""
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Protocol, Union


class DisconnectReason(IntEnum):
    """Close codes reported by the messaging network."""

    CONNECTION_CLOSED = 428
    CONNECTION_LOST = 408
    CONNECTION_REPLACED = 440
    TIMED_OUT = 408
    LOGGED_OUT = 401
    BAD_SESSION = 500
    RESTART_REQUIRED = 515
    MULTIDEVICE_MISMATCH = 411
    FORBIDDEN = 403
    UNAVAILABLE_SERVICE = 503


@dataclass(frozen=True)
class PairingCodeIssued:
    """A fresh pairing code is ready to be shown to the user."""
    code: str


@dataclass(frozen=True)
class ConnectionOpened:
    """The session is authenticated and live."""


@dataclass(frozen=True)
class ConnectionClosed:
    """The socket closed. ``reason`` is None when the network gave no code."""
    reason: Optional[int] = None
    detail: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        """Only an explicit remote logout ends the session for good."""
        return self.reason == DisconnectReason.LOGGED_OUT


@dataclass(frozen=True)
class CredentialsUpdated:
    """The network rotated session keys; they must be persisted."""
    credentials: Dict[str, Any] = field(default_factory=dict)


TransportEvent = Union[PairingCodeIssued, ConnectionOpened, ConnectionClosed, CredentialsUpdated]

EventSink = Callable[[TransportEvent], Awaitable[None]]


class TransportHandle(Protocol):
    """A single live connection to the messaging network."""

    async def send_text(self, address: str, text: str) -> None:
        """Send a plain text message."""
        ...

    async def send_media(self, address: str, url: str, kind: str, caption: str) -> None:
        """Send an image or video fetched from ``url`` with a caption."""
        ...

    async def fetch_groups(self) -> Mapping[str, Mapping[str, Any]]:
        """
        Fetch all groups the account participates in.

        Returns:
            Mapping of group id to metadata with at least ``id``,
            ``subject`` and ``participants`` (a list)
        """
        ...

    async def logout(self) -> None:
        """Revoke the session on the remote side."""
        ...

    async def close(self) -> None:
        """Drop the connection and stop emitting events."""
        ...


class SessionTransport(Protocol):
    """Factory for transport handles."""

    async def connect(
        self, credentials: Optional[Dict[str, Any]], on_event: EventSink
    ) -> TransportHandle:
        """
        Start a new connection.

        Must return once the connection attempt has been started. Lifecycle
        events are delivered by awaiting ``on_event`` from the transport's own
        task or thread, never from inside ``connect``.
        """
        ...
