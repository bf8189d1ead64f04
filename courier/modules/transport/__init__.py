"""
Transport Module - Black Box Interface

Purpose: Connect to the external messaging network
Interface: SessionTransport.connect(), TransportHandle send/fetch/logout/close
Hidden: Wire protocol, bridge sidecar API, event stream plumbing

Replaceable with any client that emits the typed lifecycle events.
"""

from .bridge import BridgeTransport, parse_bridge_event
from .interfaces import (
    ConnectionClosed,
    ConnectionOpened,
    CredentialsUpdated,
    DisconnectReason,
    EventSink,
    PairingCodeIssued,
    SessionTransport,
    TransportEvent,
    TransportHandle,
)

__all__ = [
    "BridgeTransport",
    "ConnectionClosed",
    "ConnectionOpened",
    "CredentialsUpdated",
    "DisconnectReason",
    "EventSink",
    "PairingCodeIssued",
    "SessionTransport",
    "TransportEvent",
    "TransportHandle",
    "parse_bridge_event",
]
