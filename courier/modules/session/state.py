"""Session lifecycle state definitions."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SessionPhase(str, Enum):
    """
    Connection lifecycle phases:

    DISCONNECTED   - No live transport
    INITIALIZING   - Transport allocated, waiting for the network
    PAIRING_READY  - Pairing code available for the user to scan
    CONNECTED      - Authenticated and able to send
    """
    DISCONNECTED = "disconnected"
    INITIALIZING = "initializing"
    PAIRING_READY = "qr_ready"
    CONNECTED = "connected"


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of the session; replaced as a whole on every transition."""

    phase: SessionPhase = SessionPhase.DISCONNECTED
    pairing_code: Optional[str] = None
    generation: int = 0
    reconnect_attempts: int = 0

    @property
    def connected(self) -> bool:
        return self.phase == SessionPhase.CONNECTED


class ConnectStatus(str, Enum):
    """Result of a connect request."""

    ALREADY_CONNECTED = "connected"
    PAIRING_READY = "qr_ready"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class ConnectOutcome:
    status: ConnectStatus
    pairing_code: Optional[str] = None


@dataclass(frozen=True)
class GroupSummary:
    id: str
    name: str
    participants: int


__all__ = [
    "ConnectOutcome",
    "ConnectStatus",
    "GroupSummary",
    "SessionPhase",
    "SessionSnapshot",
]
