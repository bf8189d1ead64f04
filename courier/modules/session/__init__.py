"""
Session Module - Black Box Interface

Purpose: Manage the messaging session lifecycle
Interface: request_connection(), get_status(), get_pairing_code(), list_groups(), logout()
Hidden: Transport ownership, reconnect policy, credential persistence, generation checks

Replaceable with any session backend that exposes the same phases.
"""

from .session import SessionManager
from .state import ConnectOutcome, ConnectStatus, GroupSummary, SessionPhase, SessionSnapshot

__all__ = [
    "ConnectOutcome",
    "ConnectStatus",
    "GroupSummary",
    "SessionManager",
    "SessionPhase",
    "SessionSnapshot",
]
