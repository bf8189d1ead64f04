"""
Shared pytest fixtures for Courier tests.

This module provides common fixtures including:
- FakeTransport / FakeHandle: in-memory session transport that lets tests
  emit lifecycle events by hand
- Credential store and Redis mocks
- A SessionManager with short timings
"""

import asyncio
import os
import sys
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from courier.modules.session import SessionManager, SessionPhase
from courier.modules.transport import ConnectionOpened, PairingCodeIssued, TransportEvent


# =============================================================================
# Transport Fakes
# =============================================================================


class FakeHandle:
    """Transport handle whose sends are AsyncMocks and whose events are emitted by the test."""

    def __init__(self, on_event, credentials: Optional[Dict[str, Any]]):
        self.on_event = on_event
        self.credentials = credentials
        self.send_text = AsyncMock()
        self.send_media = AsyncMock()
        self.fetch_groups = AsyncMock(return_value={})
        self.logout = AsyncMock()
        self.close = AsyncMock()

    async def emit(self, event: TransportEvent) -> None:
        await self.on_event(event)


class FakeTransport:
    """SessionTransport that records every handle it allocates."""

    def __init__(self):
        self.handles: List[FakeHandle] = []
        self.connect_delay = 0.0
        self.connect_error: Optional[Exception] = None

    async def connect(self, credentials, on_event) -> FakeHandle:
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.connect_error is not None:
            error, self.connect_error = self.connect_error, None
            raise error
        handle = FakeHandle(on_event, credentials)
        self.handles.append(handle)
        return handle

    @property
    def latest(self) -> FakeHandle:
        return self.handles[-1]


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Yield to the loop until ``predicate`` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() >= deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


def assert_phase_invariant(manager: SessionManager) -> None:
    """Pairing code iff PAIRING_READY; a transport exists iff not DISCONNECTED."""
    state = manager.state
    assert (state.pairing_code is not None) == (state.phase == SessionPhase.PAIRING_READY)
    assert manager.has_transport == (state.phase != SessionPhase.DISCONNECTED)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def credential_store():
    """Create a mock credential store holding nothing."""
    store = AsyncMock()
    store.load = AsyncMock(return_value=None)
    store.save = AsyncMock()
    store.clear = AsyncMock()
    store.close = AsyncMock()
    return store


@pytest.fixture
def mock_redis():
    """Create a mock Redis client."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock()
    redis.delete = AsyncMock()
    redis.close = AsyncMock()
    return redis


@pytest_asyncio.fixture
async def session_manager(transport, credential_store):
    """SessionManager with timings short enough for tests."""
    manager = SessionManager(
        transport,
        credential_store,
        reconnect_delay=0.01,
        connect_timeout=0.3,
        poll_interval=0.005,
    )
    yield manager
    await manager.shutdown()


async def start_pairing(manager: SessionManager, transport: FakeTransport, code: str = "2@pairing-code"):
    """Run request_connection and answer it with a pairing code."""
    task = asyncio.create_task(manager.request_connection())
    await wait_until(lambda: len(transport.handles) == 1)
    await transport.latest.emit(PairingCodeIssued(code=code))
    return await task


@pytest_asyncio.fixture
async def connected_manager(session_manager, transport):
    """SessionManager that has paired and opened a connection."""
    await start_pairing(session_manager, transport)
    await transport.latest.emit(ConnectionOpened())
    assert session_manager.is_connected
    return session_manager
