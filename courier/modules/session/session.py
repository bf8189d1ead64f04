import asyncio
import contextlib
import dataclasses
import logging
from typing import List, Optional

from ...errors import CredentialStoreError, NotConnected, TransportError
from ..storage import CredentialStore
from ..transport import (
    ConnectionClosed,
    ConnectionOpened,
    CredentialsUpdated,
    EventSink,
    PairingCodeIssued,
    SessionTransport,
    TransportEvent,
    TransportHandle,
)
from .state import ConnectOutcome, ConnectStatus, GroupSummary, SessionPhase, SessionSnapshot

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Owns the single live transport handle and the session state machine.

    Every mutation of the state and the handle happens under one lock.
    Each transport instance is bound to a generation number; events from an
    instance whose generation is no longer current are discarded.
    """

    def __init__(
        self,
        transport: SessionTransport,
        credential_store: CredentialStore,
        reconnect_delay: float = 3.0,
        max_reconnect_attempts: int = 0,
        connect_timeout: float = 10.0,
        poll_interval: float = 0.5,
    ):
        """
        Initialize session manager.

        Args:
            transport: Factory for transport handles
            credential_store: Persistence for session credentials
            reconnect_delay: Fixed delay in seconds before an automatic resume
            max_reconnect_attempts: Consecutive automatic resumes allowed (0 = unbounded)
            connect_timeout: Seconds request_connection waits for an outcome
            poll_interval: Seconds between state checks while waiting
        """
        self._transport = transport
        self._store = credential_store
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_attempts = max_reconnect_attempts
        self.connect_timeout = connect_timeout
        self.poll_interval = poll_interval

        self._state = SessionSnapshot()
        self._handle: Optional[TransportHandle] = None
        self._lock = asyncio.Lock()
        self._reconnect_task: Optional[asyncio.Task] = None

    # Reads

    @property
    def state(self) -> SessionSnapshot:
        """Consistent snapshot of phase and pairing code."""
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state.connected

    @property
    def has_transport(self) -> bool:
        return self._handle is not None

    def get_pairing_code(self) -> Optional[str]:
        return self._state.pairing_code

    def get_status(self) -> SessionSnapshot:
        return self._state

    def active_handle(self) -> TransportHandle:
        """
        Return the live handle for the duration of one operation.

        Raises:
            NotConnected: If the session is not connected
        """
        handle = self._handle
        if self._state.phase != SessionPhase.CONNECTED or handle is None:
            raise NotConnected()
        return handle

    # Operations

    async def request_connection(self) -> ConnectOutcome:
        """
        Start (or join) a connection attempt and wait for a usable outcome.

        Returns once the session is connected, a pairing code is available,
        or connect_timeout elapses. A timeout leaves the attempt running.
        """
        async with self._lock:
            phase = self._state.phase
            if phase == SessionPhase.CONNECTED and self._handle is not None:
                return ConnectOutcome(ConnectStatus.ALREADY_CONNECTED)

            if phase == SessionPhase.DISCONNECTED:
                await self._start_locked(reset_attempts=True)
            elif self._reconnect_pending():
                logger.info("Connect requested during reconnect backoff; resuming now")
                await self._start_locked()
            else:
                logger.debug(f"Joining in-flight connection attempt ({phase.value})")

        return await self._wait_for_outcome()

    async def resume(self) -> bool:
        """
        Resume a persisted session without waiting for the outcome.

        Returns:
            True if credentials were found and a connection attempt started
        """
        async with self._lock:
            if self._state.phase != SessionPhase.DISCONNECTED:
                return False
            try:
                credentials = await self._store.load()
            except CredentialStoreError as e:
                logger.error(f"Cannot resume session: {e}")
                return False
            if not credentials:
                return False

            logger.info("Persisted credentials found, resuming session")
            await self._start_locked(reset_attempts=True)
            return True

    async def list_groups(self) -> List[GroupSummary]:
        """
        List the groups the account participates in.

        Raises:
            NotConnected: If the session is not connected
            TransportError: If the network call fails
        """
        handle = self.active_handle()
        try:
            groups = await handle.fetch_groups()
        except TransportError:
            raise
        except Exception as e:
            raise TransportError(f"Failed to fetch groups: {e}") from e

        return [
            GroupSummary(
                id=group.get("id", group_id),
                name=group.get("subject") or "",
                participants=len(group.get("participants") or []),
            )
            for group_id, group in groups.items()
        ]

    async def logout(self) -> None:
        """Tear down the session and delete credentials. Never raises."""
        async with self._lock:
            self._cancel_reconnect()
            handle = self._handle
            self._handle = None
            self._set_state(
                phase=SessionPhase.DISCONNECTED,
                generation=self._state.generation + 1,
                reconnect_attempts=0,
            )

            if handle is not None:
                try:
                    await handle.logout()
                except Exception as e:
                    logger.warning(f"Remote logout failed, discarding session anyway: {e}")
                await self._close_quietly(handle)

            await self._clear_credentials()

        logger.info("Logged out")

    async def shutdown(self) -> None:
        """Drop the connection on process exit, keeping credentials."""
        async with self._lock:
            task = self._cancel_reconnect()
            handle = self._handle
            self._handle = None
            self._set_state(
                phase=SessionPhase.DISCONNECTED,
                generation=self._state.generation + 1,
            )
            if handle is not None:
                await self._close_quietly(handle)

        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # State machine

    def _event_sink(self, generation: int) -> EventSink:
        async def on_event(event: TransportEvent) -> None:
            await self._handle_event(generation, event)

        return on_event

    async def _handle_event(self, generation: int, event: TransportEvent) -> None:
        async with self._lock:
            if generation != self._state.generation:
                logger.debug(
                    f"Ignoring {type(event).__name__} from stale transport "
                    f"(generation {generation}, current {self._state.generation})"
                )
                return

            if isinstance(event, CredentialsUpdated):
                await self._persist_credentials(event)
            elif isinstance(event, PairingCodeIssued):
                self._on_pairing_code(event)
            elif isinstance(event, ConnectionOpened):
                self._on_open()
            elif isinstance(event, ConnectionClosed):
                await self._on_closed(event)

    def _on_pairing_code(self, event: PairingCodeIssued) -> None:
        if self._state.phase not in (SessionPhase.INITIALIZING, SessionPhase.PAIRING_READY):
            logger.warning(f"Pairing code received while {self._state.phase.value}; ignoring")
            return
        self._set_state(phase=SessionPhase.PAIRING_READY, pairing_code=event.code)
        logger.info("Pairing code generated")

    def _on_open(self) -> None:
        self._set_state(phase=SessionPhase.CONNECTED, reconnect_attempts=0)
        logger.info("Messaging session connected")

    async def _on_closed(self, event: ConnectionClosed) -> None:
        handle = self._handle
        generation = self._state.generation + 1

        if event.is_terminal:
            logger.warning(f"Session logged out remotely (reason {event.reason}); discarding credentials")
            self._handle = None
            self._set_state(phase=SessionPhase.DISCONNECTED, generation=generation, reconnect_attempts=0)
            if handle is not None:
                await self._close_quietly(handle)
            await self._clear_credentials()
            return

        attempts = self._state.reconnect_attempts + 1
        if self.max_reconnect_attempts and attempts > self.max_reconnect_attempts:
            logger.error(
                f"Connection closed (reason {event.reason}); giving up after "
                f"{self.max_reconnect_attempts} reconnect attempts"
            )
            self._handle = None
            self._set_state(phase=SessionPhase.DISCONNECTED, generation=generation)
            if handle is not None:
                await self._close_quietly(handle)
            return

        logger.info(
            f"Connection closed (reason {event.reason}, {event.detail}); "
            f"reconnecting in {self.reconnect_delay}s (attempt {attempts})"
        )
        # The closed handle stays current until the resume replaces it.
        phase = SessionPhase.INITIALIZING if handle is not None else SessionPhase.DISCONNECTED
        self._set_state(phase=phase, generation=generation, reconnect_attempts=attempts)
        self._reconnect_task = asyncio.create_task(self._reconnect_after_delay(generation))

    async def _reconnect_after_delay(self, generation: int) -> None:
        await asyncio.sleep(self.reconnect_delay)
        async with self._lock:
            if generation != self._state.generation:
                return
            self._reconnect_task = None
            await self._start_locked()

    async def _start_locked(self, reset_attempts: bool = False) -> None:
        """
        Replace the transport with a fresh instance. Caller holds the lock.

        The generation moves first so the previous handle's events are dropped.
        Phase and handle change together once the new handle exists; until then
        the previous handle (or none, while Disconnected) stays current.
        """
        self._cancel_reconnect()
        previous = self._handle
        generation = self._state.generation + 1
        changes = {"generation": generation}
        if reset_attempts:
            changes["reconnect_attempts"] = 0
        self._set_state(**changes)

        try:
            credentials = await self._store.load()
        except CredentialStoreError as e:
            logger.error(f"Ignoring unreadable credentials, a new pairing will be required: {e}")
            credentials = None

        try:
            handle = await self._transport.connect(credentials, self._event_sink(generation))
        except Exception as e:
            logger.error(f"Transport failed to start: {e}")
            self._handle = None
            if previous is not None:
                await self._close_quietly(previous)
            await self._on_closed(ConnectionClosed(reason=None, detail=str(e)))
            return

        self._handle = handle
        self._set_state(phase=SessionPhase.INITIALIZING)
        if previous is not None:
            await self._close_quietly(previous)

        logger.info(
            f"Connection attempt started (generation {generation}, "
            f"{'resuming' if credentials else 'new pairing'})"
        )

    async def _wait_for_outcome(self) -> ConnectOutcome:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.connect_timeout

        while True:
            snapshot = self._state
            if snapshot.phase == SessionPhase.CONNECTED:
                return ConnectOutcome(ConnectStatus.ALREADY_CONNECTED)
            if snapshot.phase == SessionPhase.PAIRING_READY:
                return ConnectOutcome(ConnectStatus.PAIRING_READY, snapshot.pairing_code)
            if loop.time() >= deadline:
                logger.warning(
                    f"No pairing code or connection after {self.connect_timeout}s; "
                    "attempt continues in background"
                )
                return ConnectOutcome(ConnectStatus.TIMED_OUT)
            await asyncio.sleep(self.poll_interval)

    # Helpers

    def _set_state(self, **changes) -> None:
        state = dataclasses.replace(self._state, **changes)
        if state.phase != SessionPhase.PAIRING_READY and state.pairing_code is not None:
            state = dataclasses.replace(state, pairing_code=None)
        self._state = state

    def _reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    def _cancel_reconnect(self) -> Optional[asyncio.Task]:
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            return task
        return None

    async def _persist_credentials(self, event: CredentialsUpdated) -> None:
        try:
            await self._store.save(event.credentials)
        except CredentialStoreError as e:
            logger.error(f"Failed to persist credentials: {e}")

    async def _clear_credentials(self) -> None:
        try:
            await self._store.clear()
        except CredentialStoreError as e:
            logger.error(f"Failed to delete credentials: {e}")

    async def _close_quietly(self, handle: TransportHandle) -> None:
        try:
            await handle.close()
        except Exception as e:
            logger.warning(f"Error closing transport: {e}")
