"""
Reconnection controller

State machine layered on a :class:`Transport`. It keeps exactly one
connection alive for the client: every drop moves to DISCONNECTED and
schedules a reconnect after a backoff delay, forever. Outbound writes pass
through the "connected gate", a future fulfilled on connect; a fresh gate is
created for every connection epoch, so calls issued while disconnected wait
for the next successful connect.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from lightning_client.connection.backoff import BackoffTimer
from lightning_client.events import EventEmitter, CONNECT, ERROR, CLOSE
from lightning_client.exceptions import (
    ClientClosedError,
    JSONStreamError,
    StateTransitionError,
)
from lightning_client.rpc.demux import JSONStreamDemultiplexer
from lightning_client.telemetry.metrics import increment_counter
from lightning_client.transport.base import Transport, TransportListener

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"  # explicit shutdown, no further retries


_TRANSITIONS = {
    ConnectionState.DISCONNECTED: frozenset({ConnectionState.CONNECTING, ConnectionState.CLOSED}),
    ConnectionState.CONNECTING: frozenset({
        ConnectionState.CONNECTED, ConnectionState.DISCONNECTED, ConnectionState.CLOSED,
    }),
    ConnectionState.CONNECTED: frozenset({ConnectionState.DISCONNECTED, ConnectionState.CLOSED}),
    ConnectionState.CLOSED: frozenset(),
}


class ReconnectionController(TransportListener):
    """Owns the transport lifecycle and the connected gate"""

    def __init__(self,
                 transport: Transport,
                 demux: JSONStreamDemultiplexer,
                 backoff: Optional[BackoffTimer] = None,
                 events: Optional[EventEmitter] = None,
                 on_disconnect: Optional[Callable[[Optional[Exception]], None]] = None):
        """Initialize controller

        Args:
            transport: Reconnectable transport, bound to this controller
            demux: Receives every inbound chunk; reset on each new connection
            backoff: Reconnect delay policy
            events: Observer channel for connect/error/close
            on_disconnect: Called with the error (or None) whenever a live or
                connecting transport drops
        """
        self.transport = transport
        self.demux = demux
        self.backoff = backoff or BackoffTimer()
        self.events = events or EventEmitter()
        self._on_disconnect = on_disconnect

        self._state = ConnectionState.DISCONNECTED
        self._started = False
        self._gate: Optional[asyncio.Future] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._connect_task: Optional[asyncio.Task] = None
        self.connect_count = 0

        transport.bind(self)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def started(self) -> bool:
        return self._started

    @property
    def reconnect_handle(self) -> Optional[asyncio.TimerHandle]:
        """Timer of the scheduled reconnect attempt, if any"""
        return self._reconnect_handle

    @property
    def reconnect_scheduled(self) -> bool:
        return self._reconnect_handle is not None

    def _transition(self, new_state: ConnectionState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise StateTransitionError(
                f"Illegal transition {self._state.value} -> {new_state.value}"
            )
        logger.debug(f"Connection state {self._state.value} -> {new_state.value}")
        self._state = new_state

    def _current_gate(self) -> asyncio.Future:
        if self._gate is None:
            self._gate = asyncio.get_running_loop().create_future()
        return self._gate

    def start(self) -> None:
        """Open the first connection; later calls are no-ops

        Must be called from a running event loop.
        """
        if self._started:
            return
        self._started = True
        self._current_gate()
        self._begin_connect()

    def _begin_connect(self) -> None:
        self._transition(ConnectionState.CONNECTING)
        self._connect_task = asyncio.get_running_loop().create_task(self._open())

    async def _open(self) -> None:
        try:
            await self.transport.connect()
        except Exception as e:
            self._handle_drop(e)

    # Transport signals

    def on_connect(self) -> None:
        if self._state is ConnectionState.CLOSED:
            self.transport.abort()
            return
        if self._state is ConnectionState.DISCONNECTED:
            # A superseded socket reported its close while this connect was in flight
            self._cancel_reconnect()
            self._transition(ConnectionState.CONNECTING)
        self._transition(ConnectionState.CONNECTED)
        self.backoff.reset()
        self.demux.reset()
        self.connect_count += 1
        logger.info("Lightning client connected")

        gate = self._current_gate()
        if not gate.done():
            gate.set_result(None)
        self.events.emit(CONNECT)

    def on_data(self, data: bytes) -> None:
        if self._state is not ConnectionState.CONNECTED:
            return
        try:
            self.demux.feed(data)
        except JSONStreamError as e:
            self._handle_drop(e)
            self.transport.abort()

    def on_close(self) -> None:
        self._handle_drop(None)

    def on_error(self, error: Exception) -> None:
        self._handle_drop(error)

    def _handle_drop(self, error: Optional[Exception]) -> None:
        if self._state is ConnectionState.CLOSED:
            return

        if error is not None:
            logger.error(f"Lightning client connection error: {error}")
            self.events.emit(ERROR, error)

        if self._state is not ConnectionState.DISCONNECTED:
            if error is None:
                logger.warning("Lightning client connection closed, reconnecting")
            self._transition(ConnectionState.DISCONNECTED)
            if self._gate is not None and self._gate.done():
                self._gate = asyncio.get_running_loop().create_future()
            self.events.emit(CLOSE, error)
            if self._on_disconnect is not None:
                self._on_disconnect(error)

        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            return
        delay = self.backoff.next_delay()
        logger.info(f"Reconnecting in {delay:.1f}s")
        self._reconnect_handle = asyncio.get_running_loop().call_later(delay, self._reconnect)

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    def _reconnect(self) -> None:
        # Cleared first so a drop during this attempt can schedule the next one
        self._reconnect_handle = None
        if self._state is not ConnectionState.DISCONNECTED:
            return
        logger.debug("Trying to reconnect...")
        increment_counter("rpc.client.reconnects", 1)
        self._begin_connect()

    # Outbound path

    async def wait_connected(self) -> None:
        """Suspend until the current connection epoch is connected

        Raises:
            ClientClosedError: The controller was closed
        """
        if self._state is ConnectionState.CLOSED:
            raise ClientClosedError("Lightning client is closed")
        if not self._started:
            self.start()
        await asyncio.shield(self._current_gate())

    async def write(self, data: bytes, abandon: Optional[asyncio.Future] = None) -> bool:
        """Write once connected, retrying on the next epoch if the connection
        dropped before the write went out

        Args:
            data: Serialized request envelope
            abandon: Future of the request being written; once it is done
                the write is dropped instead of waiting for a connection

        Returns:
            bool: False when the request was abandoned and never written

        Raises:
            ClientClosedError: The controller was closed
        """
        while True:
            if abandon is not None and abandon.done():
                return False
            if self._state is not ConnectionState.CONNECTED:
                await self._wait_connected_or(abandon)
                continue
            try:
                self.transport.write(data)
                return True
            except ConnectionError as e:
                self._handle_drop(e)

    async def _wait_connected_or(self, abandon: Optional[asyncio.Future]) -> None:
        if abandon is None:
            await self.wait_connected()
            return
        if self._state is ConnectionState.CLOSED:
            raise ClientClosedError("Lightning client is closed")
        if not self._started:
            self.start()
        gate = asyncio.shield(self._current_gate())
        try:
            await asyncio.wait({gate, abandon}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not gate.done():
                gate.cancel()
        if not gate.cancelled():
            gate.result()

    def close(self) -> None:
        """Stop reconnecting and close the transport"""
        if self._state is ConnectionState.CLOSED:
            return
        self._cancel_reconnect()
        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
        self._transition(ConnectionState.CLOSED)
        self.transport.close()

        if self._gate is not None and not self._gate.done():
            self._gate.set_exception(ClientClosedError("Lightning client is closed"))
            # Mark retrieved; waiters re-raise it through their shields
            self._gate.exception()
        self.events.emit(CLOSE, None)
        logger.info("Lightning client closed")
