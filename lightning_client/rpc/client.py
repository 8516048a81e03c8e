"""
Lightning RPC client

Public entry point. :class:`LightningClient` assigns request ids, builds
request envelopes, waits for the connection through the reconnection
controller and awaits the correlated response. Every lightningd method in
:data:`METHODS` is also available as a camel-cased coroutine forwarding its
positional arguments, e.g. ``await client.getinfo()`` or
``await client.listpeers(node_id)``.

The ``close`` and ``connect`` attributes are the daemon's channel/peer RPCs;
use :meth:`LightningClient.shutdown` to close the client itself.
"""

import json
import time
import asyncio
import logging
import weakref
from contextlib import nullcontext
from typing import Any, Callable, List, Optional

from lightning_client.config import ClientConfig
from lightning_client.connection.backoff import BackoffTimer
from lightning_client.connection.controller import ConnectionState, ReconnectionController
from lightning_client.connection.target import ConnectionTarget
from lightning_client.events import EventEmitter
from lightning_client.exceptions import ClientClosedError, ConnectionLostError, LightningError
from lightning_client.rpc.demux import JSONStreamDemultiplexer
from lightning_client.rpc.methods import METHOD_ATTRIBUTES
from lightning_client.rpc.registry import CorrelationRegistry
from lightning_client.telemetry.metrics import add_gauge_callback, increment_counter, record_latency
from lightning_client.telemetry.tracer import create_span
from lightning_client.transport.base import Transport
from lightning_client.transport.stream import StreamTransport

logger = logging.getLogger(__name__)

# Registries of live telemetry-enabled clients, summed by one shared gauge
_pending_registries: "weakref.WeakSet[CorrelationRegistry]" = weakref.WeakSet()
_pending_gauge = None


def pending_calls() -> int:
    """Number of calls awaiting a response across all live clients"""
    return sum(len(registry) for registry in list(_pending_registries))


def _track_pending(registry: CorrelationRegistry) -> None:
    global _pending_gauge
    _pending_registries.add(registry)
    if _pending_gauge is None:
        _pending_gauge = add_gauge_callback("rpc.client.pending", pending_calls, "Calls awaiting a response")


class LightningClient:
    """
    Long-lived JSON-RPC client for a lightningd daemon.

    Usage:
        async with LightningClient("/home/user/.lightning") as client:
            info = await client.getinfo()
            peers = await client.call("listpeers", [])
    """

    def __init__(self,
                 rpc_path: Optional[str] = None,
                 rpc_port: Any = None,
                 config: Optional[ClientConfig] = None,
                 transport: Optional[Transport] = None):
        """Initialize client

        Connecting starts immediately when an event loop is running,
        otherwise on ``start()``, ``async with`` or the first call.

        Args:
            rpc_path: Socket path or lightning directory; TCP host when a port is given
            rpc_port: TCP port; invalid values fall back to the socket path
            config: Client configuration (path/port used when the arguments are None)
            transport: Transport override, defaults to a stream transport on the target

        Raises:
            ConfigurationError: The socket path is not absolute
        """
        self.config = config or ClientConfig()
        if rpc_path is None:
            rpc_path = self.config.rpc_path
        if rpc_port is None:
            rpc_port = self.config.rpc_port

        self.target = ConnectionTarget.from_args(rpc_path, rpc_port)
        self.events = EventEmitter()
        self.registry = CorrelationRegistry()
        self.demux = JSONStreamDemultiplexer(self.registry.resolve)

        reconnect = self.config.reconnect
        self.controller = ReconnectionController(
            transport or StreamTransport(self.target),
            self.demux,
            backoff=BackoffTimer(
                initial=reconnect.initial_delay,
                maximum=reconnect.max_delay,
                factor=reconnect.factor,
                reset_value=reconnect.reset_delay,
            ),
            events=self.events,
            on_disconnect=self._on_disconnect,
        )
        self._reqcount = 0

        if self.config.enable_telemetry:
            _track_pending(self.registry)

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, deferring connect")
        else:
            self.controller.start()

    @property
    def state(self) -> ConnectionState:
        return self.controller.state

    @property
    def connected(self) -> bool:
        return self.controller.state is ConnectionState.CONNECTED

    def on(self, event: str, callback: Callable[..., Any]) -> Callable[..., Any]:
        """Subscribe to ``connect``, ``error`` or ``close`` events"""
        return self.events.on(event, callback)

    def off(self, event: str, callback: Callable[..., Any]) -> None:
        self.events.off(event, callback)

    def start(self) -> None:
        """Begin connecting (idempotent); needs a running event loop"""
        self.controller.start()

    def shutdown(self) -> None:
        """Close the connection, stop reconnecting and fail pending calls"""
        self.controller.close()
        self.registry.fail_all(ClientClosedError("Lightning client is closed"))

    async def __aenter__(self) -> "LightningClient":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def _on_disconnect(self, error: Optional[Exception]) -> None:
        if self.config.fail_pending_on_disconnect and len(self.registry):
            self.registry.fail_all(ConnectionLostError(
                f"Connection to {self.target} lost" + (f": {error}" if error else "")
            ))

    def _next_id(self) -> str:
        self._reqcount += 1
        return str(self._reqcount)

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Send a request and wait for its response

        Waits for the connection if the daemon is currently unreachable.
        No timeout applies unless ``config.call_timeout`` is set.

        Args:
            method: RPC method name
            params: Positional parameters

        Returns:
            The ``result`` field of the response

        Raises:
            LightningError: The daemon answered with an error
            ClientClosedError: The client was shut down
            ConnectionLostError: The connection dropped and
                ``fail_pending_on_disconnect`` is enabled
            asyncio.TimeoutError: ``call_timeout`` elapsed
        """
        if params is None:
            params = []
        elif isinstance(params, tuple):
            params = list(params)

        request_id = self._next_id()
        request = {
            "method": method,
            "params": params,
            "id": request_id
        }
        data = json.dumps(request, separators=(",", ":")).encode("utf-8")

        logger.debug(f"#{request_id} --> {method} {params!r:.200}")
        increment_counter("rpc.client.requests", 1, {"method": method})

        span = create_span(f"lightning.{method}", {"rpc.method": method, "rpc.id": request_id}) \
            if self.config.enable_telemetry else nullcontext()
        start_time = time.time()

        with span:
            try:
                if self.config.call_timeout is not None:
                    result = await asyncio.wait_for(
                        self._send(request_id, method, params, data), self.config.call_timeout
                    )
                else:
                    result = await self._send(request_id, method, params, data)

            except LightningError as e:
                increment_counter("rpc.client.errors", 1, {
                    "type": "rpc_error",
                    "method": method,
                    "code": str(e.code)
                })
                raise

            except asyncio.TimeoutError:
                logger.error(f"#{request_id} {method} timed out after {self.config.call_timeout}s")
                increment_counter("rpc.client.errors", 1, {"type": "timeout", "method": method})
                raise

            except (ClientClosedError, ConnectionLostError) as e:
                increment_counter("rpc.client.errors", 1, {"type": "connection", "method": method})
                logger.debug(f"#{request_id} {method} aborted: {e}")
                raise

        latency_ms = (time.time() - start_time) * 1000
        record_latency("rpc.client.latency", latency_ms, {"method": method})
        increment_counter("rpc.client.success", 1, {"method": method})
        return result

    async def _send(self, request_id: str, method: str, params: List[Any], data: bytes) -> Any:
        await self.controller.wait_connected()
        future = self.registry.register(request_id, method, params)
        try:
            if not await self.controller.write(data, abandon=future):
                logger.debug(f"#{request_id} {method} failed before it was written")
            return await future
        finally:
            self.registry.discard(request_id)


def _make_rpc_method(method: str, attribute: str):
    async def rpc_method(self, *args):
        return await self.call(method, list(args))

    rpc_method.__name__ = attribute
    rpc_method.__qualname__ = f"LightningClient.{attribute}"
    rpc_method.__doc__ = f"Call ``{method}`` with positional parameters."
    return rpc_method


for _attribute, _method in METHOD_ATTRIBUTES.items():
    if _attribute in LightningClient.__dict__:
        raise AttributeError(f"RPC method {_method} would shadow LightningClient.{_attribute}")
    setattr(LightningClient, _attribute, _make_rpc_method(_method, _attribute))


def create_client(rpc_path: Optional[str] = None, rpc_port: Any = None, **kwargs) -> LightningClient:
    """Create a LightningClient

    Args:
        rpc_path: Socket path or lightning directory, or TCP host
        rpc_port: TCP port
        **kwargs: Passed to LightningClient

    Returns:
        LightningClient: The client
    """
    return LightningClient(rpc_path, rpc_port, **kwargs)
