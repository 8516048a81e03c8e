"""
asyncio stream transport

Implements :class:`Transport` over a Unix domain socket or a TCP connection
using an ``asyncio.Protocol``. Each ``connect`` creates a fresh protocol
instance; signals from a socket that has since been replaced are ignored.
"""

import asyncio
import logging
from typing import Optional

from lightning_client.connection.target import ConnectionTarget
from lightning_client.transport.base import Transport

logger = logging.getLogger(__name__)


class _StreamProtocol(asyncio.Protocol):
    """Forwards asyncio protocol callbacks to the owning transport"""

    def __init__(self, owner: "StreamTransport"):
        self.owner = owner
        self.transport: Optional[asyncio.Transport] = None

    def connection_made(self, transport):
        self.transport = transport
        self.owner._connection_made(self)

    def data_received(self, data):
        self.owner._data_received(self, data)

    def eof_received(self):
        # Returning None lets asyncio close the socket, which ends in connection_lost(None)
        return None

    def connection_lost(self, exc):
        self.owner._connection_lost(self, exc)


class StreamTransport(Transport):
    """Domain socket / TCP transport for a fixed target"""

    def __init__(self, target: ConnectionTarget):
        """Initialize transport

        Args:
            target: Daemon address, fixed for the transport lifetime
        """
        super().__init__()
        self.target = target
        self._protocol: Optional[_StreamProtocol] = None

    @property
    def is_connected(self) -> bool:
        return (
            self._protocol is not None
            and self._protocol.transport is not None
            and not self._protocol.transport.is_closing()
        )

    async def connect(self) -> None:
        loop = asyncio.get_running_loop()
        if self.target.is_tcp:
            await loop.create_connection(
                lambda: _StreamProtocol(self), self.target.path, self.target.port
            )
        else:
            await loop.create_unix_connection(
                lambda: _StreamProtocol(self), self.target.path
            )

    def write(self, data: bytes) -> None:
        if not self.is_connected:
            raise ConnectionError(f"Not connected to {self.target}")
        self._protocol.transport.write(data)

    def close(self) -> None:
        if self._protocol is not None and self._protocol.transport is not None:
            self._protocol.transport.close()

    def abort(self) -> None:
        if self._protocol is not None and self._protocol.transport is not None:
            self._protocol.transport.abort()

    def _connection_made(self, protocol: _StreamProtocol) -> None:
        previous = self._protocol
        self._protocol = protocol
        if previous is not None and previous.transport is not None:
            previous.transport.abort()
        logger.debug(f"Socket opened to {self.target}")
        self.listener.on_connect()

    def _data_received(self, protocol: _StreamProtocol, data: bytes) -> None:
        if protocol is not self._protocol:
            return
        self.listener.on_data(data)

    def _connection_lost(self, protocol: _StreamProtocol, exc: Optional[Exception]) -> None:
        if protocol is not self._protocol:
            logger.debug(f"Ignoring close of superseded socket to {self.target}")
            return
        if exc is not None:
            self.listener.on_error(exc)
        else:
            self.listener.on_close()
