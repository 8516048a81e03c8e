"""
Transport interface

Defines the byte-stream connection every transport implementation provides.
The reconnection controller drives it and receives its signals through a
bound listener, so the concrete socket type can change without touching the
layers above.
"""

import abc


class TransportListener(abc.ABC):
    """Receiver of transport signals"""

    @abc.abstractmethod
    def on_connect(self) -> None:
        """The connection is established"""

    @abc.abstractmethod
    def on_data(self, data: bytes) -> None:
        """A chunk of bytes arrived"""

    @abc.abstractmethod
    def on_close(self) -> None:
        """The peer closed the connection cleanly"""

    @abc.abstractmethod
    def on_error(self, error: Exception) -> None:
        """The connection failed"""


class Transport(abc.ABC):
    """Reconnectable byte-stream transport

    One Transport object lives for the whole client lifetime; ``connect`` may
    be called again after a drop to reconnect in place.
    """

    def __init__(self):
        self._listener = None

    def bind(self, listener: TransportListener) -> None:
        """Attach the listener that receives connect/data/close/error signals

        Args:
            listener: Signal receiver
        """
        self._listener = listener

    @property
    def listener(self) -> TransportListener:
        return self._listener

    @abc.abstractmethod
    async def connect(self) -> None:
        """Open a connection to the target

        Success is reported through ``listener.on_connect``.

        Raises:
            OSError: The connection could not be opened
        """

    @abc.abstractmethod
    def write(self, data: bytes) -> None:
        """Queue bytes for sending on the live connection"""

    @abc.abstractmethod
    def close(self) -> None:
        """Close the live connection, flushing buffered writes"""

    @abc.abstractmethod
    def abort(self) -> None:
        """Drop the live connection immediately, discarding buffered writes"""

    @property
    @abc.abstractmethod
    def is_connected(self) -> bool:
        """Whether a connection is currently open"""
