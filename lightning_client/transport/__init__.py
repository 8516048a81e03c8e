"""
Transport Package

Byte-stream transports the reconnection controller drives.
"""

from lightning_client.transport.base import Transport, TransportListener
from lightning_client.transport.stream import StreamTransport

__all__ = ["Transport", "TransportListener", "StreamTransport"]
