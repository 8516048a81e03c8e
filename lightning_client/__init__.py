"""
Lightning RPC client

Long-lived asyncio client for the JSON-RPC interface lightningd exposes on
its Unix domain socket (or a TCP port). The client keeps one logical
connection across daemon restarts:

1. Transport: asyncio stream over the socket, reconnectable in place
2. Reconnection: explicit state machine with exponential backoff
3. Demultiplexing: splits the unframed response stream into JSON values
4. Correlation: each response settles exactly the call with the same id

All components emit logs through ``logging`` and metrics/spans through
OpenTelemetry.
"""

from lightning_client.config import ClientConfig, ReconnectConfig
from lightning_client.connection.controller import ConnectionState
from lightning_client.connection.target import ConnectionTarget
from lightning_client.exceptions import (
    LightningClientError,
    ConfigurationError,
    TransportError,
    JSONStreamError,
    LightningError,
    ConnectionLostError,
    ClientClosedError,
)
from lightning_client.rpc.client import LightningClient, create_client
from lightning_client.rpc.methods import METHODS

__version__ = "0.1.0"
__all__ = [
    "LightningClient",
    "create_client",
    "ClientConfig",
    "ReconnectConfig",
    "ConnectionState",
    "ConnectionTarget",
    "METHODS",
    "LightningClientError",
    "ConfigurationError",
    "TransportError",
    "JSONStreamError",
    "LightningError",
    "ConnectionLostError",
    "ClientClosedError",
]
