"""
Connection management: target selection, backoff and the reconnection state machine.
"""

from lightning_client.connection.backoff import BackoffTimer
from lightning_client.connection.controller import ConnectionState, ReconnectionController
from lightning_client.connection.target import ConnectionTarget

__all__ = ["BackoffTimer", "ConnectionState", "ReconnectionController", "ConnectionTarget"]
