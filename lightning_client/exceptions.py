"""
Exception hierarchy for the Lightning RPC client.

Every client-specific exception inherits from :class:`LightningClientError` so
callers can catch a single base class when the failure mode does not matter.
"""

from typing import Any, Dict, Optional


class LightningClientError(Exception):
    """Base exception for all lightning_client errors."""


class ConfigurationError(LightningClientError):
    """Raised at construction when the connection target is unusable."""


class TransportError(LightningClientError):
    """Socket-level failure reported to observers of the ``error`` event."""


class JSONStreamError(TransportError):
    """Raised when the inbound byte stream is not valid concatenated JSON.

    A desynchronized stream cannot be trusted further, so the connection is
    dropped and re-established.
    """


class ConnectionLostError(LightningClientError):
    """Rejects pending calls when the connection drops (opt-in policy)."""


class ClientClosedError(LightningClientError):
    """Raised for calls made on, or waiting in, a closed client."""


class StateTransitionError(LightningClientError):
    """Raised on a connection state change the transition table does not allow."""


class LightningError(LightningClientError):
    """Error returned by the daemon in the ``error`` field of a response.

    Attributes:
        code: Numeric error code supplied by the daemon
        message: Human readable message
        data: Optional extra data attached to the error
        payload: The raw error object as received
    """

    def __init__(self, payload: Any):
        if isinstance(payload, dict):
            self.payload: Dict[str, Any] = payload
        else:
            self.payload = {"message": str(payload)}
        self.code: Optional[int] = self.payload.get("code")
        self.message: str = self.payload.get("message", "lightning-client error")
        self.data: Any = self.payload.get("data")
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f"[{self.code}] {self.message}"
