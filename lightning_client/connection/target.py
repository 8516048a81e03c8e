"""
Connection target selection

Decides once, at construction, whether the client talks to the daemon over
its Unix domain socket or over TCP.
"""

import os
import logging
from dataclasses import dataclass
from typing import Any, Optional

from lightning_client.config import DEFAULT_RPC_DIR, RPC_FILENAME
from lightning_client.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_TCP_HOST = "localhost"


def parse_port(rpc_port: Any) -> Optional[int]:
    """Coerce a port argument, returning None for anything unusable

    Args:
        rpc_port: Port as int or string, possibly empty or None

    Returns:
        Optional[int]: Port in [1, 65535], or None
    """
    if rpc_port is None or rpc_port == "" or isinstance(rpc_port, bool):
        return None
    if isinstance(rpc_port, float) and not rpc_port.is_integer():
        return None
    try:
        port = int(rpc_port)
    except (TypeError, ValueError):
        return None
    if port < 1 or port > 65535:
        return None
    return port


@dataclass(frozen=True)
class ConnectionTarget:
    """Immutable daemon address; ``path`` holds the host name in TCP mode"""
    path: str
    port: Optional[int] = None

    @property
    def is_tcp(self) -> bool:
        return self.port is not None

    @classmethod
    def from_args(cls, rpc_path: Optional[str] = None, rpc_port: Any = None) -> "ConnectionTarget":
        """Build a target from constructor-style arguments

        An invalid or absent port silently falls back to socket mode.

        Args:
            rpc_path: Socket path (or directory), or TCP host when a port is given
            rpc_port: TCP port

        Returns:
            ConnectionTarget: The selected target

        Raises:
            ConfigurationError: Socket path is not absolute
        """
        port = parse_port(rpc_port)
        if port is not None:
            host = rpc_path or DEFAULT_TCP_HOST
            logger.debug(f"Connecting to {host}:{port} (TCP)")
            return cls(path=host, port=port)

        path = rpc_path or DEFAULT_RPC_DIR
        if not os.path.isabs(path):
            raise ConfigurationError("The rpc_path must be an absolute path")

        suffix = "/" + RPC_FILENAME
        if not path.endswith(suffix):
            path = os.path.join(path, RPC_FILENAME)

        logger.debug(f"Connecting to {path}")
        return cls(path=path)

    def __str__(self) -> str:
        if self.is_tcp:
            return f"{self.path}:{self.port}"
        return self.path
