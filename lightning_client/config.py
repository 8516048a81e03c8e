"""
Configuration settings for the Lightning RPC client
"""
import os
from typing import Dict, Any, Optional
from dataclasses import dataclass, field


DEFAULT_RPC_DIR = os.path.join(os.path.expanduser("~"), ".lightning")
RPC_FILENAME = "lightning-rpc"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


@dataclass
class ReconnectConfig:
    """Configuration for the reconnection backoff"""
    initial_delay: float = 0.5
    max_delay: float = 16.0
    factor: float = 2.0
    reset_delay: float = 1.0


@dataclass
class ClientConfig:
    """Main configuration for LightningClient"""
    rpc_path: Optional[str] = None
    rpc_port: Optional[Any] = None
    reconnect: ReconnectConfig = field(default_factory=ReconnectConfig)
    
    # Disconnect policy for in-flight calls
    fail_pending_on_disconnect: bool = False
    call_timeout: Optional[float] = None  # seconds, None waits forever
    
    # Telemetry configuration
    enable_telemetry: bool = True
    service_name: str = "lightning.client"

    
    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Create config from environment variables"""
        return cls(
            rpc_path=os.getenv("LIGHTNING_RPC_PATH"),
            rpc_port=os.getenv("LIGHTNING_RPC_PORT"),
            reconnect=ReconnectConfig(
                initial_delay=_env_float("LIGHTNING_RECONNECT_INITIAL", 0.5),
                max_delay=_env_float("LIGHTNING_RECONNECT_MAX", 16.0),
            ),
            fail_pending_on_disconnect=_env_bool("LIGHTNING_FAIL_PENDING_ON_DISCONNECT", False),
            call_timeout=_env_float("LIGHTNING_CALL_TIMEOUT", None),
            enable_telemetry=_env_bool("LIGHTNING_ENABLE_TELEMETRY", True),
            service_name=os.getenv("LIGHTNING_SERVICE_NAME", "lightning.client"),
        )
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "rpc_path": self.rpc_path,
            "rpc_port": self.rpc_port,
            "reconnect_initial_delay": self.reconnect.initial_delay,
            "reconnect_max_delay": self.reconnect.max_delay,
            "fail_pending_on_disconnect": self.fail_pending_on_disconnect,
            "call_timeout": self.call_timeout,
            "enable_telemetry": self.enable_telemetry,
            "service_name": self.service_name,
        }
