# ============================================================================
# WORKER CONTRACTS
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Core - Worker configuration
# PURPOSE: Environment-driven configuration for the relay worker process
# CREATED: 19 OCT 2026
# ============================================================================
"""
Worker Contracts

Configuration for a relay worker process. Read once at startup, never
mutated afterwards. The Lambda part is kept as its own immutable
LambdaConfig so it can be handed straight to client construction.
"""

import os
import socket
from dataclasses import dataclass, field
from typing import Optional

from infrastructure.lambda_invoker import LambdaConfig

CHANNEL_TYPES = ("servicebus", "memory")


@dataclass(frozen=True)
class WorkerConfig:
    """Configuration for a relay worker."""

    # Target (MUST be set explicitly - no default)
    function_name: str

    # Identity
    worker_id: str = "relay-worker"

    # Channel
    channel_type: str = "servicebus"
    queue_name: str = ""
    service_bus_connection: Optional[str] = None
    service_bus_namespace: Optional[str] = None
    use_managed_identity: bool = False
    receive_wait_seconds: float = 1.0
    memory_capacity: int = 1000

    # Driver pacing
    backoff_seconds: float = 1.0
    max_backoff_seconds: float = 5.0

    # Lambda client
    lambda_config: LambdaConfig = field(default_factory=LambdaConfig)

    # Health server
    health_port: int = 8000

    def __post_init__(self):
        if not self.function_name or not self.function_name.strip():
            raise ValueError("function_name is required")
        if self.channel_type not in CHANNEL_TYPES:
            raise ValueError(
                f"Unknown channel type '{self.channel_type}' (expected one of {CHANNEL_TYPES})"
            )
        if self.channel_type == "servicebus":
            if not self.queue_name:
                raise ValueError("RELAY_QUEUE is required for the servicebus channel")
            if not self.service_bus_connection and not self.service_bus_namespace:
                raise ValueError(
                    "No Service Bus connection configured. "
                    "Set SERVICEBUS_CONNECTION_STRING or SERVICE_BUS_FQDN"
                )
            if self.use_managed_identity and not self.service_bus_namespace:
                raise ValueError("SERVICE_BUS_FQDN required when USE_MANAGED_IDENTITY=true")
        if self.backoff_seconds < 0 or self.max_backoff_seconds < self.backoff_seconds:
            raise ValueError("backoff_seconds must be >= 0 and <= max_backoff_seconds")

    @classmethod
    def from_env(cls) -> "WorkerConfig":
        """Create config from environment variables."""
        function_name = os.getenv("LAMBDA_FUNCTION_NAME", "")
        if not function_name:
            raise ValueError("LAMBDA_FUNCTION_NAME environment variable is required")

        return cls(
            function_name=function_name,
            worker_id=os.getenv("RELAY_WORKER_ID", f"relay-{socket.gethostname()}"),
            channel_type=os.getenv("RELAY_CHANNEL", "servicebus").lower(),
            queue_name=os.getenv("RELAY_QUEUE", ""),
            service_bus_connection=os.getenv("SERVICEBUS_CONNECTION_STRING") or None,
            service_bus_namespace=os.getenv("SERVICE_BUS_FQDN") or None,
            use_managed_identity=os.getenv("USE_MANAGED_IDENTITY", "").lower() == "true",
            receive_wait_seconds=float(os.getenv("RELAY_RECEIVE_WAIT_SECONDS", "1.0")),
            memory_capacity=int(os.getenv("RELAY_MEMORY_CAPACITY", "1000")),
            backoff_seconds=float(os.getenv("RELAY_BACKOFF_SECONDS", "1.0")),
            max_backoff_seconds=float(os.getenv("RELAY_MAX_BACKOFF_SECONDS", "5.0")),
            lambda_config=LambdaConfig.from_env(),
            health_port=int(os.getenv("PORT", "8000")),
        )


__all__ = [
    "CHANNEL_TYPES",
    "WorkerConfig",
]
