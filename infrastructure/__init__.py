# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Infrastructure - Channels and remote invokers
# PURPOSE: Adapters around the buffering runtime and the Lambda SDK
# CREATED: 19 OCT 2026
# ============================================================================
"""
Infrastructure module for the Lambda Relay.

Provides:
- Channel / Transaction: transactional event source interface
- MemoryChannel: in-process channel
- LambdaConfig / LambdaInvoker: AWS Lambda client and invoker

ServiceBusChannel lives in infrastructure.service_bus and is imported on
demand so the Azure SDK is only loaded when that channel is used.
"""

from infrastructure.channel import (
    Transaction,
    Channel,
    MemoryTransaction,
    MemoryChannel,
)
from infrastructure.lambda_invoker import (
    LambdaConfig,
    Invoker,
    LambdaInvoker,
    build_lambda_client,
)

__all__ = [
    "Transaction",
    "Channel",
    "MemoryTransaction",
    "MemoryChannel",
    "LambdaConfig",
    "Invoker",
    "LambdaInvoker",
    "build_lambda_client",
]
