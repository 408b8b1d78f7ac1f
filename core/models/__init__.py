# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Model exports
# PURPOSE: Central export point for delivery models
# CREATED: 19 OCT 2026
# ============================================================================

from core.models.delivery import (
    ChannelEvent,
    DeliveryPayload,
    DeliveryRequest,
    InvokeResponse,
    DeliveryOutcome,
)

__all__ = [
    "ChannelEvent",
    "DeliveryPayload",
    "DeliveryRequest",
    "InvokeResponse",
    "DeliveryOutcome",
]
