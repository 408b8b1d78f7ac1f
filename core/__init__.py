# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Core module initialization
# PURPOSE: Export core contracts, errors and delivery models
# CREATED: 19 OCT 2026
# ============================================================================

from core.contracts import (
    DeliveryStatus,
    OutcomeKind,
    FunctionErrorKind,
    TransactionState,
)
from core.errors import (
    RelayError,
    ChannelError,
    InvocationError,
    DeliveryError,
)
from core.models import (
    ChannelEvent,
    DeliveryPayload,
    DeliveryRequest,
    InvokeResponse,
    DeliveryOutcome,
)

__all__ = [
    # Enums
    "DeliveryStatus",
    "OutcomeKind",
    "FunctionErrorKind",
    "TransactionState",
    # Errors
    "RelayError",
    "ChannelError",
    "InvocationError",
    "DeliveryError",
    # Models
    "ChannelEvent",
    "DeliveryPayload",
    "DeliveryRequest",
    "InvokeResponse",
    "DeliveryOutcome",
]
