# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Foundation - Core enums
# PURPOSE: Status and classification enums shared by worker and adapters
# CREATED: 19 OCT 2026
# EXPORTS: DeliveryStatus, OutcomeKind, FunctionErrorKind, TransactionState
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the relay.

These enums cross the seams between:
- the driver loop (DeliveryStatus)
- the remote invoker (FunctionErrorKind)
- the channel transaction (TransactionState)
- the worker classifier (OutcomeKind)
"""

from enum import Enum
from typing import Optional


# ============================================================================
# STATUS ENUMS
# ============================================================================

class DeliveryStatus(str, Enum):
    """
    Result of one delivery cycle, as seen by the driver.

    Failures are raised, never returned.
    """
    READY = "ready"          # Event delivered and committed
    BACKOFF = "backoff"      # Nothing buffered


class OutcomeKind(str, Enum):
    """Classification of one invocation attempt."""
    SUCCESS = "success"
    REMOTE_ERROR = "remote_error"            # Function ran and reported an error
    TRANSPORT_FAILURE = "transport_failure"  # Call failed or status out of range


class FunctionErrorKind(str, Enum):
    """
    Application-level error reported by the remote function.

    Lambda sets the X-Amz-Function-Error header to "Handled" or
    "Unhandled" when the function itself failed.
    """
    NONE = "none"
    HANDLED = "Handled"
    UNHANDLED = "Unhandled"

    @classmethod
    def from_header(cls, value: Optional[str]) -> "FunctionErrorKind":
        """Parse the function error header value."""
        if not value:
            return cls.NONE
        if value.strip().lower() == "handled":
            return cls.HANDLED
        # Any other non-empty marker is still a function error
        return cls.UNHANDLED


class TransactionState(str, Enum):
    """
    Channel transaction lifecycle.

    State transitions:
        OPEN -> COMMITTED -> RELEASED
             -> ROLLED_BACK -> RELEASED
             -> RELEASED (abandoned, treated as rollback)
    """
    OPEN = "open"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    RELEASED = "released"


__all__ = [
    "DeliveryStatus",
    "OutcomeKind",
    "FunctionErrorKind",
    "TransactionState",
]
