# ============================================================================
# RELAY ERRORS
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Core - Exception hierarchy
# PURPOSE: Typed failures raised across channel, invoker and worker seams
# CREATED: 19 OCT 2026
# ============================================================================
"""
Relay Errors

Exception hierarchy for the relay:

    RelayError
    ├── ChannelError       channel misuse (take outside a transaction, ...)
    ├── InvocationError    remote invocation could not complete (transport)
    └── DeliveryError      a delivery cycle failed and was rolled back

A DeliveryError always means the transaction was rolled back and released
before it reached the caller.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from core.models.delivery import DeliveryOutcome


class RelayError(Exception):
    """Base class for relay errors."""
    pass


class ChannelError(RelayError):
    """Raised when a channel or transaction is used out of order."""
    pass


class InvocationError(RelayError):
    """
    Raised by an invoker when the call itself could not complete.

    Covers network failures, throttling, auth failures and malformed
    responses. ``retryable`` marks transient conditions (throttling,
    service busy, connection loss) for drivers that care.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.retryable = retryable


class DeliveryError(RelayError):
    """
    Raised by the delivery worker after a failed cycle.

    ``outcome`` is the classified outcome for expected failures (remote
    function error, transport failure). It is None when the cycle was
    aborted by an unanticipated fault; the fault is chained as __cause__.
    """

    def __init__(
        self,
        message: str,
        outcome: Optional["DeliveryOutcome"] = None,
    ):
        super().__init__(message)
        self.outcome = outcome

    @property
    def is_unexpected(self) -> bool:
        """True when no classified outcome was produced."""
        return self.outcome is None

    @property
    def is_permanent(self) -> bool:
        """True when the invocation failed in a way retrying will not fix."""
        cause = self.__cause__
        return isinstance(cause, InvocationError) and not cause.retryable


__all__ = [
    "RelayError",
    "ChannelError",
    "InvocationError",
    "DeliveryError",
]
