# ============================================================================
# DELIVERY MODELS
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Core model - Event, request, response and outcome
# PURPOSE: Define what is taken from the channel, what goes to the function
#          and how the invocation result is classified
# CREATED: 19 OCT 2026
# EXPORTS: ChannelEvent, DeliveryPayload, DeliveryRequest, InvokeResponse,
#          DeliveryOutcome
# DEPENDENCIES: pydantic
# ============================================================================
"""
Delivery Models

One delivery cycle moves through these shapes:

    ChannelEvent      borrowed from the channel for one cycle
    DeliveryRequest   built fresh per cycle (target name + JSON payload)
    InvokeResponse    what the remote function call returned
    DeliveryOutcome   classification that decides commit vs rollback

Payload wire format (compatibility contract, do not change field names):

    {"message": "<trimmed UTF-8 body>", "timestamp": <unix seconds, int>}
"""

import json
from dataclasses import dataclass, field
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.contracts import FunctionErrorKind, OutcomeKind

# Code points U+0000..U+0020: control characters and ASCII space
TRIM_CHARS = "".join(map(chr, range(0x21)))


# ============================================================================
# CHANNEL EVENT
# ============================================================================

@dataclass
class ChannelEvent:
    """An opaque event body plus arrival metadata."""
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)
    message_id: Optional[str] = None

    def text(self) -> str:
        """Body decoded as UTF-8 (malformed bytes replaced) and trimmed of U+0000..U+0020."""
        return self.body.decode("utf-8", errors="replace").strip(TRIM_CHARS)


# ============================================================================
# REQUEST
# ============================================================================

class DeliveryPayload(BaseModel):
    """JSON body sent to the remote function."""

    model_config = ConfigDict(frozen=True)

    message: str
    timestamp: int = Field(..., ge=0, description="Unix time in whole seconds")

    def to_bytes(self) -> bytes:
        """Serialize with field order message, timestamp."""
        return json.dumps(
            {"message": self.message, "timestamp": self.timestamp},
            ensure_ascii=False,
            separators=(",", ":"),
        ).encode("utf-8")


class DeliveryRequest(BaseModel):
    """Target function name plus the serialized payload."""

    model_config = ConfigDict(frozen=True)

    target_name: str = Field(..., min_length=1, max_length=170)
    payload: bytes

    @classmethod
    def from_event(
        cls,
        target_name: str,
        event: ChannelEvent,
        timestamp: int,
    ) -> "DeliveryRequest":
        """Build the request for one event at the given processing time."""
        payload = DeliveryPayload(message=event.text(), timestamp=timestamp)
        return cls(target_name=target_name, payload=payload.to_bytes())


# ============================================================================
# RESPONSE
# ============================================================================

class InvokeResponse(BaseModel):
    """
    Result of a completed remote invocation.

    A response only exists if the call itself completed; transport faults
    are raised by the invoker instead.
    """

    status_code: int
    function_error: FunctionErrorKind = FunctionErrorKind.NONE
    payload: Optional[bytes] = None
    executed_version: Optional[str] = None

    @property
    def has_function_error(self) -> bool:
        return self.function_error is not FunctionErrorKind.NONE

    @property
    def is_success_status(self) -> bool:
        return 200 <= self.status_code < 300

    def error_detail(self, limit: int = 500) -> str:
        """Short description of a function error for logs and errors."""
        detail = f"{self.function_error.value} function error (status={self.status_code})"
        if self.payload:
            body = self.payload.decode("utf-8", errors="replace")
            detail += f": {body[:limit]}"
        return detail


# ============================================================================
# OUTCOME
# ============================================================================

@dataclass(frozen=True)
class DeliveryOutcome:
    """Classified result of one invocation attempt."""
    kind: OutcomeKind
    detail: Optional[str] = None
    response: Optional[InvokeResponse] = None
    cause: Optional[BaseException] = None

    @property
    def is_success(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @classmethod
    def success(cls, response: InvokeResponse) -> "DeliveryOutcome":
        return cls(kind=OutcomeKind.SUCCESS, response=response)

    @classmethod
    def remote_error(cls, response: InvokeResponse) -> "DeliveryOutcome":
        return cls(
            kind=OutcomeKind.REMOTE_ERROR,
            detail=response.error_detail(),
            response=response,
        )

    @classmethod
    def transport_failure(
        cls,
        detail: str,
        cause: Optional[BaseException] = None,
        response: Optional[InvokeResponse] = None,
    ) -> "DeliveryOutcome":
        return cls(
            kind=OutcomeKind.TRANSPORT_FAILURE,
            detail=detail,
            response=response,
            cause=cause,
        )

    @classmethod
    def classify(cls, response: InvokeResponse) -> "DeliveryOutcome":
        """
        Classify a completed invocation.

        Function error wins over status code; only 2xx without a
        function error is a success.
        """
        if response.has_function_error:
            return cls.remote_error(response)
        if response.is_success_status:
            return cls.success(response)
        return cls.transport_failure(
            f"Unexpected status code {response.status_code}",
            response=response,
        )


__all__ = [
    "ChannelEvent",
    "DeliveryPayload",
    "DeliveryRequest",
    "InvokeResponse",
    "DeliveryOutcome",
]
