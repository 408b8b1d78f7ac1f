# ============================================================================
# DELIVERY WORKER
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Core - Transactional single-event delivery
# PURPOSE: Take one event, invoke the remote function, commit or roll back
# CREATED: 19 OCT 2026
# ============================================================================
"""
Delivery Worker

One call to process_once() is one delivery cycle:

    begin transaction
      take one event           -> none: count empty pull, commit, BACKOFF
      build JSON payload
      invoke remote function
      classify outcome
        SUCCESS                -> commit, count, READY
        REMOTE_ERROR           -> rollback, raise DeliveryError
        TRANSPORT_FAILURE      -> rollback, raise DeliveryError
    release transaction        (always)

Unanticipated faults roll back and are raised as DeliveryError with the
fault chained. Fatal conditions (MemoryError, KeyboardInterrupt, SystemExit)
roll back and propagate unchanged. The worker never retries or sleeps;
pacing belongs to the driver (worker.runner).

A worker instance is driven by one thread at a time. Counters belong to the
instance and only that thread writes them.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from core.contracts import DeliveryStatus
from core.errors import DeliveryError, InvocationError
from core.logging import ComponentType, get_logger, log_context
from core.models.delivery import (
    ChannelEvent,
    DeliveryOutcome,
    DeliveryRequest,
)
from infrastructure.channel import Channel, Transaction
from infrastructure.lambda_invoker import Invoker

logger = get_logger(__name__, ComponentType.WORKER)


# ============================================================================
# COUNTERS
# ============================================================================

@dataclass
class WorkerCounters:
    """Monotonic counters for one worker instance."""
    empty_pulls: int = 0
    completed: int = 0
    drained_success: int = 0
    started_at: Optional[datetime] = None
    stopped_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "empty_pulls": self.empty_pulls,
            "completed": self.completed,
            "drained_success": self.drained_success,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "stopped_at": self.stopped_at.isoformat() if self.stopped_at else None,
        }


# ============================================================================
# WORKER
# ============================================================================

class DeliveryWorker:
    """
    Drains one event per cycle from a channel into a remote function.

    The invoker is injected; nothing here builds SDK clients.
    """

    def __init__(
        self,
        channel: Channel,
        invoker: Invoker,
        target_name: str,
        worker_id: str = "relay-worker",
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            channel: Transactional event source
            invoker: Remote function invoker
            target_name: Function to invoke for every event
            worker_id: Identifier used in logs and health output
            clock: Source of Unix time for payload timestamps
        """
        if not target_name:
            raise ValueError("target_name is required")

        self.channel = channel
        self.invoker = invoker
        self.target_name = target_name
        self.worker_id = worker_id
        self._clock = clock

        self.counters = WorkerCounters()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Mark the worker ready to process."""
        if self._running:
            logger.warning("Worker already running")
            return
        self.counters.started_at = datetime.now(timezone.utc)
        self.counters.stopped_at = None
        self._running = True
        logger.info(f"Delivery worker started: worker_id={self.worker_id}, target={self.target_name}")

    def stop(self) -> None:
        """Stop accepting cycles and log final counters."""
        if not self._running:
            return
        self._running = False
        self.counters.stopped_at = datetime.now(timezone.utc)
        logger.info(
            f"Delivery worker stopped. Stats: empty_pulls={self.counters.empty_pulls}, "
            f"completed={self.counters.completed}, "
            f"drained_success={self.counters.drained_success}"
        )

    # ------------------------------------------------------------------------
    # DELIVERY CYCLE
    # ------------------------------------------------------------------------

    def process_once(self) -> DeliveryStatus:
        """
        Run one delivery cycle.

        Returns:
            READY when an event was delivered and committed,
            BACKOFF when the channel had nothing buffered

        Raises:
            DeliveryError: the cycle failed; the transaction was rolled back
                and released before this was raised
            RuntimeError: the worker has not been started
        """
        if not self._running:
            raise RuntimeError("Delivery worker is not started")

        with log_context(
            worker_id=self.worker_id,
            queue_name=self.channel.name,
            function_name=self.target_name,
        ):
            transaction = self.channel.begin_transaction()
            with transaction:
                try:
                    event = self.channel.take()
                    if event is None:
                        self.counters.empty_pulls += 1
                        transaction.commit()
                        return DeliveryStatus.BACKOFF

                    outcome = self._deliver(event)
                    if outcome.is_success:
                        transaction.commit()
                        self.counters.completed += 1
                        self.counters.drained_success += 1
                        return DeliveryStatus.READY

                except MemoryError:
                    self._rollback(transaction)
                    raise
                except Exception as e:
                    logger.exception(f"Transaction failed: {e}")
                    self._rollback(transaction)
                    raise DeliveryError(f"Delivery failed: {e}") from e
                except BaseException:
                    self._rollback(transaction)
                    raise

                self._rollback(transaction)
                raise DeliveryError(
                    f"Delivery to {self.target_name} failed: "
                    f"{outcome.kind.value}: {outcome.detail}",
                    outcome=outcome,
                ) from outcome.cause

    def _deliver(self, event: ChannelEvent) -> DeliveryOutcome:
        """Build the request, invoke, and classify."""
        with log_context(message_id=event.message_id):
            request = DeliveryRequest.from_event(
                self.target_name,
                event,
                timestamp=int(self._clock()),
            )
            logger.debug(f"Received event ({len(event.body)} bytes), invoking {self.target_name}")

            try:
                response = self.invoker.invoke(request.target_name, request.payload)
            except InvocationError as e:
                outcome = DeliveryOutcome.transport_failure(str(e), cause=e)
            else:
                outcome = DeliveryOutcome.classify(response)

            if outcome.is_success:
                logger.debug(f"Delivered event (status={outcome.response.status_code})")
            else:
                logger.warning(f"Delivery failed: {outcome.kind.value}: {outcome.detail}")
            return outcome

    def _rollback(self, transaction: Transaction) -> None:
        if not transaction.is_open:
            return
        try:
            transaction.rollback()
        except Exception:
            logger.exception("Transaction rollback failed")


__all__ = [
    "WorkerCounters",
    "DeliveryWorker",
]
