# ============================================================================
# DELIVERY RUNNER
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Core - Driver loop for the delivery worker
# PURPOSE: Call process_once() repeatedly and own the pacing between cycles
# CREATED: 19 OCT 2026
# ============================================================================
"""
Delivery Runner

The driver loop around a DeliveryWorker. The worker reports READY, BACKOFF
or raises DeliveryError; the runner decides how long to pause:

    READY          -> next cycle immediately, backoff reset
    BACKOFF        -> sleep, growing by backoff_seconds up to the max
    DeliveryError  -> same as BACKOFF (the event was already rolled back);
                      non-retryable invocation errors are logged at ERROR

Anything else raised by the worker stops the runner and propagates.
"""

import threading
from dataclasses import dataclass
from typing import Optional

from core.contracts import DeliveryStatus
from core.errors import DeliveryError
from core.logging import ComponentType, get_logger
from worker.delivery import DeliveryWorker

logger = get_logger(__name__, ComponentType.WORKER)


@dataclass
class RunnerStats:
    """Cycle statistics kept by the driver, not the worker."""
    cycles: int = 0
    failures: int = 0
    permanent_failures: int = 0
    consecutive_backoffs: int = 0
    last_error: Optional[str] = None


class DeliveryRunner:
    """Drives one DeliveryWorker from a single thread."""

    def __init__(
        self,
        worker: DeliveryWorker,
        backoff_seconds: float = 1.0,
        max_backoff_seconds: float = 5.0,
        stop_event: Optional[threading.Event] = None,
    ):
        self.worker = worker
        self.backoff_seconds = backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self._stop_event = stop_event or threading.Event()
        self.stats = RunnerStats()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Ask the loop to exit after the current cycle."""
        self._stop_event.set()

    def next_delay(self) -> float:
        """Pause before the next cycle after a BACKOFF or a failure."""
        if self.stats.consecutive_backoffs == 0:
            return 0.0
        return min(
            self.backoff_seconds * self.stats.consecutive_backoffs,
            self.max_backoff_seconds,
        )

    def run_cycle(self) -> Optional[DeliveryStatus]:
        """
        Run one cycle and update pacing state.

        Returns:
            The worker status, or None if the cycle raised DeliveryError
        """
        self.stats.cycles += 1
        try:
            status = self.worker.process_once()
        except DeliveryError as e:
            self.stats.failures += 1
            self.stats.consecutive_backoffs += 1
            self.stats.last_error = str(e)
            if e.is_permanent:
                self.stats.permanent_failures += 1
                logger.error(f"Delivery cycle failed permanently: {e}")
            else:
                logger.warning(f"Delivery cycle failed: {e}")
            return None

        if status is DeliveryStatus.READY:
            self.stats.consecutive_backoffs = 0
        else:
            self.stats.consecutive_backoffs += 1
        return status

    def run(self, max_cycles: Optional[int] = None) -> RunnerStats:
        """
        Loop until stop() is called (or max_cycles cycles have run).

        Starts the worker if needed and stops it on exit.
        """
        if not self.worker.is_running:
            self.worker.start()

        logger.info(
            f"Runner started (backoff={self.backoff_seconds}s, "
            f"max_backoff={self.max_backoff_seconds}s)"
        )

        try:
            while not self.stopping:
                if max_cycles is not None and self.stats.cycles >= max_cycles:
                    break

                self.run_cycle()

                delay = self.next_delay()
                if delay > 0:
                    # Event.wait returns early when stop() is called
                    self._stop_event.wait(delay)
        finally:
            self.worker.stop()
            logger.info(
                f"Runner stopped. cycles={self.stats.cycles}, failures={self.stats.failures}"
            )

        return self.stats


__all__ = [
    "RunnerStats",
    "DeliveryRunner",
]
