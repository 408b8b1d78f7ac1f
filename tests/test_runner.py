# ============================================================================
# DELIVERY RUNNER TESTS
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Tests - Driver loop pacing
# PURPOSE: Verify backoff growth/reset, failure handling and shutdown
# CREATED: 19 OCT 2026
# ============================================================================
"""
Delivery Runner Tests

Run with:
    pytest tests/test_runner.py -v
"""

import logging
import threading
from unittest.mock import MagicMock

import pytest

from core.contracts import DeliveryStatus
from core.errors import DeliveryError, InvocationError
from worker.runner import DeliveryRunner
from fakes import StubInvoker


def _delivery_error(cause):
    """DeliveryError chained to cause, as the worker raises it."""
    try:
        raise DeliveryError(f"Delivery to fn1 failed: {cause}") from cause
    except DeliveryError as e:
        return e


def _scripted_worker(results):
    """Mock worker whose process_once returns/raises the scripted results."""
    worker = MagicMock()
    worker.is_running = False
    worker.process_once.side_effect = results
    return worker


class TestPacing:
    """Backoff delay between cycles."""

    def test_ready_keeps_zero_delay(self):
        runner = DeliveryRunner(_scripted_worker([DeliveryStatus.READY]), backoff_seconds=1.0)

        runner.run_cycle()

        assert runner.next_delay() == 0.0

    def test_backoff_grows_to_max(self):
        runner = DeliveryRunner(
            _scripted_worker([DeliveryStatus.BACKOFF] * 5),
            backoff_seconds=1.0,
            max_backoff_seconds=3.0,
        )

        delays = []
        for _ in range(5):
            runner.run_cycle()
            delays.append(runner.next_delay())

        assert delays == [1.0, 2.0, 3.0, 3.0, 3.0]

    def test_ready_resets_backoff(self):
        runner = DeliveryRunner(
            _scripted_worker([DeliveryStatus.BACKOFF, DeliveryStatus.BACKOFF, DeliveryStatus.READY]),
            backoff_seconds=0.5,
        )

        for _ in range(3):
            runner.run_cycle()

        assert runner.stats.consecutive_backoffs == 0
        assert runner.next_delay() == 0.0

    def test_delivery_error_counts_as_backoff(self):
        runner = DeliveryRunner(_scripted_worker([DeliveryError("boom")]), backoff_seconds=2.0)

        assert runner.run_cycle() is None

        assert runner.stats.failures == 1
        assert runner.stats.last_error == "boom"
        assert runner.next_delay() == 2.0

    def test_permanent_invocation_error_logged_at_error(self, caplog):
        error = _delivery_error(InvocationError("denied", error_code="AccessDeniedException"))
        runner = DeliveryRunner(_scripted_worker([error]))

        with caplog.at_level(logging.WARNING, logger="worker.runner"):
            runner.run_cycle()

        assert runner.stats.failures == 1
        assert runner.stats.permanent_failures == 1
        assert [r.levelno for r in caplog.records] == [logging.ERROR]

    def test_retryable_invocation_error_logged_at_warning(self, caplog):
        error = _delivery_error(
            InvocationError("throttled", error_code="TooManyRequestsException", retryable=True)
        )
        runner = DeliveryRunner(_scripted_worker([error]))

        with caplog.at_level(logging.WARNING, logger="worker.runner"):
            runner.run_cycle()

        assert runner.stats.failures == 1
        assert runner.stats.permanent_failures == 0
        assert [r.levelno for r in caplog.records] == [logging.WARNING]


class TestRunLoop:
    """run() lifecycle."""

    def test_max_cycles_starts_and_stops_worker(self):
        worker = _scripted_worker([DeliveryStatus.READY] * 3)
        runner = DeliveryRunner(worker, backoff_seconds=0.0, max_backoff_seconds=0.0)

        stats = runner.run(max_cycles=3)

        assert stats.cycles == 3
        worker.start.assert_called_once()
        worker.stop.assert_called_once()

    def test_unexpected_error_stops_loop(self):
        worker = _scripted_worker([RuntimeError("not a delivery error")])
        runner = DeliveryRunner(worker)

        with pytest.raises(RuntimeError):
            runner.run()

        worker.stop.assert_called_once()

    def test_stop_event_interrupts_backoff_wait(self, channel, make_worker):
        worker = make_worker(StubInvoker())
        stop_event = threading.Event()
        runner = DeliveryRunner(worker, backoff_seconds=30.0, max_backoff_seconds=30.0, stop_event=stop_event)

        thread = threading.Thread(target=runner.run)
        thread.start()
        # Empty channel -> BACKOFF -> 30s wait, cut short by stop()
        runner.stop()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert not worker.is_running

    def test_drains_memory_channel(self, channel, make_worker):
        invoker = StubInvoker()
        worker = make_worker(invoker)
        for i in range(3):
            channel.put(f"event-{i}")

        runner = DeliveryRunner(worker, backoff_seconds=0.0, max_backoff_seconds=0.0)
        runner.run(max_cycles=4)

        assert worker.counters.completed == 3
        assert worker.counters.empty_pulls == 1
        assert [target for target, _ in invoker.requests] == ["fn1"] * 3
