# ============================================================================
# SHARED TEST FIXTURES
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Tests - Fixtures shared across test modules
# PURPOSE: Channel, invoker and worker factory fixtures
# CREATED: 19 OCT 2026
# ============================================================================

import pytest

from fakes import FIXED_NOW, RecordingChannel, StubInvoker
from infrastructure.lambda_invoker import Invoker
from worker.delivery import DeliveryWorker


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def invoker():
    return StubInvoker()


@pytest.fixture
def make_worker(channel):
    """Factory for started workers over the recording channel."""
    def _make(invoker: Invoker, target_name: str = "fn1", clock=lambda: FIXED_NOW) -> DeliveryWorker:
        worker = DeliveryWorker(
            channel=channel,
            invoker=invoker,
            target_name=target_name,
            worker_id="test-worker",
            clock=clock,
        )
        worker.start()
        return worker
    return _make
