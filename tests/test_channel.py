# ============================================================================
# CHANNEL TESTS
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Tests - Transaction rules and memory channel
# PURPOSE: Verify begin/take/commit/rollback/release semantics
# CREATED: 19 OCT 2026
# ============================================================================
"""
Channel Tests

Covers:
1. Transaction state machine (single commit/rollback, idempotent release)
2. One outstanding transaction per channel
3. MemoryChannel ordering, capacity and rollback restore

Run with:
    pytest tests/test_channel.py -v
"""

import pytest

from core.contracts import TransactionState
from core.errors import ChannelError
from core.models.delivery import ChannelEvent
from infrastructure.channel import MemoryChannel


@pytest.fixture
def memory():
    return MemoryChannel(capacity=3)


# ============================================================================
# TRANSACTION RULES
# ============================================================================

class TestTransactionRules:
    """State checks shared by every channel."""

    def test_take_requires_open_transaction(self, memory):
        memory.put("a")
        with pytest.raises(ChannelError):
            memory.take()

    def test_single_outstanding_transaction(self, memory):
        memory.begin_transaction()
        with pytest.raises(ChannelError):
            memory.begin_transaction()

    def test_new_transaction_after_release(self, memory):
        first = memory.begin_transaction()
        first.commit()
        first.release()

        second = memory.begin_transaction()
        assert second is not first
        assert second.state is TransactionState.OPEN

    def test_commit_twice_rejected(self, memory):
        transaction = memory.begin_transaction()
        transaction.commit()
        with pytest.raises(ChannelError):
            transaction.commit()

    def test_rollback_after_commit_rejected(self, memory):
        transaction = memory.begin_transaction()
        transaction.commit()
        with pytest.raises(ChannelError):
            transaction.rollback()

    def test_release_is_idempotent(self, memory):
        transaction = memory.begin_transaction()
        transaction.commit()
        transaction.release()
        transaction.release()
        assert transaction.state is TransactionState.RELEASED

    def test_take_after_commit_rejected(self, memory):
        memory.put("a")
        transaction = memory.begin_transaction()
        transaction.commit()
        with pytest.raises(ChannelError):
            memory.take()

    def test_release_without_finalize_rolls_back(self, memory):
        memory.put("a")
        transaction = memory.begin_transaction()
        memory.take()
        assert memory.size == 0

        transaction.release()

        assert memory.size == 1
        assert transaction.state is TransactionState.RELEASED

    def test_context_manager_releases_on_error(self, memory):
        memory.put("a")
        transaction = memory.begin_transaction()

        with pytest.raises(ValueError):
            with transaction:
                memory.take()
                raise ValueError("boom")

        assert transaction.state is TransactionState.RELEASED
        assert memory.size == 1


# ============================================================================
# MEMORY CHANNEL
# ============================================================================

class TestMemoryChannel:
    """In-process channel behavior."""

    def test_fifo_order(self, memory):
        memory.put("first")
        memory.put("second")

        with memory.begin_transaction() as transaction:
            event = memory.take()
            transaction.commit()

        assert event.body == b"first"
        assert memory.size == 1

    def test_take_empty_returns_none(self, memory):
        with memory.begin_transaction() as transaction:
            assert memory.take() is None
            transaction.commit()

    def test_rollback_restores_head_in_order(self, memory):
        for body in ("a", "b", "c"):
            memory.put(body)

        with memory.begin_transaction() as transaction:
            memory.take()
            memory.take()
            transaction.rollback()

        with memory.begin_transaction() as transaction:
            bodies = [memory.take().body for _ in range(3)]
            transaction.commit()

        assert bodies == [b"a", b"b", b"c"]

    def test_capacity_enforced(self, memory):
        for body in ("a", "b", "c"):
            memory.put(body)
        with pytest.raises(ChannelError):
            memory.put("d")

    def test_put_accepts_event_and_headers(self, memory):
        event = memory.put(b"raw", headers={"source": "test"})
        assert event.headers == {"source": "test"}

        same = ChannelEvent(body=b"x", message_id="m-1")
        assert memory.put(same) is same

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            MemoryChannel(capacity=0)
