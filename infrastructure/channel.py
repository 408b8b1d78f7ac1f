# ============================================================================
# TRANSACTIONAL CHANNEL
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Infrastructure - Channel and transaction interfaces
# PURPOSE: Begin/take/commit/rollback/release semantics over a buffer
# CREATED: 19 OCT 2026
# ============================================================================
"""
Transactional Channel

A channel hands out events inside a transaction:

    transaction = channel.begin_transaction()
    with transaction:
        event = channel.take()          # None when nothing is buffered
        ...
        transaction.commit()            # or transaction.rollback()
    # release() runs on exit, always

Rules enforced here for every channel implementation:
- at most one outstanding transaction per channel
- take() only while a transaction is OPEN
- exactly one of commit/rollback per transaction
- release() is idempotent; releasing an unfinalized transaction rolls
  it back first

MemoryChannel is the in-process implementation used for local runs and
tests. ServiceBusChannel (infrastructure.service_bus) is the production one.
"""

import threading
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, Dict, List, Optional, Union

from core.contracts import TransactionState
from core.errors import ChannelError
from core.logging import ComponentType, get_logger
from core.models.delivery import ChannelEvent

logger = get_logger(__name__, ComponentType.CHANNEL)


# ============================================================================
# TRANSACTION
# ============================================================================

class Transaction(ABC):
    """
    One begin -> take -> commit|rollback -> release scope.

    Subclasses implement the _do_* hooks; state checks live here.
    """

    def __init__(self):
        self.state = TransactionState.OPEN

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.release()
        return False

    @property
    def is_open(self) -> bool:
        return self.state is TransactionState.OPEN

    def commit(self) -> None:
        """Remove taken events from the channel for good."""
        self._require_open("commit")
        self._do_commit()
        self.state = TransactionState.COMMITTED

    def rollback(self) -> None:
        """
        Return taken events to the channel.

        The transaction counts as rolled back even if the hook raises;
        an unsettled event is redelivered by the channel anyway.
        """
        self._require_open("rollback")
        try:
            self._do_rollback()
        finally:
            self.state = TransactionState.ROLLED_BACK

    def release(self) -> None:
        """End the transaction scope. Safe to call more than once."""
        if self.state is TransactionState.RELEASED:
            return
        try:
            if self.state is TransactionState.OPEN:
                logger.warning("Releasing transaction without commit/rollback - rolling back")
                self.rollback()
        finally:
            self.state = TransactionState.RELEASED
            self._do_release()

    def _require_open(self, operation: str) -> None:
        if self.state is not TransactionState.OPEN:
            raise ChannelError(
                f"Cannot {operation} transaction in state '{self.state.value}'"
            )

    @abstractmethod
    def _do_commit(self) -> None:
        ...

    @abstractmethod
    def _do_rollback(self) -> None:
        ...

    def _do_release(self) -> None:
        pass


# ============================================================================
# CHANNEL
# ============================================================================

class Channel(ABC):
    """
    Buffered event source with transactional take.

    Tracks the single outstanding transaction.
    """

    name: str = "channel"

    def __init__(self):
        self._transaction: Optional[Transaction] = None

    def begin_transaction(self) -> Transaction:
        """Open a new transaction. Fails if one is still outstanding."""
        if self._transaction is not None and self._transaction.state is not TransactionState.RELEASED:
            raise ChannelError(
                f"Channel '{self.name}' already has an outstanding transaction"
            )
        self._transaction = self._create_transaction()
        return self._transaction

    def take(self) -> Optional[ChannelEvent]:
        """Take one event inside the open transaction, or None if empty."""
        transaction = self._transaction
        if transaction is None or not transaction.is_open:
            raise ChannelError(f"take() on channel '{self.name}' requires an open transaction")
        return self._take(transaction)

    def close(self) -> None:
        """Release channel resources."""
        pass

    @abstractmethod
    def _create_transaction(self) -> Transaction:
        ...

    @abstractmethod
    def _take(self, transaction: Transaction) -> Optional[ChannelEvent]:
        ...


# ============================================================================
# MEMORY CHANNEL
# ============================================================================

class MemoryTransaction(Transaction):
    """Transaction over a MemoryChannel."""

    def __init__(self, channel: "MemoryChannel"):
        super().__init__()
        self._channel = channel
        self.taken: List[ChannelEvent] = []

    def _do_commit(self) -> None:
        self.taken.clear()

    def _do_rollback(self) -> None:
        self._channel._restore(self.taken)
        self.taken.clear()


class MemoryChannel(Channel):
    """
    Bounded in-process channel.

    Events taken inside a rolled-back transaction go back to the head of
    the queue in their original order. put() may be called from other
    threads.
    """

    name = "memory"

    def __init__(self, capacity: int = 1000):
        super().__init__()
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._queue: Deque[ChannelEvent] = deque()
        self._lock = threading.Lock()

    def put(
        self,
        event: Union[ChannelEvent, bytes, str],
        headers: Optional[Dict[str, str]] = None,
    ) -> ChannelEvent:
        """Append an event. Raises ChannelError when the channel is full."""
        if isinstance(event, str):
            event = event.encode("utf-8")
        if isinstance(event, bytes):
            event = ChannelEvent(body=event, headers=dict(headers or {}))

        with self._lock:
            if len(self._queue) >= self.capacity:
                raise ChannelError(
                    f"Channel '{self.name}' is full (capacity={self.capacity})"
                )
            self._queue.append(event)
        return event

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._queue)

    def _create_transaction(self) -> Transaction:
        return MemoryTransaction(self)

    def _take(self, transaction: Transaction) -> Optional[ChannelEvent]:
        with self._lock:
            if not self._queue:
                return None
            event = self._queue.popleft()
            remaining = len(self._queue)
        transaction.taken.append(event)
        logger.debug(f"Took event ({remaining} left)")
        return event

    def _restore(self, events: List[ChannelEvent]) -> None:
        with self._lock:
            for event in reversed(events):
                self._queue.appendleft(event)


__all__ = [
    "Transaction",
    "Channel",
    "MemoryTransaction",
    "MemoryChannel",
]
