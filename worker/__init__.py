# ============================================================================
# WORKER MODULE
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Core - Worker execution components
# PURPOSE: Delivery cycle, driver loop and configuration
# CREATED: 19 OCT 2026
# ============================================================================
"""
Worker Module

Components for relaying events:
- contracts: Worker configuration
- delivery: Transactional single-event delivery worker
- runner: Driver loop and pacing
- main: Worker entry point
"""

from worker.contracts import WorkerConfig
from worker.delivery import (
    WorkerCounters,
    DeliveryWorker,
)
from worker.runner import (
    RunnerStats,
    DeliveryRunner,
)

__all__ = [
    # Contracts
    "WorkerConfig",
    # Delivery
    "WorkerCounters",
    "DeliveryWorker",
    # Runner
    "RunnerStats",
    "DeliveryRunner",
]
