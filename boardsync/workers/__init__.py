"""Background workers.

- SyncRetryWorker: re-attempts card syncs stuck in PENDING or RETRY
- WorkerRunner: runs workers once or in a loop
"""

from boardsync.workers.base import (
    WorkerBase,
    WorkerResult,
    WorkerStatus,
)
from boardsync.workers.runner import (
    RunnerResult,
    WorkerRunner,
    configure_worker_logging,
    load_card_loader,
)
from boardsync.workers.sync_retry_worker import CardLoader, SyncRetryWorker

__all__ = [
    # Base classes
    "WorkerBase",
    "WorkerResult",
    "WorkerStatus",
    # Workers
    "SyncRetryWorker",
    "CardLoader",
    # Runner
    "WorkerRunner",
    "RunnerResult",
    "configure_worker_logging",
    "load_card_loader",
]
