"""Polling worker skeleton shared by the background sweeps.

A sweep fetches a batch, claims each item, processes it and records the
outcome. One bad item is logged and counted; the rest of the batch still
runs.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

# Longest error text kept per failed item
MAX_ERROR_LENGTH = 500


class WorkerStatus(str, Enum):
    """Outcome of one sweep."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    NO_WORK = "no_work"


@dataclass
class WorkerResult:
    """Counters collected over one sweep.

    ``skipped_count`` covers items that no longer needed work once
    claimed (already synced, no handler, ...).
    """

    status: WorkerStatus = WorkerStatus.NO_WORK
    processed_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    duration_ms: float = 0.0
    errors: list[dict[str, Any]] = field(default_factory=list)

    def settle(self, started_at: datetime) -> "WorkerResult":
        """Derive the status from the counters and stamp the duration."""
        if self.failed_count and self.processed_count:
            self.status = WorkerStatus.PARTIAL
        elif self.failed_count:
            self.status = WorkerStatus.FAILED
        elif self.processed_count:
            self.status = WorkerStatus.SUCCESS
        else:
            self.status = WorkerStatus.NO_WORK
        self.duration_ms = (datetime.utcnow() - started_at).total_seconds() * 1000
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "processed_count": self.processed_count,
            "failed_count": self.failed_count,
            "skipped_count": self.skipped_count,
            "duration_ms": self.duration_ms,
            "errors": self.errors,
        }


T = TypeVar("T")


class WorkerBase(ABC, Generic[T]):
    """Base class for batch sweeps over persisted work items.

    Lifecycle per item:
        fetch_pending → mark_processing → process_item
                                        → mark_completed | mark_failed
    """

    def __init__(self, batch_size: int = 50) -> None:
        self.batch_size = batch_size
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def worker_name(self) -> str:
        pass

    @abstractmethod
    def fetch_pending(self) -> list[T]:
        """Return up to ``batch_size`` items that may need work."""
        pass

    @abstractmethod
    def mark_processing(self, item: T) -> bool:
        """Claim an item; False means it no longer needs work."""
        pass

    @abstractmethod
    def process_item(self, item: T) -> None:
        """Do the work for one item. Raises on failure."""
        pass

    @abstractmethod
    def mark_completed(self, item: T) -> None:
        pass

    @abstractmethod
    def mark_failed(self, item: T, error: Exception, can_retry: bool) -> None:
        pass

    @abstractmethod
    def get_item_id(self, item: T) -> str:
        pass

    @abstractmethod
    def should_retry(self, item: T) -> bool:
        pass

    def run(self) -> WorkerResult:
        """Run one sweep over the current batch."""
        started_at = datetime.utcnow()
        result = WorkerResult()

        self._logger.info(
            f"[{self.worker_name}] Sweep started",
            extra={"batch_size": self.batch_size},
        )

        try:
            batch = self.fetch_pending()
        except Exception as e:
            self._logger.error(
                f"[{self.worker_name}] Could not fetch work",
                extra={"error": str(e)},
                exc_info=True,
            )
            result.failed_count = 1
            result.errors.append({"error": str(e)})
            return result.settle(started_at)

        if not batch:
            self._logger.debug(f"[{self.worker_name}] Nothing to do")
            return result.settle(started_at)

        self._logger.info(f"[{self.worker_name}] {len(batch)} item(s) in batch")

        for item in batch:
            self._run_item(item, result)

        result.settle(started_at)
        self._logger.info(f"[{self.worker_name}] Sweep finished", extra=result.to_dict())
        return result

    def _run_item(self, item: T, result: WorkerResult) -> None:
        item_id = self.get_item_id(item)
        try:
            if not self.mark_processing(item):
                result.skipped_count += 1
                self._logger.debug(f"[{self.worker_name}] Skipping {item_id}")
                return
            self.process_item(item)
            self.mark_completed(item)
        except Exception as e:
            result.failed_count += 1
            message = str(e)[:MAX_ERROR_LENGTH]
            can_retry = self.should_retry(item)
            self.mark_failed(item, e, can_retry)
            result.errors.append({"item_id": item_id, "error": message, "can_retry": can_retry})
            self._logger.error(
                f"[{self.worker_name}] Item {item_id} failed",
                extra={"item_id": item_id, "error": message, "can_retry": can_retry},
                exc_info=True,
            )
            return

        result.processed_count += 1
        self._logger.info(
            f"[{self.worker_name}] Item {item_id} done",
            extra={"item_id": item_id},
        )
