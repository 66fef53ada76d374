"""Drives the background sweeps.

- WorkerRunner.run_once(): every worker once
- WorkerRunner.run_loop(): repeat with a pause until stopped
- load_card_loader(): resolve the CARD_LOADER setting
"""

import importlib
import logging
import signal
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from boardsync.config import get_settings
from boardsync.workers.base import WorkerBase, WorkerResult

logger = logging.getLogger(__name__)


@dataclass
class RunnerResult:
    """Totals over one pass of every worker.

    ``errors`` lists workers that crashed outright, as opposed to items
    that failed inside a worker.
    """

    started_at: datetime
    completed_at: datetime | None = None
    workers_run: int = 0
    total_processed: int = 0
    total_failed: int = 0
    worker_results: dict[str, WorkerResult] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    def add(self, name: str, worker_result: WorkerResult) -> None:
        self.worker_results[name] = worker_result
        self.workers_run += 1
        self.total_processed += worker_result.processed_count
        self.total_failed += worker_result.failed_count

    @property
    def duration_ms(self) -> float | None:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds() * 1000

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "workers_run": self.workers_run,
            "total_processed": self.total_processed,
            "total_failed": self.total_failed,
            "worker_results": {name: r.to_dict() for name, r in self.worker_results.items()},
            "errors": self.errors,
        }


class WorkerRunner:
    """Runs workers in order, once or on an interval.

    Usage:
        runner = WorkerRunner([pipeline.retry_worker(load_card)])
        runner.run_loop(interval_seconds=30)
    """

    def __init__(
        self,
        workers: list[WorkerBase],
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._workers = list(workers)
        self._sleep = sleep
        self._stop = False
        self._logger = logging.getLogger(self.__class__.__name__)

    def run_once(self) -> RunnerResult:
        result = RunnerResult(started_at=datetime.utcnow())
        names = [worker.worker_name for worker in self._workers]
        self._logger.info("Running workers", extra={"workers": names})

        for worker in self._workers:
            try:
                result.add(worker.worker_name, worker.run())
            except Exception as e:
                message = f"{worker.worker_name} failed: {e}"
                result.errors.append(message)
                self._logger.error(message, extra={"worker": worker.worker_name}, exc_info=True)

        result.completed_at = datetime.utcnow()
        self._logger.info("Workers finished", extra=result.to_dict())
        return result

    def run_loop(
        self,
        interval_seconds: int | None = None,
        max_iterations: int | None = None,
        install_signal_handlers: bool = True,
    ) -> int:
        """Repeat ``run_once`` until stopped.

        Args:
            interval_seconds: Pause between passes (WORKER_POLL_INTERVAL_SECONDS if unset)
            max_iterations: Stop after this many passes; None runs until stopped
            install_signal_handlers: Stop after the current pass on SIGINT/SIGTERM

        Returns:
            Number of passes run
        """
        interval = interval_seconds or get_settings().WORKER_POLL_INTERVAL_SECONDS
        if install_signal_handlers:
            self._install_signal_handlers()

        self._logger.info(
            "Worker loop started",
            extra={"interval_seconds": interval, "max_iterations": max_iterations},
        )

        iterations = 0
        try:
            while not self._stop and not self._reached(iterations, max_iterations):
                result = self.run_once()
                iterations += 1
                self._logger.info(
                    f"Pass {iterations} done",
                    extra={"processed": result.total_processed, "failed": result.total_failed},
                )
                if self._stop or self._reached(iterations, max_iterations):
                    break
                self._sleep(interval)
        except KeyboardInterrupt:
            self._logger.info("Interrupted, stopping worker loop")

        self._logger.info("Worker loop stopped", extra={"total_iterations": iterations})
        return iterations

    def request_shutdown(self) -> None:
        """Stop the loop after the current pass."""
        self._stop = True

    @staticmethod
    def _reached(iterations: int, max_iterations: int | None) -> bool:
        return max_iterations is not None and iterations >= max_iterations

    def _install_signal_handlers(self) -> None:
        def on_signal(signum, frame):
            self._logger.info(f"Signal {signum} received, stopping after this pass")
            self.request_shutdown()

        signal.signal(signal.SIGINT, on_signal)
        signal.signal(signal.SIGTERM, on_signal)


def load_card_loader(reference: str) -> Callable:
    """Resolve a ``package.module:callable`` reference.

    Raises:
        ValueError: If the reference is malformed or does not name a callable
    """
    module_name, sep, attr = reference.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Card loader must look like 'package.module:callable', got {reference!r}")

    loader = getattr(importlib.import_module(module_name), attr, None)
    if not callable(loader):
        raise ValueError(f"{reference!r} is not callable")
    return loader


def configure_worker_logging(level: int = logging.INFO) -> None:
    """Set up root logging for a worker process."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("boardsync").setLevel(level)
    # Keep SQL and HTTP client chatter out of worker logs
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
