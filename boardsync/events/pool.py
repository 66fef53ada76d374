"""Fixed-size pool of daemon worker threads returning futures.

Workers are daemon threads and are never joined at interpreter exit, so
an observer that hangs inside an async publish cannot keep the process
alive. ``shutdown`` stops the pool explicitly.
"""

import logging
import queue
import threading
import time
from concurrent.futures import Future
from typing import Any, Callable

logger = logging.getLogger(__name__)

# Queue marker telling one worker to exit
_STOP = object()


class DaemonWorkerPool:
    """Runs submitted callables on N daemon threads.

    Usage:
        pool = DaemonWorkerPool(max_workers=5, thread_name_prefix="EventPublisher-Async")
        future = pool.submit(publisher.publish, event)
        pool.shutdown(wait=True, timeout=10)
    """

    def __init__(self, max_workers: int, thread_name_prefix: str = "DaemonWorker") -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self._queue: queue.Queue = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._threads = [
            threading.Thread(
                target=self._work,
                name=f"{thread_name_prefix}_{index}",
                daemon=True,
            )
            for index in range(max_workers)
        ]
        for thread in self._threads:
            thread.start()

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        """Queue ``fn(*args)`` and return a future for its outcome.

        Raises:
            RuntimeError: If the pool has been shut down
        """
        future: Future = Future()
        with self._lock:
            if self._closed:
                raise RuntimeError("Cannot submit to a pool that has been shut down")
            self._queue.put((future, fn, args))
        return future

    def shutdown(self, wait: bool = True, timeout: float | None = None) -> None:
        """Stop the workers. Queued, not yet started work is cancelled.

        Args:
            wait: Join the workers before returning
            timeout: Longest total time to wait for running work; workers
                still busy after that are left behind as daemon threads
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            cancelled = self._drain()
            for _ in self._threads:
                self._queue.put(_STOP)

        if cancelled:
            logger.info("Cancelled queued async work", extra={"cancelled": cancelled})

        if not wait:
            return

        deadline = None if timeout is None else time.monotonic() + timeout
        for thread in self._threads:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            thread.join(remaining)

        still_running = [thread.name for thread in self._threads if thread.is_alive()]
        if still_running:
            logger.warning(
                "Async workers still busy after shutdown timeout",
                extra={"threads": still_running, "timeout_seconds": timeout},
            )

    def _drain(self) -> int:
        cancelled = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return cancelled
            if item is not _STOP:
                future = item[0]
                if future.cancel():
                    cancelled += 1

    def _work(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            future, fn, args = item
            if not future.set_running_or_notify_cancel():
                continue
            try:
                result = fn(*args)
            except BaseException as e:
                # Delivered to whoever waits on the future
                future.set_exception(e)
            else:
                future.set_result(result)
