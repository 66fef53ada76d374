"""Bounded retry wrapper returning a structured result.

The executor never raises for a failed operation: exhaustion and
terminal failures both come back as ``RetryResult(successful=False)``
and the caller decides what that means for its own state.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, TypeVar

from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt, stop_after_delay

from boardsync.retry.policy import BackoffPolicy, Classifier, RetryConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryAttempt:
    """Outcome of a single invocation of the wrapped operation."""

    attempt_number: int
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: datetime | None = None
    successful: bool = False
    exception: BaseException | None = None
    error_message: str | None = None
    error_code: str | None = None

    def mark_succeeded(self) -> None:
        self.successful = True
        self.finished_at = datetime.utcnow()
        self.exception = None
        self.error_message = None
        self.error_code = None

    def mark_failed(self, exception: BaseException) -> None:
        self.successful = False
        self.finished_at = datetime.utcnow()
        self.exception = exception
        self.error_message = str(exception) or exception.__class__.__name__
        self.error_code = exception.__class__.__name__

    @property
    def in_progress(self) -> bool:
        return self.finished_at is None

    @property
    def duration_ms(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds() * 1000

    def summary(self) -> str:
        if self.in_progress:
            return f"Attempt {self.attempt_number} in progress since {self.started_at.isoformat()}"
        if self.successful:
            return f"Attempt {self.attempt_number} succeeded in {self.duration_ms:.0f}ms"
        return f"Attempt {self.attempt_number} failed: {self.error_message}"


@dataclass
class RetryResult:
    """Result of a retry-wrapped execution.

    Attributes:
        successful: Whether some attempt succeeded
        total_attempts: How many times the operation was invoked
        error_message: Message of the final failure
        final_exception: The last failure, if any
        retryable: Classification of the final failure (False on success)
        value: Return value of the successful attempt
        attempts: Per-attempt records, in order
    """

    operation: str = "operation"
    successful: bool = False
    total_attempts: int = 0
    error_message: str | None = None
    final_exception: BaseException | None = None
    retryable: bool = False
    value: Any = None
    attempts: list[RetryAttempt] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: datetime | None = None

    @property
    def last_attempt(self) -> RetryAttempt | None:
        return self.attempts[-1] if self.attempts else None

    @property
    def failed_attempts_count(self) -> int:
        return sum(1 for attempt in self.attempts if not attempt.successful)

    @property
    def total_duration_ms(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds() * 1000

    def summary(self) -> str:
        if self.finished_at is None:
            return f"Retry in progress: {self.total_attempts} attempt(s) so far"
        if self.successful:
            return (
                f"Retry succeeded: {self.total_attempts} attempt(s) "
                f"in {self.total_duration_ms:.0f}ms"
            )
        return (
            f"Retry failed after {self.total_attempts} attempt(s) "
            f"in {self.total_duration_ms:.0f}ms: {self.error_message}"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "operation": self.operation,
            "successful": self.successful,
            "total_attempts": self.total_attempts,
            "error_message": self.error_message,
            "retryable": self.retryable,
            "duration_ms": self.total_duration_ms,
        }


class RetryExecutor:
    """Runs a fallible operation up to a bounded number of times.

    Usage:
        executor = RetryExecutor(RetryConfig.fast())
        result = executor.execute(lambda: provider.create(...), operation_name="create")
        if not result.successful:
            ...
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        backoff_policy: BackoffPolicy | None = None,
        classifier: Classifier | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the executor.

        Args:
            config: Attempt limits, delays and exception lists
            backoff_policy: Overrides the exponential policy derived from config
            classifier: Overrides ``config.is_retryable``
            sleep: Function used to wait between attempts
        """
        self.config = config or RetryConfig.default()
        self.backoff_policy = backoff_policy or self.config.backoff_policy()
        self.classifier = classifier or self.config.is_retryable
        self._sleep = sleep

    def execute(
        self,
        operation: Callable[[], T],
        max_attempts: int | None = None,
        backoff_policy: BackoffPolicy | None = None,
        classifier: Classifier | None = None,
        operation_name: str = "operation",
        context: dict[str, Any] | None = None,
    ) -> RetryResult:
        """Invoke ``operation`` until it succeeds, fails terminally or runs out of attempts.

        Args:
            operation: Zero-argument callable to run
            max_attempts: Overrides ``config.max_attempts``
            backoff_policy: Overrides the executor's policy for this call
            classifier: Overrides the executor's classifier for this call
            operation_name: Label used in logs and the result
            context: Extra fields added to log records

        Returns:
            RetryResult describing the outcome
        """
        attempts_allowed = max_attempts if max_attempts is not None else self.config.max_attempts
        if attempts_allowed < 1:
            raise ValueError("max_attempts must be at least 1")

        policy = backoff_policy or self.backoff_policy
        is_retryable = classifier or self.classifier
        log_extra = {"operation": operation_name, **(context or {})}

        result = RetryResult(operation=operation_name)

        def attempt_once() -> T:
            attempt = RetryAttempt(attempt_number=len(result.attempts) + 1)
            result.attempts.append(attempt)
            try:
                value = operation()
            except Exception as e:
                attempt.mark_failed(e)
                logger.warning(
                    f"Attempt {attempt.attempt_number}/{attempts_allowed} of {operation_name} failed",
                    extra={**log_extra, "attempt": attempt.attempt_number, "error": str(e)},
                )
                raise
            attempt.mark_succeeded()
            return value

        stop = stop_after_attempt(attempts_allowed)
        if self.config.max_retry_duration is not None:
            stop = stop | stop_after_delay(self.config.max_retry_duration)

        retrying = Retrying(
            stop=stop,
            wait=policy.wait(),
            retry=retry_if_exception(is_retryable),
            sleep=self._sleep,
            before_sleep=self._log_before_sleep(operation_name, log_extra),
            reraise=True,
        )

        try:
            result.value = retrying(attempt_once)
        except Exception as e:
            result.successful = False
            result.final_exception = e
            result.error_message = str(e) or e.__class__.__name__
            result.retryable = bool(is_retryable(e))
        else:
            result.successful = True

        result.total_attempts = len(result.attempts)
        result.finished_at = datetime.utcnow()

        if result.successful:
            logger.info(f"{operation_name} succeeded", extra={**log_extra, **result.to_dict()})
        else:
            logger.error(f"{operation_name} gave up", extra={**log_extra, **result.to_dict()})

        return result

    @staticmethod
    def _log_before_sleep(
        operation_name: str, log_extra: dict[str, Any]
    ) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            logger.debug(
                f"Waiting {delay:.2f}s before retrying {operation_name}",
                extra={**log_extra, "attempt": retry_state.attempt_number, "delay_seconds": delay},
            )

        return before_sleep
