"""Retry configuration, backoff policies and failure classification."""

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, ClassVar

import httpx
from tenacity import RetryCallState, wait_exponential, wait_fixed
from tenacity.wait import wait_base

Classifier = Callable[[BaseException], bool]

DEFAULT_RETRYABLE_EXCEPTIONS: tuple[type[BaseException], ...] = (
    ConnectionError,
    TimeoutError,
    OSError,
    httpx.TransportError,
)

DEFAULT_NON_RETRYABLE_EXCEPTIONS: tuple[type[BaseException], ...] = (
    ValueError,
    TypeError,
    PermissionError,
    NotImplementedError,
)


@dataclass(frozen=True)
class RetryConfig:
    """Knobs for one retry-wrapped operation.

    Delays are in seconds. ``max_retry_duration`` is an overall time
    budget; ``None`` disables it.
    """

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 300.0
    backoff_multiplier: float = 2.0
    enable_jitter: bool = True
    max_retry_duration: float | None = None
    retryable_exceptions: tuple[type[BaseException], ...] = field(
        default=DEFAULT_RETRYABLE_EXCEPTIONS
    )
    non_retryable_exceptions: tuple[type[BaseException], ...] = field(
        default=DEFAULT_NON_RETRYABLE_EXCEPTIONS
    )

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("Retry delays cannot be negative")

    def is_retryable(self, exception: BaseException | None) -> bool:
        """Classify a failure as transient (retry) or terminal (give up).

        An exception carrying a boolean ``retryable`` attribute decides for
        itself. Otherwise non-retryable types win over retryable ones and
        anything unknown is terminal.
        """
        if exception is None:
            return False

        marker = getattr(exception, "retryable", None)
        if isinstance(marker, bool):
            return marker

        if isinstance(exception, self.non_retryable_exceptions):
            return False
        return isinstance(exception, self.retryable_exceptions)

    def backoff_policy(self) -> "ExponentialBackoff":
        return ExponentialBackoff(
            initial_delay=self.initial_delay,
            multiplier=self.backoff_multiplier,
            max_delay=self.max_delay,
            jitter=self.enable_jitter,
        )

    @classmethod
    def default(cls) -> "RetryConfig":
        return cls()

    @classmethod
    def critical(cls) -> "RetryConfig":
        """Longer, more patient retries for operations that must land."""
        return cls(
            max_attempts=5,
            initial_delay=2.0,
            max_delay=600.0,
            backoff_multiplier=1.5,
            max_retry_duration=3600.0,
        )

    @classmethod
    def fast(cls) -> "RetryConfig":
        """Short retries for interactive paths."""
        return cls(
            max_attempts=2,
            initial_delay=0.5,
            max_delay=5.0,
            backoff_multiplier=2.0,
            max_retry_duration=300.0,
        )

    @classmethod
    def from_settings(cls, settings) -> "RetryConfig":
        return cls(
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            initial_delay=settings.RETRY_INITIAL_DELAY_SECONDS,
            max_delay=settings.RETRY_MAX_DELAY_SECONDS,
            backoff_multiplier=settings.RETRY_BACKOFF_MULTIPLIER,
            enable_jitter=settings.RETRY_JITTER,
            max_retry_duration=settings.RETRY_MAX_DURATION_SECONDS,
        )


class BackoffPolicy(ABC):
    """How long to wait after a failed attempt."""

    name: ClassVar[str]

    @abstractmethod
    def calculate_delay(self, attempt_number: int) -> float:
        """Seconds to wait after attempt ``attempt_number`` (1-based) failed."""
        pass

    @abstractmethod
    def wait(self) -> wait_base:
        """The equivalent tenacity wait strategy."""
        pass


class _PolicyWait(wait_base):
    """Adapter exposing a BackoffPolicy as a tenacity wait."""

    def __init__(self, policy: BackoffPolicy) -> None:
        self.policy = policy

    def __call__(self, retry_state: RetryCallState) -> float:
        return self.policy.calculate_delay(retry_state.attempt_number)


@dataclass(frozen=True)
class ExponentialBackoff(BackoffPolicy):
    """initial_delay * multiplier ** (attempt - 1), capped at max_delay.

    With jitter, the capped delay is scaled by a random factor in [0.5, 1.0].
    """

    name: ClassVar[str] = "ExponentialBackoff"

    initial_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 300.0
    jitter: bool = True

    def calculate_delay(self, attempt_number: int) -> float:
        if attempt_number <= 1:
            delay = self.initial_delay
        else:
            delay = self.initial_delay * self.multiplier ** (attempt_number - 1)
        delay = min(delay, self.max_delay)
        if self.jitter:
            delay *= random.uniform(0.5, 1.0)
        return delay

    def wait(self) -> wait_base:
        if self.jitter:
            return _PolicyWait(self)
        return wait_exponential(
            multiplier=self.initial_delay,
            exp_base=self.multiplier,
            max=self.max_delay,
        )


@dataclass(frozen=True)
class FixedDelay(BackoffPolicy):
    """Always wait the same amount of time."""

    name: ClassVar[str] = "FixedDelay"

    delay: float = 1.0

    def calculate_delay(self, attempt_number: int) -> float:
        return self.delay

    def wait(self) -> wait_base:
        return wait_fixed(self.delay)
