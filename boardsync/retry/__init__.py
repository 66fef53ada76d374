"""Bounded retries with backoff and failure classification."""

from boardsync.retry.executor import RetryAttempt, RetryExecutor, RetryResult
from boardsync.retry.policy import (
    BackoffPolicy,
    Classifier,
    ExponentialBackoff,
    FixedDelay,
    RetryConfig,
)

__all__ = [
    "RetryConfig",
    "BackoffPolicy",
    "ExponentialBackoff",
    "FixedDelay",
    "Classifier",
    "RetryExecutor",
    "RetryResult",
    "RetryAttempt",
]
