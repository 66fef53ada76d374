"""Tests for the retry executor, backoff policies and failure classification."""

from unittest.mock import Mock

import httpx
import pytest

from boardsync.providers.base import PermanentProviderError, TransientProviderError
from boardsync.retry import (
    ExponentialBackoff,
    FixedDelay,
    RetryConfig,
    RetryExecutor,
)


@pytest.fixture
def sleeps() -> list:
    return []


@pytest.fixture
def executor(sleeps) -> RetryExecutor:
    return RetryExecutor(
        RetryConfig(max_attempts=3, initial_delay=1.0, enable_jitter=False),
        sleep=sleeps.append,
    )


class TestRetryExecutor:
    """Tests for RetryExecutor.execute."""

    def test_success_on_first_attempt(self, executor, sleeps):
        operation = Mock(return_value="ext-1")

        result = executor.execute(operation, operation_name="create")

        assert result.successful is True
        assert result.total_attempts == 1
        assert result.value == "ext-1"
        assert result.error_message is None
        assert result.final_exception is None
        assert sleeps == []

    def test_retries_transient_failures_until_success(self, executor, sleeps):
        operation = Mock(side_effect=[ConnectionError("down"), TimeoutError("slow"), "ext-2"])

        result = executor.execute(operation)

        assert result.successful is True
        assert result.total_attempts == 3
        assert result.value == "ext-2"
        assert result.failed_attempts_count == 2
        assert sleeps == [1.0, 2.0]

    def test_exhausting_attempts_returns_failure(self, executor):
        error = ConnectionError("still down")
        operation = Mock(side_effect=error)

        result = executor.execute(operation)

        assert result.successful is False
        assert result.total_attempts == 3
        assert result.final_exception is error
        assert result.error_message == "still down"
        assert result.retryable is True
        assert operation.call_count == 3

    def test_terminal_failure_aborts_immediately(self, executor, sleeps):
        operation = Mock(side_effect=ValueError("bad input"))

        result = executor.execute(operation)

        assert result.successful is False
        assert result.total_attempts == 1
        assert result.retryable is False
        assert sleeps == []

    def test_unknown_exceptions_are_terminal(self, executor):
        operation = Mock(side_effect=RuntimeError("boom"))

        result = executor.execute(operation)

        assert result.total_attempts == 1
        assert result.successful is False

    def test_max_attempts_override(self, executor):
        operation = Mock(side_effect=ConnectionError("down"))

        result = executor.execute(operation, max_attempts=5)

        assert result.total_attempts == 5

    def test_invalid_max_attempts(self, executor):
        with pytest.raises(ValueError):
            executor.execute(Mock(), max_attempts=0)

    def test_custom_classifier(self, executor):
        operation = Mock(side_effect=[RuntimeError("flaky"), "ok"])

        result = executor.execute(operation, classifier=lambda e: isinstance(e, RuntimeError))

        assert result.successful is True
        assert result.total_attempts == 2

    def test_custom_backoff_policy(self, executor, sleeps):
        operation = Mock(side_effect=[ConnectionError(), ConnectionError(), "ok"])

        executor.execute(operation, backoff_policy=FixedDelay(0.25))

        assert sleeps == [0.25, 0.25]

    def test_attempt_records(self, executor):
        operation = Mock(side_effect=[ConnectionError("down"), "ok"])

        result = executor.execute(operation)

        first, second = result.attempts
        assert first.attempt_number == 1
        assert first.successful is False
        assert first.error_code == "ConnectionError"
        assert second.successful is True
        assert result.last_attempt is second

    def test_result_summary_and_dict(self, executor):
        result = executor.execute(Mock(side_effect=ValueError("nope")), operation_name="sync")

        assert "failed after 1 attempt" in result.summary()
        data = result.to_dict()
        assert data["operation"] == "sync"
        assert data["successful"] is False
        assert data["error_message"] == "nope"


class TestClassification:
    """Tests for RetryConfig.is_retryable."""

    def test_provider_errors_decide_for_themselves(self):
        config = RetryConfig()

        assert config.is_retryable(TransientProviderError("503")) is True
        assert config.is_retryable(PermanentProviderError("400")) is False

    def test_httpx_transport_errors_are_retryable(self):
        assert RetryConfig().is_retryable(httpx.ConnectError("refused")) is True

    def test_non_retryable_wins(self):
        class Both(ConnectionError, ValueError):
            pass

        assert RetryConfig().is_retryable(Both()) is False

    def test_none_is_not_retryable(self):
        assert RetryConfig().is_retryable(None) is False


class TestBackoff:
    """Tests for backoff policies."""

    def test_exponential_without_jitter(self):
        policy = ExponentialBackoff(initial_delay=1.0, multiplier=2.0, max_delay=5.0, jitter=False)

        assert [policy.calculate_delay(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 5.0]

    def test_exponential_jitter_stays_in_range(self):
        policy = ExponentialBackoff(initial_delay=2.0, multiplier=2.0, max_delay=100.0, jitter=True)

        for _ in range(50):
            assert 2.0 <= policy.calculate_delay(2) <= 4.0

    def test_fixed_delay(self):
        assert FixedDelay(3.0).calculate_delay(7) == 3.0


class TestRetryConfig:
    def test_presets(self):
        assert RetryConfig.default().max_attempts == 3
        assert RetryConfig.critical().max_attempts == 5
        assert RetryConfig.critical().max_retry_duration == 3600.0
        assert RetryConfig.fast().max_attempts == 2
        assert RetryConfig.fast().max_delay == 5.0

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            RetryConfig(max_attempts=0)
        with pytest.raises(ValueError):
            RetryConfig(initial_delay=-1)

    def test_from_settings(self):
        settings = Mock(
            RETRY_MAX_ATTEMPTS=4,
            RETRY_INITIAL_DELAY_SECONDS=0.5,
            RETRY_MAX_DELAY_SECONDS=10.0,
            RETRY_BACKOFF_MULTIPLIER=3.0,
            RETRY_JITTER=False,
            RETRY_MAX_DURATION_SECONDS=None,
        )

        config = RetryConfig.from_settings(settings)

        assert config.max_attempts == 4
        assert config.backoff_multiplier == 3.0
        assert config.enable_jitter is False
