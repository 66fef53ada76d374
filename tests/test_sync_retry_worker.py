"""Tests for the sync retry sweep and the worker runner.

Tests cover:
- SyncRetryWorker processing of PENDING / RETRY rows
- Failure bookkeeping and skipped rows
- WorkerRunner aggregation and loop control
- Card loader resolution
"""

from unittest.mock import MagicMock

import pytest

from boardsync.models import RETRY_LIMIT_REACHED_MESSAGE, IntegrationType, SyncStatus
from boardsync.observers import GoogleTasksSyncObserver
from boardsync.providers.base import TransientProviderError
from boardsync.workers import (
    SyncRetryWorker,
    WorkerResult,
    WorkerRunner,
    WorkerStatus,
    load_card_loader,
)

GOOGLE = IntegrationType.GOOGLE_TASKS


@pytest.fixture
def observer(provider, sync_service, retry_executor) -> GoogleTasksSyncObserver:
    return GoogleTasksSyncObserver(provider, sync_service, retry_executor)


@pytest.fixture
def card_loader(make_card) -> MagicMock:
    return MagicMock(side_effect=lambda card_id: make_card(id=card_id))


@pytest.fixture
def worker(sync_service, observer, card_loader) -> SyncRetryWorker:
    return SyncRetryWorker(sync_service, [observer], card_loader, batch_size=10)


def retrying_row(sync_service, card_id: int, integration_type=GOOGLE):
    sync_service.create_sync_status(card_id, integration_type)
    sync_service.mark_for_retry(card_id, integration_type)
    return sync_service.get_sync_status(card_id, integration_type)


# ============================================================================
# SyncRetryWorker Tests
# ============================================================================


class TestSyncRetryWorker:
    """Tests for SyncRetryWorker."""

    def test_worker_name(self, worker):
        assert worker.worker_name == "SyncRetryWorker"

    def test_no_rows_means_no_work(self, worker):
        result = worker.run()

        assert result.status == WorkerStatus.NO_WORK
        assert result.processed_count == 0

    def test_retry_succeeds(self, worker, sync_service, provider, card_loader):
        retrying_row(sync_service, 1)

        result = worker.run()

        assert result.status == WorkerStatus.SUCCESS
        assert result.processed_count == 1
        card_loader.assert_called_once_with(1)
        provider.create_or_update_external_item.assert_called_once()
        assert sync_service.get_sync_status(1, GOOGLE).sync_status == SyncStatus.SYNCED

    def test_failed_retry_is_recorded_once(self, worker, sync_service, provider):
        retrying_row(sync_service, 1)
        provider.create_or_update_external_item.side_effect = TransientProviderError("503")

        result = worker.run()

        assert result.status == WorkerStatus.FAILED
        assert result.failed_count == 1
        assert result.errors[0]["item_id"] == "1:GOOGLE_TASKS"
        status = sync_service.get_sync_status(1, GOOGLE)
        assert status.sync_status == SyncStatus.RETRY
        assert status.retry_count == 2

    def test_rows_at_retry_limit_end_in_error(self, worker, sync_service, provider):
        sync_service.create_sync_status(1, GOOGLE, max_retries=1)
        provider.create_or_update_external_item.side_effect = TransientProviderError("503")

        first = worker.run()
        after_first = sync_service.get_sync_status(1, GOOGLE)
        second = worker.run()
        third = worker.run()

        assert first.failed_count == 1
        assert after_first.sync_status == SyncStatus.RETRY
        assert after_first.has_reached_max_retries
        assert second.failed_count == 1
        assert third.status == WorkerStatus.NO_WORK
        assert provider.create_or_update_external_item.call_count == 6
        status = sync_service.get_sync_status(1, GOOGLE)
        assert status.sync_status == SyncStatus.ERROR
        assert status.error_message == RETRY_LIMIT_REACHED_MESSAGE
        assert status.retry_count == 1

    def test_last_attempt_at_retry_limit_can_still_sync(
        self, worker, sync_service, provider
    ):
        sync_service.create_sync_status(1, GOOGLE, max_retries=1)
        sync_service.mark_for_retry(1, GOOGLE)

        result = worker.run()

        assert result.processed_count == 1
        assert sync_service.get_sync_status(1, GOOGLE).sync_status == SyncStatus.SYNCED

    def test_deleted_card_drops_rows(self, worker, sync_service, card_loader, provider):
        retrying_row(sync_service, 1)
        sync_service.create_sync_status(1, IntegrationType.CALENDAR)
        card_loader.side_effect = lambda card_id: None

        result = worker.run()

        assert result.processed_count >= 1
        provider.create_or_update_external_item.assert_not_called()
        assert sync_service.get_sync_statuses_for_card(1) == []

    def test_loader_error_counts_a_retry(self, worker, sync_service, card_loader):
        retrying_row(sync_service, 1)
        card_loader.side_effect = RuntimeError("card store unavailable")

        result = worker.run()

        assert result.failed_count == 1
        assert result.errors[0]["can_retry"] is True
        assert sync_service.get_sync_status(1, GOOGLE).retry_count == 2

    def test_rows_without_observer_are_skipped(self, worker, sync_service, provider):
        retrying_row(sync_service, 1, IntegrationType.CALENDAR)

        result = worker.run()

        assert result.status == WorkerStatus.NO_WORK
        assert result.skipped_count == 1
        provider.create_or_update_external_item.assert_not_called()

    def test_rows_synced_since_fetch_are_skipped(self, worker, sync_service):
        retrying_row(sync_service, 1)
        [item] = worker.fetch_pending()
        sync_service.mark_as_synced(1, GOOGLE, "ext-9")

        assert worker.mark_processing(item) is False

    def test_batch_size_limits_the_sweep(self, sync_service, observer, card_loader):
        for card_id in (1, 2, 3):
            sync_service.create_sync_status(card_id, GOOGLE)
        worker = SyncRetryWorker(sync_service, [observer], card_loader, batch_size=2)

        result = worker.run()

        assert result.processed_count == 2
        assert len(sync_service.get_retryable_statuses()) == 1


# ============================================================================
# WorkerRunner Tests
# ============================================================================


def fake_worker(name: str, processed: int = 0, failed: int = 0) -> MagicMock:
    worker = MagicMock()
    worker.worker_name = name
    worker.run.return_value = WorkerResult(
        status=WorkerStatus.SUCCESS if not failed else WorkerStatus.PARTIAL,
        processed_count=processed,
        failed_count=failed,
    )
    return worker


class TestWorkerRunner:
    """Tests for WorkerRunner."""

    def test_run_once_aggregates_results(self):
        runner = WorkerRunner([fake_worker("A", processed=2), fake_worker("B", 1, 1)])

        result = runner.run_once()

        assert result.workers_run == 2
        assert result.total_processed == 3
        assert result.total_failed == 1
        assert set(result.worker_results) == {"A", "B"}
        assert result.to_dict()["completed_at"] is not None

    def test_run_once_records_crashing_worker(self):
        broken = fake_worker("Broken")
        broken.run.side_effect = RuntimeError("boom")
        healthy = fake_worker("Healthy", processed=1)

        result = WorkerRunner([broken, healthy]).run_once()

        assert result.workers_run == 1
        assert result.errors == ["Broken failed: boom"]
        healthy.run.assert_called_once()

    def test_run_loop_sleeps_between_iterations(self):
        sleeps = []
        worker = fake_worker("A")
        runner = WorkerRunner([worker], sleep=sleeps.append)

        iterations = runner.run_loop(
            interval_seconds=5, max_iterations=3, install_signal_handlers=False
        )

        assert iterations == 3
        assert worker.run.call_count == 3
        assert sleeps == [5, 5]

    def test_request_shutdown_stops_loop(self):
        worker = fake_worker("A")
        runner = WorkerRunner([worker], sleep=lambda seconds: None)
        worker.run.side_effect = lambda: (
            runner.request_shutdown(),
            WorkerResult(status=WorkerStatus.NO_WORK),
        )[1]

        iterations = runner.run_loop(interval_seconds=1, install_signal_handlers=False)

        assert iterations == 1


class TestLoadCardLoader:
    """Tests for resolving the card loader setting."""

    def test_resolves_callable(self):
        import os.path

        assert load_card_loader("os.path:join") is os.path.join

    @pytest.mark.parametrize("reference", ["", "os.path", ":join", "os.path:"])
    def test_malformed_reference(self, reference):
        with pytest.raises(ValueError):
            load_card_loader(reference)

    def test_not_callable(self):
        with pytest.raises(ValueError):
            load_card_loader("os:sep")
