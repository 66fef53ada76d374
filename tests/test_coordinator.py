"""Tests for the integration coordinator and its counters."""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

import httpx
import pytest

from boardsync.events import (
    CardScheduledEvent,
    CardUnscheduledEvent,
    CardUpdatedEvent,
    EventPublisher,
    EventPublishingError,
)
from boardsync.models import IntegrationType
from boardsync.observers import CalendarSyncObserver, GoogleTasksSyncObserver
from boardsync.providers.http import HttpExternalItemProvider
from boardsync.services import (
    IntegrationCoordinator,
    IntegrationStats,
    IntegrationSyncError,
    determine_changed_fields,
)
from boardsync.services.coordinator import TRACKED_CARD_FIELDS


@pytest.fixture
def publisher() -> MagicMock:
    return MagicMock(spec=EventPublisher)


@pytest.fixture
def coordinator(publisher, sync_service) -> IntegrationCoordinator:
    return IntegrationCoordinator(publisher, sync_service)


def published_event(publisher: MagicMock):
    publisher.publish.assert_called_once()
    return publisher.publish.call_args.args[0]


class TestDetermineChangedFields:
    """Tests for the card diff helper."""

    def test_without_previous_card_everything_changed(self, make_card):
        assert determine_changed_fields(make_card(), None) == frozenset(TRACKED_CARD_FIELDS)

    def test_reports_only_differences(self, make_card):
        before = make_card()
        after = make_card(title="New title", due_date=datetime(2026, 3, 11))

        assert determine_changed_fields(after, before) == {"title", "due_date"}

    def test_board_name_is_not_tracked(self, make_card):
        assert determine_changed_fields(make_card(board_name="Home"), make_card()) == frozenset()


class TestIntegrationCoordinator:
    """Tests for event publishing and counters."""

    def test_scheduled_card_publishes_first_scheduling(self, coordinator, publisher, make_card):
        card = make_card()

        coordinator.on_card_scheduled(card)

        event = published_event(publisher)
        assert isinstance(event, CardScheduledEvent)
        assert event.scheduled_date == card.scheduled_date
        assert event.is_first_scheduling()
        stats = coordinator.get_stats()
        assert stats.scheduled_integrations == 1
        assert stats.successful_integrations == 1
        assert stats.last_integration_time is not None

    @pytest.mark.parametrize("card", [None, "unscheduled"])
    def test_scheduled_without_date_is_ignored(self, coordinator, publisher, make_card, card):
        if card == "unscheduled":
            card = make_card(scheduled_date=None)

        coordinator.on_card_scheduled(card)

        publisher.publish.assert_not_called()
        assert coordinator.get_stats().has_integrations() is False

    def test_unscheduled_keeps_previous_date(self, coordinator, publisher, make_card):
        previous = datetime(2026, 3, 9, 8, 0)

        coordinator.on_card_unscheduled(make_card(scheduled_date=None), previous)

        event = published_event(publisher)
        assert isinstance(event, CardUnscheduledEvent)
        assert event.previous_scheduled_date == previous
        assert coordinator.get_stats().unscheduled_integrations == 1

    def test_updated_carries_changed_fields(self, coordinator, publisher, make_card):
        before = make_card()
        after = make_card(scheduled_date=before.scheduled_date + timedelta(hours=2))

        coordinator.on_card_updated(after, before)

        event = published_event(publisher)
        assert isinstance(event, CardUpdatedEvent)
        assert event.changed_fields == {"scheduled_date"}
        assert event.previous_card == before

    def test_moved_card_is_published_as_full_update(self, coordinator, publisher, make_card):
        coordinator.on_card_moved(make_card(board_column_id=3), 2, 3)

        event = published_event(publisher)
        assert isinstance(event, CardUpdatedEvent)
        assert event.previous_card is None
        assert event.requires_external_sync()
        stats = coordinator.get_stats()
        assert stats.move_integrations == 1
        assert stats.update_integrations == 1

    def test_deleted_card_unschedules_and_forgets_rows(
        self, coordinator, publisher, sync_service
    ):
        sync_service.create_sync_status(7, IntegrationType.GOOGLE_TASKS)
        sync_service.create_sync_status(7, IntegrationType.CALENDAR)

        coordinator.on_card_deleted(7)

        event = published_event(publisher)
        assert isinstance(event, CardUnscheduledEvent)
        assert event.card_id == 7
        assert sync_service.get_sync_statuses_for_card(7) == []
        assert coordinator.get_stats().delete_integrations == 1

    def test_publish_failure_is_counted_and_wrapped(self, coordinator, publisher, make_card):
        failure = EventPublishingError("observer failed")
        publisher.publish.side_effect = failure

        with pytest.raises(IntegrationSyncError) as exc_info:
            coordinator.on_card_scheduled(make_card())

        assert exc_info.value.__cause__ is failure
        assert exc_info.value.card_id == 1
        stats = coordinator.get_stats()
        assert stats.failed_integrations == 1
        assert stats.successful_integrations == 0
        assert stats.failure_rate == 100.0

    def test_without_publisher(self, make_card):
        coordinator = IntegrationCoordinator(None)

        assert coordinator.is_available() is False
        with pytest.raises(IntegrationSyncError):
            coordinator.on_card_scheduled(make_card())

    def test_stats_are_a_snapshot(self, coordinator, make_card):
        snapshot = coordinator.get_stats()

        coordinator.on_card_scheduled(make_card())

        assert snapshot.total_integrations == 0
        assert coordinator.get_stats().total_integrations == 1

    def test_end_to_end_with_real_publisher(
        self, sync_service, provider, retry_executor, make_card
    ):
        publisher = EventPublisher(max_workers=1)
        publisher.subscribe(GoogleTasksSyncObserver(provider, sync_service, retry_executor))
        coordinator = IntegrationCoordinator(publisher, sync_service)

        coordinator.on_card_scheduled(make_card(board_name="Work"))
        coordinator.on_card_deleted(1)

        provider.delete_external_item.assert_called_once_with("ext-1", "Work")
        assert sync_service.get_sync_statuses_for_card(1) == []
        publisher.shutdown()


class TestCardDeletionEndToEnd:
    """Deleting a card removes its items over HTTP from where they were created."""

    @pytest.fixture
    def gateway(self):
        calls: list[tuple[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            calls.append((request.method, path))
            if request.method == "POST":
                list_id = path.split("/")[2]
                return httpx.Response(201, json={"id": f"{list_id}-t1"})
            if request.method == "DELETE" and path.startswith("/lists/Simple"):
                # Nothing was created in the default list
                return httpx.Response(404)
            return httpx.Response(204)

        provider = HttpExternalItemProvider(
            "https://gateway.test", transport=httpx.MockTransport(handler)
        )
        yield provider, calls
        provider.close()

    @pytest.fixture
    def pipeline(self, gateway, sync_service, retry_executor):
        provider, calls = gateway
        publisher = EventPublisher(max_workers=1)
        publisher.subscribe(GoogleTasksSyncObserver(provider, sync_service, retry_executor))
        publisher.subscribe(
            CalendarSyncObserver(provider, sync_service, retry_executor, calendar_id="team")
        )
        yield IntegrationCoordinator(publisher, sync_service), calls
        publisher.shutdown()

    def test_delete_targets_the_lists_items_were_created_in(
        self, pipeline, sync_service, make_card
    ):
        coordinator, calls = pipeline

        coordinator.on_card_scheduled(make_card(board_name="Work"))
        coordinator.on_card_deleted(1)

        assert ("POST", "/lists/Work/items") in calls
        assert ("POST", "/lists/team/items") in calls
        assert ("DELETE", "/lists/Work/items/Work-t1") in calls
        assert ("DELETE", "/lists/team/items/team-t1") in calls
        assert not any(path.startswith("/lists/Simple") for _, path in calls)
        assert sync_service.get_sync_statuses_for_card(1) == []
        stats = coordinator.get_stats()
        assert stats.delete_integrations == 1
        assert stats.failed_integrations == 0

    def test_delete_after_failed_sync_only_forgets_rows(
        self, pipeline, sync_service, make_card
    ):
        coordinator, calls = pipeline
        sync_service.create_sync_status(1, IntegrationType.GOOGLE_TASKS)
        sync_service.mark_as_error(1, IntegrationType.GOOGLE_TASKS, "quota")

        coordinator.on_card_deleted(1)

        assert calls == []
        assert sync_service.get_sync_statuses_for_card(1) == []


class TestIntegrationStats:
    """Tests for counter-derived rates."""

    def test_empty_rates_are_zero(self):
        stats = IntegrationStats.empty()

        assert stats.total_integrations == 0
        assert stats.success_rate == 0.0
        assert stats.failure_rate == 0.0
        assert stats.has_integrations() is False

    def test_rates(self):
        stats = IntegrationStats(successful_integrations=3, failed_integrations=1)

        assert stats.success_rate == 75.0
        assert stats.failure_rate == 25.0
        assert stats.to_dict()["success_rate"] == 75.0
