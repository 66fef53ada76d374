"""Entry point the card layer calls when a card changes.

Translates card lifecycle changes into domain events, publishes them and
keeps running counters for monitoring.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from boardsync.events.publisher import EventPublisher
from boardsync.events.types import (
    Card,
    CardScheduledEvent,
    CardUnscheduledEvent,
    CardUpdatedEvent,
    DomainEvent,
)
from boardsync.services.exceptions import IntegrationSyncError
from boardsync.services.integration_sync import IntegrationSyncService

logger = logging.getLogger(__name__)

# Card fields compared when working out what an update changed
TRACKED_CARD_FIELDS: tuple[str, ...] = (
    "title",
    "description",
    "scheduled_date",
    "due_date",
    "board_column_id",
    "card_type_id",
    "progress_type",
)


def determine_changed_fields(card: Card, previous_card: Card | None) -> frozenset[str]:
    """Names of tracked fields that differ; all of them without a previous card."""
    if previous_card is None:
        return frozenset(TRACKED_CARD_FIELDS)
    return frozenset(
        name
        for name in TRACKED_CARD_FIELDS
        if getattr(card, name) != getattr(previous_card, name)
    )


@dataclass
class IntegrationStats:
    """Snapshot of coordinator counters."""

    successful_integrations: int = 0
    failed_integrations: int = 0
    scheduled_integrations: int = 0
    unscheduled_integrations: int = 0
    update_integrations: int = 0
    move_integrations: int = 0
    delete_integrations: int = 0
    last_integration_time: datetime | None = None
    start_time: datetime = field(default_factory=datetime.utcnow)

    @property
    def total_integrations(self) -> int:
        return self.successful_integrations + self.failed_integrations

    @property
    def success_rate(self) -> float:
        if self.total_integrations == 0:
            return 0.0
        return self.successful_integrations / self.total_integrations * 100.0

    @property
    def failure_rate(self) -> float:
        if self.total_integrations == 0:
            return 0.0
        return 100.0 - self.success_rate

    def has_integrations(self) -> bool:
        return self.total_integrations > 0

    def elapsed_ms(self) -> float:
        return (datetime.utcnow() - self.start_time).total_seconds() * 1000

    def integrations_per_minute(self) -> float:
        elapsed_ms = self.elapsed_ms()
        if elapsed_ms <= 0:
            return 0.0
        return self.total_integrations / (elapsed_ms / 60000.0)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "successful_integrations": self.successful_integrations,
            "failed_integrations": self.failed_integrations,
            "scheduled_integrations": self.scheduled_integrations,
            "unscheduled_integrations": self.unscheduled_integrations,
            "update_integrations": self.update_integrations,
            "move_integrations": self.move_integrations,
            "delete_integrations": self.delete_integrations,
            "success_rate": self.success_rate,
            "last_integration_time": (
                self.last_integration_time.isoformat() if self.last_integration_time else None
            ),
            "start_time": self.start_time.isoformat(),
        }

    @classmethod
    def empty(cls) -> "IntegrationStats":
        return cls()


class IntegrationCoordinator:
    """Publishes card lifecycle events and tracks how they went.

    Usage:
        coordinator = IntegrationCoordinator(publisher, sync_service)
        coordinator.on_card_scheduled(card)
    """

    def __init__(
        self,
        publisher: EventPublisher | None,
        sync_service: IntegrationSyncService | None = None,
    ) -> None:
        self.publisher = publisher
        self.sync_service = sync_service
        self._lock = threading.Lock()
        self._stats = IntegrationStats()

    def is_available(self) -> bool:
        return self.publisher is not None

    def get_stats(self) -> IntegrationStats:
        with self._lock:
            return IntegrationStats(**vars(self._stats))

    def on_card_scheduled(self, card: Card | None) -> None:
        if card is None:
            logger.warning("Ignoring schedule request without a card")
            return
        if card.scheduled_date is None:
            logger.warning("Card has no scheduled date", extra={"card_id": card.id})
            return

        event = CardScheduledEvent(card=card, scheduled_date=card.scheduled_date)
        self._publish(event, "scheduled_integrations")

    def on_card_unscheduled(
        self,
        card: Card | None,
        previous_scheduled_date: datetime | None = None,
    ) -> None:
        if card is None:
            logger.warning("Ignoring unschedule request without a card")
            return

        event = CardUnscheduledEvent(
            card=card,
            previous_scheduled_date=previous_scheduled_date or card.scheduled_date,
        )
        self._publish(event, "unscheduled_integrations")

    def on_card_updated(self, card: Card | None, previous_card: Card | None = None) -> None:
        if card is None:
            logger.warning("Ignoring update request without a card")
            return

        changed_fields = determine_changed_fields(card, previous_card)
        event = CardUpdatedEvent(
            card=card,
            previous_card=previous_card,
            changed_fields=changed_fields,
        )
        self._publish(event, "update_integrations")

    def on_card_moved(
        self,
        card: Card | None,
        previous_column_id: int | None,
        new_column_id: int | None,
    ) -> None:
        """A column move is synced like an update with no previous snapshot."""
        if card is None:
            logger.warning("Ignoring move request without a card")
            return

        logger.info(
            "Card moved",
            extra={
                "card_id": card.id,
                "previous_column_id": previous_column_id,
                "new_column_id": new_column_id,
            },
        )
        self.on_card_updated(card, None)
        self._increment("move_integrations")

    def on_card_deleted(self, card_id: int | None) -> None:
        """Remove external items for a deleted card and forget its sync rows."""
        if card_id is None:
            logger.warning("Ignoring delete request without a card id")
            return

        self.on_card_unscheduled(Card(id=card_id))
        if self.sync_service is not None:
            self.sync_service.remove_sync_statuses_for_card(card_id)
        self._increment("delete_integrations")

    def _publish(self, event: DomainEvent, counter: str) -> None:
        if self.publisher is None:
            raise IntegrationSyncError("No event publisher configured", card_id=event.entity_id)

        try:
            self.publisher.publish(event)
        except Exception as e:
            self._increment("failed_integrations")
            logger.error(
                "Failed to coordinate card integrations",
                extra={**event.to_log_dict(), "error": str(e)},
                exc_info=True,
            )
            raise IntegrationSyncError(
                f"Integration coordination failed for card {event.entity_id}",
                card_id=event.entity_id,
            ) from e

        with self._lock:
            setattr(self._stats, counter, getattr(self._stats, counter) + 1)
            self._stats.successful_integrations += 1
            self._stats.last_integration_time = datetime.utcnow()

        logger.info("Card integrations coordinated", extra=event.to_log_dict())

    def _increment(self, counter: str) -> None:
        with self._lock:
            setattr(self._stats, counter, getattr(self._stats, counter) + 1)
