"""Shared behaviour for observers that mirror cards into an external system.

Sync Flow:
    EventPublisher → SyncObserver.handle → RetryExecutor → ExternalItemProvider
                                  ↓
                      IntegrationSyncService (PENDING → SYNCED | RETRY | ERROR)
"""

import logging
from abc import abstractmethod
from datetime import datetime
from typing import Callable, ClassVar

from boardsync.events.observer import EventObserver
from boardsync.events.types import (
    Card,
    CardScheduledEvent,
    CardUnscheduledEvent,
    CardUpdatedEvent,
    DomainEvent,
    EventType,
)
from boardsync.models.sync_status import IntegrationType, SyncStatus
from boardsync.providers.base import ExternalItemProvider
from boardsync.retry.executor import RetryExecutor, RetryResult
from boardsync.services.exceptions import IntegrationSyncError
from boardsync.services.integration_sync import IntegrationSyncService

logger = logging.getLogger(__name__)


class SyncObserver(EventObserver):
    """Base class for per-integration sync observers.

    Subclasses set ``integration_type`` and describe how a card maps to an
    external item (title, notes, due date, target list or calendar).
    """

    integration_type: ClassVar[IntegrationType]
    event_types: ClassVar[frozenset[EventType]] = frozenset(
        {EventType.CARD_SCHEDULED, EventType.CARD_UNSCHEDULED, EventType.CARD_UPDATED}
    )

    def __init__(
        self,
        provider: ExternalItemProvider,
        sync_service: IntegrationSyncService,
        retry_executor: RetryExecutor | None = None,
    ) -> None:
        self.provider = provider
        self.sync_service = sync_service
        self.retry_executor = retry_executor or RetryExecutor()
        self._handlers: dict[EventType, Callable[[DomainEvent], None]] = {
            EventType.CARD_SCHEDULED: self._on_scheduled,
            EventType.CARD_UNSCHEDULED: self._on_unscheduled,
            EventType.CARD_UPDATED: self._on_updated,
        }

    @abstractmethod
    def target_id(self, card: Card) -> str:
        """Task list or calendar the card belongs in."""
        pass

    @abstractmethod
    def build_notes(self, card: Card) -> str:
        pass

    @abstractmethod
    def due_date_for(self, card: Card) -> datetime | None:
        pass

    def build_title(self, card: Card) -> str:
        return card.title

    def handle(self, event: DomainEvent) -> None:
        handler = self._handlers.get(event.event_type)
        if handler is None:
            logger.debug(
                f"[{self.observer_name}] Ignoring event",
                extra={"event_type": event.event_type.value},
            )
            return
        handler(event)

    def resync(self, card: Card) -> None:
        """Push the card's current state again; used by the retry sweep."""
        if not card.is_scheduled:
            self._remove(card)
            return
        self._sync(card)

    # -------------------------------------------------------------------------
    # Event handlers
    # -------------------------------------------------------------------------

    def _on_scheduled(self, event: CardScheduledEvent) -> None:
        card = event.card
        if not card.is_scheduled:
            logger.debug(
                f"[{self.observer_name}] Card has no scheduled date",
                extra={"card_id": card.id},
            )
            return

        if not event.is_first_scheduling():
            self._restart_finished_sync(card)
        self._sync(card)

    def _on_unscheduled(self, event: CardUnscheduledEvent) -> None:
        self._remove(event.card)

    def _on_updated(self, event: CardUpdatedEvent) -> None:
        card = event.card
        previous = event.previous_card
        was_scheduled = previous is not None and previous.is_scheduled

        if not card.is_scheduled:
            if was_scheduled:
                self._remove(card)
            return

        if not event.requires_external_sync():
            logger.debug(
                f"[{self.observer_name}] Update does not touch synced fields",
                extra={"card_id": card.id, "changed_fields": sorted(event.changed_fields)},
            )
            return

        if event.is_scheduled_date_changed() and was_scheduled:
            self._restart_finished_sync(card)
        self._sync(card)

    # -------------------------------------------------------------------------
    # Sync steps
    # -------------------------------------------------------------------------

    def _restart_finished_sync(self, card: Card) -> None:
        status = self.sync_service.get_sync_status(card.id, self.integration_type)
        if status is not None and status.sync_status.is_final:
            self.sync_service.mark_as_pending(card.id, self.integration_type)

    def _sync(self, card: Card) -> None:
        status = self.sync_service.create_sync_status(card.id, self.integration_type)
        external_id = status.external_id
        list_or_calendar_id = self.target_id(card)

        result = self.retry_executor.execute(
            lambda: self.provider.create_or_update_external_item(
                title=self.build_title(card),
                notes=self.build_notes(card),
                due_date=self.due_date_for(card),
                list_or_calendar_id=list_or_calendar_id,
                external_id=external_id,
            ),
            operation_name=f"{self.observer_name}.sync",
            context=self._log_context(card),
        )

        if result.successful:
            self.sync_service.mark_as_synced(
                card.id, self.integration_type, result.value, list_or_calendar_id
            )
            logger.info(
                f"[{self.observer_name}] Card synced",
                extra={**self._log_context(card), "external_id": result.value},
            )
            return

        self._record_failure(card, result)

    def _remove(self, card: Card) -> None:
        status = self.sync_service.get_sync_status(card.id, self.integration_type)
        if status is None:
            logger.debug(
                f"[{self.observer_name}] Nothing to remove",
                extra=self._log_context(card),
            )
            return

        if status.external_id:
            external_id = status.external_id
            # Delete events may carry only the card id
            list_or_calendar_id = status.external_list_id or self.target_id(card)
            result = self.retry_executor.execute(
                lambda: self.provider.delete_external_item(external_id, list_or_calendar_id),
                operation_name=f"{self.observer_name}.remove",
                context=self._log_context(card),
            )
            if not result.successful:
                self.sync_service.mark_as_error(
                    card.id, self.integration_type, result.error_message or "Removal failed"
                )
                raise IntegrationSyncError(
                    f"Failed to remove {self.integration_type.display_name} item "
                    f"for card {card.id}: {result.error_message}",
                    integration_type=self.integration_type,
                    card_id=card.id,
                ) from result.final_exception

        self.sync_service.remove_sync_status(card.id, self.integration_type)
        logger.info(f"[{self.observer_name}] Card unsynced", extra=self._log_context(card))

    def _record_failure(self, card: Card, result: RetryResult) -> None:
        if result.retryable:
            will_retry = self.sync_service.mark_for_retry(card.id, self.integration_type)
            outcome = SyncStatus.RETRY if will_retry else SyncStatus.ERROR
        else:
            self.sync_service.mark_as_error(
                card.id, self.integration_type, result.error_message or "Sync failed"
            )
            outcome = SyncStatus.ERROR

        raise IntegrationSyncError(
            f"Failed to sync card {card.id} with {self.integration_type.display_name} "
            f"({outcome.value}): {result.error_message}",
            integration_type=self.integration_type,
            card_id=card.id,
        ) from result.final_exception

    def _log_context(self, card: Card) -> dict:
        return {"card_id": card.id, "integration_type": self.integration_type.value}
