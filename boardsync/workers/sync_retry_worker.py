"""Retry sweep for card syncs left in PENDING or RETRY.

Each sweep takes the oldest retryable sync rows, reloads the card and
asks the matching observer to push it again. The observer records the
outcome, so a row keeps cycling through RETRY until it syncs or runs
out of retries and lands in ERROR. A row that reached its limit gets one
last attempt; if that fails too it moves to ERROR with "Retry limit
reached" and leaves the sweep.
"""

from typing import Callable, Iterable

from boardsync.events.types import Card
from boardsync.models.sync_status import IntegrationSyncStatus, IntegrationType
from boardsync.observers.base import SyncObserver
from boardsync.services.exceptions import IntegrationSyncError
from boardsync.services.integration_sync import IntegrationSyncService
from boardsync.workers.base import WorkerBase

CardLoader = Callable[[int], Card | None]


class SyncRetryWorker(WorkerBase[IntegrationSyncStatus]):
    """Re-attempts external syncs that have not landed yet."""

    def __init__(
        self,
        sync_service: IntegrationSyncService,
        observers: Iterable[SyncObserver],
        card_loader: CardLoader,
        batch_size: int = 50,
    ) -> None:
        super().__init__(batch_size=batch_size)
        self.sync_service = sync_service
        self.card_loader = card_loader
        self._observers: dict[IntegrationType, SyncObserver] = {
            observer.integration_type: observer for observer in observers
        }

    @property
    def worker_name(self) -> str:
        return "SyncRetryWorker"

    def fetch_pending(self) -> list[IntegrationSyncStatus]:
        return self.sync_service.get_retryable_statuses(limit=self.batch_size)

    def mark_processing(self, item: IntegrationSyncStatus) -> bool:
        """Skip rows that changed since the batch was fetched."""
        if item.integration_type not in self._observers:
            self._logger.warning(
                f"[{self.worker_name}] No observer for integration",
                extra={"integration_type": item.integration_type.value},
            )
            return False

        current = self.sync_service.get_sync_status(item.card_id, item.integration_type)
        # Rows at the retry limit still get this last attempt
        return current is not None and current.sync_status.allows_retry

    def process_item(self, item: IntegrationSyncStatus) -> None:
        card = self.card_loader(item.card_id)
        if card is None:
            self._logger.info(
                f"[{self.worker_name}] Card no longer exists, dropping its sync rows",
                extra={"card_id": item.card_id},
            )
            self.sync_service.remove_sync_statuses_for_card(item.card_id)
            return

        self._observers[item.integration_type].resync(card)

    def mark_completed(self, item: IntegrationSyncStatus) -> None:
        # The observer has already stored SYNCED and the external id
        self._logger.debug(
            f"[{self.worker_name}] Retry succeeded",
            extra={"card_id": item.card_id, "integration_type": item.integration_type.value},
        )

    def mark_failed(self, item: IntegrationSyncStatus, error: Exception, can_retry: bool) -> None:
        if isinstance(error, IntegrationSyncError):
            # Already recorded as RETRY or ERROR by the observer
            return
        if self.sync_service.get_sync_status(item.card_id, item.integration_type) is None:
            return
        if can_retry:
            self.sync_service.mark_for_retry(item.card_id, item.integration_type)
        else:
            self.sync_service.mark_as_error(
                item.card_id, item.integration_type, str(error)[:500] or error.__class__.__name__
            )

    def get_item_id(self, item: IntegrationSyncStatus) -> str:
        return f"{item.card_id}:{item.integration_type.value}"

    def should_retry(self, item: IntegrationSyncStatus) -> bool:
        current = self.sync_service.get_sync_status(item.card_id, item.integration_type)
        return current is not None and current.can_retry
