"""Sync status state machine.

Every transition reads the (card, integration) row under a row lock and
writes it back in the same transaction, so concurrent observers racing
on one pair cannot lose each other's updates.
"""

import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import IntegrityError

from boardsync.models.statistics import SyncStatistics
from boardsync.models.sync_status import (
    RETRY_LIMIT_REACHED_MESSAGE,
    IntegrationSyncStatus,
    IntegrationType,
    SyncStatus,
)
from boardsync.repositories.sync_status import IntegrationSyncRepository
from boardsync.services.exceptions import SyncStatusNotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class IntegrationSyncService:
    """Transitions and queries over IntegrationSyncStatus rows."""

    def __init__(
        self,
        repository: IntegrationSyncRepository,
        default_max_retries: int = 3,
    ) -> None:
        self.repository = repository
        self.default_max_retries = default_max_retries

    def create_sync_status(
        self,
        card_id: int,
        integration_type: IntegrationType,
        max_retries: int | None = None,
    ) -> IntegrationSyncStatus:
        """Return the row for the pair, creating it in PENDING if missing."""
        try:
            with self.repository.transaction() as session:
                existing = self.repository.find_by_card_id_and_type(
                    session, card_id, integration_type
                )
                if existing is not None:
                    logger.debug(
                        "Sync status already exists",
                        extra={"card_id": card_id, "integration_type": integration_type.value},
                    )
                    return existing

                status = IntegrationSyncStatus(
                    card_id=card_id,
                    integration_type=integration_type,
                    sync_status=SyncStatus.PENDING,
                    retry_count=0,
                    max_retries=(
                        self.default_max_retries if max_retries is None else max_retries
                    ),
                )
                saved = self.repository.save(session, status)
        except IntegrityError:
            # Another caller inserted the same pair first
            with self.repository.transaction() as session:
                existing = self.repository.find_by_card_id_and_type(
                    session, card_id, integration_type
                )
            if existing is None:
                raise
            return existing

        logger.info(
            "Created sync status",
            extra={"card_id": card_id, "integration_type": integration_type.value},
        )
        return saved

    def mark_as_synced(
        self,
        card_id: int,
        integration_type: IntegrationType,
        external_id: str,
        external_list_id: str | None = None,
    ) -> IntegrationSyncStatus:
        """Record a successful push.

        ``external_list_id`` is the task list or calendar the item lives in;
        removal targets it even when the card no longer carries it.
        """

        def apply(status: IntegrationSyncStatus) -> IntegrationSyncStatus:
            status.mark_as_synced(external_id, external_list_id)
            return status

        status = self._transition(card_id, integration_type, apply)
        logger.info(
            "Card synced",
            extra={
                "card_id": card_id,
                "integration_type": integration_type.value,
                "external_id": external_id,
                "external_list_id": external_list_id,
            },
        )
        return status

    def mark_as_error(
        self, card_id: int, integration_type: IntegrationType, error_message: str
    ) -> IntegrationSyncStatus:
        def apply(status: IntegrationSyncStatus) -> IntegrationSyncStatus:
            status.mark_as_error(error_message)
            return status

        status = self._transition(card_id, integration_type, apply)
        logger.warning(
            "Card sync failed",
            extra={
                "card_id": card_id,
                "integration_type": integration_type.value,
                "error": error_message,
            },
        )
        return status

    def mark_for_retry(self, card_id: int, integration_type: IntegrationType) -> bool:
        """Count one more retry, or give up with ERROR once the limit is hit.

        Returns True if the row moved to RETRY, False if it moved to ERROR.
        """

        def apply(status: IntegrationSyncStatus) -> bool:
            if status.can_retry:
                status.mark_as_retry()
                return True
            status.mark_as_error(RETRY_LIMIT_REACHED_MESSAGE)
            return False

        scheduled = self._transition(card_id, integration_type, apply)
        if scheduled:
            logger.info(
                "Card sync scheduled for retry",
                extra={"card_id": card_id, "integration_type": integration_type.value},
            )
        else:
            logger.warning(
                "Card sync retry limit reached",
                extra={"card_id": card_id, "integration_type": integration_type.value},
            )
        return scheduled

    def mark_as_pending(
        self,
        card_id: int,
        integration_type: IntegrationType,
        reset_retries: bool = True,
    ) -> IntegrationSyncStatus:
        """Restart the sync for a row, typically after a re-scheduling."""

        def apply(status: IntegrationSyncStatus) -> IntegrationSyncStatus:
            status.mark_as_pending(reset_retries=reset_retries)
            return status

        return self._transition(card_id, integration_type, apply)

    def get_sync_status(
        self, card_id: int, integration_type: IntegrationType
    ) -> IntegrationSyncStatus | None:
        with self.repository.transaction() as session:
            return self.repository.find_by_card_id_and_type(session, card_id, integration_type)

    def get_sync_statuses_for_card(self, card_id: int) -> list[IntegrationSyncStatus]:
        with self.repository.transaction() as session:
            return self.repository.find_by_card_id(session, card_id)

    def get_retryable_statuses(self, limit: int | None = None) -> list[IntegrationSyncStatus]:
        with self.repository.transaction() as session:
            return self.repository.find_retryable_statuses(session, limit=limit)

    def get_error_statuses_for_retry(self) -> list[IntegrationSyncStatus]:
        with self.repository.transaction() as session:
            return self.repository.find_error_statuses_for_retry(session)

    def remove_sync_statuses_for_card(self, card_id: int) -> int:
        with self.repository.transaction() as session:
            removed = self.repository.delete_by_card_id(session, card_id)
        logger.info(
            "Removed sync statuses for card",
            extra={"card_id": card_id, "removed": removed},
        )
        return removed

    def remove_sync_status(self, card_id: int, integration_type: IntegrationType) -> bool:
        with self.repository.transaction() as session:
            status = self.repository.find_by_card_id_and_type(
                session, card_id, integration_type, for_update=True
            )
            if status is None:
                return False
            self.repository.delete(session, status)
        logger.info(
            "Removed sync status",
            extra={"card_id": card_id, "integration_type": integration_type.value},
        )
        return True

    def is_card_synced(self, card_id: int, integration_type: IntegrationType) -> bool:
        status = self.get_sync_status(card_id, integration_type)
        return status is not None and status.is_synced

    def has_sync_errors(self, card_id: int) -> bool:
        return any(status.has_error for status in self.get_sync_statuses_for_card(card_id))

    def get_external_id(self, card_id: int, integration_type: IntegrationType) -> str | None:
        status = self.get_sync_status(card_id, integration_type)
        return status.external_id if status is not None else None

    def get_statistics(self) -> SyncStatistics:
        """Compute a fresh statistics snapshot from the table."""
        with self.repository.transaction() as session:
            by_status = {
                sync_status: self.repository.count_by_sync_status(session, sync_status)
                for sync_status in SyncStatus
            }
            by_type = {
                integration_type: self.repository.count_by_integration_type(
                    session, integration_type
                )
                for integration_type in IntegrationType
            }

        return SyncStatistics(
            total_syncs=sum(by_status.values()),
            synced_count=by_status[SyncStatus.SYNCED],
            pending_count=by_status[SyncStatus.PENDING],
            error_count=by_status[SyncStatus.ERROR],
            retry_count=by_status[SyncStatus.RETRY],
            by_integration_type=by_type,
        )

    def _transition(
        self,
        card_id: int,
        integration_type: IntegrationType,
        apply: Callable[[IntegrationSyncStatus], T],
    ) -> T:
        with self.repository.transaction() as session:
            status = self.repository.find_by_card_id_and_type(
                session, card_id, integration_type, for_update=True
            )
            if status is None:
                raise SyncStatusNotFoundError(card_id, integration_type)
            outcome = apply(status)
            self.repository.save(session, status)
        return outcome
