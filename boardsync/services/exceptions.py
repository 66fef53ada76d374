"""Errors raised by the sync layer."""

from boardsync.models.sync_status import IntegrationType


class SyncStatusNotFoundError(LookupError):
    """No sync status row exists for the (card, integration) pair."""

    def __init__(self, card_id: int, integration_type: IntegrationType) -> None:
        self.card_id = card_id
        self.integration_type = integration_type
        super().__init__(
            f"Sync status not found for card {card_id} and integration {integration_type.value}"
        )


class IntegrationSyncError(Exception):
    """An external sync or its coordination failed.

    Raised after the failure has been recorded in the sync status table.
    """

    def __init__(
        self,
        message: str,
        integration_type: IntegrationType | None = None,
        card_id: int | None = None,
    ) -> None:
        super().__init__(message)
        self.integration_type = integration_type
        self.card_id = card_id
