"""Sync bookkeeping and card integration coordination."""

from boardsync.services.coordinator import (
    IntegrationCoordinator,
    IntegrationStats,
    determine_changed_fields,
)
from boardsync.services.exceptions import IntegrationSyncError, SyncStatusNotFoundError
from boardsync.services.integration_sync import IntegrationSyncService

__all__ = [
    "IntegrationSyncService",
    "IntegrationCoordinator",
    "IntegrationStats",
    "determine_changed_fields",
    "IntegrationSyncError",
    "SyncStatusNotFoundError",
]
