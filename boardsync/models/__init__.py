"""SQLModel entities and schemas for sync bookkeeping."""

from boardsync.models.statistics import SyncStatistics
from boardsync.models.sync_status import (
    RETRY_LIMIT_REACHED_MESSAGE,
    IntegrationSyncStatus,
    IntegrationSyncStatusResponse,
    IntegrationType,
    SyncStatus,
)

__all__ = [
    "IntegrationType",
    "SyncStatus",
    "IntegrationSyncStatus",
    "IntegrationSyncStatusResponse",
    "SyncStatistics",
    "RETRY_LIMIT_REACHED_MESSAGE",
]
