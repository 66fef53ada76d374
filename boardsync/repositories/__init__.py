"""Data access for sync bookkeeping."""

from boardsync.repositories.sync_status import IntegrationSyncRepository

__all__ = ["IntegrationSyncRepository"]
