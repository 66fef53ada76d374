"""API dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends, Request

from boardsync.services.integration_sync import IntegrationSyncService


def get_sync_service(request: Request) -> IntegrationSyncService:
    """Get the sync service the application was built with."""
    return request.app.state.sync_service


SyncService = Annotated[IntegrationSyncService, Depends(get_sync_service)]
