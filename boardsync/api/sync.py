"""Read-only sync reporting endpoints."""

from fastapi import APIRouter, HTTPException, status

from boardsync.api.deps import SyncService
from boardsync.models.statistics import SyncStatistics
from boardsync.models.sync_status import IntegrationSyncStatusResponse, IntegrationType

router = APIRouter(prefix="/api/sync", tags=["Sync"])


@router.get("/statistics", response_model=SyncStatistics)
def get_statistics_endpoint(sync_service: SyncService) -> SyncStatistics:
    """Aggregate sync health across all cards."""
    return sync_service.get_statistics()


@router.get("/cards/{card_id}", response_model=list[IntegrationSyncStatusResponse])
def list_card_statuses_endpoint(
    sync_service: SyncService,
    card_id: int,
) -> list[IntegrationSyncStatusResponse]:
    """List the sync status of a card for every integration."""
    return [
        IntegrationSyncStatusResponse.from_status(s)
        for s in sync_service.get_sync_statuses_for_card(card_id)
    ]


@router.get(
    "/cards/{card_id}/{integration_type}",
    response_model=IntegrationSyncStatusResponse,
)
def get_card_status_endpoint(
    sync_service: SyncService,
    card_id: int,
    integration_type: IntegrationType,
) -> IntegrationSyncStatusResponse:
    """Get the sync status of a card for one integration."""
    sync_status = sync_service.get_sync_status(card_id, integration_type)
    if sync_status is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Sync status not found",
        )
    return IntegrationSyncStatusResponse.from_status(sync_status)
