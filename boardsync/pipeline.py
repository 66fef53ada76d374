"""Wiring for the sync pipeline.

Builds the publisher, the sync service and the observers from one
settings object and one engine, and subscribes the observers.

Usage:
    pipeline = build_sync_pipeline(provider=my_provider)
    pipeline.coordinator.on_card_scheduled(card)
    ...
    pipeline.close()
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.engine import Engine

from boardsync.config import Settings, get_settings
from boardsync.db.session import create_db_engine, init_db
from boardsync.events.publisher import EventPublisher
from boardsync.models.sync_status import IntegrationType
from boardsync.observers.base import SyncObserver
from boardsync.observers.calendar import CalendarSyncObserver
from boardsync.observers.google_tasks import GoogleTasksSyncObserver
from boardsync.providers.base import ExternalItemProvider
from boardsync.providers.http import HttpExternalItemProvider
from boardsync.repositories.sync_status import IntegrationSyncRepository
from boardsync.retry.executor import RetryExecutor
from boardsync.retry.policy import RetryConfig
from boardsync.services.coordinator import IntegrationCoordinator
from boardsync.services.integration_sync import IntegrationSyncService
from boardsync.workers.sync_retry_worker import CardLoader, SyncRetryWorker

logger = logging.getLogger(__name__)


@dataclass
class SyncPipeline:
    """Everything needed to publish card events and sync them out."""

    settings: Settings
    engine: Engine
    provider: ExternalItemProvider
    publisher: EventPublisher
    sync_service: IntegrationSyncService
    retry_executor: RetryExecutor
    coordinator: IntegrationCoordinator
    observers: list[SyncObserver] = field(default_factory=list)

    def observer_for(self, integration_type: IntegrationType) -> SyncObserver | None:
        for observer in self.observers:
            if observer.integration_type == integration_type:
                return observer
        return None

    def retry_worker(self, card_loader: CardLoader, batch_size: int | None = None) -> SyncRetryWorker:
        return SyncRetryWorker(
            sync_service=self.sync_service,
            observers=self.observers,
            card_loader=card_loader,
            batch_size=batch_size or self.settings.WORKER_BATCH_SIZE,
        )

    def close(self) -> None:
        """Stop the async publish pool and release the provider.

        Running publishes get EVENT_PUBLISHER_SHUTDOWN_TIMEOUT_SECONDS to finish.
        """
        self.publisher.shutdown(
            wait=True,
            timeout=self.settings.EVENT_PUBLISHER_SHUTDOWN_TIMEOUT_SECONDS,
        )
        close = getattr(self.provider, "close", None)
        if callable(close):
            close()


def build_sync_pipeline(
    settings: Settings | None = None,
    engine: Engine | None = None,
    provider: ExternalItemProvider | None = None,
    retry_executor: RetryExecutor | None = None,
    create_tables: bool = True,
) -> SyncPipeline:
    """Assemble and subscribe the sync pipeline.

    Args:
        settings: Defaults to ``get_settings()``
        engine: Defaults to an engine for ``settings.DATABASE_URL``
        provider: Defaults to an HTTP provider for ``settings.EXTERNAL_PROVIDER_URL``
        retry_executor: Defaults to one configured from settings
        create_tables: Create the sync tables if missing
    """
    settings = settings or get_settings()
    settings.validate()

    engine = engine or create_db_engine(settings.DATABASE_URL)
    if create_tables:
        init_db(engine)

    provider = provider or HttpExternalItemProvider.from_settings(settings)
    retry_executor = retry_executor or RetryExecutor(RetryConfig.from_settings(settings))

    sync_service = IntegrationSyncService(
        IntegrationSyncRepository(engine),
        default_max_retries=settings.SYNC_MAX_RETRIES,
    )
    publisher = EventPublisher(max_workers=settings.EVENT_PUBLISHER_WORKERS)

    observers: list[SyncObserver] = [
        CalendarSyncObserver(
            provider,
            sync_service,
            retry_executor,
            calendar_id=settings.CALENDAR_ID,
        ),
        GoogleTasksSyncObserver(
            provider,
            sync_service,
            retry_executor,
            default_list=settings.GOOGLE_TASKS_DEFAULT_LIST,
        ),
    ]
    for observer in observers:
        publisher.subscribe(observer)

    logger.info(
        "Sync pipeline ready",
        extra={"observers": [observer.observer_name for observer in observers]},
    )

    return SyncPipeline(
        settings=settings,
        engine=engine,
        provider=provider,
        publisher=publisher,
        sync_service=sync_service,
        retry_executor=retry_executor,
        coordinator=IntegrationCoordinator(publisher, sync_service),
        observers=observers,
    )
