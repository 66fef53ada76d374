"""Shared fixtures: in-memory database, sync service and card factory."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest
from sqlmodel import SQLModel, create_engine
from sqlmodel.pool import StaticPool

from boardsync.events.types import Card
from boardsync.models.sync_status import IntegrationSyncStatus  # noqa: F401
from boardsync.providers.base import ExternalItemProvider
from boardsync.repositories.sync_status import IntegrationSyncRepository
from boardsync.retry.executor import RetryExecutor
from boardsync.retry.policy import FixedDelay, RetryConfig
from boardsync.services.integration_sync import IntegrationSyncService


@pytest.fixture
def engine():
    """Create a test database engine."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def repository(engine) -> IntegrationSyncRepository:
    return IntegrationSyncRepository(engine)


@pytest.fixture
def sync_service(repository) -> IntegrationSyncService:
    return IntegrationSyncService(repository, default_max_retries=3)


@pytest.fixture
def provider() -> MagicMock:
    """External provider double returning a fixed item id."""
    provider = MagicMock(spec=ExternalItemProvider)
    provider.create_or_update_external_item.return_value = "ext-1"
    return provider


@pytest.fixture
def retry_executor() -> RetryExecutor:
    """Executor that retries without sleeping."""
    return RetryExecutor(
        RetryConfig(max_attempts=3, enable_jitter=False),
        backoff_policy=FixedDelay(0),
        sleep=lambda seconds: None,
    )


@pytest.fixture
def make_card():
    """Factory for card snapshots."""

    def _make_card(**overrides) -> Card:
        values = {
            "id": 1,
            "title": "Write report",
            "description": "Quarterly numbers",
            "scheduled_date": datetime(2026, 3, 10, 9, 30),
            "due_date": None,
            "board_column_id": 2,
            "board_name": "Work",
        }
        values.update(overrides)
        return Card(**values)

    return _make_card
