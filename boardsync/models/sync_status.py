"""IntegrationSyncStatus entity model: per-card, per-integration sync state."""

from datetime import datetime
from enum import Enum

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

RETRY_LIMIT_REACHED_MESSAGE = "Retry limit reached"


class IntegrationType(str, Enum):
    """External systems a card can be synced to."""

    GOOGLE_TASKS = "GOOGLE_TASKS"
    CALENDAR = "CALENDAR"

    @property
    def display_name(self) -> str:
        return _INTEGRATION_DISPLAY_NAMES[self]

    @classmethod
    def from_name(cls, name: str | None) -> "IntegrationType | None":
        """Lenient lookup by name; returns None for blank or unknown names."""
        if name is None or not name.strip():
            return None
        try:
            return cls(name.strip().upper())
        except ValueError:
            return None


_INTEGRATION_DISPLAY_NAMES = {
    IntegrationType.GOOGLE_TASKS: "Google Tasks",
    IntegrationType.CALENDAR: "Calendar",
}


class SyncStatus(str, Enum):
    """Sync state machine.

    PENDING → SYNCED | ERROR | RETRY, RETRY → PENDING | SYNCED | ERROR.
    SYNCED/ERROR go back to PENDING only when a caller restarts the sync.
    """

    PENDING = "PENDING"
    SYNCED = "SYNCED"
    ERROR = "ERROR"
    RETRY = "RETRY"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def is_final(self) -> bool:
        return self in (SyncStatus.SYNCED, SyncStatus.ERROR)

    @property
    def is_transient(self) -> bool:
        return self in (SyncStatus.PENDING, SyncStatus.RETRY)

    @property
    def allows_retry(self) -> bool:
        return self.is_transient


class IntegrationSyncStatus(SQLModel, table=True):
    """Sync state of one card against one external integration.

    Rows are only mutated through IntegrationSyncService.
    """

    __tablename__ = "integration_sync_status"
    __table_args__ = (
        UniqueConstraint("card_id", "integration_type", name="uq_sync_status_card_integration"),
    )

    id: int | None = Field(default=None, primary_key=True)
    card_id: int = Field(index=True)
    integration_type: IntegrationType = Field(index=True)
    external_id: str | None = Field(default=None, max_length=255)
    # Task list or calendar the external item was written to
    external_list_id: str | None = Field(default=None, max_length=255)
    sync_status: SyncStatus = Field(default=SyncStatus.PENDING, index=True)
    last_sync_date: datetime | None = Field(default=None)
    error_message: str | None = Field(default=None, max_length=1000)
    retry_count: int = Field(default=0)
    max_retries: int = Field(default=3)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, index=True)

    @property
    def is_synced(self) -> bool:
        return self.sync_status == SyncStatus.SYNCED

    @property
    def is_pending(self) -> bool:
        return self.sync_status == SyncStatus.PENDING

    @property
    def has_error(self) -> bool:
        return self.sync_status == SyncStatus.ERROR

    @property
    def is_retrying(self) -> bool:
        return self.sync_status == SyncStatus.RETRY

    @property
    def can_retry(self) -> bool:
        return self.retry_count < self.max_retries

    @property
    def has_reached_max_retries(self) -> bool:
        return self.retry_count >= self.max_retries

    def mark_as_synced(self, external_id: str, external_list_id: str | None = None) -> None:
        now = datetime.utcnow()
        self.sync_status = SyncStatus.SYNCED
        self.external_id = external_id
        if external_list_id is not None:
            self.external_list_id = external_list_id
        self.last_sync_date = now
        self.error_message = None
        self.updated_at = now

    def mark_as_pending(self, reset_retries: bool = True) -> None:
        self.sync_status = SyncStatus.PENDING
        if reset_retries:
            self.retry_count = 0
        self.updated_at = datetime.utcnow()

    def mark_as_error(self, error_message: str | None) -> None:
        self.sync_status = SyncStatus.ERROR
        self.error_message = error_message[:1000] if error_message else None
        self.updated_at = datetime.utcnow()

    def mark_as_retry(self) -> None:
        """Count one more retry. Callers check ``can_retry`` first."""
        self.sync_status = SyncStatus.RETRY
        self.retry_count += 1
        self.updated_at = datetime.utcnow()

    def status_description(self) -> str:
        name = self.integration_type.display_name
        if self.is_synced:
            return f"Synced with {name} (ID: {self.external_id})"
        if self.is_pending:
            return f"Waiting to sync with {name}"
        if self.is_retrying:
            description = f"Retry {self.retry_count}/{self.max_retries} with {name}"
            if self.has_reached_max_retries:
                description += " (last attempt)"
            return description
        if self.has_error:
            return f"Sync with {name} failed: {self.error_message}"
        return f"Unknown status: {self.sync_status}"


class IntegrationSyncStatusResponse(SQLModel):
    """Schema for sync status response."""

    id: int
    card_id: int
    integration_type: IntegrationType
    external_id: str | None
    external_list_id: str | None
    sync_status: SyncStatus
    last_sync_date: datetime | None
    error_message: str | None
    retry_count: int
    max_retries: int
    created_at: datetime
    updated_at: datetime
    description: str

    model_config = {"from_attributes": True}

    @classmethod
    def from_status(cls, status: IntegrationSyncStatus) -> "IntegrationSyncStatusResponse":
        return cls(
            **status.model_dump(),
            description=status.status_description(),
        )
