"""Aggregate sync statistics computed from the sync status table."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field

from boardsync.models.sync_status import IntegrationType


def _percentage(part: int, total: int) -> float:
    if total == 0:
        return 0.0
    return part / total * 100.0


class SyncStatistics(BaseModel):
    """Read-only snapshot of sync health. Rates are percentages."""

    model_config = ConfigDict(frozen=True)

    total_syncs: int = 0
    synced_count: int = 0
    pending_count: int = 0
    error_count: int = 0
    retry_count: int = 0
    by_integration_type: dict[IntegrationType, int] = Field(default_factory=dict)
    generated_at: datetime = Field(default_factory=datetime.utcnow)

    @computed_field
    @property
    def success_rate(self) -> float:
        return _percentage(self.synced_count, self.total_syncs)

    @computed_field
    @property
    def error_rate(self) -> float:
        return _percentage(self.error_count, self.total_syncs)

    @computed_field
    @property
    def pending_rate(self) -> float:
        return _percentage(self.pending_count, self.total_syncs)

    @computed_field
    @property
    def google_tasks_count(self) -> int:
        return self.by_integration_type.get(IntegrationType.GOOGLE_TASKS, 0)

    @computed_field
    @property
    def calendar_count(self) -> int:
        return self.by_integration_type.get(IntegrationType.CALENDAR, 0)

    @property
    def active_syncs_count(self) -> int:
        return self.pending_count + self.retry_count

    @property
    def finalized_syncs_count(self) -> int:
        return self.synced_count + self.error_count

    def has_errors(self) -> bool:
        return self.error_count > 0

    def has_active_syncs(self) -> bool:
        return self.active_syncs_count > 0

    @classmethod
    def empty(cls) -> "SyncStatistics":
        return cls()
