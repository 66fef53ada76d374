"""Persistence for IntegrationSyncStatus rows.

The repository owns no connection state beyond the engine it is given;
every query runs inside a session handed in by the caller, usually one
opened with ``transaction()``.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlmodel import Session, func, or_, select

from boardsync.models.sync_status import IntegrationSyncStatus, IntegrationType, SyncStatus


class IntegrationSyncRepository:
    """Queries over the integration_sync_status table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Open a session, commit on success, roll back on error."""
        with Session(self.engine, expire_on_commit=False) as session:
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise

    def find_by_card_id_and_type(
        self,
        session: Session,
        card_id: int,
        integration_type: IntegrationType,
        for_update: bool = False,
    ) -> IntegrationSyncStatus | None:
        query = select(IntegrationSyncStatus).where(
            IntegrationSyncStatus.card_id == card_id,
            IntegrationSyncStatus.integration_type == integration_type,
        )
        if for_update:
            query = query.with_for_update()
        return session.exec(query).first()

    def find_by_card_id(self, session: Session, card_id: int) -> list[IntegrationSyncStatus]:
        return list(
            session.exec(
                select(IntegrationSyncStatus)
                .where(IntegrationSyncStatus.card_id == card_id)
                .order_by(IntegrationSyncStatus.integration_type)
            ).all()
        )

    def find_by_integration_type(
        self, session: Session, integration_type: IntegrationType
    ) -> list[IntegrationSyncStatus]:
        return list(
            session.exec(
                select(IntegrationSyncStatus)
                .where(IntegrationSyncStatus.integration_type == integration_type)
                .order_by(IntegrationSyncStatus.created_at.desc())
            ).all()
        )

    def find_by_sync_status(
        self, session: Session, sync_status: SyncStatus
    ) -> list[IntegrationSyncStatus]:
        return list(
            session.exec(
                select(IntegrationSyncStatus)
                .where(IntegrationSyncStatus.sync_status == sync_status)
                .order_by(IntegrationSyncStatus.updated_at.desc())
            ).all()
        )

    def find_retryable_statuses(
        self, session: Session, limit: int | None = None
    ) -> list[IntegrationSyncStatus]:
        """PENDING or RETRY rows, oldest first.

        Rows already at their retry limit are included: their next failure
        moves them to ERROR, so no transient row stays behind for good.
        """
        query = (
            select(IntegrationSyncStatus)
            .where(
                or_(
                    IntegrationSyncStatus.sync_status == SyncStatus.PENDING,
                    IntegrationSyncStatus.sync_status == SyncStatus.RETRY,
                )
            )
            .order_by(IntegrationSyncStatus.updated_at.asc(), IntegrationSyncStatus.id.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        return list(session.exec(query).all())

    def find_error_statuses_for_retry(self, session: Session) -> list[IntegrationSyncStatus]:
        """ERROR rows that still have retries left, oldest first."""
        return list(
            session.exec(
                select(IntegrationSyncStatus)
                .where(
                    IntegrationSyncStatus.sync_status == SyncStatus.ERROR,
                    IntegrationSyncStatus.retry_count < IntegrationSyncStatus.max_retries,
                )
                .order_by(IntegrationSyncStatus.updated_at.asc(), IntegrationSyncStatus.id.asc())
            ).all()
        )

    def save(self, session: Session, status: IntegrationSyncStatus) -> IntegrationSyncStatus:
        session.add(status)
        session.flush()
        session.refresh(status)
        return status

    def delete(self, session: Session, status: IntegrationSyncStatus) -> None:
        session.delete(status)
        session.flush()

    def delete_by_card_id(self, session: Session, card_id: int) -> int:
        statuses = self.find_by_card_id(session, card_id)
        for status in statuses:
            session.delete(status)
        session.flush()
        return len(statuses)

    def count_by_sync_status(self, session: Session, sync_status: SyncStatus) -> int:
        return session.exec(
            select(func.count())
            .select_from(IntegrationSyncStatus)
            .where(IntegrationSyncStatus.sync_status == sync_status)
        ).one()

    def count_by_integration_type(
        self, session: Session, integration_type: IntegrationType
    ) -> int:
        return session.exec(
            select(func.count())
            .select_from(IntegrationSyncStatus)
            .where(IntegrationSyncStatus.integration_type == integration_type)
        ).one()
