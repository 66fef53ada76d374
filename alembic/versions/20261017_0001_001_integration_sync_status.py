"""Integration sync status table.

Revision ID: 001
Revises: None
Create Date: 2026-10-17

Creates integration_sync_status: one row per (card, integration) pair
tracking sync state, external id, retry counters and the last error.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    integration_type_enum = sa.Enum('GOOGLE_TASKS', 'CALENDAR', name='integrationtype')
    sync_status_enum = sa.Enum('PENDING', 'SYNCED', 'ERROR', 'RETRY', name='syncstatus')

    op.create_table(
        'integration_sync_status',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('card_id', sa.Integer(), nullable=False),
        sa.Column('integration_type', integration_type_enum, nullable=False),
        sa.Column('external_id', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('sync_status', sync_status_enum, nullable=False, server_default='PENDING'),
        sa.Column('last_sync_date', sa.DateTime(), nullable=True),
        sa.Column('error_message', sqlmodel.sql.sqltypes.AutoString(length=1000), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_retries', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('card_id', 'integration_type', name='uq_sync_status_card_integration'),
    )

    op.create_index('ix_integration_sync_status_card_id', 'integration_sync_status', ['card_id'])
    op.create_index('ix_integration_sync_status_integration_type', 'integration_sync_status', ['integration_type'])
    op.create_index('ix_integration_sync_status_sync_status', 'integration_sync_status', ['sync_status'])
    op.create_index('ix_integration_sync_status_updated_at', 'integration_sync_status', ['updated_at'])


def downgrade() -> None:
    op.drop_index('ix_integration_sync_status_updated_at', table_name='integration_sync_status')
    op.drop_index('ix_integration_sync_status_sync_status', table_name='integration_sync_status')
    op.drop_index('ix_integration_sync_status_integration_type', table_name='integration_sync_status')
    op.drop_index('ix_integration_sync_status_card_id', table_name='integration_sync_status')
    op.drop_table('integration_sync_status')

    sa.Enum(name='syncstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='integrationtype').drop(op.get_bind(), checkfirst=True)
