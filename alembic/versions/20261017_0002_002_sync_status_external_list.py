"""Remember the task list or calendar of each synced item.

Revision ID: 002
Revises: 001
Create Date: 2026-10-17

Adds integration_sync_status.external_list_id so removals reach the
list or calendar the item was created in.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel

# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table('integration_sync_status') as batch_op:
        batch_op.add_column(
            sa.Column('external_list_id', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True)
        )


def downgrade() -> None:
    with op.batch_alter_table('integration_sync_status') as batch_op:
        batch_op.drop_column('external_list_id')
