"""create_sleep_entries

Revision ID: 3f2a9c1d7e40
Revises:
Create Date: 2026-10-18 09:12:31.214507

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7e40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the sleep_entries table with its lookup and active-sleep indexes."""
    op.create_table(
        'sleep_entries',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('baby_id', sa.String(length=64), nullable=False),
        sa.Column('type', sa.String(length=10), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=False), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=False), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sleep_entries_baby_date', 'sleep_entries', ['baby_id', 'date'])
    op.create_index('ix_sleep_entries_baby_start', 'sleep_entries', ['baby_id', 'start_time'])

    # At most one open entry per baby: UNIQUE(baby_id) WHERE end_time IS NULL
    op.create_index(
        'uq_sleep_entries_one_active',
        'sleep_entries',
        ['baby_id'],
        unique=True,
        sqlite_where=sa.text('end_time IS NULL'),
        postgresql_where=sa.text('end_time IS NULL'),
    )


def downgrade() -> None:
    """Drop the sleep_entries table."""
    op.drop_index('uq_sleep_entries_one_active', table_name='sleep_entries')
    op.drop_index('ix_sleep_entries_baby_start', table_name='sleep_entries')
    op.drop_index('ix_sleep_entries_baby_date', table_name='sleep_entries')
    op.drop_table('sleep_entries')
