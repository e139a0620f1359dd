"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create the url_records table with a unique index on short_code.
    """
    bind = op.get_bind()
    if 'url_records' in inspect(bind).get_table_names():
        return

    op.create_table(
        'url_records',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('target_url', sa.Text(), nullable=False),
        sa.Column('short_code', sa.String(length=32), nullable=False),
        sa.Column('access_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_index(
        'ix_url_records_short_code',
        'url_records',
        ['short_code'],
        unique=True
    )


def downgrade() -> None:
    op.drop_index('ix_url_records_short_code', table_name='url_records')
    op.drop_table('url_records')
