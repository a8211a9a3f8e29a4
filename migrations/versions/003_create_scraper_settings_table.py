"""create scraper_settings table

Single-row table (id=1) with the operator-tunable throttling knobs and the
running cycle totals. The row is inserted with defaults on first read, so
this migration only creates the table.

Revision ID: 003
Revises: 002
Create Date: 2025-12-15 18:06:19.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '003'
down_revision = '002'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'scraper_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False),
        sa.Column('frequency_minutes', sa.Integer(), nullable=False),
        sa.Column('batch_size', sa.Integer(), nullable=False),
        sa.Column('delay_between_requests_seconds', sa.Integer(), nullable=False),
        sa.Column('max_concurrent_jobs', sa.Integer(), nullable=False),
        sa.Column('last_run', sa.DateTime(), nullable=True),
        sa.Column('total_processed', sa.Integer(), nullable=False),
        sa.Column('total_successful', sa.Integer(), nullable=False),
        sa.Column('total_failed', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade() -> None:
    op.drop_table('scraper_settings')
