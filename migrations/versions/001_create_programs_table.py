"""create programs table

Adds the programs table holding directory records produced by the scrape
pipeline, CSV import and agent prompts. Numeric meeting length, attendance
and prices are stored next to their range buckets; (name, city, state) is
the dedup key.

See also: src/entities/program.py (Program entity)

Revision ID: 001
Revises:
Create Date: 2025-12-15 16:08:11.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

_INDEXED = (
    'status',
    'religious_affiliation',
    'city',
    'state',
    'zip_code',
    'meeting_format',
    'meeting_frequency',
    'meeting_type',
    'meeting_length_range',
    'average_attendance_range',
    'has_conferences',
    'annual_price_range',
    'monthly_price_range',
)


def upgrade() -> None:
    op.create_table(
        'programs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.JSON(), nullable=True),
        sa.Column('religious_affiliation', sa.String(length=20), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=False),
        sa.Column('city', sa.String(length=100), nullable=False),
        sa.Column('state', sa.String(length=2), nullable=False),
        sa.Column('zip_code', sa.String(length=10), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('meeting_format', sa.String(length=20), nullable=False),
        sa.Column('meeting_frequency', sa.String(length=20), nullable=False),
        sa.Column('meeting_type', sa.String(length=20), nullable=False),
        sa.Column('meeting_length', sa.Float(), nullable=True),
        sa.Column('meeting_length_range', sa.String(length=10), nullable=True),
        sa.Column('average_attendance', sa.Float(), nullable=True),
        sa.Column('average_attendance_range', sa.String(length=10), nullable=True),
        sa.Column('has_conferences', sa.String(length=20), nullable=False),
        sa.Column('has_outside_speakers', sa.Boolean(), nullable=False),
        sa.Column('has_education_training', sa.Boolean(), nullable=False),
        sa.Column('annual_price', sa.Float(), nullable=True),
        sa.Column('annual_price_range', sa.String(length=20), nullable=True),
        sa.Column('monthly_price', sa.Float(), nullable=True),
        sa.Column('monthly_price_range', sa.String(length=20), nullable=True),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
        sa.Column('contact_phone', sa.String(length=50), nullable=True),
        sa.Column('website', sa.Text(), nullable=True),
        sa.Column('source_url', sa.Text(), nullable=True),
        sa.Column('source_citations', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    for column in _INDEXED:
        op.create_index(op.f(f'ix_programs_{column}'), 'programs', [column])
    op.create_index('ix_programs_name_city_state', 'programs', ['name', 'city', 'state'])


def downgrade() -> None:
    op.drop_index('ix_programs_name_city_state', table_name='programs')
    for column in _INDEXED:
        op.drop_index(op.f(f'ix_programs_{column}'), table_name='programs')
    op.drop_table('programs')
