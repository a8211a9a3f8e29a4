"""create scrape_jobs and scrape_job_urls tables

A job tracks one submitted batch (or crawl) and its progress counters;
each URL entry records the outcome of one page. Entries are deleted with
their job.

See also: src/entities/scrape_job.py (ScrapeJob, ScrapeJobUrl entities)

Revision ID: 002
Revises: 001
Create Date: 2025-12-15 16:40:07.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create scrape_jobs and scrape_job_urls.

    - status: queued, processing, completed, failed
    - processed_urls = successful_urls + failed_urls <= total_urls
    - error_log: job-level fatal error text
    """
    op.create_table(
        'scrape_jobs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('job_type', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('crawl_url', sa.Text(), nullable=True),
        sa.Column('total_urls', sa.Integer(), nullable=False),
        sa.Column('processed_urls', sa.Integer(), nullable=False),
        sa.Column('successful_urls', sa.Integer(), nullable=False),
        sa.Column('failed_urls', sa.Integer(), nullable=False),
        sa.Column('error_log', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_scrape_jobs_status'), 'scrape_jobs', ['status'])
    op.create_index(op.f('ix_scrape_jobs_created_at'), 'scrape_jobs', ['created_at'])

    op.create_table(
        'scrape_job_urls',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('job_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('program_id', sa.Integer(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['job_id'], ['scrape_jobs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['program_id'], ['programs.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_scrape_job_urls_job_id'), 'scrape_job_urls', ['job_id'])


def downgrade() -> None:
    op.drop_index(op.f('ix_scrape_job_urls_job_id'), table_name='scrape_job_urls')
    op.drop_table('scrape_job_urls')
    op.drop_index(op.f('ix_scrape_jobs_created_at'), table_name='scrape_jobs')
    op.drop_index(op.f('ix_scrape_jobs_status'), table_name='scrape_jobs')
    op.drop_table('scrape_jobs')
