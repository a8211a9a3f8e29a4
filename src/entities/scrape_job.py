"""
Entities for tracking scrape jobs and their per-URL entries.

A job owns an ordered list of URL entries; the entries have no independent
lifecycle and are deleted with their job.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.entities.base import Base, utcnow

JOB_QUEUED = "queued"
JOB_PROCESSING = "processing"
JOB_COMPLETED = "completed"
JOB_FAILED = "failed"
JOB_TERMINAL = frozenset({JOB_COMPLETED, JOB_FAILED})

URL_PENDING = "pending"
URL_PROCESSING = "processing"
URL_SUCCESS = "success"
URL_FAILED = "failed"
URL_TERMINAL = frozenset({URL_SUCCESS, URL_FAILED})

JOB_TYPE_EXTRACT = "extract"
JOB_TYPE_CRAWL = "crawl"


class ScrapeJob(Base):
    """
    Tracks one unit of scrape work and its progress.

    Invariant: processed_urls == successful_urls + failed_urls <= total_urls.
    """

    __tablename__ = "scrape_jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=JOB_TYPE_EXTRACT
    )  # extract, crawl
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=JOB_QUEUED, index=True
    )  # queued, processing, completed, failed
    crawl_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    total_urls: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processed_urls: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    successful_urls: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_urls: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    error_log: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    urls: Mapped[list[ScrapeJobUrl]] = relationship(
        back_populates="job",
        order_by="ScrapeJobUrl.position",
        cascade="all, delete-orphan",
    )

    @property
    def progress(self) -> int:
        if not self.total_urls:
            return 0
        return round(self.processed_urls / self.total_urls * 100)

    @property
    def is_terminal(self) -> bool:
        return self.status in JOB_TERMINAL


class ScrapeJobUrl(Base):
    """One URL's extraction attempt and outcome within a job."""

    __tablename__ = "scrape_job_urls"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[int] = mapped_column(
        ForeignKey("scrape_jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=URL_PENDING
    )  # pending, processing, success, failed
    program_id: Mapped[int | None] = mapped_column(
        ForeignKey("programs.id", ondelete="SET NULL"), nullable=True
    )
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    job: Mapped[ScrapeJob] = relationship(back_populates="urls")

    @property
    def is_terminal(self) -> bool:
        return self.status in URL_TERMINAL
