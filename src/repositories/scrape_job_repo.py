"""
Repository for scrape jobs and their URL entries.

All SQL for jobs lives here; the JobStateMachine decides which transitions
are legal and calls these methods to persist them.

Counter updates are issued as SQL expressions (processed_urls =
processed_urls + 1) and committed together with the entry they belong to,
so the counters can never drift from the entries even if two writers touch
the same job.
"""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from src.entities.base import utcnow
from src.entities.scrape_job import (
    JOB_PROCESSING,
    JOB_QUEUED,
    JOB_TYPE_CRAWL,
    JOB_TYPE_EXTRACT,
    URL_PENDING,
    URL_PROCESSING,
    URL_TERMINAL,
    ScrapeJob,
    ScrapeJobUrl,
)
from src.repositories.base_repo import BaseRepository


class ScrapeJobRepository(BaseRepository[ScrapeJob]):
    def __init__(self, session: Session) -> None:
        super().__init__(session=session, model=ScrapeJob)

    def create_job(
        self, urls: list[str] | None = None, crawl_url: str | None = None
    ) -> ScrapeJob:
        """
        Create a queued job.

        Args:
            urls: URLs to extract, one pending entry each (in order)
            crawl_url: Crawl root; the job starts with no entries and
                total_urls=0 until discovery runs

        Returns:
            Created ScrapeJob entity
        """
        if crawl_url:
            job = ScrapeJob(
                job_type=JOB_TYPE_CRAWL,
                status=JOB_QUEUED,
                crawl_url=crawl_url,
                total_urls=0,
            )
        else:
            urls = urls or []
            job = ScrapeJob(
                job_type=JOB_TYPE_EXTRACT,
                status=JOB_QUEUED,
                total_urls=len(urls),
                urls=[
                    ScrapeJobUrl(position=i, url=url, status=URL_PENDING)
                    for i, url in enumerate(urls)
                ],
            )
        return self.create(job, commit=True)

    def get_with_urls(self, job_id: int) -> Optional[ScrapeJob]:
        stmt = (
            select(ScrapeJob)
            .options(selectinload(ScrapeJob.urls))
            .where(ScrapeJob.id == job_id)
        )
        return self.session.execute(stmt).scalars().first()

    def get_eligible_jobs(self, limit: int) -> List[ScrapeJob]:
        """Queued or processing jobs, oldest first."""
        stmt = (
            select(ScrapeJob)
            .where(ScrapeJob.status.in_([JOB_QUEUED, JOB_PROCESSING]))
            .order_by(ScrapeJob.created_at, ScrapeJob.id)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars().all())

    def pending_entries(self, job_id: int, limit: int) -> List[ScrapeJobUrl]:
        """
        Entries still waiting for an outcome, in array order.

        Entries left in ``processing`` by an interrupted run are included so
        they are retried instead of blocking completion forever.
        """
        stmt = (
            select(ScrapeJobUrl)
            .where(
                ScrapeJobUrl.job_id == job_id,
                ScrapeJobUrl.status.in_([URL_PENDING, URL_PROCESSING]),
            )
            .order_by(ScrapeJobUrl.position)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars().all())

    def count_open_entries(self, job_id: int) -> int:
        stmt = select(func.count(ScrapeJobUrl.id)).where(
            ScrapeJobUrl.job_id == job_id,
            ScrapeJobUrl.status.not_in(list(URL_TERMINAL)),
        )
        return self.session.execute(stmt).scalar_one()

    def count_terminal_entries(self, job_id: int) -> int:
        stmt = select(func.count(ScrapeJobUrl.id)).where(
            ScrapeJobUrl.job_id == job_id,
            ScrapeJobUrl.status.in_(list(URL_TERMINAL)),
        )
        return self.session.execute(stmt).scalar_one()

    def find_entry(self, job_id: int, url: str) -> Optional[ScrapeJobUrl]:
        """First entry for *url*, preferring one that is not finished yet."""
        stmt = (
            select(ScrapeJobUrl)
            .where(ScrapeJobUrl.job_id == job_id, ScrapeJobUrl.url == url)
            .order_by(ScrapeJobUrl.position)
        )
        entries = list(self.session.execute(stmt).scalars().all())
        for entry in entries:
            if not entry.is_terminal:
                return entry
        return entries[0] if entries else None

    def set_job_status(
        self, job: ScrapeJob, status: str, error_log: str | None = None
    ) -> ScrapeJob:
        job.status = status
        if error_log is not None:
            job.error_log = error_log
        self.session.commit()
        return job

    def set_entry_status(self, entry: ScrapeJobUrl, status: str) -> ScrapeJobUrl:
        entry.status = status
        self.session.commit()
        return entry

    def finish_entry(
        self,
        entry: ScrapeJobUrl,
        status: str,
        *,
        succeeded: bool,
        program_id: int | None = None,
        error: str | None = None,
    ) -> ScrapeJobUrl:
        """
        Move *entry* to a terminal status and bump its job's counters.

        Entry and counters are written in one commit.
        """
        job = entry.job
        entry.status = status
        entry.program_id = program_id
        entry.error = error
        job.processed_urls = ScrapeJob.processed_urls + 1
        if succeeded:
            job.successful_urls = ScrapeJob.successful_urls + 1
        else:
            job.failed_urls = ScrapeJob.failed_urls + 1
        job.updated_at = utcnow()
        self.session.commit()
        return entry

    def replace_urls(self, job: ScrapeJob, urls: list[str]) -> ScrapeJob:
        """Replace the job's entry list and total in one commit."""
        job.urls.clear()
        self.session.flush()
        job.urls.extend(
            ScrapeJobUrl(position=i, url=url, status=URL_PENDING)
            for i, url in enumerate(urls)
        )
        job.total_urls = len(urls)
        self.session.commit()
        return job

    def get_jobs_by_status(self, status: str, limit: int = 100) -> List[ScrapeJob]:
        """
        Get jobs with a specific status, newest first.

        Args:
            status: Status to filter by
            limit: Maximum number of jobs to return

        Returns:
            List of ScrapeJob entities
        """
        stmt = (
            select(ScrapeJob)
            .where(ScrapeJob.status == status)
            .order_by(ScrapeJob.created_at.desc(), ScrapeJob.id.desc())
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars().all())

    def get_all_jobs(self, limit: int = 100) -> List[ScrapeJob]:
        stmt = (
            select(ScrapeJob)
            .order_by(ScrapeJob.created_at.desc(), ScrapeJob.id.desc())
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars().all())
