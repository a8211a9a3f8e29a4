"""
Legal status transitions for scrape jobs and their URL entries.

    Job:       queued -> processing -> completed | failed
    UrlEntry:  pending -> processing -> success | failed

Terminal states are final. Every method returns False (and writes nothing)
when asked to move something that is already terminal, so a redelivered
message can never double-count an entry.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.errors import StorageError
from src.entities.scrape_job import (
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_PROCESSING,
    JOB_QUEUED,
    URL_FAILED,
    URL_PROCESSING,
    URL_SUCCESS,
    ScrapeJob,
    ScrapeJobUrl,
)
from src.repositories.scrape_job_repo import ScrapeJobRepository

logger = logging.getLogger(__name__)


class JobStateMachine:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.job_repo = ScrapeJobRepository(session)

    def _write(self, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Failed to update scrape job state: {e}") from e

    # -- job ---------------------------------------------------------------

    def start(self, job: ScrapeJob) -> bool:
        """queued -> processing; no-op for any other status."""
        if job.status != JOB_QUEUED:
            return False
        self._write(self.job_repo.set_job_status, job, JOB_PROCESSING)
        logger.info("Job %s processing", job.id)
        return True

    def complete_if_done(self, job: ScrapeJob) -> bool:
        """
        Complete *job* when every entry is terminal and processed >= total.

        ``>=`` rather than ``==`` so a total revised below the processed
        count still completes.
        """
        if job.is_terminal:
            return False
        if self.job_repo.count_open_entries(job.id) > 0:
            return False
        self.session.refresh(job)
        if job.processed_urls < job.total_urls:
            return False
        return self.complete(job)

    def complete(self, job: ScrapeJob) -> bool:
        """Mark *job* completed regardless of its counters (nothing left to run)."""
        if job.is_terminal:
            return False
        self._write(self.job_repo.set_job_status, job, JOB_COMPLETED)
        logger.info(
            "Job %s completed: %d/%d succeeded, %d failed",
            job.id,
            job.successful_urls,
            job.total_urls,
            job.failed_urls,
        )
        return True

    def fail(self, job: ScrapeJob, error: str) -> bool:
        if job.is_terminal:
            return False
        self._write(self.job_repo.set_job_status, job, JOB_FAILED, error_log=error)
        logger.error("Job %s failed: %s", job.id, error)
        return True

    def set_discovered_urls(self, job: ScrapeJob, urls: list[str]) -> bool:
        """
        Replace a job's URL list and total with discovery results.

        Refused once any entry has reached a terminal status, since its
        outcome is already counted.
        """
        if job.is_terminal or self.job_repo.count_terminal_entries(job.id) > 0:
            return False
        self._write(self.job_repo.replace_urls, job, urls)
        logger.info("Job %s discovered %d URLs", job.id, len(urls))
        return True

    # -- entries -----------------------------------------------------------

    def claim(self, entry: ScrapeJobUrl) -> bool:
        """pending -> processing. An entry already processing is reclaimed."""
        if entry.is_terminal:
            return False
        if entry.status != URL_PROCESSING:
            self._write(self.job_repo.set_entry_status, entry, URL_PROCESSING)
        return True

    def record_success(self, entry: ScrapeJobUrl, program_id: int) -> bool:
        if entry.is_terminal:
            return False
        self._write(
            self.job_repo.finish_entry,
            entry,
            URL_SUCCESS,
            succeeded=True,
            program_id=program_id,
        )
        return True

    def record_failure(self, entry: ScrapeJobUrl, error: str) -> bool:
        if entry.is_terminal:
            return False
        self._write(
            self.job_repo.finish_entry,
            entry,
            URL_FAILED,
            succeeded=False,
            error=error,
        )
        return True
