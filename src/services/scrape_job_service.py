"""
Service for submitting scrape jobs and reporting their progress.

Architecture:
    routers/scrape.py -> ScrapeJobService -> ScrapeJobRepository -> scrape_jobs
                                          -> JobPublisher (optional queue)

Jobs are created queued; the Dispatcher (timer or HTTP trigger) or the
QueueConsumer (queue host) moves them forward.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol
from urllib.parse import urlparse

from sqlalchemy.orm import Session

from src.dtos.scrape_job_dto import ScrapeBatchRequest, ScrapeMessage
from src.entities.scrape_job import JOB_TYPE_CRAWL, JOB_TYPE_EXTRACT, ScrapeJob
from src.repositories.scrape_job_repo import ScrapeJobRepository

logger = logging.getLogger(__name__)


class JobPublisher(Protocol):
    def publish(self, message: dict[str, Any]) -> None: ...


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _iso(value) -> str | None:
    return value.isoformat() if value else None


class ScrapeJobService:
    def __init__(self, session: Session, publisher: JobPublisher | None = None) -> None:
        self.session = session
        self.job_repo = ScrapeJobRepository(session)
        self.publisher = publisher

    def submit(self, request: ScrapeBatchRequest) -> dict[str, Any]:
        """
        Create a queued job from a URL list or a crawl root.

        Args:
            request: Submission body

        Returns:
            Dict with success, jobId, status, totalUrls

        Raises:
            ValueError: Neither urls nor crawlUrl given, an empty url list,
                or a URL that is not http(s)
        """
        if request.crawl_url:
            crawl_url = request.crawl_url.strip()
            if not _is_http_url(crawl_url):
                raise ValueError(f"Invalid crawl URL: {crawl_url}")
            job = self.job_repo.create_job(crawl_url=crawl_url)
            logger.info("Created crawl job %s for %s", job.id, crawl_url)
        elif request.urls is not None:
            urls = [u.strip() for u in request.urls]
            if not urls:
                raise ValueError("URLs array is required and must not be empty")
            invalid = [u for u in urls if not _is_http_url(u)]
            if invalid:
                raise ValueError(f"Invalid URL: {invalid[0]}")
            job = self.job_repo.create_job(urls=urls)
            logger.info("Created extract job %s with %d URLs", job.id, len(urls))
        else:
            raise ValueError("Either urls or crawlUrl is required")

        self._publish(job)
        return {
            "success": True,
            "jobId": job.id,
            "status": job.status,
            "totalUrls": job.total_urls,
        }

    def _publish(self, job: ScrapeJob) -> None:
        if self.publisher is None:
            return
        if job.job_type == JOB_TYPE_CRAWL:
            messages = [
                ScrapeMessage(job_id=job.id, job_type=JOB_TYPE_CRAWL, crawl_url=job.crawl_url)
            ]
        else:
            messages = [
                ScrapeMessage(job_id=job.id, job_type=JOB_TYPE_EXTRACT, url=entry.url)
                for entry in job.urls
            ]
        for message in messages:
            self.publisher.publish(message.model_dump(by_alias=True, exclude_none=True))

    def get_job_status(self, job_id: int) -> dict[str, Any] | None:
        """
        Get the current status of a scrape job.

        Returns:
            Dict with job status, counters, progress and URL entries, or None
        """
        job = self.job_repo.get_with_urls(job_id)
        if not job:
            return None

        return {
            "id": job.id,
            "jobType": job.job_type,
            "status": job.status,
            "crawlUrl": job.crawl_url,
            "totalUrls": job.total_urls,
            "processedUrls": job.processed_urls,
            "successfulUrls": job.successful_urls,
            "failedUrls": job.failed_urls,
            "progress": job.progress,
            "urls": [
                {
                    "url": entry.url,
                    "status": entry.status,
                    "programId": entry.program_id,
                    "error": entry.error,
                }
                for entry in job.urls
            ],
            "errorLog": job.error_log,
            "createdAt": _iso(job.created_at),
            "updatedAt": _iso(job.updated_at),
        }

    def list_jobs(self, status: str | None = None, limit: int = 100) -> list[dict[str, Any]]:
        """List jobs newest first, optionally filtered by status."""
        if status:
            jobs = self.job_repo.get_jobs_by_status(status, limit)
        else:
            jobs = self.job_repo.get_all_jobs(limit)

        return [
            {
                "id": job.id,
                "jobType": job.job_type,
                "status": job.status,
                "totalUrls": job.total_urls,
                "processedUrls": job.processed_urls,
                "progress": job.progress,
                "createdAt": _iso(job.created_at),
            }
            for job in jobs
        ]
