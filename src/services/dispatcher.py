"""
Processing cycle for queued scrape jobs.

One cycle reads the scraper settings, picks up to ``max_concurrent_jobs``
queued/processing jobs (oldest first) and, for each, works through up to
``batch_size`` pending URLs in order:

    extract -> normalize -> store -> record outcome on the URL entry

with ``delay_between_requests`` between URLs to respect the extraction
service's rate limits. Per-URL failures are recorded and never abort the
batch; a job-level failure (crawl discovery) fails only that job.

Cycles are single-flight within a process: a trigger that arrives while a
cycle is running is skipped rather than queued.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from src.core.cancellation import CancellationToken
from src.core.database import SessionLocal
from src.core.errors import (
    ConfigurationError,
    JobFatalError,
    OperationCancelled,
    ScrapePipelineError,
    StorageError,
)
from src.core.extraction_client import ExtractionClient, get_extraction_client
from src.entities.base import utcnow
from src.entities.scrape_job import (
    JOB_TYPE_CRAWL,
    URL_FAILED,
    URL_SUCCESS,
    ScrapeJob,
    ScrapeJobUrl,
)
from src.repositories.scrape_job_repo import ScrapeJobRepository
from src.services.job_state_machine import JobStateMachine
from src.services.program_normalizer import normalize
from src.services.program_store import ProgramStore
from src.services.scraper_settings_service import ScraperSettingsService

logger = logging.getLogger(__name__)

_cycle_lock = asyncio.Lock()


@dataclass
class CycleResult:
    ran: bool
    reason: str | None = None
    jobs_touched: int = 0
    processed: int = 0
    successful: int = 0
    failed: int = 0

    def tally(self, outcome: str | None) -> None:
        if outcome == URL_SUCCESS:
            self.processed += 1
            self.successful += 1
        elif outcome == URL_FAILED:
            self.processed += 1
            self.failed += 1

    def to_dict(self) -> dict:
        return {
            "ran": self.ran,
            "reason": self.reason,
            "jobsTouched": self.jobs_touched,
            "processed": self.processed,
            "successful": self.successful,
            "failed": self.failed,
        }


class Dispatcher:
    """
    Drives scrape jobs through extraction and storage.

    Handles:
    - Settings gate (enabled flag, frequency since last run)
    - Job selection and per-job batches of pending URLs
    - Crawl discovery before a crawl job's first batch
    - Rate limiting between URLs
    - Cycle tallies written back to the settings row
    """

    def __init__(
        self,
        session: Session,
        client: ExtractionClient | None = None,
        token: CancellationToken | None = None,
        lock: asyncio.Lock | None = None,
    ) -> None:
        self.session = session
        self._client = client
        self.token = token or CancellationToken()
        self.lock = lock or _cycle_lock
        self.job_repo = ScrapeJobRepository(session)
        self.machine = JobStateMachine(session)
        self.store = ProgramStore(session)
        self.settings_service = ScraperSettingsService(session)

    @property
    def client(self) -> ExtractionClient:
        # Built lazily so gated-off cycles never need an API key.
        if self._client is None:
            self._client = get_extraction_client()
        return self._client

    def ensure_client(self) -> ExtractionClient:
        """Build the client now; raises ConfigurationError without an API key."""
        return self.client

    async def run_cycle(self, now: datetime | None = None) -> CycleResult:
        """
        Run one processing cycle.

        Args:
            now: Cycle timestamp (defaults to the current UTC time)

        Returns:
            CycleResult; ``ran`` is False with a ``reason`` when the cycle
            was skipped, in which case nothing was written

        Raises:
            ConfigurationError: The extraction client cannot be built; no job
                or entry is touched and the cycle is not recorded
        """
        if self.lock.locked():
            logger.info("Skipping cycle: previous cycle still running")
            return CycleResult(ran=False, reason="already running")

        async with self.lock:
            now = now or utcnow()
            cfg = self.settings_service.snapshot()
            reason = cfg.skip_reason(now)
            if reason:
                logger.info("Skipping cycle: %s", reason)
                return CycleResult(ran=False, reason=reason)

            # Before any job is touched, so a missing key leaves work pending.
            self.ensure_client()

            result = CycleResult(ran=True)
            try:
                jobs = self.job_repo.get_eligible_jobs(cfg.max_concurrent_jobs)
                logger.info("Cycle started: %d eligible job(s)", len(jobs))
                for job in jobs:
                    self.token.raise_if_cancelled()
                    await self.process_job(
                        job, batch_size=cfg.batch_size, delay=cfg.delay_seconds, result=result
                    )
                    result.jobs_touched += 1
            finally:
                self.settings_service.record_cycle(
                    at=now,
                    processed=result.processed,
                    successful=result.successful,
                    failed=result.failed,
                )

            logger.info(
                "Cycle finished: %d job(s), %d processed, %d succeeded, %d failed",
                result.jobs_touched,
                result.processed,
                result.successful,
                result.failed,
            )
            return result

    async def process_job(
        self,
        job: ScrapeJob,
        *,
        batch_size: int | None,
        delay: float,
        result: CycleResult | None = None,
    ) -> None:
        """
        Process one batch of *job*'s pending URLs.

        Args:
            job: Queued or processing job
            batch_size: Max URLs this call; None processes every pending URL
            delay: Seconds to wait between URLs (not after the last one)
            result: Tallies to add per-URL outcomes to
        """
        result = result or CycleResult(ran=True)
        try:
            if job.job_type == JOB_TYPE_CRAWL and not job.urls:
                self.machine.start(job)
                await self.discover(job)

            limit = batch_size if batch_size is not None else max(job.total_urls, 1)
            entries = self.job_repo.pending_entries(job.id, limit)
            if not entries:
                self.machine.complete(job)
                return

            self.machine.start(job)
            for idx, entry in enumerate(entries):
                result.tally(await self.process_entry(entry))
                if idx < len(entries) - 1:
                    await self.token.sleep(delay)

            self.machine.complete_if_done(job)
        except JobFatalError as e:
            logger.exception("Job %s aborted", job.id)
            self.machine.fail(job, str(e))
        except StorageError:
            logger.exception("Job %s skipped this cycle: storage failure", job.id)

    async def discover(self, job: ScrapeJob) -> list[str]:
        """
        Run crawl discovery for *job* and store the URLs as pending entries.

        Raises:
            JobFatalError: Discovery failed or found nothing
        """
        logger.info("Job %s: crawling %s", job.id, job.crawl_url)
        try:
            urls = await self.client.discover_urls(job.crawl_url, token=self.token)
        except (OperationCancelled, ConfigurationError):
            raise
        except ScrapePipelineError as e:
            raise JobFatalError(f"Crawl discovery failed: {e}") from e

        if not urls:
            raise JobFatalError(f"Crawl of {job.crawl_url} found no URLs")
        if not self.machine.set_discovered_urls(job, urls):
            raise JobFatalError("Discovered URLs could not be applied to the job")
        return urls

    async def process_entry(self, entry: ScrapeJobUrl) -> str | None:
        """
        Extract, normalize and store one URL, then record the outcome.

        Returns:
            "success" or "failed" for the recorded outcome, or None when the
            entry was already terminal and nothing was done
        """
        if not self.machine.claim(entry):
            return None

        try:
            raw = await self.client.extract_one(entry.url, token=self.token)
            record = normalize(raw).unwrap()
            outcome = self.store.save(record, source_url=entry.url)
        except (OperationCancelled, ConfigurationError):
            raise
        except Exception as e:
            logger.warning("Failed to process %s: %s", entry.url, e)
            if self.machine.record_failure(entry, str(e)):
                return URL_FAILED
            return None

        logger.info("Processed %s -> program %s (%s)", entry.url, outcome.id, outcome.action)
        if self.machine.record_success(entry, outcome.id):
            return URL_SUCCESS
        return None


async def run_scheduled_cycle(token: CancellationToken | None = None) -> CycleResult:
    """
    Run one cycle with its own session (used by the in-process scheduler).

    Returns:
        CycleResult for the tick
    """
    db = SessionLocal()
    try:
        return await Dispatcher(db, token=token).run_cycle()
    finally:
        db.close()
