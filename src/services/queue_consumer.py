"""
Per-message consumer for hosts that deliver scrape work through a queue.

Delivery is at-least-once, so every message handler is idempotent: a message
for an entry that already reached a terminal status is acknowledged without
doing anything, and storage dedups on (name, city, state). Messages that
arrive while the scraper is disabled are handed back for redelivery.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pydantic import ValidationError
from sqlalchemy.orm import Session

from src.core.cancellation import CancellationToken
from src.core.extraction_client import ExtractionClient
from src.dtos.scrape_job_dto import ScrapeMessage
from src.entities.scrape_job import JOB_TYPE_CRAWL
from src.services.dispatcher import CycleResult, Dispatcher

logger = logging.getLogger(__name__)

OUTCOME_PROCESSED = "processed"
OUTCOME_SKIPPED = "skipped"
OUTCOME_NOT_FOUND = "not_found"
OUTCOME_INVALID = "invalid"
OUTCOME_DISABLED = "disabled"


class QueueMessage(Protocol):
    body: Any

    def ack(self) -> None: ...

    def retry(self) -> None: ...


class QueueConsumer:
    def __init__(
        self,
        session: Session,
        client: ExtractionClient | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        self.session = session
        self.dispatcher = Dispatcher(session, client=client, token=token)
        self.job_repo = self.dispatcher.job_repo
        self.machine = self.dispatcher.machine

    async def handle_message(
        self, message: ScrapeMessage | dict, result: CycleResult | None = None
    ) -> str:
        """
        Process one queued unit of work.

        Args:
            message: ScrapeMessage or its dict form ({jobId, jobType, url?, crawlUrl?})
            result: Tallies to add per-URL outcomes to

        Returns:
            One of "processed", "skipped", "not_found", "invalid", which mean
            the message can be acknowledged, or "disabled" when the scraper
            is switched off and the message should be redelivered later.

        Raises:
            ConfigurationError / StorageError / OperationCancelled: nothing
            was recorded for the entry; the host should redeliver the message
        """
        result = result or CycleResult(ran=True)
        if not isinstance(message, ScrapeMessage):
            try:
                message = ScrapeMessage.model_validate(message)
            except ValidationError as e:
                logger.warning("Dropping malformed scrape message: %s", e)
                return OUTCOME_INVALID

        cfg = self.dispatcher.settings_service.snapshot()
        if not cfg.enabled:
            logger.info("Scraper disabled, leaving job %s message for redelivery", message.job_id)
            return OUTCOME_DISABLED

        job = self.job_repo.get_by_id(message.job_id)
        if job is None:
            logger.warning("Scrape job %s not found, acknowledging message", message.job_id)
            return OUTCOME_NOT_FOUND
        if job.is_terminal:
            logger.info("Job %s already %s, ignoring message", job.id, job.status)
            return OUTCOME_SKIPPED

        if message.job_type == JOB_TYPE_CRAWL:
            self.dispatcher.ensure_client()
            await self.dispatcher.process_job(
                job, batch_size=None, delay=cfg.delay_seconds, result=result
            )
            return OUTCOME_PROCESSED

        if not message.url:
            logger.warning("Extract message for job %s has no url", job.id)
            return OUTCOME_INVALID
        entry = self.job_repo.find_entry(job.id, message.url)
        if entry is None:
            logger.warning("Job %s has no entry for %s", job.id, message.url)
            return OUTCOME_NOT_FOUND
        if entry.is_terminal:
            logger.info("Entry %s for job %s already %s", message.url, job.id, entry.status)
            return OUTCOME_SKIPPED

        self.dispatcher.ensure_client()
        self.machine.start(job)
        result.tally(await self.dispatcher.process_entry(entry))
        self.machine.complete_if_done(job)
        return OUTCOME_PROCESSED

    async def handle_batch(self, messages: list[QueueMessage]) -> dict[str, int]:
        """
        Handle a delivered batch, acking finished messages and retrying the rest.

        The configured inter-request delay is applied between messages, and
        the batch's URL outcomes are added to the scraper's running totals.
        While the scraper is disabled every message is retried untouched.
        """
        cfg = self.dispatcher.settings_service.snapshot()
        if not cfg.enabled:
            logger.info("Scraper disabled, retrying %d message(s)", len(messages))
            for message in messages:
                message.retry()
            return {"acked": 0, "retried": len(messages)}

        result = CycleResult(ran=True)
        acked = retried = 0
        try:
            for idx, message in enumerate(messages):
                try:
                    outcome = await self.handle_message(message.body, result=result)
                except Exception:
                    logger.exception("Scrape message failed, scheduling retry")
                    outcome = None
                if outcome in (None, OUTCOME_DISABLED):
                    message.retry()
                    retried += 1
                else:
                    message.ack()
                    acked += 1
                if idx < len(messages) - 1:
                    await self.dispatcher.token.sleep(cfg.delay_seconds)
        finally:
            if result.processed:
                self.dispatcher.settings_service.record_cycle(
                    at=None,
                    processed=result.processed,
                    successful=result.successful,
                    failed=result.failed,
                )
        return {"acked": acked, "retried": retried}
