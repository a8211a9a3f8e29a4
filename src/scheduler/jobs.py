"""
In-process timer trigger for the processing cycle.

``build_scheduler()`` returns a configured, not yet started
``AsyncIOScheduler`` with one interval job that runs a Dispatcher cycle
every ``SCHEDULER_TICK_SECONDS``. Whether a tick does any work is decided by
the scraper settings (enabled flag and frequency), so the tick only needs to
be at least as fine-grained as the shortest frequency.

The scheduler is started and shut down from the FastAPI ``lifespan`` in
src/main.py; shutdown cancels the token so an in-flight delay or poll wait
returns early.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from src.core.cancellation import CancellationToken
from src.core.config import settings
from src.core.errors import ConfigurationError, OperationCancelled
from src.services.dispatcher import run_scheduled_cycle

logger = logging.getLogger(__name__)

JOB_ID = "scrape_cycle"


async def scrape_cycle_tick(token: CancellationToken) -> None:
    """One scheduler tick. Errors are logged so the next tick still runs."""
    try:
        result = await run_scheduled_cycle(token=token)
    except OperationCancelled:
        logger.info("Scrape cycle cancelled by shutdown")
        return
    except ConfigurationError as e:
        logger.error("Scrape cycle cannot run: %s", e)
        return
    except Exception:
        logger.exception("Scrape cycle failed")
        return
    if result.ran:
        logger.info(
            "Scheduled cycle: %d processed (%d ok, %d failed)",
            result.processed,
            result.successful,
            result.failed,
        )


def build_scheduler(token: CancellationToken) -> AsyncIOScheduler:
    """
    Build the scheduler with the scrape cycle job registered.

    Args:
        token: Cancellation token handed to every cycle

    Returns:
        Configured but not started AsyncIOScheduler
    """
    scheduler = AsyncIOScheduler(
        timezone="UTC",
        job_defaults={"coalesce": True, "max_instances": 1},
    )
    scheduler.add_job(
        scrape_cycle_tick,
        trigger="interval",
        seconds=settings.SCHEDULER_TICK_SECONDS,
        args=[token],
        id=JOB_ID,
        name="Scrape job processing cycle",
        replace_existing=True,
        misfire_grace_time=settings.SCHEDULER_TICK_SECONDS,
    )
    return scheduler
