"""
Read/update access to the scraper settings singleton, plus the cycle gate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from src.dtos.scraper_settings_dto import ScraperSettingsUpdate
from src.entities.scraper_settings import ScraperSettings
from src.repositories.scraper_settings_repo import ScraperSettingsRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettingsSnapshot:
    """Values read once at cycle start; later edits apply to the next cycle."""

    enabled: bool
    frequency_minutes: int
    batch_size: int
    delay_seconds: float
    max_concurrent_jobs: int
    last_run: datetime | None

    def skip_reason(self, now: datetime) -> str | None:
        """Why a cycle at *now* should not run, or None if it is due."""
        if not self.enabled:
            return "disabled"
        if self.last_run is not None and now - self.last_run < timedelta(
            minutes=self.frequency_minutes
        ):
            return "not due"
        return None


class ScraperSettingsService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.settings_repo = ScraperSettingsRepository(session)

    def get(self) -> ScraperSettings:
        return self.settings_repo.get_or_create()

    def snapshot(self) -> SettingsSnapshot:
        row = self.get()
        return SettingsSnapshot(
            enabled=row.enabled,
            frequency_minutes=row.frequency_minutes,
            batch_size=row.batch_size,
            delay_seconds=float(row.delay_between_requests_seconds),
            max_concurrent_jobs=row.max_concurrent_jobs,
            last_run=row.last_run,
        )

    def update(self, changes: ScraperSettingsUpdate) -> ScraperSettings:
        row = self.get()
        values = changes.model_dump(exclude_unset=True, exclude_none=True)
        if not values:
            return row
        logger.info("Updating scraper settings: %s", values)
        return self.settings_repo.apply(row, values)

    def record_cycle(
        self, *, at: datetime | None, processed: int, successful: int, failed: int
    ) -> ScraperSettings:
        return self.settings_repo.record_cycle(
            at=at, processed=processed, successful=successful, failed=failed
        )
