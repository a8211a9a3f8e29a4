"""
Repository for the scraper settings singleton row.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from src.core.config import settings
from src.entities.scraper_settings import SETTINGS_ROW_ID, ScraperSettings
from src.repositories.base_repo import BaseRepository


class ScraperSettingsRepository(BaseRepository[ScraperSettings]):
    def __init__(self, session: Session) -> None:
        super().__init__(session=session, model=ScraperSettings)

    def get_or_create(self) -> ScraperSettings:
        """Return the settings row, inserting it with configured defaults if absent."""
        row = self.get_by_id(SETTINGS_ROW_ID)
        if row is not None:
            return row
        row = ScraperSettings(
            id=SETTINGS_ROW_ID,
            enabled=settings.DEFAULT_SCRAPER_ENABLED,
            frequency_minutes=settings.DEFAULT_FREQUENCY_MINUTES,
            batch_size=settings.DEFAULT_BATCH_SIZE,
            delay_between_requests_seconds=settings.DEFAULT_DELAY_SECONDS,
            max_concurrent_jobs=settings.DEFAULT_MAX_CONCURRENT_JOBS,
            total_processed=0,
            total_successful=0,
            total_failed=0,
        )
        return self.create(row)

    def record_cycle(
        self, *, at: datetime | None, processed: int, successful: int, failed: int
    ) -> ScraperSettings:
        """Add tallies to the running totals; stamp last_run unless *at* is None."""
        row = self.get_or_create()
        if at is not None:
            row.last_run = at
        row.total_processed = ScraperSettings.total_processed + processed
        row.total_successful = ScraperSettings.total_successful + successful
        row.total_failed = ScraperSettings.total_failed + failed
        self.session.commit()
        self.session.refresh(row)
        return row
