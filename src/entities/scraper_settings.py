"""
Entity for the process-wide scraper settings singleton.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from src.entities.base import Base, utcnow

SETTINGS_ROW_ID = 1


class ScraperSettings(Base):
    """
    Operator-tunable throttling knobs plus last-run bookkeeping.

    Exactly one row (id=1) exists; it is created with defaults on first read.
    """

    __tablename__ = "scraper_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    frequency_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    batch_size: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    delay_between_requests_seconds: Mapped[int] = mapped_column(
        Integer, nullable=False, default=2
    )
    max_concurrent_jobs: Mapped[int] = mapped_column(Integer, nullable=False, default=3)

    last_run: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    total_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_successful: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )
