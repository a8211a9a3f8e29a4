"""
Entity for directory programs (the records the scrape pipeline produces).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.entities.base import Base, utcnow


class Program(Base):
    """
    A faith-based professional program listed in the directory.

    Numeric meeting length, attendance and prices are stored next to their
    derived range buckets; filtering uses the buckets. (name, city, state) is
    the dedup key used by the import pipeline.
    """

    __tablename__ = "programs"
    __table_args__ = (Index("ix_programs_name_city_state", "name", "city", "state"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="draft", index=True
    )  # draft, published

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[dict | None] = mapped_column(JSON, nullable=True)  # rich text
    religious_affiliation: Mapped[str] = mapped_column(
        String(20), nullable=False, index=True
    )  # protestant, catholic

    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(2), nullable=False, index=True)
    zip_code: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    meeting_format: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    meeting_frequency: Mapped[str] = mapped_column(
        String(20), nullable=False, index=True
    )
    meeting_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    meeting_length: Mapped[float | None] = mapped_column(Float, nullable=True)  # hours
    meeting_length_range: Mapped[str | None] = mapped_column(
        String(10), nullable=True, index=True
    )
    average_attendance: Mapped[float | None] = mapped_column(Float, nullable=True)
    average_attendance_range: Mapped[str | None] = mapped_column(
        String(10), nullable=True, index=True
    )

    has_conferences: Mapped[str] = mapped_column(
        String(20), nullable=False, default="none", index=True
    )  # none, annual, multiple
    has_outside_speakers: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    has_education_training: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    annual_price: Mapped[float | None] = mapped_column(Float, nullable=True)  # USD
    annual_price_range: Mapped[str | None] = mapped_column(
        String(20), nullable=True, index=True
    )
    monthly_price: Mapped[float | None] = mapped_column(Float, nullable=True)  # USD
    monthly_price_range: Mapped[str | None] = mapped_column(
        String(20), nullable=True, index=True
    )

    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    website: Mapped[str | None] = mapped_column(Text, nullable=True)

    source_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_citations: Mapped[list | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )
