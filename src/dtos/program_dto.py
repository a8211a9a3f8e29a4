"""
DTOs for program records.

ExtractedProgram is the loosely-typed shape coming out of the extraction
service or a CSV row; ProgramCreate is the canonical, validated record handed
to storage. Nothing partially typed crosses the normalizer boundary.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Affiliation = Literal["protestant", "catholic"]
MeetingFormat = Literal["in-person", "online", "both"]
MeetingFrequency = Literal["weekly", "bi-monthly", "monthly", "quarterly"]
MeetingType = Literal["peer-group", "forum", "small-group"]
ConferenceLevel = Literal["none", "annual", "multiple"]

_TEXT_FIELDS = (
    "name",
    "description",
    "religious_affiliation",
    "address",
    "city",
    "state",
    "zip_code",
    "meeting_format",
    "meeting_frequency",
    "meeting_type",
    "has_conferences",
    "contact_email",
    "contact_phone",
    "website",
)
_NUMERIC_FIELDS = ("meeting_length", "average_attendance", "annual_price", "monthly_price")
_FLAG_FIELDS = ("has_outside_speakers", "has_education_training")


class Coordinates(BaseModel):
    lat: float | None = None
    lng: float | None = None


class ExtractedProgram(BaseModel):
    """Candidate program fields; every field optional, values loosely typed."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    name: str | None = None
    description: str | None = None
    religious_affiliation: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    coordinates: Coordinates | None = None
    meeting_format: str | None = None
    meeting_frequency: str | None = None
    meeting_length: float | str | None = None
    meeting_type: str | None = None
    average_attendance: float | str | None = None
    has_conferences: str | None = None
    has_outside_speakers: bool | str | None = None
    has_education_training: bool | str | None = None
    annual_price: float | str | None = None
    monthly_price: float | str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    website: str | None = None
    citations: list[str] = Field(default_factory=list)

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str | None:
        if isinstance(v, bool):
            return str(v).lower()
        if isinstance(v, (int, float)):
            return str(v)
        return v if isinstance(v, str) else None

    @field_validator(*_NUMERIC_FIELDS, mode="before")
    @classmethod
    def _coerce_numeric(cls, v: Any) -> float | str | None:
        if isinstance(v, bool):
            return None
        return v if isinstance(v, (int, float, str)) else None

    @field_validator(*_FLAG_FIELDS, mode="before")
    @classmethod
    def _coerce_flag(cls, v: Any) -> bool | str | None:
        if isinstance(v, (bool, str)):
            return v
        if isinstance(v, (int, float)):
            return str(int(v))
        return None

    @field_validator("coordinates", mode="before")
    @classmethod
    def _coerce_coordinates(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, Coordinates)) else None


class ProgramCreate(BaseModel):
    """Canonical program record, ready for storage."""

    name: str = Field(..., min_length=1, max_length=255)
    description: dict | None = Field(None, description="Rich-text document")
    religious_affiliation: Affiliation
    address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., pattern=r"^[A-Z]{2}$", description="Two-letter state code")
    zip_code: str = Field(..., pattern=r"^\d{5}(-\d{4})?$")
    latitude: float | None = None
    longitude: float | None = None
    meeting_format: MeetingFormat
    meeting_frequency: MeetingFrequency
    meeting_type: MeetingType
    meeting_length: float | None = Field(None, gt=0, description="Hours")
    meeting_length_range: str | None = None
    average_attendance: float | None = Field(None, ge=1)
    average_attendance_range: str | None = None
    has_conferences: ConferenceLevel = "none"
    has_outside_speakers: bool = False
    has_education_training: bool = False
    annual_price: float | None = Field(None, ge=0, description="USD")
    annual_price_range: str | None = None
    monthly_price: float | None = Field(None, ge=0, description="USD")
    monthly_price_range: str | None = None
    contact_email: str | None = Field(None, max_length=255)
    contact_phone: str | None = Field(None, max_length=50)
    website: str | None = None


class ProgramRead(BaseModel):
    id: int
    status: str
    name: str
    religious_affiliation: str
    city: str
    state: str
    zip_code: str
    meeting_format: str
    meeting_frequency: str
    meeting_type: str
    meeting_length_range: str | None
    average_attendance_range: str | None
    annual_price_range: str | None
    monthly_price_range: str | None
    website: str | None
    source_url: str | None
    source_citations: list | None
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
