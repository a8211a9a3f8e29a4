"""
DTOs for scraper settings operations.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

FrequencyMinutes = Literal[1, 2, 5, 10, 15, 30, 60]


class ScraperSettingsUpdate(BaseModel):
    """Partial update of the operator-tunable knobs; omitted fields are unchanged."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    enabled: bool | None = None
    frequency_minutes: FrequencyMinutes | None = Field(
        default=None, description="Minutes between processing cycles"
    )
    batch_size: int | None = Field(default=None, ge=1, le=20)
    delay_between_requests_seconds: int | None = Field(default=None, ge=0, le=60)
    max_concurrent_jobs: int | None = Field(default=None, ge=1, le=10)


class ScraperSettingsRead(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    enabled: bool
    frequency_minutes: int
    batch_size: int
    delay_between_requests_seconds: int
    max_concurrent_jobs: int
    last_run: datetime | None
    total_processed: int
    total_successful: int
    total_failed: int
