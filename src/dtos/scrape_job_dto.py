"""
DTOs for scrape job submission and queue messages.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ScrapeBatchRequest(BaseModel):
    """Body of POST /api/scrape/batch: an explicit URL list or a crawl root."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    urls: list[str] | None = Field(default=None, description="URLs to extract")
    crawl_url: str | None = Field(default=None, description="Base URL to crawl")


class ScrapeMessage(BaseModel):
    """One unit of queued work: a single URL of an extract job, or a crawl root."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: int
    job_type: Literal["extract", "crawl"] = "extract"
    url: str | None = None
    crawl_url: str | None = None
