"""
Error taxonomy for the scrape pipeline.

Per-item errors (ServiceError, ExtractionTimeout, RecordValidationError,
StorageError) are caught by the dispatcher and recorded on the URL entry.
JobFatalError aborts only the job it was raised for.
"""

from __future__ import annotations

from dataclasses import dataclass


class ScrapePipelineError(Exception):
    """Base class for every error raised by the pipeline."""


class ConfigurationError(ScrapePipelineError):
    """A required setting (API key, base URL) is missing."""


class ServiceError(ScrapePipelineError):
    """The extraction service call failed or answered ``success: false``."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ExtractionFailed(ServiceError):
    """The service reported ``status: failed`` for an async job."""


class ExtractionTimeout(ScrapePipelineError):
    """Polling exhausted its attempt budget."""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def __str__(self) -> str:
        return self.message


class RecordValidationError(ScrapePipelineError):
    """Normalization rejected a record; carries every field failure."""

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(str(e) for e in self.errors))


class StorageError(ScrapePipelineError):
    """Creating or updating a record failed."""


class JobFatalError(ScrapePipelineError):
    """Structural failure that aborts a whole job (not found, discovery failed)."""


class OperationCancelled(ScrapePipelineError):
    """A wait was interrupted by its cancellation token."""
