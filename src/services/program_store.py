"""
Create-or-update persistence for normalized program records.

Dedup key is (name, city, state): a record matching an existing program
updates the fields it carries in place, anything else is created as a draft.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.errors import StorageError
from src.dtos.program_dto import ProgramCreate
from src.repositories.program_repo import ProgramRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaveOutcome:
    action: Literal["created", "updated"]
    id: int


class ProgramStore:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.program_repo = ProgramRepository(session)

    def save(
        self,
        record: ProgramCreate,
        source_url: str | None = None,
        citations: list[str] | None = None,
    ) -> SaveOutcome:
        """
        Store *record*, updating the existing program with the same dedup key.

        Args:
            record: Normalized program
            source_url: Page the record was extracted from
            citations: Source URLs reported for prompt-driven extraction

        Returns:
            SaveOutcome with the action taken and the program id

        Raises:
            StorageError: The database rejected the write (session is rolled back)
        """
        extra: dict = {}
        if source_url:
            extra["source_url"] = source_url
        if citations:
            extra["source_citations"] = list(citations)

        try:
            existing = self.program_repo.find_duplicate(
                record.name, record.city, record.state
            )
            if existing is not None:
                # Only values this record carries; stored data is never cleared.
                changes = record.model_dump(exclude_unset=True, exclude_none=True)
                program = self.program_repo.update_program(existing, {**changes, **extra})
                logger.info("Updated program %s (%s)", program.id, record.name)
                return SaveOutcome("updated", program.id)

            program = self.program_repo.create_program(
                {**record.model_dump(), **extra}, draft=True
            )
            logger.info("Created program %s (%s)", program.id, record.name)
            return SaveOutcome("created", program.id)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Failed to save program {record.name!r}: {e}") from e
