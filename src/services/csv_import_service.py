"""
Bulk program import from CSV.

Headers are matched case-insensitively against an alias table (e.g.
``org`` / ``organization`` -> name), each row is mapped to an
ExtractedProgram and then goes through the same normalize + store path as
scraped pages. Row numbers in the report count the header as row 1.
"""

from __future__ import annotations

import io
import logging
from typing import Any

import numpy as np
import pandas as pd
from sqlalchemy.orm import Session

from src.core.errors import StorageError
from src.dtos.program_dto import ExtractedProgram
from src.services.program_normalizer import normalize
from src.services.program_store import ProgramStore

logger = logging.getLogger(__name__)

HEADER_ALIASES: dict[str, str] = {
    "name": "name",
    "program_name": "name",
    "programname": "name",
    "program name": "name",
    "organization": "name",
    "org": "name",
    "description": "description",
    "desc": "description",
    "about": "description",
    "religiousaffiliation": "religious_affiliation",
    "religious_affiliation": "religious_affiliation",
    "religious affiliation": "religious_affiliation",
    "affiliation": "religious_affiliation",
    "religion": "religious_affiliation",
    "address": "address",
    "street_address": "address",
    "street address": "address",
    "street": "address",
    "city": "city",
    "state": "state",
    "st": "state",
    "zipcode": "zip_code",
    "zip_code": "zip_code",
    "zip code": "zip_code",
    "zip": "zip_code",
    "postal_code": "zip_code",
    "postal code": "zip_code",
    "meetingformat": "meeting_format",
    "meeting_format": "meeting_format",
    "meeting format": "meeting_format",
    "format": "meeting_format",
    "meetingfrequency": "meeting_frequency",
    "meeting_frequency": "meeting_frequency",
    "meeting frequency": "meeting_frequency",
    "frequency": "meeting_frequency",
    "meetinglength": "meeting_length",
    "meeting_length": "meeting_length",
    "meeting length": "meeting_length",
    "length": "meeting_length",
    "duration": "meeting_length",
    "meetingtype": "meeting_type",
    "meeting_type": "meeting_type",
    "meeting type": "meeting_type",
    "type": "meeting_type",
    "averageattendance": "average_attendance",
    "average_attendance": "average_attendance",
    "average attendance": "average_attendance",
    "attendance": "average_attendance",
    "avg_attendance": "average_attendance",
    "hasconferences": "has_conferences",
    "has_conferences": "has_conferences",
    "has conferences": "has_conferences",
    "conferences": "has_conferences",
    "hasoutsidespeakers": "has_outside_speakers",
    "has_outside_speakers": "has_outside_speakers",
    "has outside speakers": "has_outside_speakers",
    "outside_speakers": "has_outside_speakers",
    "outside speakers": "has_outside_speakers",
    "speakers": "has_outside_speakers",
    "haseducationtraining": "has_education_training",
    "has_education_training": "has_education_training",
    "has education training": "has_education_training",
    "education_training": "has_education_training",
    "education training": "has_education_training",
    "training": "has_education_training",
    "education": "has_education_training",
    "annualprice": "annual_price",
    "annual_price": "annual_price",
    "annual price": "annual_price",
    "yearly_price": "annual_price",
    "yearly price": "annual_price",
    "monthlyprice": "monthly_price",
    "monthly_price": "monthly_price",
    "monthly price": "monthly_price",
    "contactemail": "contact_email",
    "contact_email": "contact_email",
    "contact email": "contact_email",
    "email": "contact_email",
    "contactphone": "contact_phone",
    "contact_phone": "contact_phone",
    "contact phone": "contact_phone",
    "phone": "contact_phone",
    "website": "website",
    "url": "website",
    "site": "website",
    "web": "website",
}


def clean_value(val: Any) -> Any:
    """Convert pandas/numpy scalars to plain Python; blanks become None."""
    if val is None:
        return None
    if isinstance(val, float) and pd.isna(val):
        return None
    if isinstance(val, np.generic):
        val = val.item()
    if isinstance(val, str):
        val = val.strip()
        return val or None
    return val


def parse_csv(text: str) -> pd.DataFrame:
    """
    Parse CSV text into a string-typed DataFrame.

    Raises:
        ValueError: No header row or no data rows
    """
    if not text or not text.strip():
        raise ValueError("CSV must have a header row and at least one data row")
    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            skipinitialspace=True,
        )
    except pd.errors.ParserError as e:
        raise ValueError(f"Could not parse CSV: {e}") from e
    if df.empty:
        raise ValueError("CSV must have a header row and at least one data row")
    return df


def row_to_program(row: dict[str, Any]) -> ExtractedProgram:
    """Map one CSV row (header -> value) onto ExtractedProgram fields."""
    fields: dict[str, Any] = {}
    for header, value in row.items():
        field = HEADER_ALIASES.get(str(header).strip().lower())
        value = clean_value(value)
        if field and value is not None and field not in fields:
            fields[field] = value
    return ExtractedProgram(**fields)


class CsvImportService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.store = ProgramStore(session)

    def import_csv(self, text: str) -> dict[str, Any]:
        """
        Import every row of *text*.

        Args:
            text: CSV document with a header row

        Returns:
            Dict with total, created, updated, failed and per-row errors
            ({row, name, error}); rows are numbered from 2

        Raises:
            ValueError: Missing header or no data rows
        """
        df = parse_csv(text)
        summary: dict[str, Any] = {
            "total": len(df),
            "created": 0,
            "updated": 0,
            "failed": 0,
            "errors": [],
        }

        for idx, row in enumerate(df.to_dict(orient="records")):
            row_number = idx + 2
            raw = row_to_program(row)
            result = normalize(raw)
            if not result.ok:
                self._fail(summary, row_number, raw.name, "; ".join(map(str, result.errors)))
                continue
            try:
                outcome = self.store.save(result.record)
            except StorageError as e:
                self._fail(summary, row_number, raw.name, str(e))
                continue
            summary[outcome.action] += 1

        logger.info(
            "CSV import: %d rows, %d created, %d updated, %d failed",
            summary["total"],
            summary["created"],
            summary["updated"],
            summary["failed"],
        )
        return summary

    @staticmethod
    def _fail(summary: dict[str, Any], row: int, name: str | None, error: str) -> None:
        logger.warning("CSV row %d (%s) rejected: %s", row, name or "unnamed", error)
        summary["failed"] += 1
        summary["errors"].append({"row": row, "name": name, "error": error})
