"""
Normalization of extracted / CSV program data into canonical records.

Every source (live extraction, agent prompt, CSV row) arrives as an
ExtractedProgram and leaves as either a ProgramCreate or the full list of
field errors for that record. Coercion never rejects a value on its own:
unknown categorical text is left unset and the required-field check decides.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from bs4 import BeautifulSoup
from pydantic import ValidationError

from src.core.errors import FieldError, RecordValidationError
from src.dtos.program_dto import ExtractedProgram, ProgramCreate

logger = logging.getLogger(__name__)

STATE_RE = re.compile(r"^[A-Z]{2}$")
ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")
TRUTHY = frozenset({"true", "yes", "1", "y"})

# (upper bound inclusive, label); last entry is the open-ended bucket.
MEETING_LENGTH_BUCKETS = ((2, "1-2"), (4, "2-4"), (None, "4-8"))
ATTENDANCE_BUCKETS = ((10, "1-10"), (20, "10-20"), (50, "20-50"), (100, "50-100"), (None, "100+"))
ANNUAL_PRICE_BUCKETS = (
    (240, "0-240"),
    (600, "241-600"),
    (2400, "601-2400"),
    (8400, "2401-8400"),
    (None, "8401+"),
)
MONTHLY_PRICE_BUCKETS = (
    (20, "0-20"),
    (50, "21-50"),
    (200, "51-200"),
    (700, "201-700"),
    (None, "701+"),
)

# Bucket labels accepted as input, mapped to a representative value.
MEETING_LENGTH_MIDPOINTS = {"1-2": 1.5, "2-4": 3.0, "4-8": 6.0}
ATTENDANCE_MIDPOINTS = {"1-10": 5.0, "10-20": 15.0, "20-50": 35.0, "50-100": 75.0, "100+": 150.0}

# Ordered keyword tables: first matching row wins.
FORMAT_KEYWORDS = (
    (("hybrid", "both"), "both"),
    (("online", "virtual", "remote"), "online"),
    (("in-person", "in person", "person"), "in-person"),
)
FREQUENCY_KEYWORDS = (
    (("bi-month", "bimonth"), "bi-monthly"),
    (("week",), "weekly"),
    (("month",), "monthly"),
    (("quarter",), "quarterly"),
)
MEETING_TYPE_KEYWORDS = (
    (("peer", "group"), "peer-group"),
    (("forum", "speaker", "q&a"), "forum"),
    (("small", "discussion"), "small-group"),
)
AFFILIATION_KEYWORDS = (
    (("catholic",), "catholic"),
    (("protestant", "christian"), "protestant"),
)
CONFERENCE_KEYWORDS = (
    (("multiple", "many"), "multiple"),
    (("annual", "yearly", "one"), "annual"),
)
NO_CONFERENCE_TOKENS = frozenset({"none", "no", "false", "0"})


@dataclass
class NormalizeResult:
    record: ProgramCreate | None = None
    errors: list[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.record is not None and not self.errors

    def unwrap(self) -> ProgramCreate:
        """Return the record or raise RecordValidationError with every failure."""
        if not self.ok:
            raise RecordValidationError(self.errors)
        return self.record


# ---------------------------------------------------------------------------
# Scalar coercion
# ---------------------------------------------------------------------------


def clean_text(value: Any) -> str | None:
    """Trim strings; empty strings become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def to_number(value: Any) -> float | None:
    """Parse ints, floats and numeric strings (``$1,200``); anything else is None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    s = str(value).replace(",", "").replace("$", "").strip()
    if not s:
        return None
    try:
        return float(s)
    except ValueError:
        return None


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY


def match_keyword(value: Any, table) -> str | None:
    """Case-insensitive substring match against an ordered keyword table."""
    text = clean_text(value)
    if text is None:
        return None
    lowered = text.lower()
    for keywords, canonical in table:
        if any(k in lowered for k in keywords):
            return canonical
    return None


def normalize_conferences(value: Any) -> str | None:
    text = clean_text(value)
    if text is None:
        return None
    lowered = text.lower()
    # Whole-value match first: "none" contains "one".
    if lowered in NO_CONFERENCE_TOKENS:
        return "none"
    if lowered in TRUTHY:
        return "annual"
    return match_keyword(lowered, CONFERENCE_KEYWORDS)


def normalize_state(value: Any) -> str | None:
    text = clean_text(value)
    if text is None:
        return None
    upper = text.upper()
    return upper if STATE_RE.match(upper) else None


def bucket_for(value: float, buckets) -> str:
    for upper, label in buckets:
        if upper is None or value <= upper:
            return label
    raise ValueError("bucket table must end with an open-ended bucket")


def meeting_length_range(hours: float | None) -> str | None:
    """<=0 is invalid; <=2 -> 1-2, <=4 -> 2-4, otherwise 4-8."""
    if hours is None or hours <= 0:
        return None
    return bucket_for(hours, MEETING_LENGTH_BUCKETS)


def attendance_range(count: float | None) -> str | None:
    if count is None or count < 1:
        return None
    return bucket_for(count, ATTENDANCE_BUCKETS)


def annual_price_range(price: float | None) -> str | None:
    """A price of exactly 0 is treated as free/unset and gets no bucket."""
    if price is None or price <= 0:
        return None
    return bucket_for(price, ANNUAL_PRICE_BUCKETS)


def monthly_price_range(price: float | None) -> str | None:
    if price is None or price <= 0:
        return None
    return bucket_for(price, MONTHLY_PRICE_BUCKETS)


def to_rich_text(description: str | None) -> dict | None:
    """
    Convert plain text (or an HTML fragment) to the rich-text document shape
    stored on programs: root -> paragraph -> text.
    """
    text = clean_text(description)
    if text is None:
        return None
    if "<" in text and ">" in text:
        text = BeautifulSoup(text, "lxml").get_text(" ", strip=True)
        if not text:
            return None

    return {
        "root": {
            "type": "root",
            "format": "",
            "indent": 0,
            "version": 1,
            "direction": "ltr",
            "children": [
                {
                    "type": "paragraph",
                    "format": "",
                    "indent": 0,
                    "version": 1,
                    "direction": "ltr",
                    "children": [
                        {
                            "type": "text",
                            "format": 0,
                            "detail": 0,
                            "mode": "normal",
                            "style": "",
                            "text": text,
                            "version": 1,
                        }
                    ],
                }
            ],
        }
    }


# ---------------------------------------------------------------------------
# Record normalization
# ---------------------------------------------------------------------------


def _numeric_with_labels(value: Any, midpoints: dict[str, float]) -> float | None:
    text = clean_text(value) if isinstance(value, str) else None
    if text in midpoints:
        return midpoints[text]
    return to_number(value)


def _required_errors(fields: dict[str, Any], raw: ExtractedProgram) -> list[FieldError]:
    errors: list[FieldError] = []
    if not fields.get("name"):
        errors.append(FieldError("name", "Missing required field: name"))
    if not fields.get("religious_affiliation"):
        errors.append(
            FieldError(
                "religious_affiliation",
                'Missing or invalid religiousAffiliation (must be "protestant" or "catholic")',
            )
        )
    if not fields.get("address"):
        errors.append(FieldError("address", "Missing required field: address"))
    if not fields.get("city"):
        errors.append(FieldError("city", "Missing required field: city"))
    if not fields.get("state"):
        if clean_text(raw.state):
            errors.append(FieldError("state", "State must be a 2-letter code (e.g., CA, NY)"))
        else:
            errors.append(FieldError("state", "Missing required field: state"))
    zip_code = fields.get("zip_code")
    if not zip_code:
        errors.append(FieldError("zip_code", "Missing required field: zipCode"))
    elif not ZIP_RE.match(zip_code):
        errors.append(
            FieldError("zip_code", "Invalid zipCode format (must be 5 digits or 5+4 format)")
        )
    if not fields.get("meeting_format"):
        errors.append(
            FieldError(
                "meeting_format",
                'Missing or invalid meetingFormat (must be "in-person", "online", or "both")',
            )
        )
    if not fields.get("meeting_frequency"):
        errors.append(
            FieldError(
                "meeting_frequency",
                "Missing or invalid meetingFrequency "
                '(must be "weekly", "bi-monthly", "monthly", or "quarterly")',
            )
        )
    if not fields.get("meeting_type"):
        errors.append(
            FieldError(
                "meeting_type",
                'Missing or invalid meetingType (must be "peer-group", "forum", or "small-group")',
            )
        )
    return errors


def normalize(raw: ExtractedProgram) -> NormalizeResult:
    """
    Coerce *raw* into a canonical ProgramCreate.

    All failures for the record are collected; nothing is short-circuited.

    Args:
        raw: Loosely-typed program fields from extraction or CSV

    Returns:
        NormalizeResult with either the record or the list of FieldErrors
    """
    errors: list[FieldError] = []

    meeting_length = _numeric_with_labels(raw.meeting_length, MEETING_LENGTH_MIDPOINTS)
    if meeting_length is not None and meeting_length <= 0:
        errors.append(FieldError("meeting_length", "meetingLength must be greater than 0 hours"))
        meeting_length = None

    attendance = _numeric_with_labels(raw.average_attendance, ATTENDANCE_MIDPOINTS)
    if attendance is not None and attendance < 1:
        attendance = None

    annual_price = to_number(raw.annual_price)
    monthly_price = to_number(raw.monthly_price)
    if annual_price is not None and annual_price < 0:
        errors.append(FieldError("annual_price", "annualPrice cannot be negative"))
        annual_price = None
    if monthly_price is not None and monthly_price < 0:
        errors.append(FieldError("monthly_price", "monthlyPrice cannot be negative"))
        monthly_price = None

    fields: dict[str, Any] = {
        "name": clean_text(raw.name),
        "description": to_rich_text(raw.description),
        "religious_affiliation": match_keyword(raw.religious_affiliation, AFFILIATION_KEYWORDS),
        "address": clean_text(raw.address),
        "city": clean_text(raw.city),
        "state": normalize_state(raw.state),
        "zip_code": clean_text(raw.zip_code),
        "latitude": raw.coordinates.lat if raw.coordinates else None,
        "longitude": raw.coordinates.lng if raw.coordinates else None,
        "meeting_format": match_keyword(raw.meeting_format, FORMAT_KEYWORDS),
        "meeting_frequency": match_keyword(raw.meeting_frequency, FREQUENCY_KEYWORDS),
        "meeting_type": match_keyword(raw.meeting_type, MEETING_TYPE_KEYWORDS),
        "meeting_length": meeting_length,
        "meeting_length_range": meeting_length_range(meeting_length),
        "average_attendance": attendance,
        "average_attendance_range": attendance_range(attendance),
        "has_conferences": normalize_conferences(raw.has_conferences),
        "annual_price": annual_price,
        "annual_price_range": annual_price_range(annual_price),
        "monthly_price": monthly_price,
        "monthly_price_range": monthly_price_range(monthly_price),
        "contact_email": clean_text(raw.contact_email),
        "contact_phone": clean_text(raw.contact_phone),
        "website": clean_text(raw.website),
    }
    if raw.has_outside_speakers is not None:
        fields["has_outside_speakers"] = to_bool(raw.has_outside_speakers)
    if raw.has_education_training is not None:
        fields["has_education_training"] = to_bool(raw.has_education_training)

    errors = _required_errors(fields, raw) + errors
    if errors:
        return NormalizeResult(errors=errors)

    try:
        record = ProgramCreate(**{k: v for k, v in fields.items() if v is not None})
    except ValidationError as e:
        for issue in e.errors():
            path = ".".join(str(p) for p in issue["loc"])
            errors.append(FieldError(path, f"{path}: {issue['msg']}"))
        return NormalizeResult(errors=errors)

    return NormalizeResult(record=record)
