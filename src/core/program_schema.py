"""
JSON schema sent to the extraction service, and the citation walk over it.

The agent endpoint returns, next to each field, an optional ``<field>_citation``
value (a URL or a list of URLs) naming where the value was found. Citations
are collected by walking the known schema, not by scanning arbitrary keys.
"""

from __future__ import annotations

from typing import Any

CITATION_SUFFIX = "_citation"

PROGRAM_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "description": {"type": "string"},
        "religiousAffiliation": {"type": "string", "enum": ["protestant", "catholic"]},
        "address": {"type": "string"},
        "city": {"type": "string"},
        "state": {"type": "string"},
        "zipCode": {"type": "string"},
        "coordinates": {
            "type": "object",
            "properties": {
                "lat": {"type": "number"},
                "lng": {"type": "number"},
            },
        },
        "meetingFormat": {"type": "string", "enum": ["in-person", "online", "both"]},
        "meetingFrequency": {
            "type": "string",
            "enum": ["weekly", "bi-monthly", "monthly", "quarterly"],
        },
        "meetingLength": {"type": "number", "description": "Meeting length in hours"},
        "meetingType": {"type": "string", "enum": ["peer-group", "forum", "small-group"]},
        "averageAttendance": {"type": "number"},
        "hasConferences": {"type": "string", "enum": ["none", "annual", "multiple"]},
        "hasOutsideSpeakers": {"type": "boolean"},
        "hasEducationTraining": {"type": "boolean"},
        "annualPrice": {"type": "number", "description": "Annual membership price in USD"},
        "monthlyPrice": {"type": "number", "description": "Monthly membership price in USD"},
        "contactEmail": {"type": "string"},
        "contactPhone": {"type": "string"},
        "website": {"type": "string"},
    },
}

AGENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "programs": {"type": "array", "items": PROGRAM_SCHEMA},
    },
    "required": ["programs"],
}

EXTRACT_PROMPT = (
    "Extract information about this faith-based leadership program. Include all "
    "available details about meetings, location, format, pricing, and contact "
    "information."
)


def _citation_values(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [v for v in value if isinstance(v, str) and v.strip()]
    return []


def collect_citations(record: dict[str, Any], schema: dict[str, Any] = PROGRAM_SCHEMA) -> list[str]:
    """
    Collect every citation URL attached to *record* for fields in *schema*.

    Nested object properties (``coordinates``) are walked recursively. The
    result is de-duplicated and keeps first-seen order.

    Args:
        record: One raw program object as returned by the agent endpoint
        schema: Object schema describing *record*

    Returns:
        Flat list of source URLs
    """
    found: list[str] = []
    for field, field_schema in schema.get("properties", {}).items():
        found.extend(_citation_values(record.get(field + CITATION_SUFFIX)))
        nested = record.get(field)
        if field_schema.get("type") == "object" and isinstance(nested, dict):
            found.extend(collect_citations(nested, field_schema))
    return list(dict.fromkeys(u.strip() for u in found))
