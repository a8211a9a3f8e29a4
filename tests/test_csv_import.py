"""
Tests for CSV program import (header aliases, per-row reporting, dedup).
"""

import pytest

from src.entities.program import Program
from src.services.csv_import_service import CsvImportService, parse_csv, row_to_program

CSV_TEXT = (
    "Organization,Affiliation,Street,City,ST,Zip,Format,Frequency,Type,Duration,Annual Price,Speakers\n"
    "Men of Faith,Christian,1 Main St,Dallas,tx,75201,In person,Weekly,Peer group,3,300,yes\n"
    "No Faith Listed,,2 Elm St,Austin,TX,78701,Online,Monthly,Forum,2,,no\n"
    "Boston Circle,Catholic,3 Oak Ave,Boston,MA,02108,Hybrid,Quarterly,Small discussion,1.5,0,\n"
)


@pytest.fixture
def import_service(db_session):
    return CsvImportService(db_session)


class TestRowMapping:
    def test_aliases_map_to_fields(self):
        raw = row_to_program(
            {"Org": "Acme Fellowship", " Zip Code ": "02108", "URL": "https://acme.org", "Unknown": "x"}
        )
        assert raw.name == "Acme Fellowship"
        assert raw.zip_code == "02108"
        assert raw.website == "https://acme.org"

    def test_blank_values_skipped(self):
        raw = row_to_program({"name": "  ", "city": "Dallas"})
        assert raw.name is None
        assert raw.city == "Dallas"

    def test_parse_keeps_leading_zeros(self):
        df = parse_csv(CSV_TEXT)
        assert df.loc[2, "Zip"] == "02108"
        assert df.loc[1, "Annual Price"] == ""

    def test_header_only_rejected(self):
        with pytest.raises(ValueError, match="at least one data row"):
            parse_csv("name,city\n")

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            parse_csv("   ")


class TestCsvImportService:
    def test_import_reports_per_row(self, import_service, db_session):
        summary = import_service.import_csv(CSV_TEXT)

        assert summary["total"] == 3
        assert summary["created"] == 2
        assert summary["updated"] == 0
        assert summary["failed"] == 1
        assert summary["errors"] == [
            {
                "row": 3,
                "name": "No Faith Listed",
                "error": 'Missing or invalid religiousAffiliation (must be "protestant" or "catholic")',
            }
        ]

        program = db_session.query(Program).filter_by(name="Men of Faith").one()
        assert program.status == "draft"
        assert program.state == "TX"
        assert program.meeting_length_range == "2-4"
        assert program.annual_price_range == "241-600"
        assert program.has_outside_speakers is True

        boston = db_session.query(Program).filter_by(name="Boston Circle").one()
        assert boston.zip_code == "02108"
        assert boston.annual_price == 0
        assert boston.annual_price_range is None
        assert boston.meeting_type == "small-group"

    def test_reimport_updates_existing(self, import_service, db_session):
        import_service.import_csv(CSV_TEXT)
        summary = import_service.import_csv(CSV_TEXT)

        assert summary["created"] == 0
        assert summary["updated"] == 2
        assert db_session.query(Program).count() == 2
