"""
Unit tests for program normalization (coercion, buckets, validation).
"""

import pytest

from src.core.errors import RecordValidationError
from src.dtos.program_dto import ExtractedProgram
from src.services.program_normalizer import (
    annual_price_range,
    attendance_range,
    match_keyword,
    meeting_length_range,
    monthly_price_range,
    normalize,
    normalize_conferences,
    normalize_state,
    to_bool,
    to_number,
    to_rich_text,
    FORMAT_KEYWORDS,
    FREQUENCY_KEYWORDS,
    MEETING_TYPE_KEYWORDS,
    AFFILIATION_KEYWORDS,
)


def _raw(data, **overrides):
    payload = dict(data)
    payload.update(overrides)
    return ExtractedProgram.model_validate(payload)


class TestBuckets:
    @pytest.mark.parametrize(
        "hours, expected",
        [(0.5, "1-2"), (2, "1-2"), (2.5, "2-4"), (3, "2-4"), (4, "2-4"), (4.5, "4-8"), (10, "4-8")],
    )
    def test_meeting_length(self, hours, expected):
        assert meeting_length_range(hours) == expected

    def test_meeting_length_non_positive_has_no_bucket(self):
        assert meeting_length_range(0) is None
        assert meeting_length_range(-1) is None

    @pytest.mark.parametrize(
        "count, expected",
        [(1, "1-10"), (10, "1-10"), (11, "10-20"), (20, "10-20"), (50, "20-50"),
         (100, "50-100"), (101, "100+")],
    )
    def test_attendance(self, count, expected):
        assert attendance_range(count) == expected

    def test_attendance_below_one_is_unset(self):
        assert attendance_range(0) is None
        assert attendance_range(0.5) is None

    @pytest.mark.parametrize(
        "price, expected",
        [(1, "0-240"), (240, "0-240"), (241, "241-600"), (300, "241-600"),
         (2400, "601-2400"), (8400, "2401-8400"), (8401, "8401+")],
    )
    def test_annual_price(self, price, expected):
        assert annual_price_range(price) == expected

    @pytest.mark.parametrize(
        "price, expected",
        [(20, "0-20"), (21, "21-50"), (200, "51-200"), (700, "201-700"), (701, "701+")],
    )
    def test_monthly_price(self, price, expected):
        assert monthly_price_range(price) == expected

    def test_zero_price_has_no_bucket(self):
        assert annual_price_range(0) is None
        assert monthly_price_range(0) is None


class TestCoercion:
    def test_to_number_strips_currency_and_commas(self):
        assert to_number("$1,200") == 1200.0
        assert to_number(" 45 ") == 45.0
        assert to_number(7) == 7.0

    def test_to_number_unparsable_is_none(self):
        assert to_number("about three") is None
        assert to_number("") is None
        assert to_number(True) is None

    @pytest.mark.parametrize("value", ["true", "Yes", "1", "Y", True])
    def test_to_bool_truthy(self, value):
        assert to_bool(value) is True

    @pytest.mark.parametrize("value", ["no", "false", "0", "sometimes", None, False])
    def test_to_bool_falsy(self, value):
        assert to_bool(value) is False

    @pytest.mark.parametrize(
        "value, expected",
        [("Hybrid", "both"), ("in person and online (both)", "both"),
         ("Virtual", "online"), ("remote", "online"), ("In Person", "in-person"),
         ("face to face", None)],
    )
    def test_format_keywords(self, value, expected):
        assert match_keyword(value, FORMAT_KEYWORDS) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [("Bi-Monthly", "bi-monthly"), ("bimonthly", "bi-monthly"), ("Weekly", "weekly"),
         ("every month", "monthly"), ("Quarterly", "quarterly"), ("daily", None)],
    )
    def test_frequency_keywords(self, value, expected):
        assert match_keyword(value, FREQUENCY_KEYWORDS) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [("Peer advisory", "peer-group"), ("small discussion group", "peer-group"),
         ("Speaker series", "forum"), ("Q&A", "forum"), ("small discussion", "small-group")],
    )
    def test_meeting_type_keywords(self, value, expected):
        assert match_keyword(value, MEETING_TYPE_KEYWORDS) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [("Roman Catholic", "catholic"), ("Non-denominational Christian", "protestant"),
         ("Protestant", "protestant"), ("Jewish", None)],
    )
    def test_affiliation_keywords(self, value, expected):
        assert match_keyword(value, AFFILIATION_KEYWORDS) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [("Multiple per year", "multiple"), ("many", "multiple"), ("Annual retreat", "annual"),
         ("yes", "annual"), ("1", "annual"), ("None", "none"), ("no", "none"),
         ("0", "none"), ("unclear", None), ("", None)],
    )
    def test_conferences(self, value, expected):
        assert normalize_conferences(value) == expected

    def test_state_upper_cased(self):
        assert normalize_state(" tx ") == "TX"
        assert normalize_state("Texas") is None

    def test_rich_text_wraps_plain_text(self):
        doc = to_rich_text("  Meets monthly.  ")
        paragraph = doc["root"]["children"][0]
        assert doc["root"]["type"] == "root"
        assert paragraph["type"] == "paragraph"
        assert paragraph["children"][0]["text"] == "Meets monthly."

    def test_rich_text_strips_html(self):
        doc = to_rich_text("<p>Weekly <b>breakfast</b></p>")
        assert doc["root"]["children"][0]["children"][0]["text"] == "Weekly breakfast"

    def test_rich_text_empty_is_none(self):
        assert to_rich_text("   ") is None
        assert to_rich_text(None) is None


class TestNormalize:
    def test_valid_record(self, program_data):
        result = normalize(_raw(program_data, annualPrice=0))

        assert result.ok
        record = result.record
        assert record.name == "Christ Business Roundtable"
        assert record.meeting_length == 3.0
        assert record.meeting_length_range == "2-4"
        assert record.average_attendance_range == "10-20"
        assert record.annual_price == 0.0
        assert record.annual_price_range is None
        assert record.has_conferences == "none"
        assert record.has_outside_speakers is False
        assert record.description["root"]["children"][0]["children"][0]["text"].startswith(
            "Monthly peer group"
        )

    def test_annual_price_bucket(self, program_data):
        result = normalize(_raw(program_data, annualPrice="$300"))
        assert result.record.annual_price_range == "241-600"

    def test_loose_values_are_coerced(self, program_data):
        result = normalize(
            _raw(
                program_data,
                religiousAffiliation="Catholic parish",
                state="tx",
                zipCode=75201,
                meetingFormat="Hybrid",
                meetingFrequency="Every week",
                meetingType="Speaker forum",
                hasOutsideSpeakers="Yes",
                hasEducationTraining="n",
                hasConferences="multiple",
                coordinates={"lat": 32.78, "lng": -96.8},
            )
        )

        record = result.unwrap()
        assert record.religious_affiliation == "catholic"
        assert record.state == "TX"
        assert record.zip_code == "75201"
        assert record.meeting_format == "both"
        assert record.meeting_frequency == "weekly"
        assert record.meeting_type == "forum"
        assert record.has_outside_speakers is True
        assert record.has_education_training is False
        assert record.has_conferences == "multiple"
        assert record.latitude == 32.78

    def test_bucket_label_input_maps_to_midpoint(self, program_data):
        result = normalize(_raw(program_data, meetingLength="2-4", averageAttendance="100+"))
        assert result.record.meeting_length == 3.0
        assert result.record.meeting_length_range == "2-4"
        assert result.record.average_attendance == 150.0
        assert result.record.average_attendance_range == "100+"

    def test_attendance_below_one_left_unset(self, program_data):
        result = normalize(_raw(program_data, averageAttendance=0))
        assert result.ok
        assert result.record.average_attendance is None
        assert result.record.average_attendance_range is None

    def test_unparsable_number_dropped(self, program_data):
        result = normalize(_raw(program_data, meetingLength="a few hours"))
        assert result.ok
        assert result.record.meeting_length is None
        assert result.record.meeting_length_range is None

    def test_zero_meeting_length_is_error(self, program_data):
        result = normalize(_raw(program_data, meetingLength=0))
        assert not result.ok
        assert [e.field for e in result.errors] == ["meeting_length"]

    def test_negative_price_is_error(self, program_data):
        result = normalize(_raw(program_data, monthlyPrice=-5))
        assert not result.ok
        assert "monthlyPrice cannot be negative" in [str(e) for e in result.errors]

    def test_empty_record_collects_every_required_error(self):
        result = normalize(ExtractedProgram())

        fields = [e.field for e in result.errors]
        assert result.record is None
        assert fields == [
            "name",
            "religious_affiliation",
            "address",
            "city",
            "state",
            "zip_code",
            "meeting_format",
            "meeting_frequency",
            "meeting_type",
        ]

    def test_invalid_state_and_zip(self, program_data):
        result = normalize(_raw(program_data, state="Texas", zipCode="7520"))
        messages = [str(e) for e in result.errors]
        assert "State must be a 2-letter code (e.g., CA, NY)" in messages
        assert "Invalid zipCode format (must be 5 digits or 5+4 format)" in messages

    def test_zip_plus_four_accepted(self, program_data):
        assert normalize(_raw(program_data, zipCode="75201-1234")).ok

    def test_unmatched_category_is_required_error(self, program_data):
        result = normalize(_raw(program_data, meetingFrequency="daily"))
        assert [e.field for e in result.errors] == ["meeting_frequency"]

    def test_whitespace_name_is_missing(self, program_data):
        result = normalize(_raw(program_data, name="   "))
        assert "Missing required field: name" in [str(e) for e in result.errors]

    def test_unwrap_raises_with_all_errors(self):
        result = normalize(ExtractedProgram(name="Only a name"))
        with pytest.raises(RecordValidationError) as exc_info:
            result.unwrap()
        assert len(exc_info.value.errors) == 8
        assert "Missing required field: city" in str(exc_info.value)
