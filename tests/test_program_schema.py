from src.core.program_schema import AGENT_SCHEMA, PROGRAM_SCHEMA, collect_citations


class TestCollectCitations:
    def test_no_citations(self):
        assert collect_citations({"name": "X"}) == []

    def test_string_and_list_values(self):
        record = {
            "website_citation": "https://a.org",
            "annualPrice_citation": ["https://b.org", "  ", 42, "https://a.org"],
        }
        # annualPrice precedes website in the schema
        assert collect_citations(record) == ["https://b.org", "https://a.org"]

    def test_order_follows_schema(self):
        record = {
            "website_citation": "https://web.org",
            "name_citation": "https://name.org",
        }
        # name precedes website in the schema
        assert collect_citations(record) == ["https://name.org", "https://web.org"]

    def test_nested_group(self):
        record = {
            "coordinates": {"lat": 1.0, "lng_citation": "https://geo.org"},
            "coordinates_citation": "https://coords.org",
        }
        assert collect_citations(record) == ["https://coords.org", "https://geo.org"]

    def test_nested_group_not_an_object(self):
        assert collect_citations({"coordinates": "32.7,-96.8"}) == []

    def test_unknown_fields_ignored(self):
        assert collect_citations({"foo_citation": "https://foo.org"}) == []

    def test_agent_schema_wraps_program_schema(self):
        assert AGENT_SCHEMA["properties"]["programs"]["items"] is PROGRAM_SCHEMA
