"""Tests for the [PROFILES: ...] trailer grammar"""

from stuntbase.search.trailer import format_trailer, has_trailer, parse_trailer, strip_trailer


class TestParseTrailer:
    def test_basic(self):
        text = "Jane is a great fit.\n\n[PROFILES: p1, p2,p3]"
        assert parse_trailer(text) == ["p1", "p2", "p3"]

    def test_trims_and_drops_empty_tokens(self):
        assert parse_trailer("[PROFILES:  a ,, b , ]") == ["a", "b"]

    def test_duplicates_keep_first_position(self):
        assert parse_trailer("[PROFILES: b, a, b, c, a]") == ["b", "a", "c"]

    def test_first_trailer_wins(self):
        text = "[PROFILES: x] some prose [PROFILES: y, z]"
        assert parse_trailer(text) == ["x"]

    def test_missing_or_empty(self):
        assert parse_trailer("No candidates fit.") == []
        assert parse_trailer("") == []
        assert parse_trailer(None) == []
        assert parse_trailer("[PROFILES: ]") == []

    def test_uuid_ids(self):
        ids = ["3f1c2a9e-8b4d-4e1f-9c2a-1d2e3f4a5b6c", "a0b1c2d3-e4f5-6789-abcd-ef0123456789"]
        assert parse_trailer(f"Text [PROFILES: {ids[0]},{ids[1]}]") == ids


class TestStripTrailer:
    def test_strip(self):
        text = "Here are my picks.\n\n[PROFILES: 1, 2]\n"
        assert strip_trailer(text) == "Here are my picks."
        assert not has_trailer(strip_trailer(text))

    def test_strip_every_trailer(self):
        assert strip_trailer("[PROFILES: a] Hello [PROFILES: b]") == "Hello"

    def test_no_trailer_is_unchanged(self):
        assert strip_trailer("  plain text  ") == "plain text"
        assert strip_trailer(None) == ""


class TestFormatTrailer:
    def test_format(self):
        assert format_trailer(["p1", "p2"]) == "[PROFILES: p1, p2]"

    def test_format_then_parse(self):
        ids = ["7", "12", "7", "3"]
        assert parse_trailer(format_trailer(ids)) == ["7", "12", "3"]
