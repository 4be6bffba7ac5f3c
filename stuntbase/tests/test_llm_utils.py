"""Tests for shared LLM response parsing utilities."""

from stuntbase.common.llm_utils import format_height, parse_llm_json


class TestParseLlmJson:
    def test_valid_json(self):
        assert parse_llm_json('{"gender": "Woman"}') == {"gender": "Woman"}

    def test_json_with_markdown_fences(self):
        raw = '```json\n{"skills": ["fight"], "broad_search": false}\n```'
        assert parse_llm_json(raw) == {"skills": ["fight"], "broad_search": False}

    def test_json_with_plain_fences(self):
        raw = '```\n{"height_min": 66}\n```'
        assert parse_llm_json(raw) == {"height_min": 66}

    def test_json_embedded_in_text(self):
        raw = 'Here are the filters: {"location": "atlanta-ga"} hope that helps.'
        assert parse_llm_json(raw) == {"location": "atlanta-ga"}

    def test_no_json_returns_empty_dict(self):
        assert parse_llm_json("I could not parse that request") == {}

    def test_empty_string_returns_empty_dict(self):
        assert parse_llm_json("") == {}

    def test_top_level_list_is_not_an_object(self):
        assert parse_llm_json('["fight", "drive"]') == {}

    def test_invalid_json_with_braces_returns_empty(self):
        assert parse_llm_json('{"broken: json') == {}


class TestFormatHeight:
    def test_feet_and_inches(self):
        assert format_height(68) == "5'8\""

    def test_whole_feet(self):
        assert format_height(72) == "6'0\""
