"""Tests for model response sanitation helpers."""

import pytest

from chaptrans.translation.exceptions import ParseError
from chaptrans.translation.utils import (
    match_json_object,
    parse_analysis_response,
    safe_parse_json_object,
    serialize_terms,
    strip_code_fences,
    unescape_newlines,
)


class TestStripCodeFences:
    """Tests for strip_code_fences."""

    def test_plain_text_unchanged(self):
        assert strip_code_fences('{"a": 1}') == '{"a": 1}'

    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_fence_with_surrounding_whitespace(self):
        assert strip_code_fences('  \n```json\n{"a": 1}\n```\n  ') == '{"a": 1}'

    def test_fence_on_same_line(self):
        assert strip_code_fences('```{"a": 1}```') == '{"a": 1}'

    def test_only_opening_fence(self):
        assert strip_code_fences('```json\n{"a": 1}') == '{"a": 1}'

    def test_inner_fences_kept(self):
        text = 'first\n```\ncode\n```\nlast'
        assert strip_code_fences(text) == text

    def test_empty(self):
        assert strip_code_fences("") == ""


class TestJsonObjectExtraction:
    """Tests for match_json_object and safe_parse_json_object."""

    def test_match_object_in_prose(self):
        text = 'Here you go: {"summary": "x", "new_glossary": {}} hope it helps'
        assert match_json_object(text) == '{"summary": "x", "new_glossary": {}}'

    def test_match_ignores_braces_in_strings(self):
        text = '{"summary": "a } b", "n": 1}'
        assert match_json_object(text) == text

    def test_match_none_without_object(self):
        assert match_json_object("no json here") is None

    def test_safe_parse_fenced(self):
        assert safe_parse_json_object('```json\n{"a": 1}\n```') == {"a": 1}

    def test_safe_parse_rejects_array(self):
        assert safe_parse_json_object('[1, 2]') is None

    def test_safe_parse_malformed(self):
        assert safe_parse_json_object('{"a": ') is None


class TestParseAnalysisResponse:
    """Tests for parse_analysis_response."""

    def test_valid_response(self):
        raw = '{"summary": "Hero arrives.", "new_glossary": {"Aria": "艾莉亞"}}'
        result = parse_analysis_response(raw)

        assert result == {"summary": "Hero arrives.", "new_glossary": {"Aria": "艾莉亞"}}

    def test_fenced_response(self):
        raw = '```json\n{"summary": "s", "new_glossary": {}}\n```'
        assert parse_analysis_response(raw)["summary"] == "s"

    def test_malformed_json_keeps_raw_response(self):
        raw = '{"summary": "s", "new_glossary": '
        with pytest.raises(ParseError) as exc_info:
            parse_analysis_response(raw)

        assert exc_info.value.raw_response == raw
        assert raw in str(exc_info.value)

    def test_missing_summary(self):
        with pytest.raises(ParseError, match="summary"):
            parse_analysis_response('{"new_glossary": {}}')

    def test_missing_glossary(self):
        with pytest.raises(ParseError, match="new_glossary"):
            parse_analysis_response('{"summary": "s"}')

    def test_glossary_not_an_object(self):
        with pytest.raises(ParseError):
            parse_analysis_response('{"summary": "s", "new_glossary": ["a"]}')

    def test_non_string_rendering(self):
        with pytest.raises(ParseError, match="Aria"):
            parse_analysis_response('{"summary": "s", "new_glossary": {"Aria": 3}}')

    def test_empty_response(self):
        with pytest.raises(ParseError):
            parse_analysis_response("")


class TestTextHelpers:
    """Tests for serialize_terms and unescape_newlines."""

    def test_unescape_newlines(self):
        assert unescape_newlines("line one\\nline two") == "line one\nline two"

    def test_real_newlines_untouched(self):
        assert unescape_newlines("a\nb") == "a\nb"

    def test_serialize_terms_keeps_unicode(self):
        assert serialize_terms({"Aria": "艾莉亞"}) == '{"Aria": "艾莉亞"}'

    def test_serialize_empty(self):
        assert serialize_terms({}) == "{}"
