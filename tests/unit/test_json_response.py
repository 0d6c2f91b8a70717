import pytest

from parte.extraction.exceptions import ProviderResponseError
from parte.extraction.json_response import parse_json_object, parse_required, strip_code_fence


class TestStripCodeFence:
    def test_removes_json_fence(self) -> None:
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_text_untouched(self) -> None:
        assert strip_code_fence('  {"a": 1} ') == '{"a": 1}'

    def test_single_line_fence(self) -> None:
        assert strip_code_fence('```json {"full_name": "Jan"} ```') == '{"full_name": "Jan"}'

    def test_fence_after_prose(self) -> None:
        raw = 'Result:\n```JSON\n{"a": 1}\n```\nDone.'
        assert strip_code_fence(raw) == '{"a": 1}'


class TestParseJsonObject:
    def test_fenced_object(self) -> None:
        assert parse_json_object('```\n{"full_name": "Jan"}\n```') == {"full_name": "Jan"}

    def test_single_line_fenced_object(self) -> None:
        assert parse_json_object('```json {"full_name": "Jan"} ```') == {"full_name": "Jan"}

    def test_unclosed_fence_uses_brace_span(self) -> None:
        assert parse_json_object('```json\n{"has_photo": true}') == {"has_photo": True}

    def test_object_inside_prose(self) -> None:
        raw = 'Here is the result: {"has_photo": false} Hope it helps.'
        assert parse_json_object(raw) == {"has_photo": False}

    def test_array_is_not_an_object(self) -> None:
        assert parse_json_object("[1, 2]") is None

    def test_garbage_returns_none(self) -> None:
        assert parse_json_object("not json") is None


class TestParseRequired:
    def test_returns_parsed_object(self) -> None:
        parsed = parse_required('{"full_name": "Jan"}', "full_name", "bad")
        assert parsed["full_name"] == "Jan"

    def test_missing_field_raises(self) -> None:
        with pytest.raises(ProviderResponseError, match="Failed to parse"):
            parse_required('{"name": "Jan"}', "full_name", "Failed to parse text extraction response")

    def test_empty_value_rejected_when_required(self) -> None:
        with pytest.raises(ProviderResponseError):
            parse_required('{"full_name": ""}', "full_name", "bad", non_empty=True)

    def test_false_allowed_without_non_empty(self) -> None:
        parsed = parse_required('{"has_photo": false}', "has_photo", "bad")
        assert parsed["has_photo"] is False
