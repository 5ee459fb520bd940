"""Tests for lenient JSON parsing of model output."""

import json

import pytest

from pipeline.ai.json_repair import parse_json_with_repair, repair_json


class TestParseJsonWithRepair:
    """Tests for parse_json_with_repair."""

    def test_valid_json_untouched(self) -> None:
        """Valid JSON parses directly."""
        assert parse_json_with_repair('{"suggestions": ["a"]}') == {"suggestions": ["a"]}

    def test_code_fence(self) -> None:
        """Markdown code fences are stripped."""
        text = '```json\n{"businessType": "SaaS"}\n```'

        assert parse_json_with_repair(text) == {"businessType": "SaaS"}

    def test_leading_chatter(self) -> None:
        """Text before the first brace is dropped."""
        assert parse_json_with_repair('Sure! Here it is: {"a": 1}') == {"a": 1}

    def test_trailing_commas(self) -> None:
        """Trailing commas in objects and arrays are removed."""
        assert parse_json_with_repair('{"a": [1, 2,], "b": 3,}') == {"a": [1, 2], "b": 3}

    def test_raw_newline_in_string(self) -> None:
        """Raw control characters inside strings are escaped."""
        text = '{"text": "line one\nline two\tend"}'

        assert parse_json_with_repair(text) == {"text": "line one\nline two\tend"}

    def test_truncated_output(self) -> None:
        """Unclosed arrays and objects are closed."""
        text = '{"suggestions": ["Add a meta description", "Shorten the title",'

        assert parse_json_with_repair(text) == {
            "suggestions": ["Add a meta description", "Shorten the title"]
        }

    def test_unterminated_string(self) -> None:
        """An unterminated string is closed before the braces."""
        assert parse_json_with_repair('{"summary": "Cut off mid') == {"summary": "Cut off mid"}

    def test_braces_inside_strings_ignored(self) -> None:
        """Brackets inside string values do not affect balancing."""
        text = '{"note": "use {curly} and [square]", "list": [1'

        assert parse_json_with_repair(text) == {"note": "use {curly} and [square]", "list": [1]}

    def test_unrepairable(self) -> None:
        """Text with no JSON in it still raises."""
        with pytest.raises(json.JSONDecodeError):
            parse_json_with_repair("I cannot help with that.")


class TestRepairJson:
    """Tests for repair_json."""

    def test_returns_parseable_text(self) -> None:
        """The repaired text is valid JSON."""
        repaired = repair_json('```\n[{"a": 1}, {"b": 2},\n```')

        assert json.loads(repaired) == [{"a": 1}, {"b": 2}]
