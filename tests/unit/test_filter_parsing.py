"""Unit tests for filter and sort parsing in db_client."""

import pytest

from src.core.db_client import parse_filter, parse_sort, sanitize_param


@pytest.mark.unit
class TestParseFilter:
    """Tests for parse_filter."""

    def test_empty_filter(self):
        assert parse_filter("") == ("", [])

    def test_single_comparison_parses_integers(self):
        where, params = parse_filter('family_id = "7"')

        assert where == "family_id = ?"
        assert params == [7]

    def test_and_with_or_group(self):
        where, params = parse_filter('status = "open" && (member_id = "1" || member_id = "2")')

        assert where == "status = ? AND (member_id = ? OR member_id = ?)"
        assert params == ["open", 1, 2]

    def test_null_comparisons(self):
        where, params = parse_filter('task_id = "3" && completed_at = null')
        assert where == "task_id = ? AND completed_at IS NULL"
        assert params == [3]

        where, params = parse_filter("completed_at != null")
        assert where == "completed_at IS NOT NULL"
        assert params == []

    def test_range_comparison_keeps_timestamp_strings(self):
        where, params = parse_filter('created_at >= "2026-10-01T00:00:00+00:00"')

        assert where == "created_at >= ?"
        assert params == ["2026-10-01T00:00:00+00:00"]

    def test_like_escapes_wildcards(self):
        where, params = parse_filter('title ~ "50%_off"')

        assert "LIKE" in where
        assert params == ["%50\\%\\_off%"]

    def test_invalid_syntax_rejected(self):
        with pytest.raises(ValueError, match="Invalid filter syntax"):
            parse_filter("title = unquoted")

    def test_sanitized_quote_cannot_break_out(self):
        malicious = 'x" || role = "admin'
        with pytest.raises(ValueError):
            parse_filter(f'name = "{sanitize_param(malicious)}"')


@pytest.mark.unit
class TestParseSort:
    """Tests for parse_sort."""

    def test_prefix_directions(self):
        assert parse_sort("-created_at,+id") == "created_at DESC, id ASC"

    def test_plain_fields(self):
        assert parse_sort("deadline,id") == "deadline ASC, id ASC"

    def test_explicit_direction(self):
        assert parse_sort("name desc") == "name DESC"

    def test_injection_falls_back_to_default(self):
        assert parse_sort("id; DROP TABLE members") == "id ASC"
