"""
Unit tests for the quote-aware dump tokenizer.
"""

from decimal import Decimal

import pytest

from diff_inspector.dump.tokenizer import (
    extract_parenthesized,
    parse_value,
    split_identifiers,
    split_top_level,
    split_value_groups,
    split_values,
)


class TestSplitTopLevel:
    """Test separator splitting outside quotes and brackets"""

    def test_plain_list(self):
        assert split_top_level("a, b ,c") == ["a", "b", "c"]

    def test_comma_inside_quotes_is_kept(self):
        assert split_top_level("1, 'a, b', 2") == ["1", "'a, b'", "2"]

    def test_comma_inside_parentheses_is_kept(self):
        assert split_top_level("numeric(10,2), text") == ["numeric(10,2)", "text"]

    def test_empty_text(self):
        assert split_top_level("") == []


class TestExtractParenthesized:
    """Test matching-parenthesis extraction"""

    def test_nested_groups(self):
        inner, end = extract_parenthesized("x (a, (b)) tail", 2)

        assert inner == "a, (b)"
        assert end == 10

    def test_paren_in_quoted_literal_is_ignored(self):
        inner, _ = extract_parenthesized("('a)', 1)", 0)

        assert inner == "'a)', 1"

    def test_unbalanced_raises(self):
        with pytest.raises(ValueError, match="Unbalanced"):
            extract_parenthesized("(a, b", 0)

    def test_wrong_start_raises(self):
        with pytest.raises(ValueError):
            extract_parenthesized("abc", 0)


class TestSplitValueGroups:
    """Test VALUES clause splitting"""

    def test_multiple_tuples(self):
        assert split_value_groups("(1, 'Ann'), (2, NULL)") == ["1, 'Ann'", "2, NULL"]

    def test_quoted_parenthesis_and_comma(self):
        groups = split_value_groups("(1, 'smile :), ok'), (2, 'b')")

        assert groups == ["1, 'smile :), ok'", "2, 'b'"]

    def test_stops_at_trailing_clause(self):
        groups = split_value_groups("(1, 'a') ON CONFLICT (id) DO NOTHING")

        assert groups == ["1, 'a'"]


class TestSplitValues:
    """Test tuple tokenizing"""

    def test_doubled_quote_stays_in_token(self):
        assert split_values("1, 'O''Brien', NULL") == ["1", "'O''Brien'", "NULL"]

    def test_double_quoted_token(self):
        assert split_values('"a,b", 2') == ['"a,b"', "2"]

    def test_empty_group(self):
        assert split_values("  ") == []


class TestParseValue:
    """Test token to value conversion"""

    @pytest.mark.parametrize("token,expected", [
        ("NULL", None),
        ("null", None),
        ("TRUE", True),
        ("false", False),
        ("42", 42),
        ("-7", -7),
        ("'text'", "text"),
        ("'O''Brien'", "O'Brien"),
        ("'42'", "42"),
    ])
    def test_conversions(self, token, expected):
        assert parse_value(token) == expected

    def test_decimal_keeps_scale(self):
        value = parse_value("1.50")

        assert isinstance(value, Decimal)
        assert str(value) == "1.50"

    def test_unrecognized_token_is_raw(self):
        assert parse_value("now()") == "now()"

    def test_bool_is_not_int(self):
        assert parse_value("TRUE") is True


def test_split_identifiers_unquotes():
    assert split_identifiers('id, "User Name", "a""b"') == ["id", "User Name", 'a"b']
