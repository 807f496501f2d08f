# -*- coding: utf-8 -*-
"""Tests for RowCoercer and number parsing."""

from datetime import date, datetime, timezone

import pytest

from stockrisk.ingestion.row_coercer import RowCoercer, parse_number
from stockrisk.models import ColumnSchema, RuleKind, ValidationRule, ValueType


@pytest.fixture
def value_column():
    return ColumnSchema(
        canonical_name="Closing Stock Value",
        value_type=ValueType.NUMBER,
        rules=[ValidationRule(kind=RuleKind.MIN, bound=0, message="Value must be positive")],
    )


class TestParseNumber:
    """Human-formatted numeric strings."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("1,234.56", 1234.56),
            ("$1,000", 1000.0),
            (" 42 ", 42.0),
            ("Rs. 2,500", 2500.0),
            ("2500 PKR", 2500.0),
            ("15%", 15.0),
            ("(1,234)", -1234.0),
        ],
    )
    def test_parses(self, text, expected):
        assert parse_number(text) == pytest.approx(expected)

    @pytest.mark.parametrize("text", ["", "abc", "12abc", "inf", "nan", "$"])
    def test_rejects(self, text):
        assert parse_number(text) is None


class TestRowCoercer:
    """Type coercion and ordered rule evaluation."""

    def test_number_coercion(self, value_column):
        result = RowCoercer().coerce("$1,000", value_column, row_number=2)
        assert result.ok
        assert result.value == 1000.0

    def test_type_failure_message(self, value_column):
        result = RowCoercer().coerce("n/a", value_column, row_number=5)

        assert not result.ok
        assert result.error == (
            'Invalid data type in column "Closing Stock Value", row 5: Expected number'
        )

    def test_rule_failure_message(self, value_column):
        result = RowCoercer().coerce(-5, value_column, row_number=3)

        assert not result.ok
        assert result.value == -5.0
        assert result.rule.kind == RuleKind.MIN
        assert result.error == (
            'Validation failed for column "Closing Stock Value", row 3: Value must be positive'
        )

    def test_first_failing_rule_reported(self):
        column = ColumnSchema(
            canonical_name="Code",
            rules=[
                ValidationRule(kind=RuleKind.MIN_LENGTH, bound=3, message="too short"),
                ValidationRule(kind=RuleKind.REGEX, bound=r"^\d+$", message="digits only"),
            ],
        )
        result = RowCoercer().coerce("a", column, row_number=2)
        assert result.error.endswith("too short")

    def test_booleans_are_not_numbers(self, value_column):
        assert not RowCoercer().coerce(True, value_column, row_number=2).ok

    def test_string_coercion(self):
        coercer = RowCoercer()
        assert coercer.convert(12.0, ValueType.STRING) == "12"
        assert coercer.convert("  P100 ", ValueType.STRING) == "P100"
        assert coercer.convert(None, ValueType.STRING) == ""
        assert RowCoercer(trim_whitespace=False).convert(" a ", ValueType.STRING) == " a "

    def test_date_coercion(self):
        coercer = RowCoercer()
        assert coercer.convert(45000, ValueType.DATE) == datetime(2023, 3, 15)
        assert coercer.convert(date(2024, 1, 31), ValueType.DATE) == datetime(2024, 1, 31)
        assert coercer.convert("2024-01-31", ValueType.DATE) == datetime(2024, 1, 31)
        assert coercer.convert("2024-01-31T10:00:00Z", ValueType.DATE) == datetime(
            2024, 1, 31, 10, tzinfo=timezone.utc,
        )

    def test_date_failures(self):
        column = ColumnSchema(canonical_name="Due", value_type=ValueType.DATE)
        coercer = RowCoercer()
        assert not coercer.coerce("yesterday", column, row_number=2).ok
        assert not coercer.coerce(-1, column, row_number=2).ok

    @pytest.mark.parametrize(
        "kind, bound, value, expected",
        [
            (RuleKind.MAX_LENGTH, 3, "abcd", False),
            (RuleKind.MAX, 10, 10.0, True),
            (RuleKind.MIN, 0, "5", False),
            (RuleKind.REGEX, r"^MAT-\d+$", "MAT-001", True),
            (RuleKind.ONE_OF, ["Active", "Blocked"], "Blocked", True),
            (RuleKind.ONE_OF, ["Active", "Blocked"], "Retired", False),
        ],
    )
    def test_check_rule(self, kind, bound, value, expected):
        rule = ValidationRule(kind=kind, bound=bound, message="failed")
        assert RowCoercer.check_rule(value, rule) is expected
