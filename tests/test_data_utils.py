# -*- coding: utf-8 -*-
"""Tests for analytics data utilities."""

import pytest

from stockrisk.analytics.data_utils import (
    PLANT_KEYS,
    VALUE_KEYS,
    calculate_hhi,
    clamp,
    coefficient_of_variation,
    extract_numeric,
    extract_string,
    filter_valid_data,
    first_number,
    first_string,
    grade_to_score,
    lookup,
)
from stockrisk.analytics.models import EfficiencyGrade


class TestExtraction:
    """Lenient field extraction."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (12, 12.0),
            ("1,200", 1200.0),
            ("$5.5", 5.5),
            ("abc", 0.0),
            (None, 0.0),
            (True, 0.0),
            (float("nan"), 0.0),
        ],
    )
    def test_extract_numeric(self, value, expected):
        assert extract_numeric(value) == expected

    def test_extract_string(self):
        assert extract_string("  North ") == "North"
        assert extract_string(42) == ""
        assert extract_string(None, "n/a") == "n/a"

    def test_lookup_is_case_insensitive(self):
        row = {"Plant": "P100", "value": 3}
        assert lookup(row, "plant") == "P100"
        assert lookup(row, "value") == 3
        assert lookup(row, "region") is None

    def test_first_number_skips_zero(self):
        row = {"value": 0, "Closing Stock Value": "2,500"}
        assert first_number(row, VALUE_KEYS) == 2500.0
        assert first_number({}, VALUE_KEYS, default=1.0) == 1.0

    def test_first_string(self):
        row = {"plant": "  ", "Location": "Lahore"}
        assert first_string(row, PLANT_KEYS) == "Lahore"

    def test_filter_valid_data(self):
        rows = [
            {"plant": "P1", "value": 10},
            {"plant": "P2"},
            {"facility": "P3", "amount": 5},
            {"value": 1},
        ]
        valid = filter_valid_data(rows, [PLANT_KEYS, VALUE_KEYS])
        assert [r.get("plant", r.get("facility")) for r in valid] == ["P1", "P3"]


class TestStatistics:
    def test_hhi(self):
        assert calculate_hhi([50.0, 50.0]) == pytest.approx(5000.0)
        assert calculate_hhi([10.0]) == pytest.approx(10000.0)
        assert calculate_hhi([]) == 0.0

    def test_coefficient_of_variation(self):
        assert coefficient_of_variation([10.0, 10.0]) == 0.0
        assert coefficient_of_variation([5.0, 15.0]) == pytest.approx(0.5)
        assert coefficient_of_variation([]) == 0.0

    def test_clamp(self):
        assert clamp(-3) == 0.0
        assert clamp(140) == 100.0
        assert clamp(5, 1, 10) == 5

    def test_grade_to_score(self):
        assert grade_to_score("A") == 95.0
        assert grade_to_score(EfficiencyGrade.F) == 45.0
        assert grade_to_score("Z") == 50.0
        assert grade_to_score(None) == 50.0
