# -*- coding: utf-8 -*-
"""
Data Utilities - StockRisk Analytics

Row-level helpers shared by the metric calculators: case-insensitive field
lookup over candidate keys, lenient numeric/text extraction, concentration
statistics and score helpers.

Rows are the ``{canonical column: value}`` records of a ``NormalizedSheet``.
Lookups try each candidate key in order and return the first value that is
present and non-empty (text) or non-zero (numbers), so a sheet exported
with different but recognisable headers still feeds the metrics.

Example:
    >>> first_number({"Closing Stock Value": "1,200"}, VALUE_KEYS)
    1200.0
    >>> calculate_hhi([50.0, 50.0])
    5000.0

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

__all__ = [
    "VALUE_KEYS",
    "PLANT_KEYS",
    "UTILIZATION_KEYS",
    "THROUGHPUT_KEYS",
    "REGION_KEYS",
    "REGION_VALUE_KEYS",
    "GRADE_SCORES",
    "extract_numeric",
    "extract_string",
    "lookup",
    "first_number",
    "first_string",
    "has_value",
    "filter_valid_data",
    "calculate_hhi",
    "coefficient_of_variation",
    "round2",
    "clamp",
    "grade_to_score",
]

# ---------------------------------------------------------------------------
# Candidate keys
# ---------------------------------------------------------------------------

VALUE_KEYS = ("value", "amount", "total", "Closing Stock Value", "Total Value")
PLANT_KEYS = ("plant", "location", "facility")
UTILIZATION_KEYS = ("utilization", "efficiency", "capacity_used")
THROUGHPUT_KEYS = ("throughput", "output", "production")
REGION_KEYS = ("region", "location", "country", "state")
REGION_VALUE_KEYS = ("value", "amount", "Closing Stock Value", "Total Value")

GRADE_SCORES: Dict[str, float] = {"A": 95.0, "B": 85.0, "C": 75.0, "D": 65.0, "F": 45.0}


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def extract_numeric(value: Any) -> float:
    """Lenient number: numbers as-is, strings without ``,``/``$``, else 0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    if isinstance(value, str):
        try:
            number = float(value.replace(",", "").replace("$", "").strip())
        except ValueError:
            return 0.0
        return number if math.isfinite(number) else 0.0
    return 0.0


def extract_string(value: Any, fallback: str = "") -> str:
    """Stripped text for string values, ``fallback`` otherwise."""
    return value.strip() if isinstance(value, str) else fallback


def lookup(row: Mapping[str, Any], key: str) -> Any:
    """Case-insensitive field access; exact key wins over folded match."""
    if key in row:
        return row[key]
    folded = key.strip().lower()
    for name, value in row.items():
        if name.strip().lower() == folded:
            return value
    return None


def first_number(row: Mapping[str, Any], keys: Sequence[str], default: float = 0.0) -> float:
    """First non-zero numeric value among ``keys``, else ``default``."""
    for key in keys:
        number = extract_numeric(lookup(row, key))
        if number:
            return number
    return default


def first_string(row: Mapping[str, Any], keys: Sequence[str], default: str = "") -> str:
    """First non-empty text value among ``keys``, else ``default``."""
    for key in keys:
        text = extract_string(lookup(row, key))
        if text:
            return text
    return default


def has_value(row: Mapping[str, Any], keys: Sequence[str]) -> bool:
    """True if any of ``keys`` holds a non-empty value."""
    for key in keys:
        value = lookup(row, key)
        if value is not None and value != "":
            return True
    return False


def filter_valid_data(
    rows: Iterable[Mapping[str, Any]],
    required: Sequence[Sequence[str]],
) -> List[Mapping[str, Any]]:
    """Keep rows holding a value for every group of candidate keys.

    Args:
        rows: Normalized records.
        required: One candidate-key group per required field.
    """
    return [row for row in rows if all(has_value(row, group) for group in required)]


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


def calculate_hhi(values: Sequence[float]) -> float:
    """Herfindahl-Hirschman Index on the 0-10000 scale."""
    total = sum(values)
    if total == 0:
        return 0.0
    return sum((value / total) ** 2 for value in values) * 10000


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Population standard deviation over mean; 0 for a non-positive mean."""
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    if mean <= 0:
        return 0.0
    variance = sum((value - mean) ** 2 for value in values) / len(values)
    return math.sqrt(variance) / mean


def round2(value: float) -> float:
    return round(value, 2)


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def grade_to_score(grade: Optional[str]) -> float:
    """Efficiency grade to score: A=95, B=85, C=75, D=65, F=45, other 50."""
    if grade is None:
        return 50.0
    return GRADE_SCORES.get(str(getattr(grade, "value", grade)), 50.0)
