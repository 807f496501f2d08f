# -*- coding: utf-8 -*-
"""
Row Coercer - StockRisk Ingestion

Converts raw cell values to the declared column type and applies the
column's validation rules in order. The first failing rule invalidates the
field only; callers omit the field and keep processing the rest of the row.

Coercion:
    - number: int/float (not bool) if finite; strings lose whitespace,
      thousands separators, currency symbols/codes and a trailing ``%``
    - string: ``None`` becomes ``""``; integral floats drop ``.0``
    - date: date/datetime objects, ISO-8601 strings, or Excel serial numbers

Example:
    >>> from stockrisk.ingestion.row_coercer import RowCoercer
    >>> coercer = RowCoercer()
    >>> coercer.coerce("$1,000", column, row_number=2).value
    1000.0

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional

from stockrisk.models import ColumnSchema, RuleKind, ValidationRule, ValueType

logger = logging.getLogger(__name__)

__all__ = ["CoercionResult", "RowCoercer", "parse_number"]

# Excel's day zero (accounts for the 1900 leap-year bug)
_EXCEL_EPOCH = datetime(1899, 12, 30)
# Largest serial Excel accepts (9999-12-31)
_EXCEL_MAX_SERIAL = 2958465

_CURRENCY_CODES = re.compile(r"^(?:rs\.?|pkr|usd|eur|gbp|inr)\s*|\s*(?:rs\.?|pkr|usd|eur|gbp|inr)$", re.IGNORECASE)
_STRIP_CHARS = re.compile(r"[,\s$€£¥₹]")


def parse_number(text: str) -> Optional[float]:
    """Parse a human-formatted numeric string, or return None.

    >>> parse_number("1,234.56")
    1234.56
    >>> parse_number("$1,000")
    1000.0
    """
    cleaned = _CURRENCY_CODES.sub("", text.strip())
    cleaned = _STRIP_CHARS.sub("", cleaned)
    if cleaned.endswith("%"):
        cleaned = cleaned[:-1]
    # Accounting negatives: (1,234)
    if cleaned.startswith("(") and cleaned.endswith(")"):
        cleaned = f"-{cleaned[1:-1]}"
    if not cleaned:
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


@dataclass(frozen=True)
class CoercionResult:
    """Outcome of coercing one cell."""

    ok: bool
    value: Any = None
    error: Optional[str] = None
    rule: Optional[ValidationRule] = None


class RowCoercer:
    """Type coercion and rule evaluation for single cells.

    Attributes:
        trim_whitespace: Strip surrounding whitespace from string values.
    """

    def __init__(self, trim_whitespace: bool = True) -> None:
        self.trim_whitespace = trim_whitespace

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def coerce(self, value: Any, column: ColumnSchema, row_number: int) -> CoercionResult:
        """Coerce a cell and apply the column's rules.

        Args:
            value: Raw cell value.
            column: Target column schema.
            row_number: 1-based worksheet row used in messages.

        Returns:
            CoercionResult; ``ok`` is False on type or rule failure.
        """
        try:
            converted = self.convert(value, column.value_type)
        except (TypeError, ValueError, OverflowError):
            return CoercionResult(
                ok=False,
                error=(
                    f'Invalid data type in column "{column.canonical_name}", '
                    f"row {row_number}: Expected {column.value_type.value}"
                ),
            )

        for rule in column.rules:
            if not self.check_rule(converted, rule):
                return CoercionResult(
                    ok=False,
                    value=converted,
                    rule=rule,
                    error=(
                        f'Validation failed for column "{column.canonical_name}", '
                        f"row {row_number}: {rule.message}"
                    ),
                )
        return CoercionResult(ok=True, value=converted)

    def convert(self, value: Any, value_type: ValueType) -> Any:
        """Convert a raw value to ``value_type``.

        Raises:
            ValueError: If the value cannot represent the type.
        """
        if value_type == ValueType.NUMBER:
            return self._to_number(value)
        if value_type == ValueType.DATE:
            return self._to_date(value)
        return self._to_string(value)

    @staticmethod
    def check_rule(value: Any, rule: ValidationRule) -> bool:
        """Evaluate one rule against an already-coerced value."""
        is_number = isinstance(value, (int, float)) and not isinstance(value, bool)
        if rule.kind == RuleKind.MIN_LENGTH:
            return isinstance(value, str) and len(value) >= rule.bound
        if rule.kind == RuleKind.MAX_LENGTH:
            return isinstance(value, str) and len(value) <= rule.bound
        if rule.kind == RuleKind.MIN:
            return is_number and value >= rule.bound
        if rule.kind == RuleKind.MAX:
            return is_number and value <= rule.bound
        if rule.kind == RuleKind.REGEX:
            return isinstance(value, str) and re.search(rule.bound, value) is not None
        if rule.kind == RuleKind.ONE_OF:
            return str(value) in [str(choice) for choice in rule.bound]
        return True

    # ------------------------------------------------------------------
    # Converters
    # ------------------------------------------------------------------

    @staticmethod
    def _to_number(value: Any) -> float:
        if isinstance(value, bool):
            raise ValueError("boolean is not a number")
        if isinstance(value, (int, float)):
            number = float(value)
            if not math.isfinite(number):
                raise ValueError("non-finite number")
            return number
        if isinstance(value, str):
            number = parse_number(value)
            if number is None:
                raise ValueError(f"unparsable number: {value!r}")
            return number
        raise ValueError(f"unsupported number cell: {type(value).__name__}")

    def _to_string(self, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, float) and value.is_integer():
            text = str(int(value))
        elif isinstance(value, datetime):
            text = value.isoformat()
        else:
            text = str(value)
        return text.strip() if self.trim_whitespace else text

    @staticmethod
    def _to_date(value: Any) -> datetime:
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        if isinstance(value, bool):
            raise ValueError("boolean is not a date")
        if isinstance(value, (int, float)):
            if not 0 <= value <= _EXCEL_MAX_SERIAL:
                raise ValueError(f"serial date out of range: {value}")
            return _EXCEL_EPOCH + timedelta(days=float(value))
        if isinstance(value, str):
            text = value.strip()
            if text.endswith("Z"):
                text = f"{text[:-1]}+00:00"
            return datetime.fromisoformat(text)
        raise ValueError(f"unsupported date cell: {type(value).__name__}")
