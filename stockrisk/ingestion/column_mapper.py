# -*- coding: utf-8 -*-
"""
Column Mapper - StockRisk Ingestion

Resolves a sheet's header row to the column definitions of its sheet schema.
Each header goes to the first column, in schema declaration order, whose
canonical name or one of whose aliases matches it case-insensitively. A schema
column is claimed by at most one header.

Example:
    >>> from stockrisk.ingestion.column_mapper import ColumnMapper
    >>> mapper = ColumnMapper()
    >>> mapping = mapper.map_columns(["SKU", "Qty", "Notes"], sheet_schema)
    >>> mapping.columns
    ['Material', 'Closing Stock Quantity']

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from stockrisk.exceptions import MissingColumnError
from stockrisk.models import ColumnSchema, SheetSchema

logger = logging.getLogger(__name__)

__all__ = ["HeaderMatch", "SheetColumnMapping", "ColumnMapper", "header_text"]


def header_text(cell: Any) -> str:
    """Render a header cell as trimmed text ('' for blanks)."""
    if cell is None:
        return ""
    if isinstance(cell, float) and cell.is_integer():
        cell = int(cell)
    return str(cell).strip()


def _fold(text: str) -> str:
    return text.strip().casefold()


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HeaderMatch:
    """A header cell resolved to a schema column."""

    index: int
    header: str
    column: ColumnSchema
    strategy: str  # "exact" or "alias"


@dataclass
class SheetColumnMapping:
    """Header-to-column resolution for one sheet."""

    matches: List[HeaderMatch] = field(default_factory=list)
    headers: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def columns(self) -> List[str]:
        """Mapped canonical column names in header order."""
        return [m.column.canonical_name for m in self.matches]

    @property
    def present_headers(self) -> List[str]:
        return [h for h in self.headers if h]

    def column_for(self, index: int) -> Optional[ColumnSchema]:
        for match in self.matches:
            if match.index == index:
                return match.column
        return None

    def missing(self, sheet: SheetSchema) -> List[ColumnSchema]:
        mapped = set(self.columns)
        return [c for c in sheet.columns if c.canonical_name not in mapped]


# ---------------------------------------------------------------------------
# ColumnMapper
# ---------------------------------------------------------------------------


class ColumnMapper:
    """Maps header rows onto sheet schemas.

    Attributes:
        _lock: Threading lock for statistics.
        _stats: Mapping statistics counters.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stats: Dict[str, int] = {
            "headers_seen": 0,
            "exact_matches": 0,
            "alias_matches": 0,
            "duplicates": 0,
            "unmapped": 0,
        }

    def map_header(
        self,
        header: str,
        sheet: SheetSchema,
    ) -> Optional[Tuple[ColumnSchema, str]]:
        """Resolve one header to ``(column, strategy)`` or None."""
        key = _fold(header)
        if not key:
            return None

        # First column in declaration order wins; the label records how it matched.
        for column in sheet.columns:
            if column.matches(header):
                if key == _fold(column.canonical_name):
                    return column, "exact"
                return column, "alias"
        return None

    def map_columns(
        self,
        header_row: Sequence[Any],
        sheet: SheetSchema,
        validate: bool = True,
    ) -> SheetColumnMapping:
        """Resolve a header row against a sheet schema.

        Args:
            header_row: Raw header cells in column order.
            sheet: Sheet schema to resolve against.
            validate: Raise when a required column is unmatched.

        Returns:
            SheetColumnMapping with matches and warnings.

        Raises:
            MissingColumnError: If ``validate`` and a required column has
                no header; the message lists every present header.
        """
        start = time.monotonic()
        mapping = SheetColumnMapping(headers=[header_text(c) for c in header_row])
        claimed: Dict[str, str] = {}
        counts = {"exact": 0, "alias": 0, "duplicates": 0, "unmapped": 0}

        for index, header in enumerate(mapping.headers):
            if not header:
                continue
            resolved = self.map_header(header, sheet)
            if resolved is None:
                counts["unmapped"] += 1
                continue
            column, strategy = resolved
            owner = claimed.get(column.canonical_name)
            if owner is not None:
                counts["duplicates"] += 1
                mapping.warnings.append(
                    f'Column "{header}" duplicates "{owner}" for '
                    f'"{column.canonical_name}" and was ignored'
                )
                continue
            claimed[column.canonical_name] = header
            counts[strategy] += 1
            mapping.matches.append(
                HeaderMatch(index=index, header=header, column=column, strategy=strategy)
            )

        for column in mapping.missing(sheet):
            if column.required and validate:
                raise MissingColumnError(
                    f'Required column "{column.canonical_name}" not found in sheet '
                    f'"{sheet.canonical_name}". Available columns: '
                    f"{', '.join(mapping.present_headers)}",
                    context={
                        "sheet": sheet.canonical_name,
                        "missing_column": column.canonical_name,
                        "available_columns": mapping.present_headers,
                    },
                )
            if not column.required:
                mapping.warnings.append(
                    f'Optional column "{column.canonical_name}" not found'
                )

        with self._lock:
            self._stats["headers_seen"] += len(mapping.present_headers)
            self._stats["exact_matches"] += counts["exact"]
            self._stats["alias_matches"] += counts["alias"]
            self._stats["duplicates"] += counts["duplicates"]
            self._stats["unmapped"] += counts["unmapped"]

        logger.debug(
            "Mapped %d/%d headers for sheet '%s' (%.1f ms)",
            len(mapping.matches), len(mapping.present_headers),
            sheet.canonical_name, (time.monotonic() - start) * 1000,
        )
        return mapping

    def get_statistics(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._stats)
