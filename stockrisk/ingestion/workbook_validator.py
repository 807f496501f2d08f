# -*- coding: utf-8 -*-
"""
Workbook Validator - StockRisk Ingestion

Matches the sheet names found in a workbook against a category schema.
Matching is case-insensitive and alias-aware. The first missing required
sheet aborts the run; missing optional sheets only produce warnings.

Example:
    >>> from stockrisk.ingestion.workbook_validator import WorkbookValidator
    >>> validator = WorkbookValidator()
    >>> result = validator.validate(["FG Value", "Notes"], schema)
    >>> [(m.schema.canonical_name, m.sheet_name) for m in result.matches]
    [('FG value', 'FG Value')]

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from stockrisk.exceptions import NO_VALID_SHEETS, MissingSheetError
from stockrisk.models import SchemaConfig, SheetSchema

logger = logging.getLogger(__name__)

__all__ = ["SheetMatch", "WorkbookValidation", "WorkbookValidator"]


@dataclass(frozen=True)
class SheetMatch:
    """A schema sheet bound to the workbook sheet that satisfies it."""

    schema: SheetSchema
    sheet_name: str


@dataclass
class WorkbookValidation:
    """Outcome of a successful structure check."""

    matches: List[SheetMatch] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class WorkbookValidator:
    """Checks a workbook's sheet names against a SchemaConfig."""

    def validate(
        self,
        sheet_names: Sequence[str],
        schema: SchemaConfig,
    ) -> WorkbookValidation:
        """Bind schema sheets to workbook sheets.

        Args:
            sheet_names: Sheet names in workbook order.
            schema: Category schema.

        Returns:
            WorkbookValidation with matches in schema declaration order.

        Raises:
            MissingSheetError: If a required sheet is missing (message lists
                every available sheet) or no schema sheet matched at all.
        """
        available = [str(name) for name in sheet_names]
        claimed = set()
        result = WorkbookValidation()

        for sheet_schema in schema.sheets:
            found = next(
                (
                    name for name in available
                    if name not in claimed and sheet_schema.matches(name)
                ),
                None,
            )
            if found is not None:
                claimed.add(found)
                result.matches.append(SheetMatch(schema=sheet_schema, sheet_name=found))
                continue

            if not sheet_schema.optional:
                logger.warning(
                    "Required sheet '%s' missing; available: %s",
                    sheet_schema.canonical_name, available,
                )
                raise MissingSheetError(
                    f'Required sheet "{sheet_schema.canonical_name}" not found. '
                    f"Available sheets: {', '.join(available)}",
                    context={
                        "missing_sheet": sheet_schema.canonical_name,
                        "available_sheets": available,
                    },
                )
            result.warnings.append(
                f'Optional sheet "{sheet_schema.canonical_name}" not found'
            )

        if not result.matches:
            raise MissingSheetError(
                NO_VALID_SHEETS, context={"available_sheets": available},
            )

        logger.info(
            "Workbook structure valid: matched=%s, warnings=%d",
            [m.sheet_name for m in result.matches], len(result.warnings),
        )
        return result
