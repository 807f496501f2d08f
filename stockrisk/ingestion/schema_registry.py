# -*- coding: utf-8 -*-
"""
Schema Registry - StockRisk Ingestion

Declarative description of the sheets and columns expected for each upload
category, with aliases, value types and validation rules. Schemas are plain
Pydantic data so they can be serialised to JSON, reviewed, versioned and
swapped without code changes.

Built-in schemas:
    - inventory: "FG value" (finished goods) and "RPM" (raw & packing
      materials, optional)
    - osr: "OSR Main Sheet HC" and "OSR Summary"

Example:
    >>> from stockrisk.ingestion.schema_registry import get_registry
    >>> registry = get_registry()
    >>> schema = registry.get("inventory")
    >>> registry.find_sheet("inventory", "finished goods").canonical_name
    'FG value'

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from stockrisk.exceptions import ConfigurationError
from stockrisk.models import (
    ColumnSchema,
    FileCategory,
    RuleKind,
    SchemaConfig,
    SheetSchema,
    ValidationRule,
    ValueType,
)

logger = logging.getLogger(__name__)

__all__ = [
    "SchemaRegistry",
    "INVENTORY_SCHEMA",
    "OSR_SCHEMA",
    "get_registry",
    "reset_registry",
]


# ---------------------------------------------------------------------------
# Column builders
# ---------------------------------------------------------------------------


def _text(name: str, aliases: List[str], message: str) -> ColumnSchema:
    return ColumnSchema(
        canonical_name=name,
        aliases=aliases,
        value_type=ValueType.STRING,
        required=True,
        rules=[ValidationRule(kind=RuleKind.MIN_LENGTH, bound=1, message=message)],
    )


def _amount(name: str, aliases: List[str], message: str) -> ColumnSchema:
    return ColumnSchema(
        canonical_name=name,
        aliases=aliases,
        value_type=ValueType.NUMBER,
        required=True,
        rules=[ValidationRule(kind=RuleKind.MIN, bound=0, message=message)],
    )


_MATERIAL_ALIASES = ["Material Code", "MaterialCode", "Code", "Item Code", "SKU"]
_DESCRIPTION_ALIASES = [
    "Material Description", "Item Description", "Product Description", "Desc",
]
_PLANT_ALIASES = [
    "Plant Code", "Site", "Facility", "Manufacturing Plant",
]
_QUANTITY_ALIASES = ["Stock Quantity", "Quantity", "Qty", "Stock Qty"]
_STOCK_VALUE_ALIASES = ["Stock Value", "Value", "Amount"]
_TOTAL_VALUE_ALIASES = ["Total Amount", "Final Value", "Grand Total"]


# ---------------------------------------------------------------------------
# Built-in schemas
# ---------------------------------------------------------------------------

INVENTORY_SCHEMA = SchemaConfig(
    category=FileCategory.INVENTORY,
    sheets=[
        SheetSchema(
            canonical_name="FG value",
            aliases=["FG", "Finished Goods", "FinishedGoods"],
            category=FileCategory.INVENTORY,
            columns=[
                _text(
                    "Pack Size(m.d.)",
                    ["Pack Size", "PackSize", "Pack", "Size"],
                    "Pack size cannot be empty",
                ),
                _text("Plant", _PLANT_ALIASES, "Plant cannot be empty"),
                _text(
                    "location",
                    ["Distribution Center", "DC", "Warehouse", "Storage"],
                    "Location cannot be empty",
                ),
                _text("Material", _MATERIAL_ALIASES, "Material code cannot be empty"),
                _text(
                    "Description",
                    _DESCRIPTION_ALIASES,
                    "Description cannot be empty",
                ),
                _amount(
                    "Closing Stock Quantity",
                    _QUANTITY_ALIASES,
                    "Quantity must be non-negative",
                ),
                _amount(
                    "Closing Stock Value",
                    _STOCK_VALUE_ALIASES,
                    "Value must be positive",
                ),
                _amount(
                    "Per Unit Value Moti",
                    ["Unit Value", "Per Unit Value", "Unit Price", "Price"],
                    "Unit value must be positive",
                ),
                _amount(
                    "Total Value",
                    _TOTAL_VALUE_ALIASES,
                    "Total value must be positive",
                ),
            ],
        ),
        SheetSchema(
            canonical_name="RPM",
            aliases=[
                "Raw Materials",
                "RawMaterials",
                "Raw Materials & Production Materials",
            ],
            category=FileCategory.INVENTORY,
            optional=True,
            columns=[
                _text("Material", _MATERIAL_ALIASES, "Material code cannot be empty"),
                _text(
                    "Description",
                    _DESCRIPTION_ALIASES,
                    "Description cannot be empty",
                ),
                _text(
                    "CAT",
                    ["Cat", "Category", "Material Category", "Type", "Classification"],
                    "Category cannot be empty",
                ),
                _text("Plant", _PLANT_ALIASES, "Plant cannot be empty"),
                _text(
                    "Material Type",
                    ["MaterialType", "Type", "Raw/Semi", "Classification"],
                    "Material type cannot be empty",
                ),
                _amount(
                    "Closing Stock Quantity",
                    _QUANTITY_ALIASES,
                    "Quantity must be non-negative",
                ),
                _amount(
                    "Closing Stock Value",
                    _STOCK_VALUE_ALIASES,
                    "Value must be positive",
                ),
                _text(
                    "Unit of Measure",
                    ["UoM", "Unit", "Measure", "Measurement Unit"],
                    "Unit of measure cannot be empty",
                ),
                _amount(
                    "Unit Price",
                    ["Price", "Cost per Unit", "Per Unit Cost"],
                    "Unit price must be positive",
                ),
                _amount(
                    "Total Value",
                    _TOTAL_VALUE_ALIASES,
                    "Total value must be positive",
                ),
            ],
        ),
    ],
)

OSR_SCHEMA = SchemaConfig(
    category=FileCategory.OSR,
    sheets=[
        SheetSchema(
            canonical_name="OSR Main Sheet HC",
            aliases=["OSR Main Sheet", "Main Sheet HC", "OSR Sheet", "Main OSR"],
            category=FileCategory.OSR,
            columns=[
                _text("Material", _MATERIAL_ALIASES, "Material code cannot be empty"),
                _text(
                    "Material Description",
                    ["Description", "Item Description", "Product Description", "Desc"],
                    "Material description cannot be empty",
                ),
                _text(
                    "Status",
                    ["Material Status", "Active Status", "State"],
                    "Status cannot be empty",
                ),
                _amount(
                    "Avg Unit Price (Rs)",
                    ["Unit Price", "Average Price", "Price", "Cost"],
                    "Price must be positive",
                ),
                _amount(
                    "Total OSR (Qty)",
                    ["OSR Qty", "Total OSR", "OSR Quantity", "Overstock Qty"],
                    "OSR quantity must be non-negative",
                ),
                _amount(
                    "Total OSR Value PKR",
                    ["OSR Value", "Total OSR Value", "Overstock Value"],
                    "OSR value must be positive",
                ),
                _amount(
                    "Residual (Qnty) >26 weeks",
                    ["Residual >26 weeks", "Long Term Residual", "Old Stock"],
                    "Residual quantity must be non-negative",
                ),
            ],
        ),
        SheetSchema(
            canonical_name="OSR Summary",
            aliases=["Summary", "Executive Summary", "Dashboard"],
            category=FileCategory.OSR,
            columns=[
                _amount(
                    "Total Book Stock",
                    ["Book Stock", "Total Stock", "Inventory Value"],
                    "Stock value must be positive",
                ),
                _amount(
                    "Over Stock",
                    ["Overstock", "Excess Stock", "Surplus"],
                    "Overstock must be non-negative",
                ),
                _amount(
                    "Excess Stock %",
                    ["Overstock %", "Excess %", "OSR %"],
                    "Percentage must be non-negative",
                ),
            ],
        ),
    ],
)

_BUILTIN_SCHEMAS: Dict[FileCategory, SchemaConfig] = {
    FileCategory.INVENTORY: INVENTORY_SCHEMA,
    FileCategory.OSR: OSR_SCHEMA,
}


# ---------------------------------------------------------------------------
# SchemaRegistry
# ---------------------------------------------------------------------------


class SchemaRegistry:
    """Per-category schema lookup shared read-only across runs.

    Schemas are frozen models, so handing the same instance to concurrent
    runs is safe. ``register`` swaps a whole category atomically.

    Attributes:
        _schemas: Mapping of category to SchemaConfig.
        _lock: Threading lock guarding registration.
    """

    def __init__(
        self,
        schemas: Optional[Dict[FileCategory, SchemaConfig]] = None,
    ) -> None:
        self._schemas: Dict[FileCategory, SchemaConfig] = dict(
            schemas if schemas is not None else _BUILTIN_SCHEMAS
        )
        self._lock = threading.Lock()
        logger.info(
            "SchemaRegistry initialised: categories=%s",
            [c.value for c in self._schemas],
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, category: Union[str, FileCategory]) -> SchemaConfig:
        """Return the schema registered for a category.

        Raises:
            ConfigurationError: If the category is unknown or unregistered.
        """
        key = self._category(category)
        with self._lock:
            schema = self._schemas.get(key)
        if schema is None:
            raise ConfigurationError(
                f"No schema registered for category '{key.value}'",
                context={"category": key.value},
            )
        return schema

    def categories(self) -> List[FileCategory]:
        with self._lock:
            return list(self._schemas)

    def find_sheet(
        self,
        category: Union[str, FileCategory],
        sheet_name: str,
    ) -> Optional[SheetSchema]:
        """Return the first sheet schema matching a sheet name, if any."""
        for sheet in self.get(category).sheets:
            if sheet.matches(sheet_name):
                return sheet
        return None

    @staticmethod
    def find_column(sheet: SheetSchema, header: str) -> Optional[ColumnSchema]:
        """Return the first column schema matching a header, if any."""
        for column in sheet.columns:
            if column.matches(header):
                return column
        return None

    def expected_sheet_names(self, category: Union[str, FileCategory]) -> List[str]:
        return [sheet.canonical_name for sheet in self.get(category).sheets]

    def expected_columns(self, category: Union[str, FileCategory]) -> List[str]:
        """Union of canonical column names across a category's sheets, in order."""
        names: List[str] = []
        for sheet in self.get(category).sheets:
            for column in sheet.columns:
                if column.canonical_name not in names:
                    names.append(column.canonical_name)
        return names

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, schema: SchemaConfig) -> None:
        """Register (or replace) the schema for ``schema.category``.

        Raises:
            ConfigurationError: If a sheet's category differs from the schema's.
        """
        for sheet in schema.sheets:
            if sheet.category != schema.category:
                raise ConfigurationError(
                    f"Sheet '{sheet.canonical_name}' is declared as "
                    f"'{sheet.category.value}' inside a "
                    f"'{schema.category.value}' schema",
                    context={"sheet": sheet.canonical_name},
                )
        with self._lock:
            self._schemas[schema.category] = schema
        logger.info(
            "Registered schema: category=%s, version=%s, sheets=%d",
            schema.category.value, schema.version, len(schema.sheets),
        )

    def with_overrides(
        self,
        category: Union[str, FileCategory],
        **overrides: Any,
    ) -> SchemaConfig:
        """Return a copy of a category's schema with top-level fields replaced.

        Example:
            >>> registry.with_overrides("osr", max_file_size=10 * 1024 * 1024)
        """
        base = self.get(category).model_dump()
        base.update(overrides)
        try:
            return SchemaConfig.model_validate(base)
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid schema override: {exc.errors()[0]['msg']}",
                context={"overrides": sorted(overrides)},
            ) from exc

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_json(self, category: Union[str, FileCategory], indent: int = 2) -> str:
        return self.get(category).model_dump_json(indent=indent)

    def load_json(self, text: str) -> List[SchemaConfig]:
        """Register schemas from JSON text.

        Accepts a single schema object or a list of schema objects.

        Returns:
            The registered schemas.

        Raises:
            ConfigurationError: If the text is not a valid schema document.
        """
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(
                f"Schema document is not valid JSON: {exc.msg}",
            ) from exc

        documents = payload if isinstance(payload, list) else [payload]
        loaded: List[SchemaConfig] = []
        for document in documents:
            try:
                loaded.append(SchemaConfig.model_validate(document))
            except ValidationError as exc:
                raise ConfigurationError(
                    f"Invalid schema document: {exc.errors()[0]['msg']}",
                    context={"errors": exc.error_count()},
                ) from exc

        for schema in loaded:
            self.register(schema)
        return loaded

    def load_file(self, path: Union[str, Path]) -> List[SchemaConfig]:
        """Register schemas from a JSON file."""
        path = Path(path)
        if not path.is_file():
            raise ConfigurationError(
                f"Schema file not found: {path}", context={"path": str(path)},
            )
        logger.info("Loading schema file %s", path)
        return self.load_json(path.read_text(encoding="utf-8"))

    @staticmethod
    def _category(category: Union[str, FileCategory]) -> FileCategory:
        try:
            return FileCategory(category)
        except ValueError as exc:
            raise ConfigurationError(
                f"Unknown file category '{category}'",
                context={"allowed": [c.value for c in FileCategory]},
            ) from exc


# ---------------------------------------------------------------------------
# Default registry
# ---------------------------------------------------------------------------

_registry_instance: Optional[SchemaRegistry] = None
_registry_lock = threading.Lock()


def get_registry() -> SchemaRegistry:
    """Return the process-wide registry.

    On first access the built-in schemas are loaded, then replaced by the
    file named in ``StockRiskConfig.schema_path`` when one is configured.
    """
    global _registry_instance
    if _registry_instance is None:
        with _registry_lock:
            if _registry_instance is None:
                from stockrisk.config import get_config

                registry = SchemaRegistry()
                schema_path = get_config().schema_path
                if schema_path:
                    registry.load_file(schema_path)
                _registry_instance = registry
    return _registry_instance


def reset_registry() -> None:
    """Drop the process-wide registry (next access rebuilds it)."""
    global _registry_instance
    with _registry_lock:
        _registry_instance = None
