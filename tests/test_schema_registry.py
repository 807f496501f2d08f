# -*- coding: utf-8 -*-
"""Tests for schema models and the SchemaRegistry."""

import pytest
from pydantic import ValidationError

from stockrisk.config import StockRiskConfig, set_config
from stockrisk.exceptions import ConfigurationError
from stockrisk.ingestion.schema_registry import (
    INVENTORY_SCHEMA,
    OSR_SCHEMA,
    SchemaRegistry,
    get_registry,
)
from stockrisk.models import (
    ColumnSchema,
    FileCategory,
    RuleKind,
    SchemaConfig,
    SheetSchema,
    ValidationRule,
)


class TestSchemaModels:
    """Validation of the declarative schema models."""

    def test_aliases_are_deduplicated(self):
        """Blank and case-duplicate aliases are dropped."""
        column = ColumnSchema(canonical_name="Qty", aliases=["Quantity", "QUANTITY", " ", "Q"])
        assert column.aliases == ["Quantity", "Q"]

    def test_matches_is_case_insensitive(self):
        sheet = INVENTORY_SCHEMA.sheets[0]
        assert sheet.matches("fg VALUE")
        assert sheet.matches("  Finished Goods ")
        assert not sheet.matches("Finished")

    def test_rule_bound_checked(self):
        """Rule bounds must fit the rule kind."""
        with pytest.raises(ValidationError):
            ValidationRule(kind=RuleKind.REGEX, bound="[unclosed", message="bad")
        with pytest.raises(ValidationError):
            ValidationRule(kind=RuleKind.MIN_LENGTH, bound=-1, message="bad")
        with pytest.raises(ValidationError):
            ValidationRule(kind=RuleKind.ONE_OF, bound=[], message="bad")

    def test_schema_requires_sheets(self):
        with pytest.raises(ValidationError):
            SchemaConfig(category=FileCategory.OSR, sheets=[])

    def test_extensions_normalised(self):
        schema = SchemaConfig(
            category=FileCategory.OSR,
            allowed_extensions=["XLSX", ".xlsx", "xls"],
            sheets=OSR_SCHEMA.sheets,
        )
        assert schema.allowed_extensions == [".xlsx", ".xls"]

    def test_schemas_are_frozen(self):
        with pytest.raises(ValidationError):
            INVENTORY_SCHEMA.version = "2.0.0"


class TestSchemaRegistry:
    """Lookup, registration and serialisation."""

    def test_builtin_categories(self, registry):
        assert registry.get("inventory") is INVENTORY_SCHEMA
        assert registry.get(FileCategory.OSR) is OSR_SCHEMA
        assert set(registry.categories()) == {FileCategory.INVENTORY, FileCategory.OSR}

    def test_unknown_category(self, registry):
        with pytest.raises(ConfigurationError, match="Unknown file category"):
            registry.get("payroll")

    def test_unregistered_category(self):
        registry = SchemaRegistry(schemas={})
        with pytest.raises(ConfigurationError, match="No schema registered"):
            registry.get("osr")

    def test_find_sheet_by_alias(self, registry):
        assert registry.find_sheet("inventory", "finished goods").canonical_name == "FG value"
        assert registry.find_sheet("inventory", "raw materials").canonical_name == "RPM"
        assert registry.find_sheet("inventory", "Notes") is None

    def test_find_column(self, registry):
        fg = registry.find_sheet("inventory", "FG value")
        assert SchemaRegistry.find_column(fg, "sku").canonical_name == "Material"
        assert SchemaRegistry.find_column(fg, "Remarks") is None

    def test_expected_names(self, registry):
        assert registry.expected_sheet_names("osr") == ["OSR Main Sheet HC", "OSR Summary"]
        columns = registry.expected_columns("inventory")
        assert columns[0] == "Pack Size(m.d.)"
        assert "Unit of Measure" in columns
        assert len(columns) == len(set(columns))

    def test_rpm_is_optional(self):
        rpm = INVENTORY_SCHEMA.sheets[1]
        assert rpm.canonical_name == "RPM"
        assert rpm.optional is True

    def test_with_overrides(self, registry):
        """Overrides return a new schema and leave the registered one untouched."""
        schema = registry.with_overrides("osr", max_file_size=1024, processing_timeout=5)

        assert schema.max_file_size == 1024
        assert schema.processing_timeout == 5
        assert registry.get("osr").max_file_size == 100 * 1024 * 1024

    def test_invalid_override(self, registry):
        with pytest.raises(ConfigurationError, match="Invalid schema override"):
            registry.with_overrides("osr", max_file_size=0)

    def test_register_rejects_mixed_categories(self, registry):
        schema = SchemaConfig(category=FileCategory.OSR, sheets=INVENTORY_SCHEMA.sheets)
        with pytest.raises(ConfigurationError, match="inside a 'osr' schema"):
            registry.register(schema)

    def test_json_document_reloads(self, registry):
        """An exported schema can be loaded into another registry."""
        other = SchemaRegistry(schemas={})
        loaded = other.load_json(registry.to_json("osr"))

        assert len(loaded) == 1
        assert other.get("osr") == OSR_SCHEMA

    def test_load_json_list(self):
        custom = SchemaConfig(
            category=FileCategory.INVENTORY,
            version="2.0.0",
            sheets=[
                SheetSchema(
                    canonical_name="Stock",
                    category=FileCategory.INVENTORY,
                    columns=[ColumnSchema(canonical_name="Material")],
                )
            ],
        )
        registry = SchemaRegistry()
        registry.load_json(f"[{custom.model_dump_json()}]")

        assert registry.get("inventory").version == "2.0.0"
        assert registry.expected_sheet_names("inventory") == ["Stock"]

    def test_load_json_errors(self, registry):
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            registry.load_json("{not json")
        with pytest.raises(ConfigurationError, match="Invalid schema document"):
            registry.load_json('{"category": "osr", "sheets": []}')

    def test_load_missing_file(self, registry, tmp_path):
        with pytest.raises(ConfigurationError, match="Schema file not found"):
            registry.load_file(tmp_path / "missing.json")


class TestDefaultRegistry:
    """Process-wide registry."""

    def test_singleton(self):
        assert get_registry() is get_registry()

    def test_schema_path_replaces_builtin(self, tmp_path):
        """A configured schema file replaces the built-in category."""
        custom = OSR_SCHEMA.model_copy(update={"version": "9.9.9"})
        path = tmp_path / "osr.json"
        path.write_text(custom.model_dump_json(), encoding="utf-8")
        set_config(StockRiskConfig(schema_path=str(path)))

        assert get_registry().get("osr").version == "9.9.9"
        assert get_registry().get("inventory") is INVENTORY_SCHEMA
