# -*- coding: utf-8 -*-
"""
StockRisk Ingestion Data Models

Pydantic v2 data models for the workbook ingestion pipeline. Schema models
are frozen so a loaded schema stays read-only for the life of a run, and
``NormalizedSheet`` is frozen once the sheet processor emits it.

Enumerations:
    - FileCategory: Upload categories (inventory, osr)
    - ValueType: Declared column value types
    - RuleKind: Validation rule kinds
    - ErrorKind: Processing error taxonomy
    - ProcessingPhase: Progress phases in emission order

Schema Models:
    - ValidationRule, ColumnSchema, SheetSchema, SchemaConfig

Run Models:
    - ProcessingOptions, NormalizedSheet, ProgressEvent
    - ProcessingError, ProcessingStats, ProcessedFileData, ProcessingResult

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def _fold(name: str) -> str:
    """Case-fold a sheet/column label for comparison."""
    return str(name).strip().casefold()


def _dedupe_labels(labels: List[str]) -> List[str]:
    """Drop blank and case-duplicate labels, keeping first occurrence."""
    seen = set()
    result: List[str] = []
    for label in labels:
        key = _fold(label)
        if key and key not in seen:
            seen.add(key)
            result.append(label)
    return result


# =============================================================================
# Enumerations
# =============================================================================


class FileCategory(str, Enum):
    """Upload categories selected by the caller before submission."""

    INVENTORY = "inventory"
    OSR = "osr"


class ValueType(str, Enum):
    """Declared value type of a schema column."""

    STRING = "string"
    NUMBER = "number"
    DATE = "date"


class RuleKind(str, Enum):
    """Validation rule kinds, evaluated in declaration order."""

    MIN_LENGTH = "minLength"
    MAX_LENGTH = "maxLength"
    MIN = "min"
    MAX = "max"
    REGEX = "regex"
    ONE_OF = "oneOf"


class ErrorKind(str, Enum):
    """Processing error taxonomy."""

    SIZE = "size"
    FORMAT = "format"
    SHEETS = "sheets"
    COLUMNS = "columns"
    PARSING = "parsing"
    VALIDATION = "validation"


class ProcessingPhase(str, Enum):
    """Progress phases, declared in emission order."""

    READING = "reading"
    PARSING = "parsing"
    VALIDATING = "validating"
    PROCESSING = "processing"
    COMPLETE = "complete"

    @property
    def order(self) -> int:
        return list(ProcessingPhase).index(self)


# =============================================================================
# Schema Models
# =============================================================================


class ValidationRule(BaseModel):
    """A single declarative validation rule applied after coercion."""

    kind: RuleKind = Field(..., description="Rule kind")
    bound: Any = Field(..., description="Rule bound (length, limit, pattern or choices)")
    message: str = Field(..., description="Message reported when the rule fails")

    model_config = {"extra": "forbid", "frozen": True}

    @model_validator(mode="after")
    def validate_bound(self) -> ValidationRule:
        """Check that the bound fits the rule kind."""
        if self.kind in (RuleKind.MIN_LENGTH, RuleKind.MAX_LENGTH):
            if isinstance(self.bound, bool) or not isinstance(self.bound, int) or self.bound < 0:
                raise ValueError(f"{self.kind.value} bound must be a non-negative integer")
        elif self.kind in (RuleKind.MIN, RuleKind.MAX):
            if isinstance(self.bound, bool) or not isinstance(self.bound, (int, float)):
                raise ValueError(f"{self.kind.value} bound must be numeric")
        elif self.kind == RuleKind.REGEX:
            if not isinstance(self.bound, str):
                raise ValueError("regex bound must be a pattern string")
            try:
                re.compile(self.bound)
            except re.error as exc:
                raise ValueError(f"invalid regex bound: {exc}") from exc
        elif self.kind == RuleKind.ONE_OF:
            if not isinstance(self.bound, (list, tuple)) or not self.bound:
                raise ValueError("oneOf bound must be a non-empty list")
        return self

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        """Validate message is non-empty."""
        if not v or not v.strip():
            raise ValueError("message must be non-empty")
        return v


class ColumnSchema(BaseModel):
    """Expected column of a sheet, with aliases, type and rules."""

    canonical_name: str = Field(..., description="Name the column is stored under")
    aliases: List[str] = Field(
        default_factory=list, description="Alternate accepted header labels",
    )
    value_type: ValueType = Field(
        default=ValueType.STRING, description="Declared value type",
    )
    required: bool = Field(default=True, description="Column must be present")
    rules: List[ValidationRule] = Field(
        default_factory=list, description="Ordered validation rules",
    )

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("canonical_name")
    @classmethod
    def validate_canonical_name(cls, v: str) -> str:
        """Validate canonical_name is non-empty."""
        if not v or not v.strip():
            raise ValueError("canonical_name must be non-empty")
        return v

    @field_validator("aliases")
    @classmethod
    def validate_aliases(cls, v: List[str]) -> List[str]:
        """Drop blank and case-duplicate aliases, keeping first occurrence."""
        return _dedupe_labels(v)

    def matches(self, label: str) -> bool:
        """True when label equals the canonical name or an alias (case-insensitive)."""
        key = _fold(label)
        return key == _fold(self.canonical_name) or any(
            key == _fold(alias) for alias in self.aliases
        )


class SheetSchema(BaseModel):
    """Expected sheet of a workbook category."""

    canonical_name: str = Field(..., description="Name the sheet is stored under")
    aliases: List[str] = Field(
        default_factory=list, description="Alternate accepted sheet names",
    )
    category: FileCategory = Field(..., description="Category the sheet feeds")
    optional: bool = Field(default=False, description="Sheet may be absent")
    columns: List[ColumnSchema] = Field(
        default_factory=list, description="Ordered column definitions",
    )

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("canonical_name")
    @classmethod
    def validate_canonical_name(cls, v: str) -> str:
        """Validate canonical_name is non-empty."""
        if not v or not v.strip():
            raise ValueError("canonical_name must be non-empty")
        return v

    @field_validator("aliases")
    @classmethod
    def validate_aliases(cls, v: List[str]) -> List[str]:
        """Drop blank and case-duplicate aliases, keeping first occurrence."""
        return _dedupe_labels(v)

    def matches(self, sheet_name: str) -> bool:
        """True when sheet_name equals the canonical name or an alias (case-insensitive)."""
        key = _fold(sheet_name)
        return key == _fold(self.canonical_name) or any(
            key == _fold(alias) for alias in self.aliases
        )

    @property
    def column_names(self) -> List[str]:
        return [column.canonical_name for column in self.columns]


class SchemaConfig(BaseModel):
    """Declarative, serializable schema for one upload category."""

    category: FileCategory = Field(..., description="Upload category")
    version: str = Field(default="1.0.0", description="Schema version")
    max_file_size: int = Field(
        default=100 * 1024 * 1024, gt=0, description="Upload limit in bytes",
    )
    allowed_extensions: List[str] = Field(
        default_factory=lambda: [".xlsx", ".xls"],
        description="Accepted file extensions",
    )
    processing_timeout: float = Field(
        default=300.0, gt=0, description="Processing timeout in seconds",
    )
    sheets: List[SheetSchema] = Field(
        default_factory=list, description="Ordered sheet definitions",
    )

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("allowed_extensions")
    @classmethod
    def validate_allowed_extensions(cls, v: List[str]) -> List[str]:
        """Normalise extensions to lower case with a leading dot."""
        result: List[str] = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = f".{ext}"
            if ext not in result:
                result.append(ext)
        if not result:
            raise ValueError("allowed_extensions must be non-empty")
        return result

    @field_validator("sheets")
    @classmethod
    def validate_sheets(cls, v: List[SheetSchema]) -> List[SheetSchema]:
        """Validate sheets is non-empty."""
        if not v:
            raise ValueError("sheets must be non-empty")
        return v


# =============================================================================
# Run Models
# =============================================================================


class ProcessingOptions(BaseModel):
    """Per-run pipeline switches."""

    validate_columns: bool = Field(
        default=True, description="Fail when a required column is missing",
    )
    validate_data: bool = Field(
        default=True, description="Coerce and validate cell values",
    )
    skip_empty_rows: bool = Field(
        default=True, description="Drop rows whose cells are all blank",
    )
    trim_whitespace: bool = Field(
        default=True, description="Strip whitespace from string cells",
    )
    strict_validation: bool = Field(
        default=False,
        description="Escalate cell failures in required columns to errors",
    )

    model_config = {"extra": "forbid"}

    @classmethod
    def from_config(cls, config: Any) -> ProcessingOptions:
        """Build options from a StockRiskConfig."""
        return cls(
            validate_columns=config.validate_columns,
            validate_data=config.validate_data,
            skip_empty_rows=config.skip_empty_rows,
            trim_whitespace=config.trim_whitespace,
            strict_validation=config.strict_validation,
        )


class NormalizedSheet(BaseModel):
    """A validated, coerced sheet ready for the metrics engine."""

    name: str = Field(..., description="Canonical sheet name")
    source_name: str = Field(
        default="", description="Sheet tab name as found in the workbook",
    )
    category: FileCategory = Field(..., description="Category the sheet feeds")
    row_count: int = Field(default=0, ge=0, description="Number of output rows")
    column_count: int = Field(
        default=0, ge=0, description="Number of non-blank header cells",
    )
    columns: List[str] = Field(
        default_factory=list, description="Mapped canonical column names",
    )
    rows: List[Dict[str, Any]] = Field(
        default_factory=list, description="Records keyed by canonical column",
    )
    warnings: List[str] = Field(
        default_factory=list, description="Cell and column warnings",
    )

    model_config = {"extra": "forbid", "frozen": True}


class ProcessingError(BaseModel):
    """User-facing description of a failed run."""

    kind: ErrorKind = Field(..., description="Error category")
    message: str = Field(..., description="Human-readable message")
    details: Optional[Dict[str, Any]] = Field(
        None, description="Structured detail for diagnosis",
    )

    model_config = {"extra": "forbid"}

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        """Validate message is non-empty."""
        if not v or not v.strip():
            raise ValueError("message must be non-empty")
        return v


class ProgressEvent(BaseModel):
    """A single progress notification emitted during a run."""

    phase: ProcessingPhase = Field(..., description="Current phase")
    progress: float = Field(..., ge=0.0, le=100.0, description="Percent complete")
    message: str = Field(default="", description="Status message")
    current_sheet: Optional[str] = Field(None, description="Sheet being processed")
    total_sheets: Optional[int] = Field(None, ge=0, description="Matched sheets")
    processed_sheets: Optional[int] = Field(
        None, ge=0, description="Sheets finished so far",
    )

    model_config = {"extra": "forbid"}


class ProcessingStats(BaseModel):
    """Summary counters of a successful run."""

    total_rows: int = Field(default=0, ge=0)
    total_columns: int = Field(default=0, ge=0)
    processing_time_ms: float = Field(default=0.0, ge=0.0)
    sheets_processed: int = Field(default=0, ge=0)
    warning_count: int = Field(default=0, ge=0)
    validation_errors: int = Field(default=0, ge=0)

    model_config = {"extra": "forbid"}


class ProcessedFileData(BaseModel):
    """Payload of a successful run."""

    file_name: str = Field(..., description="Uploaded file name")
    file_size: int = Field(..., ge=0, description="File size in bytes")
    file_hash: str = Field(default="", description="SHA-256 of the raw bytes")
    category: FileCategory = Field(..., description="Category the file was processed as")
    processed_at: datetime = Field(
        default_factory=_utcnow, description="Processing timestamp",
    )
    sheets: List[NormalizedSheet] = Field(default_factory=list)
    detected_categories: List[FileCategory] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    def sheets_for(self, category: FileCategory) -> List[NormalizedSheet]:
        return [sheet for sheet in self.sheets if sheet.category == category]


class ProcessingResult(BaseModel):
    """Terminal outcome of a processing run."""

    success: bool = Field(..., description="True when data is present")
    data: Optional[ProcessedFileData] = Field(None)
    error: Optional[ProcessingError] = Field(None)
    warnings: List[str] = Field(default_factory=list)
    stats: Optional[ProcessingStats] = Field(None)

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def validate_outcome(self) -> ProcessingResult:
        """A successful result carries data, a failed one an error."""
        if self.success and self.data is None:
            raise ValueError("successful result requires data")
        if not self.success and self.error is None:
            raise ValueError("failed result requires an error")
        return self

    @classmethod
    def failure(
        cls,
        error: ProcessingError,
        warnings: Optional[List[str]] = None,
    ) -> ProcessingResult:
        return cls(success=False, error=error, warnings=list(warnings or []))


__all__ = [
    "FileCategory",
    "ValueType",
    "RuleKind",
    "ErrorKind",
    "ProcessingPhase",
    "ValidationRule",
    "ColumnSchema",
    "SheetSchema",
    "SchemaConfig",
    "ProcessingOptions",
    "NormalizedSheet",
    "ProcessingError",
    "ProgressEvent",
    "ProcessingStats",
    "ProcessedFileData",
    "ProcessingResult",
]
