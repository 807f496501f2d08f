# -*- coding: utf-8 -*-
"""
StockRisk Workbook Analytics
============================

This package ingests inventory and stock-risk (OSR) spreadsheet workbooks,
validates them against a declarative schema, coerces raw cells into typed
records and derives business-health metrics. It supports:

- Excel (.xlsx via openpyxl, .xls via xlrd) ingestion with a size/extension gate
- Case-insensitive, alias-aware sheet and column matching
- Typed cell coercion with ordered validation rules (skip-field-not-row)
- Ordered, monotonic progress events and an async processor with timeout
- Inventory, OSR and combined metrics with recommended actions
- In-memory data store with SHA-256 deduplication and provenance trail
- Prometheus metrics for observability
- Thread-safe configuration with STOCKRISK_ env prefix

Key Components:
    - config: StockRiskConfig with STOCKRISK_ env prefix
    - models: Pydantic v2 schema, sheet and result models
    - exceptions: StockRiskException hierarchy
    - ingestion: schema registry, reader, validator, mapper, coercer,
      sheet processor, pipeline and file processor
    - analytics: inventory, OSR and combined calculators, MetricsEngine
    - storage: DataStore protocol and InMemoryDataStore
    - service: StockRiskService facade
    - metrics: Prometheus metrics
    - cli: ``stockrisk`` command line interface

Example:
    >>> from stockrisk import StockRiskService
    >>> service = StockRiskService()
    >>> result = await service.process_upload(content, "stock.xlsx", "inventory")
    >>> service.compute_metrics().combined.recommended_actions
"""

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
from stockrisk.config import (
    StockRiskConfig,
    get_config,
    set_config,
    reset_config,
)

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------
from stockrisk.exceptions import (
    StockRiskException,
    ConfigurationError,
    ProcessorBusyError,
    IngestionError,
    FileSizeExceededError,
    UnsupportedFileTypeError,
    MissingSheetError,
    MissingColumnError,
    ParsingError,
    ProcessingTimeoutError,
    ProcessingCancelledError,
    DataValidationError,
)

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------
from stockrisk.models import (
    FileCategory,
    ValueType,
    RuleKind,
    ErrorKind,
    ProcessingPhase,
    ValidationRule,
    ColumnSchema,
    SheetSchema,
    SchemaConfig,
    ProcessingOptions,
    NormalizedSheet,
    ProcessingError,
    ProgressEvent,
    ProcessingStats,
    ProcessedFileData,
    ProcessingResult,
)

# ---------------------------------------------------------------------------
# Engines
# ---------------------------------------------------------------------------
from stockrisk.ingestion import (
    SchemaRegistry,
    get_registry,
    reset_registry,
    WorkbookReader,
    WorkbookValidator,
    ColumnMapper,
    RowCoercer,
    SheetProcessor,
    ProgressChannel,
    IngestionPipeline,
    FileProcessor,
)
from stockrisk.analytics import (
    BusinessMetrics,
    CombinedMetrics,
    InventoryMetrics,
    OSRMetrics,
    InventoryCalculator,
    OSRCalculator,
    CombinedCalculator,
    MetricsEngine,
)

# ---------------------------------------------------------------------------
# Persistence and service
# ---------------------------------------------------------------------------
from stockrisk.storage import DataStore, FileRecord, InMemoryDataStore
from stockrisk.service import StockRiskService, get_service, reset_service

__all__ = [
    "__version__",
    # Configuration
    "StockRiskConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Exceptions
    "StockRiskException",
    "ConfigurationError",
    "ProcessorBusyError",
    "IngestionError",
    "FileSizeExceededError",
    "UnsupportedFileTypeError",
    "MissingSheetError",
    "MissingColumnError",
    "ParsingError",
    "ProcessingTimeoutError",
    "ProcessingCancelledError",
    "DataValidationError",
    # Models
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
    # Engines
    "SchemaRegistry",
    "get_registry",
    "reset_registry",
    "WorkbookReader",
    "WorkbookValidator",
    "ColumnMapper",
    "RowCoercer",
    "SheetProcessor",
    "ProgressChannel",
    "IngestionPipeline",
    "FileProcessor",
    "BusinessMetrics",
    "CombinedMetrics",
    "InventoryMetrics",
    "OSRMetrics",
    "InventoryCalculator",
    "OSRCalculator",
    "CombinedCalculator",
    "MetricsEngine",
    # Persistence and service
    "DataStore",
    "FileRecord",
    "InMemoryDataStore",
    "StockRiskService",
    "get_service",
    "reset_service",
]
