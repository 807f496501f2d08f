# -*- coding: utf-8 -*-
"""
StockRisk Ingestion
===================

Workbook ingestion: schema registry, container decoding, sheet and column
matching, typed cell coercion, per-sheet normalisation, progress reporting
and the asynchronous file processor.

Key Components:
    - schema_registry: built-in inventory / OSR schemas, schema-as-data
    - workbook_reader: .xlsx (openpyxl) and .xls (xlrd) decoding
    - workbook_validator: sheet binding against the schema
    - column_mapper: header resolution by canonical name or alias
    - row_coercer: type coercion and ordered rule evaluation
    - sheet_processor: header detection, row extraction, NormalizedSheet
    - progress: ordered, monotonic progress events
    - pipeline: synchronous staged run
    - file_processor: async facade with timeout and dispatch policy
"""

from stockrisk.ingestion.schema_registry import (
    INVENTORY_SCHEMA,
    OSR_SCHEMA,
    SchemaRegistry,
    get_registry,
    reset_registry,
)
from stockrisk.ingestion.workbook_reader import SpreadsheetFormat, WorkbookReader
from stockrisk.ingestion.workbook_validator import (
    SheetMatch,
    WorkbookValidation,
    WorkbookValidator,
)
from stockrisk.ingestion.column_mapper import (
    ColumnMapper,
    HeaderMatch,
    SheetColumnMapping,
)
from stockrisk.ingestion.row_coercer import CoercionResult, RowCoercer, parse_number
from stockrisk.ingestion.sheet_processor import SheetOutcome, SheetProcessor, SheetStage
from stockrisk.ingestion.progress import ProgressCallback, ProgressChannel
from stockrisk.ingestion.pipeline import IngestionPipeline
from stockrisk.ingestion.file_processor import FileProcessor

__all__ = [
    "INVENTORY_SCHEMA",
    "OSR_SCHEMA",
    "SchemaRegistry",
    "get_registry",
    "reset_registry",
    "SpreadsheetFormat",
    "WorkbookReader",
    "SheetMatch",
    "WorkbookValidation",
    "WorkbookValidator",
    "ColumnMapper",
    "HeaderMatch",
    "SheetColumnMapping",
    "CoercionResult",
    "RowCoercer",
    "parse_number",
    "SheetOutcome",
    "SheetProcessor",
    "SheetStage",
    "ProgressCallback",
    "ProgressChannel",
    "IngestionPipeline",
    "FileProcessor",
]
