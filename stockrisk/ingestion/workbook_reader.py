# -*- coding: utf-8 -*-
"""
Workbook Reader - StockRisk Ingestion

Decodes uploaded spreadsheet bytes into sheet names and rows of raw cell
values. The binary formats themselves are handled by openpyxl (.xlsx) and
xlrd (.xls); this module only detects the container, opens it through the
right library and normalises cells (empty strings and blank cells become
``None``, xls date cells become ``datetime``).

Supports:
    - Format detection by magic bytes, falling back to the file extension
    - Read-only, values-only streaming of .xlsx sheets via openpyxl
    - .xls sheets via xlrd with date cell conversion
    - SHA-256 file hashing for provenance

Example:
    >>> from stockrisk.ingestion.workbook_reader import WorkbookReader
    >>> reader = WorkbookReader()
    >>> with reader.open(content, "stock.xlsx") as workbook:
    ...     print(workbook.sheet_names)
    ...     rows = list(workbook.iter_rows(workbook.sheet_names[0]))

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

import hashlib
import io
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

import openpyxl
import xlrd

from stockrisk.exceptions import PROCESSING_FAILED, ParsingError

logger = logging.getLogger(__name__)

__all__ = [
    "SpreadsheetFormat",
    "WorkbookHandle",
    "WorkbookReader",
]


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SpreadsheetFormat(str, Enum):
    """Spreadsheet containers the reader can open."""

    XLSX = "xlsx"
    XLS = "xls"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Magic byte signatures for format detection
# ---------------------------------------------------------------------------

_MAGIC_BYTES: Dict[bytes, SpreadsheetFormat] = {
    b"PK\x03\x04": SpreadsheetFormat.XLSX,  # ZIP archive (OOXML)
    b"\xd0\xcf\x11\xe0": SpreadsheetFormat.XLS,  # OLE2 Compound Document
}

_EXTENSION_MAP: Dict[str, SpreadsheetFormat] = {
    ".xlsx": SpreadsheetFormat.XLSX,
    ".xls": SpreadsheetFormat.XLS,
}


def _clean_cell(value: Any) -> Any:
    if isinstance(value, str) and value == "":
        return None
    return value


# ---------------------------------------------------------------------------
# Workbook handles
# ---------------------------------------------------------------------------


class WorkbookHandle:
    """An opened workbook exposing sheet names and raw rows."""

    format = SpreadsheetFormat.UNKNOWN

    @property
    def sheet_names(self) -> List[str]:
        raise NotImplementedError

    def iter_rows(self, sheet_name: str) -> Iterator[List[Any]]:
        raise NotImplementedError

    def close(self) -> None:
        """Release library resources."""


class _XlsxWorkbook(WorkbookHandle):
    format = SpreadsheetFormat.XLSX

    def __init__(self, content: bytes) -> None:
        self._wb = openpyxl.load_workbook(
            io.BytesIO(content), read_only=True, data_only=True,
        )

    @property
    def sheet_names(self) -> List[str]:
        return list(self._wb.sheetnames)

    def iter_rows(self, sheet_name: str) -> Iterator[List[Any]]:
        ws = self._wb[sheet_name]
        # Chartsheets carry no cells
        if not hasattr(ws, "iter_rows"):
            return
        for row in ws.iter_rows(values_only=True):
            yield [_clean_cell(value) for value in row]

    def close(self) -> None:
        self._wb.close()


class _XlsWorkbook(WorkbookHandle):
    format = SpreadsheetFormat.XLS

    def __init__(self, content: bytes) -> None:
        self._book = xlrd.open_workbook(file_contents=content, on_demand=True)

    @property
    def sheet_names(self) -> List[str]:
        return list(self._book.sheet_names())

    def iter_rows(self, sheet_name: str) -> Iterator[List[Any]]:
        sheet = self._book.sheet_by_name(sheet_name)
        for row_idx in range(sheet.nrows):
            yield [self._cell_value(cell) for cell in sheet.row(row_idx)]

    def _cell_value(self, cell: Any) -> Any:
        if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
            return None
        if cell.ctype == xlrd.XL_CELL_DATE:
            return xlrd.xldate.xldate_as_datetime(cell.value, self._book.datemode)
        if cell.ctype == xlrd.XL_CELL_BOOLEAN:
            return bool(cell.value)
        return _clean_cell(cell.value)

    def close(self) -> None:
        self._book.release_resources()


# ---------------------------------------------------------------------------
# WorkbookReader
# ---------------------------------------------------------------------------


class WorkbookReader:
    """Opens spreadsheet bytes through openpyxl or xlrd.

    Any library failure while opening a container is logged with its
    traceback and surfaced as a ``ParsingError`` carrying a generic message,
    so library internals never reach the caller.

    Attributes:
        _lock: Threading lock for statistics.
        _stats: Reader statistics counters.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stats: Dict[str, int] = {
            "workbooks_opened": 0,
            "sheets_read": 0,
            "rows_read": 0,
            "open_errors": 0,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def detect_format(self, content: bytes, file_name: str = "") -> SpreadsheetFormat:
        """Detect the container format from magic bytes, then extension."""
        for magic, fmt in _MAGIC_BYTES.items():
            if content[:len(magic)] == magic:
                return fmt
        _, dot, suffix = file_name.rpartition(".")
        ext = f".{suffix.lower()}" if dot else ""
        return _EXTENSION_MAP.get(ext, SpreadsheetFormat.UNKNOWN)

    @contextmanager
    def open(self, content: bytes, file_name: str = "") -> Iterator[WorkbookHandle]:
        """Open a workbook and close it when the block exits.

        Raises:
            ParsingError: If the bytes cannot be opened as a workbook.
        """
        fmt = self.detect_format(content, file_name)
        handle: Optional[WorkbookHandle] = None
        try:
            if fmt == SpreadsheetFormat.XLSX:
                handle = _XlsxWorkbook(content)
            elif fmt == SpreadsheetFormat.XLS:
                handle = _XlsWorkbook(content)
        except Exception as exc:
            logger.error(
                "Failed to open workbook '%s' as %s: %s",
                file_name, fmt.value, exc, exc_info=True,
            )
            with self._lock:
                self._stats["open_errors"] += 1
            raise ParsingError(
                PROCESSING_FAILED,
                context={"file_name": file_name, "format": fmt.value},
            ) from exc

        if handle is None:
            with self._lock:
                self._stats["open_errors"] += 1
            logger.warning("Unrecognised workbook container for '%s'", file_name)
            raise ParsingError(
                PROCESSING_FAILED,
                context={"file_name": file_name, "format": fmt.value},
            )

        with self._lock:
            self._stats["workbooks_opened"] += 1
        logger.debug(
            "Opened workbook '%s': format=%s, sheets=%d",
            file_name, fmt.value, len(handle.sheet_names),
        )
        try:
            yield handle
        finally:
            handle.close()

    def read_rows(self, workbook: WorkbookHandle, sheet_name: str) -> List[List[Any]]:
        """Read every row of a sheet into memory.

        Raises:
            ParsingError: If the sheet cannot be decoded.
        """
        try:
            rows = list(workbook.iter_rows(sheet_name))
        except Exception as exc:
            logger.error(
                "Failed to read sheet '%s': %s", sheet_name, exc, exc_info=True,
            )
            raise ParsingError(
                PROCESSING_FAILED, context={"sheet": sheet_name},
            ) from exc

        with self._lock:
            self._stats["sheets_read"] += 1
            self._stats["rows_read"] += len(rows)
        return rows

    @staticmethod
    def compute_file_hash(content: bytes) -> str:
        """Compute SHA-256 hex digest of raw file bytes."""
        return hashlib.sha256(content).hexdigest()

    def get_statistics(self) -> Dict[str, Any]:
        """Return reader statistics."""
        with self._lock:
            return {
                **self._stats,
                "timestamp": _utcnow().isoformat(),
            }
