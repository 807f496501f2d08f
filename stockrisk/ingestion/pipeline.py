# -*- coding: utf-8 -*-
"""
Ingestion Pipeline - StockRisk Ingestion

Synchronous, staged processing of one workbook. Runs on a worker thread
under ``FileProcessor`` and reports progress through a ``ProgressChannel``.

Pipeline Stages:
    1. READING (10%): hash the raw bytes
    2. PARSING (25%): open the container via openpyxl / xlrd
    3. VALIDATING (40%): bind schema sheets to workbook sheets
    4. PROCESSING (60-90%): normalise each matched sheet
    5. COMPLETE (100%): assemble the ProcessingResult

Sheet, column, size and format failures abort the run by raising an
``IngestionError``. Unexpected exceptions are logged and re-raised as a
``ParsingError`` with a generic message.

Example:
    >>> pipeline = IngestionPipeline()
    >>> result = pipeline.run(content, "stock.xlsx", registry.get("inventory"))
    >>> result.data.sheets[0].name
    'FG value'

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Dict, List, Optional

from stockrisk.exceptions import (
    NO_DATA_FOUND,
    PROCESSING_FAILED,
    IngestionError,
    ParsingError,
    ProcessingCancelledError,
)
from stockrisk.ingestion.progress import ProgressChannel
from stockrisk.ingestion.sheet_processor import SheetProcessor
from stockrisk.ingestion.workbook_reader import WorkbookReader
from stockrisk.ingestion.workbook_validator import WorkbookValidator
from stockrisk.models import (
    NormalizedSheet,
    ProcessedFileData,
    ProcessingOptions,
    ProcessingPhase,
    ProcessingResult,
    ProcessingStats,
    SchemaConfig,
)

logger = logging.getLogger(__name__)

__all__ = ["IngestionPipeline"]


class IngestionPipeline:
    """Reader, validator and sheet processor wired into one staged run.

    Attributes:
        _reader: WorkbookReader for container decoding.
        _validator: WorkbookValidator for sheet binding.
        _sheet_processor: SheetProcessor for per-sheet normalisation.
        _lock: Threading lock for statistics.
        _stats: Run statistics counters.
    """

    def __init__(
        self,
        reader: Optional[WorkbookReader] = None,
        validator: Optional[WorkbookValidator] = None,
        sheet_processor: Optional[SheetProcessor] = None,
    ) -> None:
        self._reader = reader or WorkbookReader()
        self._validator = validator or WorkbookValidator()
        self._sheet_processor = sheet_processor or SheetProcessor()
        self._lock = threading.Lock()
        self._stats: Dict[str, int] = {
            "runs_started": 0,
            "runs_completed": 0,
            "runs_failed": 0,
        }

    @property
    def reader(self) -> WorkbookReader:
        return self._reader

    def run(
        self,
        content: bytes,
        file_name: str,
        schema: SchemaConfig,
        options: Optional[ProcessingOptions] = None,
        channel: Optional[ProgressChannel] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ProcessingResult:
        """Process a workbook end to end.

        Args:
            content: Raw workbook bytes.
            file_name: Original file name.
            schema: Category schema (read-only for the run).
            options: Pipeline switches.
            channel: Progress channel; a detached one is used when omitted.
            cancel_event: Set by the caller to abandon the run.

        Returns:
            Successful ProcessingResult.

        Raises:
            IngestionError: On any run-aborting failure.
        """
        start = time.monotonic()
        options = options or ProcessingOptions()
        channel = channel or ProgressChannel()
        cancel_event = cancel_event or threading.Event()
        with self._lock:
            self._stats["runs_started"] += 1

        try:
            result = self._run(
                content, file_name, schema, options, channel, cancel_event, start,
            )
        except IngestionError:
            with self._lock:
                self._stats["runs_failed"] += 1
            raise
        except Exception as exc:
            with self._lock:
                self._stats["runs_failed"] += 1
            logger.error(
                "Pipeline failed for '%s': %s", file_name, exc, exc_info=True,
            )
            raise ParsingError(
                PROCESSING_FAILED, context={"file_name": file_name},
            ) from exc

        with self._lock:
            self._stats["runs_completed"] += 1
        return result

    def get_statistics(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._stats)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _run(
        self,
        content: bytes,
        file_name: str,
        schema: SchemaConfig,
        options: ProcessingOptions,
        channel: ProgressChannel,
        cancel_event: threading.Event,
        start: float,
    ) -> ProcessingResult:
        # Step 1: reading
        channel.emit(ProcessingPhase.READING, 10, "Reading Excel file...")
        file_hash = self._reader.compute_file_hash(content)
        self._check_cancelled(cancel_event)

        # Step 2: parsing
        channel.emit(ProcessingPhase.PARSING, 25, "Parsing Excel workbook...")
        with self._reader.open(content, file_name) as workbook:
            self._check_cancelled(cancel_event)

            # Step 3: validating
            channel.emit(ProcessingPhase.VALIDATING, 40, "Validating file structure...")
            validation = self._validator.validate(workbook.sheet_names, schema)
            run_warnings: List[str] = list(validation.warnings)

            # Step 4: processing
            channel.emit(ProcessingPhase.PROCESSING, 60, "Processing sheet data...")
            sheets: List[NormalizedSheet] = []
            cell_failures = 0
            total = len(validation.matches)
            for index, match in enumerate(validation.matches):
                self._check_cancelled(cancel_event)
                channel.emit(
                    ProcessingPhase.PROCESSING,
                    60 + (index / total) * 30,
                    f"Processing sheet: {match.sheet_name}...",
                    current_sheet=match.sheet_name,
                    total_sheets=total,
                    processed_sheets=index,
                )
                rows = self._reader.read_rows(workbook, match.sheet_name)
                outcome = self._sheet_processor.process(
                    rows,
                    match.schema,
                    source_name=match.sheet_name,
                    options=options,
                    cancel_event=cancel_event,
                )
                cell_failures += outcome.cell_failures
                run_warnings.extend(outcome.warnings)
                if outcome.sheet is not None:
                    sheets.append(outcome.sheet)

        self._check_cancelled(cancel_event)
        if not sheets:
            run_warnings.append(NO_DATA_FOUND)

        # Step 5: complete
        data = ProcessedFileData(
            file_name=file_name,
            file_size=len(content),
            file_hash=file_hash,
            category=schema.category,
            sheets=sheets,
            detected_categories=sorted(
                {sheet.category for sheet in sheets}, key=lambda c: c.value,
            ),
        )
        sheet_warnings = sum(len(sheet.warnings) for sheet in sheets)
        stats = ProcessingStats(
            total_rows=sum(sheet.row_count for sheet in sheets),
            total_columns=sum(sheet.column_count for sheet in sheets),
            processing_time_ms=round((time.monotonic() - start) * 1000, 2),
            sheets_processed=len(sheets),
            warning_count=len(run_warnings) + sheet_warnings,
            validation_errors=cell_failures,
        )
        channel.emit(ProcessingPhase.COMPLETE, 100, "File processing complete")

        logger.info(
            "Processed '%s' (%s): sheets=%d, rows=%d, warnings=%d (%.1f ms)",
            file_name, schema.category.value, stats.sheets_processed,
            stats.total_rows, stats.warning_count, stats.processing_time_ms,
        )
        return ProcessingResult(
            success=True, data=data, warnings=run_warnings, stats=stats,
        )

    @staticmethod
    def _check_cancelled(cancel_event: threading.Event) -> None:
        if cancel_event.is_set():
            raise ProcessingCancelledError()
