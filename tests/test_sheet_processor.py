# -*- coding: utf-8 -*-
"""Tests for SheetProcessor."""

import threading

import pytest

from conftest import FG_HEADER, fg_rows
from stockrisk.exceptions import DataValidationError, MissingColumnError, ProcessingCancelledError
from stockrisk.ingestion.schema_registry import INVENTORY_SCHEMA
from stockrisk.ingestion.sheet_processor import SheetProcessor, SheetStage, is_blank
from stockrisk.models import FileCategory, ProcessingOptions


@pytest.fixture
def fg_sheet():
    return INVENTORY_SCHEMA.sheets[0]


@pytest.fixture
def processor():
    return SheetProcessor()


class TestIsBlank:
    def test_blank_values(self):
        assert is_blank(None)
        assert is_blank("   ")
        assert not is_blank(0)
        assert not is_blank("x")


class TestSheetProcessor:
    """Header detection, row extraction and failure handling."""

    def test_normalises_valid_rows(self, processor, fg_sheet):
        """Ten valid rows under the "FG Value" tab land in "FG value"."""
        outcome = processor.process([FG_HEADER] + fg_rows(10), fg_sheet, source_name="FG Value")
        sheet = outcome.sheet

        assert outcome.stage == SheetStage.DONE
        assert sheet.name == "FG value"
        assert sheet.source_name == "FG Value"
        assert sheet.category == FileCategory.INVENTORY
        assert sheet.row_count == 10
        assert sheet.column_count == 9
        assert sheet.columns == FG_HEADER
        assert sheet.rows[0]["Material"] == "MAT-001"
        assert sheet.rows[0]["Closing Stock Value"] == 1000.0
        assert sheet.warnings == []

    def test_empty_sheet_dropped(self, processor, fg_sheet):
        outcome = processor.process([], fg_sheet, source_name="FG Value")

        assert outcome.sheet is None
        assert outcome.warnings == ['Sheet "FG Value": Sheet contains no data']
        assert processor.get_statistics()["sheets_dropped"] == 1

    def test_blank_sheet_has_no_header(self, processor, fg_sheet):
        outcome = processor.process([[None, None], ["", "  "]], fg_sheet)

        assert outcome.sheet is None
        assert outcome.stage == SheetStage.HEADER_DETECT
        assert outcome.warnings == ['Sheet "FG value": No header row found']

    def test_header_after_blank_rows(self, processor, fg_sheet):
        """Row numbers in warnings follow the worksheet."""
        data = fg_rows(2)
        data[1][6] = "n/a"
        rows = [[None] * 9, [None] * 9, FG_HEADER] + data

        sheet = processor.process(rows, fg_sheet).sheet

        assert sheet.row_count == 2
        assert sheet.warnings == [
            'Invalid data type in column "Closing Stock Value", row 5: Expected number'
        ]

    def test_failing_field_is_omitted(self, processor, fg_sheet):
        """A bad cell drops the field, not the row."""
        data = fg_rows(3)
        data[0][6] = -100
        outcome = processor.process([FG_HEADER] + data, fg_sheet)
        sheet = outcome.sheet

        assert sheet.row_count == 3
        assert "Closing Stock Value" not in sheet.rows[0]
        assert sheet.rows[0]["Material"] == "MAT-001"
        assert sheet.rows[1]["Closing Stock Value"] == 2000.0
        assert outcome.cell_failures == 1
        assert sheet.warnings == [
            'Validation failed for column "Closing Stock Value", row 2: Value must be positive'
        ]

    def test_strict_validation_escalates(self, processor, fg_sheet):
        data = fg_rows(1)
        data[0][6] = "n/a"
        options = ProcessingOptions(strict_validation=True)

        with pytest.raises(DataValidationError) as exc_info:
            processor.process([FG_HEADER] + data, fg_sheet, options=options)
        assert exc_info.value.context["row"] == 2

    def test_missing_required_column_aborts(self, processor, fg_sheet):
        with pytest.raises(MissingColumnError):
            processor.process([FG_HEADER[1:]] + [r[1:] for r in fg_rows(2)], fg_sheet)

    def test_missing_column_tolerated_without_validation(self, processor, fg_sheet):
        options = ProcessingOptions(validate_columns=False)
        sheet = processor.process(
            [FG_HEADER[1:]] + [r[1:] for r in fg_rows(2)], fg_sheet, options=options,
        ).sheet

        assert sheet.row_count == 2
        assert "Pack Size(m.d.)" not in sheet.columns

    def test_empty_rows(self, processor, fg_sheet):
        """Blank rows are skipped, or dropped as empty records."""
        rows = [FG_HEADER, fg_rows(1)[0], [None] * 9, ["  "] * 9]

        outcome = processor.process(rows, fg_sheet)
        assert outcome.sheet.row_count == 1

        outcome = processor.process(rows, fg_sheet, options=ProcessingOptions(skip_empty_rows=False))
        assert outcome.sheet.row_count == 1
        assert processor.get_statistics()["rows_dropped"] == 2

    def test_validate_data_off_keeps_raw_values(self, processor, fg_sheet):
        data = fg_rows(1)
        data[0][6] = " 1,000 "
        options = ProcessingOptions(validate_data=False)

        sheet = processor.process([FG_HEADER] + data, fg_sheet, options=options).sheet

        assert sheet.rows[0]["Closing Stock Value"] == "1,000"
        assert sheet.warnings == []

    def test_unmapped_headers_count_as_columns(self, processor, fg_sheet):
        rows = [FG_HEADER + ["Remarks"]] + [r + ["ok"] for r in fg_rows(1)]
        sheet = processor.process(rows, fg_sheet).sheet

        assert sheet.column_count == 10
        assert "Remarks" not in sheet.rows[0]

    def test_cancellation(self, processor, fg_sheet):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(ProcessingCancelledError):
            processor.process([FG_HEADER] + fg_rows(2), fg_sheet, cancel_event=cancel)

    def test_rows_are_idempotent(self, processor, fg_sheet):
        rows = [FG_HEADER] + fg_rows(5)
        first = processor.process(rows, fg_sheet).sheet
        second = processor.process(rows, fg_sheet).sheet
        assert first.rows == second.rows
