"""Tests for the StockRisk Exception Hierarchy.

Test suite covering:
- Base exception functionality
- Ingestion exception kinds
- Conversion to the ProcessingError model
- Exception serialization

Author: StockRisk Platform Team
Status: Production Ready
"""

import json
from datetime import datetime

import pytest

from stockrisk.exceptions import (
    FILE_PROCESSING_TIMEOUT,
    FILE_SIZE_EXCEEDED,
    INVALID_FILE_TYPE,
    PROCESSING_CANCELLED,
    ConfigurationError,
    DataValidationError,
    FileSizeExceededError,
    IngestionError,
    MissingColumnError,
    MissingSheetError,
    ParsingError,
    ProcessingCancelledError,
    ProcessingTimeoutError,
    ProcessorBusyError,
    StockRiskException,
    UnsupportedFileTypeError,
)
from stockrisk.models import ErrorKind, ProcessingError


# ==============================================================================
# Base Exception Tests
# ==============================================================================

class TestStockRiskException:
    """Tests for base StockRiskException."""

    def test_create_basic_exception(self):
        """Can create basic exception with message."""
        exc = StockRiskException("Something went wrong")

        assert exc.message == "Something went wrong"
        assert exc.error_code == "SR_STOCK_RISK_EXCEPTION"
        assert exc.context == {}
        assert isinstance(exc.timestamp, datetime)

    def test_create_exception_with_context(self):
        """Can create exception with explicit code and context."""
        exc = StockRiskException(
            message="Test error",
            error_code="SR_TEST_001",
            context={"key": "value", "count": 42},
        )

        assert exc.error_code == "SR_TEST_001"
        assert exc.context == {"key": "value", "count": 42}

    def test_exception_str_representation(self):
        """String form includes error code and message."""
        exc = StockRiskException("Test error", error_code="SR_TEST_001")

        assert str(exc) == "[SR_TEST_001] - Test error"
        assert "StockRiskException" in repr(exc)

    def test_to_dict_and_json(self):
        """Serialization keeps type, code, message and context."""
        exc = ConfigurationError("bad schema", context={"path": "x.json"})

        data = exc.to_dict()
        assert data["error_type"] == "ConfigurationError"
        assert data["error_code"] == "SR_CONFIGURATION_ERROR"
        assert data["context"] == {"path": "x.json"}

        parsed = json.loads(exc.to_json())
        assert parsed["message"] == "bad schema"

    def test_processor_busy_is_not_an_ingestion_error(self):
        """A refused dispatch is not a processing outcome."""
        exc = ProcessorBusyError("busy")
        assert isinstance(exc, StockRiskException)
        assert not isinstance(exc, IngestionError)


# ==============================================================================
# Ingestion Exception Tests
# ==============================================================================

class TestIngestionErrors:
    """Each ingestion failure maps to one error kind."""

    @pytest.mark.parametrize(
        "exc, kind",
        [
            (FileSizeExceededError(200, 100), ErrorKind.SIZE),
            (UnsupportedFileTypeError("a.csv", [".xlsx"]), ErrorKind.FORMAT),
            (MissingSheetError("missing"), ErrorKind.SHEETS),
            (MissingColumnError("missing"), ErrorKind.COLUMNS),
            (ParsingError("broken"), ErrorKind.PARSING),
            (ProcessingTimeoutError(300), ErrorKind.PARSING),
            (ProcessingCancelledError(), ErrorKind.PARSING),
            (DataValidationError("bad cell"), ErrorKind.VALIDATION),
        ],
    )
    def test_kind(self, exc, kind):
        """to_processing_error carries the exception's kind."""
        error = exc.to_processing_error()
        assert isinstance(error, ProcessingError)
        assert error.kind == kind
        assert error.message == exc.message

    def test_ingestion_prefix(self):
        """Ingestion errors use their own code prefix."""
        assert MissingSheetError("x").error_code == "SR_INGESTION_MISSING_SHEET_ERROR"

    def test_file_size_exceeded(self):
        """Size errors keep both sizes and the user-facing message."""
        exc = FileSizeExceededError(file_size=2048, max_size=1024)

        assert exc.message == FILE_SIZE_EXCEEDED
        assert exc.context == {"file_size": 2048, "max_size": 1024}
        assert exc.to_processing_error().details == {"file_size": 2048, "max_size": 1024}

    def test_unsupported_file_type(self):
        """Format errors list the allowed extensions."""
        exc = UnsupportedFileTypeError("report.csv", (".xlsx", ".xls"))

        assert exc.message == INVALID_FILE_TYPE
        assert exc.context["allowed_extensions"] == [".xlsx", ".xls"]

    def test_timeout_and_cancel_messages(self):
        """Timeout and cancellation use fixed user-facing messages."""
        assert ProcessingTimeoutError(5).message == FILE_PROCESSING_TIMEOUT
        assert ProcessingTimeoutError(5).timeout_seconds == 5
        assert ProcessingCancelledError().message == PROCESSING_CANCELLED

    def test_no_context_gives_no_details(self):
        """An empty context is reported as details=None."""
        assert MissingSheetError("x").to_processing_error().details is None
