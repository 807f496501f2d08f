"""StockRisk Exception Hierarchy.

Rich exceptions for the workbook ingestion pipeline and the analytics layer.
Every ingestion failure carries a ``kind`` from the processing error taxonomy
so it can be converted into the ``ProcessingError`` model returned to callers.

Exception Hierarchy:
    StockRiskException (base)
    ├── ConfigurationError
    ├── ProcessorBusyError
    └── IngestionError
        ├── FileSizeExceededError      (size)
        ├── UnsupportedFileTypeError   (format)
        ├── MissingSheetError          (sheets)
        ├── MissingColumnError         (columns)
        ├── ParsingError               (parsing)
        │   ├── ProcessingTimeoutError
        │   └── ProcessingCancelledError
        └── DataValidationError        (validation)

Example:
    >>> from stockrisk.exceptions import MissingSheetError
    >>> raise MissingSheetError(
    ...     'Required sheet "FG value" not found. Available sheets: Sheet1',
    ...     context={"available_sheets": ["Sheet1"]},
    ... )

Author: StockRisk Platform Team
Status: Production Ready
"""

import json
import re
from datetime import datetime
from typing import Any, Dict, Optional


# ==============================================================================
# User-facing messages
# ==============================================================================

FILE_SIZE_EXCEEDED = "File size exceeds maximum allowed size"
INVALID_FILE_TYPE = (
    "File type not supported. Please upload an Excel file (.xlsx or .xls)"
)
FILE_PROCESSING_TIMEOUT = (
    "File processing timed out. Please try with a smaller file"
)
PROCESSING_CANCELLED = "File processing was cancelled"
PROCESSING_FAILED = "An error occurred during file processing"
NO_VALID_SHEETS = "No valid sheets detected in the file"
NO_DATA_FOUND = "No valid data found in any sheets"


# ==============================================================================
# Base Exception
# ==============================================================================

class StockRiskException(Exception):
    """Base exception for all StockRisk errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error identifier (e.g., "SR_MISSING_SHEET_ERROR")
        context: Dictionary with error-specific details
        timestamp: When the error occurred
    """

    ERROR_PREFIX = "SR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.context = context or {}
        self.timestamp = datetime.now()

    def _generate_error_code(self) -> str:
        """Generate error code from the class name (CamelCase to SNAKE)."""
        error_type = re.sub(r'(?<!^)(?=[A-Z])', '_', self.__class__.__name__).upper()
        return f"{self.ERROR_PREFIX}_{error_type}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        return f"[{self.error_code}] - {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}')"
        )


class ConfigurationError(StockRiskException):
    """Invalid schema or configuration (unknown category, bad schema file)."""


class ProcessorBusyError(StockRiskException):
    """A file was dispatched while another one is still in flight.

    Raised only when the processor runs with ``concurrent_dispatch="reject"``.
    """


# ==============================================================================
# Ingestion Exceptions
# ==============================================================================

class IngestionError(StockRiskException):
    """Base exception for failures that abort a workbook processing run.

    Subclasses pin ``kind`` to one of the processing error categories:
    ``size``, ``format``, ``sheets``, ``columns``, ``parsing``, ``validation``.
    """

    ERROR_PREFIX = "SR_INGESTION"
    kind = "parsing"

    def to_processing_error(self):
        """Convert to the ``ProcessingError`` model returned to callers."""
        from stockrisk.models import ProcessingError

        return ProcessingError(
            kind=self.kind,
            message=self.message,
            details=self.context or None,
        )


class FileSizeExceededError(IngestionError):
    """Uploaded file is larger than the configured limit."""

    kind = "size"

    def __init__(
        self,
        file_size: int,
        max_size: int,
        message: str = FILE_SIZE_EXCEEDED,
    ):
        super().__init__(
            message,
            context={"file_size": file_size, "max_size": max_size},
        )
        self.file_size = file_size
        self.max_size = max_size


class UnsupportedFileTypeError(IngestionError):
    """File extension is not one of the allowed spreadsheet extensions."""

    kind = "format"

    def __init__(
        self,
        file_name: str,
        allowed_extensions: Any,
        message: str = INVALID_FILE_TYPE,
    ):
        super().__init__(
            message,
            context={
                "file_name": file_name,
                "allowed_extensions": list(allowed_extensions),
            },
        )
        self.file_name = file_name


class MissingSheetError(IngestionError):
    """A required sheet is missing, or no schema sheet matched at all."""

    kind = "sheets"


class MissingColumnError(IngestionError):
    """A required column has no matching header in its sheet."""

    kind = "columns"


class ParsingError(IngestionError):
    """The workbook could not be decoded or processed."""

    kind = "parsing"


class ProcessingTimeoutError(ParsingError):
    """Processing exceeded the configured timeout."""

    def __init__(
        self,
        timeout_seconds: float,
        message: str = FILE_PROCESSING_TIMEOUT,
    ):
        super().__init__(message, context={"timeout_seconds": timeout_seconds})
        self.timeout_seconds = timeout_seconds


class ProcessingCancelledError(ParsingError):
    """The run was cancelled before it completed."""

    def __init__(self, message: str = PROCESSING_CANCELLED):
        super().__init__(message)


class DataValidationError(IngestionError):
    """A cell-level failure in required data escalated under strict validation."""

    kind = "validation"
