# -*- coding: utf-8 -*-
"""
StockRisk Service Configuration

Centralized configuration for the workbook ingestion pipeline and the
metrics engine covering:
- File limits (size, extensions, processing timeout)
- Pipeline options (column/data validation, empty rows, whitespace)
- Analytics defaults (fallback impact/effort, recommendation cap)
- Concurrency policy for overlapping dispatches
- Schema override file
- Metrics and logging

All settings can be overridden via environment variables with the
``STOCKRISK_`` prefix (e.g. ``STOCKRISK_MAX_FILE_SIZE_MB``).

Example:
    >>> from stockrisk.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.max_file_size_mb, cfg.processing_timeout_seconds)

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "STOCKRISK_"

_DISPATCH_POLICIES = ("queue", "reject")
_MAX_RECOMMENDATIONS = 8


# ---------------------------------------------------------------------------
# StockRiskConfig
# ---------------------------------------------------------------------------


@dataclass
class StockRiskConfig:
    """Complete configuration for the StockRisk ingestion and analytics SDK.

    Attributes:
        max_file_size_mb: Maximum upload size in megabytes.
        allowed_extensions: Comma-separated list of accepted extensions.
        processing_timeout_seconds: Timeout for a single processing run.
        validate_columns: Fail the run when a required column is missing.
        validate_data: Coerce and validate cell values against the schema.
        skip_empty_rows: Drop rows whose cells are all blank.
        trim_whitespace: Strip surrounding whitespace from string cells.
        strict_validation: Escalate cell failures in required columns.
        default_impact: Impact used when an OSR row carries none (1-10).
        default_effort: Effort used when an OSR row carries none (1-10).
        max_recommendations: Cap on combined recommendations.
        concurrent_dispatch: ``queue`` or ``reject`` overlapping runs.
        schema_path: Optional JSON file replacing the built-in schemas.
        enable_metrics: Record Prometheus metrics.
        log_level: Logging level for the service.
    """

    # -- File limits ---------------------------------------------------------
    max_file_size_mb: int = 100
    allowed_extensions: str = ".xlsx,.xls"
    processing_timeout_seconds: float = 300.0

    # -- Pipeline options ----------------------------------------------------
    validate_columns: bool = True
    validate_data: bool = True
    skip_empty_rows: bool = True
    trim_whitespace: bool = True
    strict_validation: bool = False

    # -- Analytics defaults --------------------------------------------------
    default_impact: float = 5.0
    default_effort: float = 5.0
    max_recommendations: int = 8

    # -- Concurrency ---------------------------------------------------------
    concurrent_dispatch: str = "queue"

    # -- Schema --------------------------------------------------------------
    schema_path: str = ""

    # -- Metrics -------------------------------------------------------------
    enable_metrics: bool = True

    # -- Logging -------------------------------------------------------------
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.concurrent_dispatch not in _DISPATCH_POLICIES:
            raise ValueError(
                f"concurrent_dispatch must be one of {_DISPATCH_POLICIES}, "
                f"got {self.concurrent_dispatch!r}"
            )
        for name in ("default_impact", "default_effort"):
            value = getattr(self, name)
            if not 1.0 <= value <= 10.0:
                raise ValueError(f"{name} must be within [1, 10], got {value}")
        if self.processing_timeout_seconds <= 0:
            raise ValueError("processing_timeout_seconds must be positive")
        if not 1 <= self.max_recommendations <= _MAX_RECOMMENDATIONS:
            raise ValueError(
                f"max_recommendations must be within [1, {_MAX_RECOMMENDATIONS}], "
                f"got {self.max_recommendations}"
            )

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def max_file_size_bytes(self) -> int:
        """Upload limit in bytes."""
        return self.max_file_size_mb * 1024 * 1024

    @property
    def extensions(self) -> List[str]:
        """Allowed extensions normalised to lower case with a leading dot."""
        result: List[str] = []
        for raw in self.allowed_extensions.split(","):
            ext = raw.strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = f".{ext}"
            result.append(ext)
        return result

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> StockRiskConfig:
        """Build a StockRiskConfig from environment variables.

        Every field can be overridden via ``STOCKRISK_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive).

        Returns:
            Populated StockRiskConfig instance.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val)
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%s, using default %d",
                    prefix, name, val, default,
                )
                return default

        def _float(name: str, default: float) -> float:
            val = _env(name)
            if val is None:
                return default
            try:
                return float(val)
            except ValueError:
                logger.warning(
                    "Invalid float for %s%s=%s, using default %f",
                    prefix, name, val, default,
                )
                return default

        def _str(name: str, default: str) -> str:
            val = _env(name)
            if val is None:
                return default
            return val

        config = cls(
            max_file_size_mb=_int("MAX_FILE_SIZE_MB", cls.max_file_size_mb),
            allowed_extensions=_str("ALLOWED_EXTENSIONS", cls.allowed_extensions),
            processing_timeout_seconds=_float(
                "PROCESSING_TIMEOUT_SECONDS", cls.processing_timeout_seconds,
            ),
            validate_columns=_bool("VALIDATE_COLUMNS", cls.validate_columns),
            validate_data=_bool("VALIDATE_DATA", cls.validate_data),
            skip_empty_rows=_bool("SKIP_EMPTY_ROWS", cls.skip_empty_rows),
            trim_whitespace=_bool("TRIM_WHITESPACE", cls.trim_whitespace),
            strict_validation=_bool("STRICT_VALIDATION", cls.strict_validation),
            default_impact=_float("DEFAULT_IMPACT", cls.default_impact),
            default_effort=_float("DEFAULT_EFFORT", cls.default_effort),
            max_recommendations=_int(
                "MAX_RECOMMENDATIONS", cls.max_recommendations,
            ),
            concurrent_dispatch=_str(
                "CONCURRENT_DISPATCH", cls.concurrent_dispatch,
            ).lower(),
            schema_path=_str("SCHEMA_PATH", cls.schema_path),
            enable_metrics=_bool("ENABLE_METRICS", cls.enable_metrics),
            log_level=_str("LOG_LEVEL", cls.log_level),
        )

        logger.info(
            "StockRiskConfig loaded: max_file_size=%dMB, extensions=%s, "
            "timeout=%.0fs, skip_empty_rows=%s, strict_validation=%s, "
            "dispatch=%s, metrics=%s",
            config.max_file_size_mb,
            config.allowed_extensions,
            config.processing_timeout_seconds,
            config.skip_empty_rows,
            config.strict_validation,
            config.concurrent_dispatch,
            config.enable_metrics,
        )
        return config


# ---------------------------------------------------------------------------
# Thread-safe singleton access
# ---------------------------------------------------------------------------

_config_instance: Optional[StockRiskConfig] = None
_config_lock = threading.Lock()


def get_config() -> StockRiskConfig:
    """Return the singleton StockRiskConfig.

    Creates the instance from environment variables on first call.
    Subsequent calls return the cached instance.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = StockRiskConfig.from_env()
    return _config_instance


def set_config(config: StockRiskConfig) -> None:
    """Replace the singleton StockRiskConfig (useful for tests)."""
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info("StockRiskConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton so the next get_config() re-reads the env."""
    global _config_instance
    with _config_lock:
        _config_instance = None
    logger.debug("StockRiskConfig singleton reset")


__all__ = [
    "StockRiskConfig",
    "get_config",
    "set_config",
    "reset_config",
]
