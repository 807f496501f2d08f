# -*- coding: utf-8 -*-
"""
Prometheus Metrics - StockRisk Workbook Analytics

Prometheus metrics for workbook ingestion and metrics derivation with
graceful fallback when prometheus_client is not installed.

Metrics:
    1. stockrisk_files_processed_total (Counter, labels: category, status)
    2. stockrisk_processing_duration_seconds (Histogram, 10 buckets)
    3. stockrisk_rows_normalized_total (Counter)
    4. stockrisk_cell_warnings_total (Counter)
    5. stockrisk_errors_total (Counter, labels: kind)
    6. stockrisk_active_jobs (Gauge)
    7. stockrisk_queue_size (Gauge)
    8. stockrisk_metrics_computations_total (Counter, labels: scope)

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Graceful prometheus_client import
# ---------------------------------------------------------------------------

try:
    from prometheus_client import Counter, Gauge, Histogram
    PROMETHEUS_AVAILABLE = True
except ImportError:
    PROMETHEUS_AVAILABLE = False
    logger.info("prometheus_client not installed; StockRisk metrics disabled")


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

if PROMETHEUS_AVAILABLE:
    # 1. Files processed by category and outcome
    files_processed_total = Counter(
        "stockrisk_files_processed_total",
        "Total workbooks processed",
        labelnames=["category", "status"],
    )

    # 2. Processing duration, sub-second up to the default 300s timeout
    processing_duration_seconds = Histogram(
        "stockrisk_processing_duration_seconds",
        "Workbook processing duration in seconds",
        buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 300.0),
    )

    # 3. Rows emitted into normalized sheets
    rows_normalized_total = Counter(
        "stockrisk_rows_normalized_total",
        "Total rows emitted into normalized sheets",
    )

    # 4. Cell-level coercion and rule failures
    cell_warnings_total = Counter(
        "stockrisk_cell_warnings_total",
        "Total cell values omitted after coercion or rule failure",
    )

    # 5. Run failures by error kind
    errors_total = Counter(
        "stockrisk_errors_total",
        "Total processing failures by error kind",
        labelnames=["kind"],
    )

    # 6. Runs currently executing
    active_jobs = Gauge(
        "stockrisk_active_jobs",
        "Number of workbooks currently being processed",
    )

    # 7. Dispatches waiting for the processor
    queue_size = Gauge(
        "stockrisk_queue_size",
        "Number of workbooks waiting to be processed",
    )

    # 8. Metrics engine invocations
    metrics_computations_total = Counter(
        "stockrisk_metrics_computations_total",
        "Total business metrics computations",
        labelnames=["scope"],
    )

else:
    files_processed_total = None  # type: ignore[assignment]
    processing_duration_seconds = None  # type: ignore[assignment]
    rows_normalized_total = None  # type: ignore[assignment]
    cell_warnings_total = None  # type: ignore[assignment]
    errors_total = None  # type: ignore[assignment]
    active_jobs = None  # type: ignore[assignment]
    queue_size = None  # type: ignore[assignment]
    metrics_computations_total = None  # type: ignore[assignment]


# ---------------------------------------------------------------------------
# Helper functions (safe to call even without prometheus_client)
# ---------------------------------------------------------------------------


def record_file_processed(category: str, status: str) -> None:
    """Record a finished run.

    Args:
        category: File category (inventory, osr).
        status: Outcome (success, failed, rejected).
    """
    if not PROMETHEUS_AVAILABLE:
        return
    files_processed_total.labels(category=category, status=status).inc()


def record_processing_duration(duration_seconds: float) -> None:
    """Record the wall-clock duration of a run."""
    if not PROMETHEUS_AVAILABLE:
        return
    processing_duration_seconds.observe(duration_seconds)


def record_rows_normalized(row_count: int) -> None:
    """Record the number of rows normalized from a file."""
    if not PROMETHEUS_AVAILABLE:
        return
    rows_normalized_total.inc(row_count)


def record_cell_warnings(count: int) -> None:
    """Record omitted cell values."""
    if not PROMETHEUS_AVAILABLE or count <= 0:
        return
    cell_warnings_total.inc(count)


def record_error(kind: str) -> None:
    """Record a failed run by error kind (size, format, sheets, ...)."""
    if not PROMETHEUS_AVAILABLE:
        return
    errors_total.labels(kind=kind).inc()


def record_metrics_computation(scope: str) -> None:
    """Record a metrics engine run.

    Args:
        scope: Data available (full, inventory, osr, empty).
    """
    if not PROMETHEUS_AVAILABLE:
        return
    metrics_computations_total.labels(scope=scope).inc()


def update_active_jobs(delta: int) -> None:
    """Increment or decrement the active jobs gauge."""
    if not PROMETHEUS_AVAILABLE:
        return
    if delta > 0:
        active_jobs.inc(delta)
    elif delta < 0:
        active_jobs.dec(abs(delta))


def update_queue_size(size: int) -> None:
    """Set the current number of waiting dispatches."""
    if not PROMETHEUS_AVAILABLE:
        return
    queue_size.set(size)


__all__ = [
    "PROMETHEUS_AVAILABLE",
    "record_file_processed",
    "record_processing_duration",
    "record_rows_normalized",
    "record_cell_warnings",
    "record_error",
    "record_metrics_computation",
    "update_active_jobs",
    "update_queue_size",
]
