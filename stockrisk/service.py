# -*- coding: utf-8 -*-
"""
StockRisk Service - StockRisk Workbook Analytics

Provides the ``StockRiskService`` facade that wires the file processor,
the metrics engine, the data store and a provenance tracker behind a
single entry point, plus ``get_service()`` for process-wide access.

Typical flow:
    1. ``process_upload`` validates and normalises a workbook; successful
       uploads are saved and become the category's active data.
    2. ``compute_metrics`` derives business metrics from the active
       inventory and OSR uploads (or from explicitly supplied data).

Usage:
    >>> service = StockRiskService()
    >>> result = await service.process_upload(content, "stock.xlsx", "inventory")
    >>> metrics = service.compute_metrics()
    >>> metrics.combined.overall_portfolio_health

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from stockrisk.analytics.engine import MetricsEngine
from stockrisk.analytics.models import BusinessMetrics
from stockrisk.config import StockRiskConfig, get_config
from stockrisk.ingestion.file_processor import FileProcessor
from stockrisk.ingestion.progress import ProgressCallback
from stockrisk.metrics import PROMETHEUS_AVAILABLE
from stockrisk.models import (
    FileCategory,
    NormalizedSheet,
    ProcessedFileData,
    ProcessingError,
    ProcessingOptions,
    ProcessingResult,
)
from stockrisk.storage import DataStore, FileRecord, InMemoryDataStore

logger = logging.getLogger(__name__)

__all__ = ["StockRiskService", "get_service", "reset_service"]


# ===================================================================
# Provenance
# ===================================================================


class _ProvenanceTracker:
    """Minimal provenance tracker recording SHA-256 audit entries.

    Attributes:
        entry_count: Number of entries recorded.
    """

    def __init__(self) -> None:
        self._entries: List[Dict[str, Any]] = []
        self._lock = threading.Lock()
        self.entry_count: int = 0

    def record(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        data_hash: str,
        user_id: str = "system",
    ) -> str:
        """Record a provenance entry and return its hash.

        Args:
            entity_type: Type of entity (file, metrics).
            entity_id: Entity identifier.
            action: Action performed (upload, activate, compute).
            data_hash: SHA-256 hash of associated data.
            user_id: User or system that performed the action.

        Returns:
            SHA-256 hash of the provenance entry itself.
        """
        entry = {
            "entity_type": entity_type,
            "entity_id": entity_id,
            "action": action,
            "data_hash": data_hash,
            "user_id": user_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        entry_hash = hashlib.sha256(
            json.dumps(entry, sort_keys=True, default=str).encode()
        ).hexdigest()
        entry["entry_hash"] = entry_hash
        with self._lock:
            self._entries.append(entry)
            self.entry_count += 1
        return entry_hash

    def entries(self, entity_id: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            return [
                dict(e) for e in self._entries
                if entity_id is None or e["entity_id"] == entity_id
            ]


def _compute_hash(data: Any, exclude: Optional[set] = None) -> str:
    """Compute a deterministic SHA-256 hash of arbitrary data.

    Args:
        data: Data to hash (dict, list, str, or Pydantic model).
        exclude: Field names left out of a Pydantic model dump.

    Returns:
        SHA-256 hex digest string.
    """
    if hasattr(data, "model_dump"):
        serializable = data.model_dump(mode="json", exclude=exclude)
    else:
        serializable = data
    raw = json.dumps(serializable, sort_keys=True, default=str)
    return hashlib.sha256(raw.encode()).hexdigest()


# ===================================================================
# StockRiskService facade
# ===================================================================

_singleton_lock = threading.Lock()
_singleton_instance: Optional["StockRiskService"] = None


class StockRiskService:
    """Unified facade over ingestion, analytics and persistence.

    Attributes:
        config: StockRiskConfig instance.
        processor: FileProcessor for uploads.
        engine: MetricsEngine for analytics.
        store: DataStore holding processed uploads.
        provenance: _ProvenanceTracker for SHA-256 audit trails.
    """

    def __init__(
        self,
        config: Optional[StockRiskConfig] = None,
        store: Optional[DataStore] = None,
        processor: Optional[FileProcessor] = None,
        engine: Optional[MetricsEngine] = None,
    ) -> None:
        self.config = config or get_config()
        self.processor = processor or FileProcessor(config=self.config)
        self.engine = engine or MetricsEngine(config=self.config)
        self.store: DataStore = store if store is not None else InMemoryDataStore()
        self.provenance = _ProvenanceTracker()
        self._lock = threading.Lock()
        self._stats: Dict[str, Any] = {
            "uploads_succeeded": 0,
            "uploads_failed": 0,
            "rows_stored": 0,
            "metrics_computed": 0,
            "avg_processing_time_ms": 0.0,
        }
        self._started = False
        logger.info("StockRiskService facade created")

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def process_upload(
        self,
        content: bytes,
        file_name: str,
        category: Union[str, FileCategory],
        options: Optional[ProcessingOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
        persist: bool = True,
    ) -> ProcessingResult:
        """Process a workbook and store it on success.

        Args:
            content: Raw workbook bytes.
            file_name: Original file name.
            category: ``inventory`` or ``osr``.
            options: Pipeline switches.
            on_progress: Progress callback.
            persist: Save successful results to the data store.

        Returns:
            ProcessingResult from the file processor.
        """
        category = FileCategory(category)
        result = await self.processor.process_file(
            content, file_name, category, options=options, on_progress=on_progress,
        )

        if not result.success:
            with self._lock:
                self._stats["uploads_failed"] += 1
            logger.warning(
                "Upload '%s' failed (%s): %s",
                file_name, result.error.kind.value, result.error.message,
            )
            return result

        if persist:
            record_id = self.store.save(content, result.data, category)
            self.provenance.record(
                entity_type="file",
                entity_id=record_id,
                action="upload",
                data_hash=_compute_hash(result.data),
            )

        with self._lock:
            self._stats["uploads_succeeded"] += 1
            self._stats["rows_stored"] += result.stats.total_rows
            total = self._stats["uploads_succeeded"]
            previous = self._stats["avg_processing_time_ms"]
            self._stats["avg_processing_time_ms"] = (
                (previous * (total - 1) + result.stats.processing_time_ms) / total
            )
        return result

    def validate(
        self,
        file_name: str,
        file_size: int,
        category: Union[str, FileCategory],
    ) -> Optional[ProcessingError]:
        """Size/extension gate only; None when the file is acceptable."""
        return self.processor.validate_file_only(file_name, file_size, category)

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def compute_metrics(
        self,
        inventory: Optional[ProcessedFileData] = None,
        osr: Optional[ProcessedFileData] = None,
    ) -> BusinessMetrics:
        """Business metrics from the given or the active uploads.

        Args:
            inventory: Inventory upload; the active one when None.
            osr: OSR upload; the active one when None.
        """
        inventory = inventory or self.store.get_active(FileCategory.INVENTORY)
        osr = osr or self.store.get_active(FileCategory.OSR)

        sheets: List[NormalizedSheet] = []
        for data in (inventory, osr):
            if data is not None:
                sheets.extend(data.sheets)

        metrics = self.engine.compute(sheets)
        self.provenance.record(
            entity_type="metrics",
            entity_id="+".join(c.value for c in metrics.detected_categories) or "empty",
            action="compute",
            data_hash=_compute_hash(metrics, exclude={"computed_at"}),
        )
        with self._lock:
            self._stats["metrics_computed"] += 1
        return metrics

    # ------------------------------------------------------------------
    # Data store access
    # ------------------------------------------------------------------

    def get_active(self, category: Union[str, FileCategory]) -> Optional[ProcessedFileData]:
        return self.store.get_active(category)

    def list_history(self, category: Union[str, FileCategory]) -> List[FileRecord]:
        return self.store.list_history(category)

    def switch_active(self, record_id: str) -> FileRecord:
        """Activate a stored upload.

        Raises:
            ValueError: If the record is unknown or the store cannot switch.
        """
        switch = getattr(self.store, "switch_active", None)
        if switch is None:
            raise ValueError("Data store does not support switching uploads")
        record = switch(record_id)
        self.provenance.record(
            entity_type="file",
            entity_id=record_id,
            action="activate",
            data_hash=record.file_hash,
        )
        return record

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def expected_sheet_names(self, category: Union[str, FileCategory]) -> List[str]:
        return self.processor.expected_sheet_names(category)

    def expected_columns(self, category: Union[str, FileCategory]) -> List[str]:
        return self.processor.expected_columns(category)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_statistics(self) -> Dict[str, Any]:
        """Service counters with processor and engine statistics."""
        with self._lock:
            stats = dict(self._stats)
        stats["processor"] = self.processor.get_statistics()
        stats["engine"] = self.engine.get_statistics()
        stats["provenance_entries"] = self.provenance.entry_count
        stats["prometheus_available"] = PROMETHEUS_AVAILABLE
        stats["started"] = self._started
        return stats

    def get_provenance(self) -> _ProvenanceTracker:
        return self.provenance

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def startup(self) -> None:
        """Start the service. Safe to call multiple times."""
        if self._started:
            logger.debug("StockRiskService already started; skipping")
            return
        self._started = True
        logger.info("StockRiskService startup complete")

    def shutdown(self) -> None:
        """Shut the service down and release the processor's worker."""
        if not self._started:
            return
        start = time.monotonic()
        self.processor.shutdown()
        self._started = False
        logger.info(
            "StockRiskService shut down (%.1f ms)", (time.monotonic() - start) * 1000,
        )


# ===================================================================
# Thread-safe singleton access
# ===================================================================


def get_service() -> StockRiskService:
    """Get or create the singleton StockRiskService instance."""
    global _singleton_instance
    if _singleton_instance is None:
        with _singleton_lock:
            if _singleton_instance is None:
                _singleton_instance = StockRiskService()
                _singleton_instance.startup()
    return _singleton_instance


def reset_service() -> None:
    """Shut down and drop the singleton (useful for tests)."""
    global _singleton_instance
    with _singleton_lock:
        if _singleton_instance is not None:
            _singleton_instance.shutdown()
        _singleton_instance = None
