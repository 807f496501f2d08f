# -*- coding: utf-8 -*-
"""
Metrics Engine - StockRisk Analytics

Single entry point for metrics derivation: splits normalized sheets by
category and runs the inventory, OSR and combined calculators.

Example:
    >>> engine = MetricsEngine()
    >>> metrics = engine.compute(result.data.sheets)
    >>> metrics.combined.recommended_actions[0]
    'Analysis based on inventory data only - OSR data recommended for comprehensive assessment'

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Dict, List, Optional, Sequence

from stockrisk.analytics.combined_calculator import CombinedCalculator
from stockrisk.analytics.inventory_calculator import InventoryCalculator
from stockrisk.analytics.models import BusinessMetrics
from stockrisk.analytics.osr_calculator import OSRCalculator
from stockrisk.config import StockRiskConfig, get_config
from stockrisk.metrics import record_metrics_computation
from stockrisk.models import FileCategory, NormalizedSheet

logger = logging.getLogger(__name__)

__all__ = ["MetricsEngine"]


class MetricsEngine:
    """Inventory, OSR and combined metrics over a sheet set.

    Attributes:
        config: Service configuration (analytics defaults).
        inventory: InventoryCalculator instance.
        osr: OSRCalculator instance.
        combined: CombinedCalculator instance.
    """

    def __init__(self, config: Optional[StockRiskConfig] = None) -> None:
        self.config = config or get_config()
        self.inventory = InventoryCalculator()
        self.osr = OSRCalculator(
            default_impact=self.config.default_impact,
            default_effort=self.config.default_effort,
        )
        self.combined = CombinedCalculator(
            inventory_calculator=self.inventory,
            osr_calculator=self.osr,
            max_recommendations=self.config.max_recommendations,
        )
        self._lock = threading.Lock()
        self._stats: Dict[str, int] = {
            "computations": 0,
            "full": 0,
            "inventory": 0,
            "osr": 0,
            "empty": 0,
        }

    def compute(self, sheets: Sequence[NormalizedSheet]) -> BusinessMetrics:
        """Compute all metrics for ``sheets``.

        Args:
            sheets: Normalized sheets of any category mix.

        Returns:
            BusinessMetrics; per-source metrics are None when that source
            has no sheets.
        """
        start = time.monotonic()
        inventory_sheets = [s for s in sheets if s.category == FileCategory.INVENTORY]
        osr_sheets = [s for s in sheets if s.category == FileCategory.OSR]

        inventory = self.inventory.calculate_all(inventory_sheets) if inventory_sheets else None
        osr = self.osr.calculate_all(osr_sheets) if osr_sheets else None

        if inventory is not None and osr is not None:
            scope = "full"
            combined = self.combined.calculate(inventory, osr)
        elif inventory is not None:
            scope = "inventory"
            combined = self.combined.calculate_inventory_only(inventory)
        elif osr is not None:
            scope = "osr"
            combined = self.combined.calculate_osr_only(osr)
        else:
            scope = "empty"
            combined = self.combined.calculate_with_partial_data()

        detected: List[FileCategory] = []
        if inventory_sheets:
            detected.append(FileCategory.INVENTORY)
        if osr_sheets:
            detected.append(FileCategory.OSR)

        with self._lock:
            self._stats["computations"] += 1
            self._stats[scope] += 1
        if self.config.enable_metrics:
            record_metrics_computation(scope)

        logger.info(
            "Computed business metrics (%s): health=%.2f, exposure=%.2f, "
            "actions=%d (%.1f ms)",
            scope, combined.overall_portfolio_health, combined.risk_exposure,
            len(combined.recommended_actions), (time.monotonic() - start) * 1000,
        )
        return BusinessMetrics(
            inventory=inventory,
            osr=osr,
            combined=combined,
            detected_categories=detected,
        )

    def get_statistics(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._stats)
