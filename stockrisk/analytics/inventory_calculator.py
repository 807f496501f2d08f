# -*- coding: utf-8 -*-
"""
Inventory Calculator - StockRisk Analytics

Derives inventory metrics from the inventory-category normalized sheets.

Supports:
    - Portfolio concentration: value share of the top 20% of items and a
      diversification index derived from the Herfindahl-Hirschman Index
    - Plant efficiency: per-plant utilisation and throughput averages
      graded A-F
    - Geographic distribution: balance of value across regions from the
      coefficient of variation of regional totals
    - Overall health: 40% efficiency grade, 30% distribution balance,
      30% diversification

All outputs are deterministic functions of the input rows.

Example:
    >>> calculator = InventoryCalculator()
    >>> metrics = calculator.calculate_all(sheets)
    >>> metrics.portfolio_concentration.concentration_risk
    <ConcentrationRisk.LOW: 'low'>

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Any, Dict, Iterator, List, Mapping, Sequence

from stockrisk.analytics.data_utils import (
    PLANT_KEYS,
    REGION_KEYS,
    REGION_VALUE_KEYS,
    THROUGHPUT_KEYS,
    UTILIZATION_KEYS,
    VALUE_KEYS,
    calculate_hhi,
    coefficient_of_variation,
    filter_valid_data,
    first_number,
    first_string,
    grade_to_score,
    round2,
)
from stockrisk.analytics.models import (
    ConcentrationRisk,
    EfficiencyGrade,
    GeographicDistribution,
    InventoryMetrics,
    PlantEfficiency,
    PortfolioConcentration,
    RiskSpread,
)
from stockrisk.models import FileCategory, NormalizedSheet

logger = logging.getLogger(__name__)

__all__ = ["InventoryCalculator", "efficiency_grade", "concentration_risk"]


def concentration_risk(top_items_percentage: float) -> ConcentrationRisk:
    """Bucket the top-20% value share: >80 high, >60 medium, else low."""
    if top_items_percentage > 80:
        return ConcentrationRisk.HIGH
    if top_items_percentage > 60:
        return ConcentrationRisk.MEDIUM
    return ConcentrationRisk.LOW


def efficiency_grade(overall_efficiency: float) -> EfficiencyGrade:
    """Step function: >=90 A, >=80 B, >=70 C, >=60 D, else F."""
    if overall_efficiency >= 90:
        return EfficiencyGrade.A
    if overall_efficiency >= 80:
        return EfficiencyGrade.B
    if overall_efficiency >= 70:
        return EfficiencyGrade.C
    if overall_efficiency >= 60:
        return EfficiencyGrade.D
    return EfficiencyGrade.F


class InventoryCalculator:
    """Inventory metrics over normalized sheets.

    Sheets of other categories are ignored, so the full sheet set of a
    mixed upload may be passed as-is.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stats: Dict[str, int] = {"calculations": 0, "rows_seen": 0}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def calculate_all(self, sheets: Sequence[NormalizedSheet]) -> InventoryMetrics:
        """Compute every inventory metric."""
        concentration = self.calculate_portfolio_concentration(sheets)
        efficiency = self.calculate_plant_efficiency(sheets)
        geography = self.calculate_geographic_distribution(sheets)
        metrics = InventoryMetrics(
            portfolio_concentration=concentration,
            plant_efficiency=efficiency,
            geographic_distribution=geography,
            overall_health=self.calculate_overall_health(
                concentration, efficiency, geography,
            ),
        )
        with self._lock:
            self._stats["calculations"] += 1
            self._stats["rows_seen"] += sum(len(rows) for rows in self._row_sets(sheets))
        logger.debug(
            "Inventory metrics: health=%.2f, concentration=%s, grade=%s",
            metrics.overall_health,
            concentration.concentration_risk.value,
            efficiency.efficiency_grade.value,
        )
        return metrics

    def calculate_portfolio_concentration(
        self, sheets: Sequence[NormalizedSheet],
    ) -> PortfolioConcentration:
        values: List[float] = []
        for rows in self._row_sets(sheets):
            for row in filter_valid_data(rows, [VALUE_KEYS]):
                value = first_number(row, VALUE_KEYS)
                if value > 0:
                    values.append(value)

        if not values:
            return PortfolioConcentration()

        values.sort(reverse=True)
        total = sum(values)
        top_count = max(1, math.ceil(len(values) * 0.2))
        top_items_percentage = sum(values[:top_count]) / total * 100
        diversification = max(0.0, 100 - calculate_hhi(values) / 100)

        return PortfolioConcentration(
            top_items_percentage=round2(min(100.0, top_items_percentage)),
            diversification_index=round2(diversification),
            concentration_risk=concentration_risk(top_items_percentage),
        )

    def calculate_plant_efficiency(
        self, sheets: Sequence[NormalizedSheet],
    ) -> PlantEfficiency:
        total_utilization = 0.0
        total_throughput = 0.0
        plant_count = 0

        for rows in self._row_sets(sheets):
            # Plants are grouped per sheet
            plants: Dict[str, Dict[str, List[float]]] = {}
            for row in filter_valid_data(rows, [PLANT_KEYS]):
                plant = first_string(row, PLANT_KEYS)
                utilization = first_number(row, UTILIZATION_KEYS)
                throughput = first_number(row, THROUGHPUT_KEYS)
                if not plant or (utilization <= 0 and throughput <= 0):
                    continue
                samples = plants.setdefault(plant, {"utilization": [], "throughput": []})
                if utilization > 0:
                    samples["utilization"].append(utilization)
                if throughput > 0:
                    samples["throughput"].append(throughput)

            for samples in plants.values():
                if samples["utilization"]:
                    average = sum(samples["utilization"]) / len(samples["utilization"])
                    total_utilization += min(100.0, average)
                if samples["throughput"]:
                    total_throughput += sum(samples["throughput"]) / len(samples["throughput"])
                plant_count += 1

        if plant_count == 0:
            return PlantEfficiency()

        utilization_rate = total_utilization / plant_count
        throughput_score = min(100.0, (total_throughput / plant_count) / 10)
        return PlantEfficiency(
            utilization_rate=round2(utilization_rate),
            throughput_score=round2(throughput_score),
            efficiency_grade=efficiency_grade((utilization_rate + throughput_score) / 2),
        )

    def calculate_geographic_distribution(
        self, sheets: Sequence[NormalizedSheet],
    ) -> GeographicDistribution:
        regions: Dict[str, float] = {}
        for rows in self._row_sets(sheets):
            for row in filter_valid_data(rows, [REGION_KEYS]):
                region = first_string(row, REGION_KEYS)
                if region:
                    # Rows without a value count once
                    value = first_number(row, REGION_VALUE_KEYS, default=1.0)
                    regions[region] = regions.get(region, 0.0) + value

        if not regions:
            return GeographicDistribution()

        region_count = len(regions)
        balance = max(0.0, 100 - coefficient_of_variation(list(regions.values())) * 100)
        if region_count == 1 or balance < 40:
            spread = RiskSpread.CONCENTRATED
        elif region_count <= 3 or balance < 70:
            spread = RiskSpread.BALANCED
        else:
            spread = RiskSpread.DISTRIBUTED

        return GeographicDistribution(
            region_count=region_count,
            distribution_balance=round2(min(100.0, balance)),
            risk_spread=spread,
        )

    @staticmethod
    def calculate_overall_health(
        concentration: PortfolioConcentration,
        efficiency: PlantEfficiency,
        geography: GeographicDistribution,
    ) -> float:
        """0.4 x grade score + 0.3 x distribution balance + 0.3 x diversification."""
        health = (
            grade_to_score(efficiency.efficiency_grade) * 0.4
            + geography.distribution_balance * 0.3
            + concentration.diversification_index * 0.3
        )
        return round2(health)

    def get_statistics(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._stats)

    @staticmethod
    def _row_sets(sheets: Sequence[NormalizedSheet]) -> Iterator[List[Mapping[str, Any]]]:
        for sheet in sheets:
            if sheet.category == FileCategory.INVENTORY:
                yield sheet.rows
