# -*- coding: utf-8 -*-
"""
StockRisk Analytics
===================

Business metrics derived from normalized sheets.

Key Components:
    - data_utils: candidate-key field lookup and statistics helpers
    - models: InventoryMetrics, OSRMetrics, CombinedMetrics, BusinessMetrics
    - inventory_calculator: concentration, plant efficiency, geography
    - osr_calculator: health, severity, recovery potential, risk
    - combined_calculator: cross-source scores and recommendations
    - engine: MetricsEngine entry point
"""

from stockrisk.analytics.models import (
    BusinessMetrics,
    CombinedMetrics,
    ConcentrationRisk,
    EfficiencyGrade,
    GeographicDistribution,
    InventoryMetrics,
    OSRMetrics,
    OverallSeverity,
    PlantEfficiency,
    PortfolioConcentration,
    RecoveryPotential,
    RiskAssessment,
    RiskSpread,
    RiskTrend,
    SeverityScore,
)
from stockrisk.analytics.inventory_calculator import InventoryCalculator
from stockrisk.analytics.osr_calculator import OSRCalculator
from stockrisk.analytics.combined_calculator import CombinedCalculator
from stockrisk.analytics.engine import MetricsEngine

__all__ = [
    "BusinessMetrics",
    "CombinedMetrics",
    "ConcentrationRisk",
    "EfficiencyGrade",
    "GeographicDistribution",
    "InventoryMetrics",
    "OSRMetrics",
    "OverallSeverity",
    "PlantEfficiency",
    "PortfolioConcentration",
    "RecoveryPotential",
    "RiskAssessment",
    "RiskSpread",
    "RiskTrend",
    "SeverityScore",
    "InventoryCalculator",
    "OSRCalculator",
    "CombinedCalculator",
    "MetricsEngine",
]
