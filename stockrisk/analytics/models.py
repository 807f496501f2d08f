# -*- coding: utf-8 -*-
"""
Metric Models - StockRisk Analytics

Pydantic v2 models for the business metrics derived from normalized
sheets. All percentages are in [0, 100] and rounded to 2 decimals; every
grade and bucket is an enum so classification is total.

Models:
    - InventoryMetrics: concentration, plant efficiency, geography, health
    - OSRMetrics: health, severity, recovery potential, risk assessment
    - CombinedMetrics: cross-source health, exposure, efficiency,
      alignment and recommended actions
    - BusinessMetrics: the three above plus the categories present

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from stockrisk.models import FileCategory, _utcnow

__all__ = [
    "ConcentrationRisk",
    "EfficiencyGrade",
    "RiskSpread",
    "OverallSeverity",
    "RiskTrend",
    "PortfolioConcentration",
    "PlantEfficiency",
    "GeographicDistribution",
    "InventoryMetrics",
    "SeverityScore",
    "RecoveryPotential",
    "RiskAssessment",
    "OSRMetrics",
    "CombinedMetrics",
    "BusinessMetrics",
]


# =============================================================================
# Enumerations
# =============================================================================


class ConcentrationRisk(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EfficiencyGrade(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class RiskSpread(str, Enum):
    CONCENTRATED = "concentrated"
    BALANCED = "balanced"
    DISTRIBUTED = "distributed"


class OverallSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DEGRADING = "degrading"


# =============================================================================
# Inventory
# =============================================================================


class PortfolioConcentration(BaseModel):
    """Share of value held by the top 20% of items."""

    top_items_percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    diversification_index: float = Field(default=0.0, ge=0.0, le=100.0)
    concentration_risk: ConcentrationRisk = ConcentrationRisk.LOW

    model_config = {"extra": "forbid"}


class PlantEfficiency(BaseModel):
    """Per-plant utilisation and throughput averages."""

    utilization_rate: float = Field(default=0.0, ge=0.0, le=100.0)
    throughput_score: float = Field(default=0.0, ge=0.0, le=100.0)
    efficiency_grade: EfficiencyGrade = EfficiencyGrade.F

    model_config = {"extra": "forbid"}


class GeographicDistribution(BaseModel):
    """Balance of value across regions."""

    region_count: int = Field(default=0, ge=0)
    distribution_balance: float = Field(default=0.0, ge=0.0, le=100.0)
    risk_spread: RiskSpread = RiskSpread.CONCENTRATED

    model_config = {"extra": "forbid"}


class InventoryMetrics(BaseModel):
    portfolio_concentration: PortfolioConcentration = Field(
        default_factory=PortfolioConcentration,
    )
    plant_efficiency: PlantEfficiency = Field(default_factory=PlantEfficiency)
    geographic_distribution: GeographicDistribution = Field(
        default_factory=GeographicDistribution,
    )
    overall_health: float = Field(default=0.0, ge=0.0, le=100.0)

    model_config = {"extra": "forbid"}


# =============================================================================
# OSR
# =============================================================================


class SeverityScore(BaseModel):
    """Issue counts by normalised severity."""

    critical_issues: int = Field(default=0, ge=0)
    major_issues: int = Field(default=0, ge=0)
    minor_issues: int = Field(default=0, ge=0)
    overall_severity: OverallSeverity = OverallSeverity.LOW

    model_config = {"extra": "forbid"}


class RecoveryPotential(BaseModel):
    """Remediation actions bucketed by impact and effort."""

    quick_wins: int = Field(default=0, ge=0)
    medium_term_actions: int = Field(default=0, ge=0)
    long_term_strategic: int = Field(default=0, ge=0)
    recoverability_score: float = Field(default=0.0, ge=0.0, le=100.0)

    model_config = {"extra": "forbid"}


class RiskAssessment(BaseModel):
    immediate_risks: int = Field(default=0, ge=0)
    emerging_risks: int = Field(default=0, ge=0)
    risk_trend: RiskTrend = RiskTrend.STABLE

    model_config = {"extra": "forbid"}


class OSRMetrics(BaseModel):
    health_percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    severity_score: SeverityScore = Field(default_factory=SeverityScore)
    recovery_potential: RecoveryPotential = Field(default_factory=RecoveryPotential)
    risk_assessment: RiskAssessment = Field(default_factory=RiskAssessment)

    model_config = {"extra": "forbid"}


# =============================================================================
# Combined
# =============================================================================


class CombinedMetrics(BaseModel):
    """Cross-source scores and ordered recommendations."""

    overall_portfolio_health: float = Field(default=0.0, ge=0.0, le=100.0)
    risk_exposure: float = Field(default=0.0, ge=0.0, le=100.0)
    operational_efficiency: float = Field(default=0.0, ge=0.0, le=100.0)
    strategic_alignment: float = Field(default=0.0, ge=0.0, le=100.0)
    recommended_actions: List[str] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


class BusinessMetrics(BaseModel):
    """All metrics derived from one set of normalized sheets.

    ``inventory`` / ``osr`` are None when no sheet of that category was
    supplied; ``combined`` is always present.
    """

    inventory: Optional[InventoryMetrics] = None
    osr: Optional[OSRMetrics] = None
    combined: CombinedMetrics = Field(default_factory=CombinedMetrics)
    detected_categories: List[FileCategory] = Field(default_factory=list)
    computed_at: datetime = Field(default_factory=_utcnow)

    model_config = {"extra": "forbid"}
