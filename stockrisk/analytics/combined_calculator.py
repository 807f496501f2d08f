# -*- coding: utf-8 -*-
"""
Combined Calculator - StockRisk Analytics

Cross-source business intelligence: blends inventory and OSR metrics into
portfolio health, risk exposure, operational efficiency and strategic
alignment, and derives an ordered list of recommended actions.

Scoring:
    - overall_portfolio_health = 0.6 x inventory health + 0.4 x OSR health
      - min(15, 5 x critical issues)
    - risk_exposure = 0.4 x inventory risk + 0.6 x OSR risk x trend factor
      (1.2 degrading, 0.8 improving)
    - operational_efficiency = 0.7 x (grade score + 0.3 x (utilisation - 75))
      + 0.3 x (0.3 x recoverability + 0.4 x OSR health - 8 x critical
      - 3 x major)
    - strategic_alignment = mean of inventory optimisation, risk
      mitigation, operational excellence and growth readiness

When only one source is present the reduced formulas apply and the first
recommendation discloses the missing source.

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from stockrisk.analytics.data_utils import clamp, grade_to_score, round2
from stockrisk.analytics.inventory_calculator import InventoryCalculator
from stockrisk.analytics.models import (
    CombinedMetrics,
    ConcentrationRisk,
    EfficiencyGrade,
    InventoryMetrics,
    OSRMetrics,
    RiskSpread,
    RiskTrend,
)
from stockrisk.analytics.osr_calculator import OSRCalculator
from stockrisk.models import NormalizedSheet

logger = logging.getLogger(__name__)

__all__ = [
    "CombinedCalculator",
    "NO_DATA_MESSAGE",
    "CONTINUE_MONITORING",
    "INVENTORY_ONLY_DISCLOSURE",
    "OSR_ONLY_DISCLOSURE",
]

NO_DATA_MESSAGE = "No data available for analysis"
CONTINUE_MONITORING = (
    "Continue monitoring current performance levels and maintain "
    "established processes"
)
INVENTORY_ONLY_DISCLOSURE = (
    "Analysis based on inventory data only - OSR data recommended for "
    "comprehensive assessment"
)
OSR_ONLY_DISCLOSURE = (
    "Analysis based on OSR data only - inventory data recommended for "
    "complete business view"
)

_LOW_GRADES = (EfficiencyGrade.D, EfficiencyGrade.F)


class CombinedCalculator:
    """Blend inventory and OSR metrics.

    Attributes:
        inventory_calculator: Calculator for the inventory sheets.
        osr_calculator: Calculator for the OSR sheets.
        max_recommendations: Cap on recommended actions.
    """

    def __init__(
        self,
        inventory_calculator: Optional[InventoryCalculator] = None,
        osr_calculator: Optional[OSRCalculator] = None,
        max_recommendations: int = 8,
    ) -> None:
        self.inventory_calculator = inventory_calculator or InventoryCalculator()
        self.osr_calculator = osr_calculator or OSRCalculator()
        self.max_recommendations = max_recommendations

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def calculate_with_partial_data(
        self,
        inventory_sheets: Sequence[NormalizedSheet] = (),
        osr_sheets: Sequence[NormalizedSheet] = (),
    ) -> CombinedMetrics:
        """Combined metrics for whichever sources are present."""
        if inventory_sheets and osr_sheets:
            return self.calculate(
                self.inventory_calculator.calculate_all(inventory_sheets),
                self.osr_calculator.calculate_all(osr_sheets),
            )
        if inventory_sheets:
            return self.calculate_inventory_only(
                self.inventory_calculator.calculate_all(inventory_sheets),
            )
        if osr_sheets:
            return self.calculate_osr_only(
                self.osr_calculator.calculate_all(osr_sheets),
            )
        return CombinedMetrics(recommended_actions=[NO_DATA_MESSAGE])

    def calculate(self, inventory: InventoryMetrics, osr: OSRMetrics) -> CombinedMetrics:
        """Full analysis from both sources."""
        return CombinedMetrics(
            overall_portfolio_health=self.overall_portfolio_health(inventory, osr),
            risk_exposure=self.risk_exposure(inventory, osr),
            operational_efficiency=self.operational_efficiency(inventory, osr),
            strategic_alignment=self.strategic_alignment(inventory, osr),
            recommended_actions=self.recommendations(inventory, osr),
        )

    def calculate_inventory_only(self, inventory: InventoryMetrics) -> CombinedMetrics:
        actions = [INVENTORY_ONLY_DISCLOSURE]
        if inventory.portfolio_concentration.concentration_risk == ConcentrationRisk.HIGH:
            actions.append("Diversify portfolio to reduce concentration risk")
        if inventory.geographic_distribution.risk_spread == RiskSpread.CONCENTRATED:
            actions.append("Consider geographic expansion to mitigate risk")
        if inventory.plant_efficiency.efficiency_grade in _LOW_GRADES:
            actions.append("Focus on plant efficiency improvements")

        return CombinedMetrics(
            overall_portfolio_health=inventory.overall_health,
            risk_exposure=self.inventory_only_risk(inventory),
            operational_efficiency=grade_to_score(
                inventory.plant_efficiency.efficiency_grade,
            ),
            strategic_alignment=round2(self.inventory_optimization(inventory)),
            recommended_actions=actions[:self.max_recommendations],
        )

    def calculate_osr_only(self, osr: OSRMetrics) -> CombinedMetrics:
        actions = [OSR_ONLY_DISCLOSURE]
        critical = osr.severity_score.critical_issues
        if critical > 0:
            actions.append(f"Address {critical} critical issues immediately")
        quick_wins = osr.recovery_potential.quick_wins
        if quick_wins > 0:
            actions.append(f"Execute {quick_wins} quick wins for immediate impact")

        return CombinedMetrics(
            overall_portfolio_health=osr.health_percentage,
            risk_exposure=self.osr_only_risk(osr),
            operational_efficiency=osr.health_percentage,
            strategic_alignment=osr.recovery_potential.recoverability_score,
            recommended_actions=actions[:self.max_recommendations],
        )

    # ------------------------------------------------------------------
    # Scores
    # ------------------------------------------------------------------

    @staticmethod
    def overall_portfolio_health(inventory: InventoryMetrics, osr: OSRMetrics) -> float:
        combined = inventory.overall_health * 0.6 + osr.health_percentage * 0.4
        penalty = min(15, osr.severity_score.critical_issues * 5)
        return round2(clamp(combined - penalty))

    @staticmethod
    def inventory_risk(inventory: InventoryMetrics) -> float:
        risk = 0.0
        concentration = inventory.portfolio_concentration.concentration_risk
        if concentration == ConcentrationRisk.HIGH:
            risk += 25
        elif concentration == ConcentrationRisk.MEDIUM:
            risk += 15

        spread = inventory.geographic_distribution.risk_spread
        if spread == RiskSpread.CONCENTRATED:
            risk += 20
        elif spread == RiskSpread.BALANCED:
            risk += 10

        grade = inventory.plant_efficiency.efficiency_grade
        if grade in _LOW_GRADES:
            risk += 15
        elif grade == EfficiencyGrade.C:
            risk += 8
        return risk

    @staticmethod
    def osr_risk(osr: OSRMetrics) -> float:
        severity = osr.severity_score
        assessment = osr.risk_assessment
        risk = (
            severity.critical_issues * 8
            + severity.major_issues * 3
            + severity.minor_issues
            + assessment.immediate_risks * 5
            + assessment.emerging_risks * 2
        )
        if assessment.risk_trend == RiskTrend.DEGRADING:
            risk *= 1.2
        elif assessment.risk_trend == RiskTrend.IMPROVING:
            risk *= 0.8
        return float(risk)

    def risk_exposure(self, inventory: InventoryMetrics, osr: OSRMetrics) -> float:
        combined = self.osr_risk(osr) * 0.6 + self.inventory_risk(inventory) * 0.4
        return round2(clamp(combined))

    @staticmethod
    def operational_efficiency(inventory: InventoryMetrics, osr: OSRMetrics) -> float:
        efficiency = inventory.plant_efficiency
        inventory_score = (
            grade_to_score(efficiency.efficiency_grade)
            + (efficiency.utilization_rate - 75) * 0.3
        )
        osr_impact = (
            osr.recovery_potential.recoverability_score * 0.3
            + osr.health_percentage * 0.4
            - osr.severity_score.critical_issues * 8
            - osr.severity_score.major_issues * 3
        )
        return round2(clamp(inventory_score * 0.7 + osr_impact * 0.3))

    def strategic_alignment(self, inventory: InventoryMetrics, osr: OSRMetrics) -> float:
        parts = (
            self.inventory_optimization(inventory),
            self.risk_mitigation(inventory, osr),
            self.operational_excellence(inventory, osr),
            self.growth_readiness(inventory, osr),
        )
        return round2(clamp(sum(parts) / len(parts)))

    # Strategic sub-scores

    @staticmethod
    def inventory_optimization(inventory: InventoryMetrics) -> float:
        score = (
            inventory.portfolio_concentration.diversification_index * 0.4
            + inventory.geographic_distribution.distribution_balance * 0.3
            + grade_to_score(inventory.plant_efficiency.efficiency_grade) * 0.3
        )
        return min(100.0, score)

    @staticmethod
    def risk_mitigation(inventory: InventoryMetrics, osr: OSRMetrics) -> float:
        score = 100.0
        concentration = inventory.portfolio_concentration.concentration_risk
        if concentration == ConcentrationRisk.HIGH:
            score -= 30
        elif concentration == ConcentrationRisk.MEDIUM:
            score -= 15
        if inventory.geographic_distribution.risk_spread == RiskSpread.CONCENTRATED:
            score -= 20
        score -= osr.severity_score.critical_issues * 10
        score -= osr.severity_score.major_issues * 5
        score -= osr.risk_assessment.immediate_risks * 8
        return max(0.0, score)

    @staticmethod
    def operational_excellence(inventory: InventoryMetrics, osr: OSRMetrics) -> float:
        return (
            grade_to_score(inventory.plant_efficiency.efficiency_grade) * 0.5
            + osr.health_percentage * 0.3
            + osr.recovery_potential.recoverability_score * 0.2
        )

    @staticmethod
    def growth_readiness(inventory: InventoryMetrics, osr: OSRMetrics) -> float:
        score = (
            inventory.overall_health * 0.4
            + osr.health_percentage * 0.3
            + osr.recovery_potential.recoverability_score * 0.3
            - osr.severity_score.critical_issues * 15
        )
        return clamp(score)

    # Partial-data risk

    @staticmethod
    def inventory_only_risk(inventory: InventoryMetrics) -> float:
        risk = 0.0
        concentration = inventory.portfolio_concentration.concentration_risk
        if concentration == ConcentrationRisk.HIGH:
            risk += 30
        elif concentration == ConcentrationRisk.MEDIUM:
            risk += 15
        if inventory.geographic_distribution.risk_spread == RiskSpread.CONCENTRATED:
            risk += 25
        if inventory.plant_efficiency.efficiency_grade in _LOW_GRADES:
            risk += 20
        return min(100.0, risk)

    @staticmethod
    def osr_only_risk(osr: OSRMetrics) -> float:
        risk = (
            osr.severity_score.critical_issues * 15
            + osr.severity_score.major_issues * 5
            + osr.risk_assessment.immediate_risks * 10
        )
        return min(100.0, float(risk))

    # ------------------------------------------------------------------
    # Recommendations
    # ------------------------------------------------------------------

    def recommendations(self, inventory: InventoryMetrics, osr: OSRMetrics) -> List[str]:
        """Ordered actions, capped at ``max_recommendations``."""
        actions: List[str] = []
        concentration = inventory.portfolio_concentration
        efficiency = inventory.plant_efficiency
        severity = osr.severity_score
        recovery = osr.recovery_potential
        assessment = osr.risk_assessment

        if concentration.concentration_risk == ConcentrationRisk.HIGH:
            actions.append(
                "Diversify portfolio to reduce concentration risk - top 20% of "
                "items represent over 80% of value"
            )
        if inventory.geographic_distribution.risk_spread == RiskSpread.CONCENTRATED:
            actions.append(
                "Expand geographic distribution to mitigate regional risk exposure"
            )
        if efficiency.efficiency_grade in _LOW_GRADES:
            actions.append(
                "Immediate attention required for plant efficiency - current grade "
                "indicates significant optimization opportunity"
            )
        if efficiency.utilization_rate < 70:
            actions.append(
                "Improve plant utilization rates - current rate below optimal threshold"
            )
        if severity.critical_issues > 0:
            actions.append(
                f"Address {severity.critical_issues} critical issues immediately - "
                f"these pose significant operational risk"
            )
        if recovery.quick_wins > 0:
            actions.append(
                f"Prioritize {recovery.quick_wins} quick wins - high impact, low "
                f"effort improvements available"
            )
        if assessment.immediate_risks > 2:
            actions.append(
                "Develop immediate risk mitigation plan - multiple urgent risks identified"
            )
        if assessment.risk_trend == RiskTrend.DEGRADING:
            actions.append(
                "Investigate root causes of degrading risk trend - early "
                "intervention critical"
            )
        if inventory.overall_health < 70 and osr.health_percentage < 70:
            actions.append(
                "Comprehensive operational review recommended - both inventory "
                "and OSR metrics indicate systemic issues"
            )
        if recovery.recoverability_score > 70 and inventory.overall_health > 80:
            actions.append(
                "Good foundation for growth - focus on executing recovery plan "
                "while maintaining inventory performance"
            )
        if self.risk_exposure(inventory, osr) > 60:
            actions.append(
                "Develop comprehensive risk management strategy - exposure levels "
                "require immediate attention"
            )

        if not actions:
            actions.append(CONTINUE_MONITORING)
        return actions[:self.max_recommendations]
