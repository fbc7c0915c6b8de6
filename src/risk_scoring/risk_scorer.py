"""
Risk Scoring Module

Calculates the composite 1-10 risk score per hazard for a business and the
independent manual likelihood x severity score used by the guided wizard.
"""

import logging
from typing import Dict, List, Literal, Optional, Tuple

import numpy as np

from ..reference_data.repository import HazardLevel, Vulnerability, round_half_up
from .models import MultiplierResult, RiskAssessment, RiskTier

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

MIN_SCORE = 1
MAX_SCORE = 10

# Lowest final score of each automated tier
AUTOMATED_TIER_FLOORS = (
    (9, RiskTier.EXTREME),
    (7, RiskTier.VERY_HIGH),
    (5, RiskTier.HIGH),
    (3, RiskTier.MODERATE),
    (1, RiskTier.LOW),
)

# Manual likelihood x severity scale (each 1-4, product 1-16)
MANUAL_RATING_MIN = 1
MANUAL_RATING_MAX = 4
MANUAL_EXTREME_THRESHOLD = 12
MANUAL_HIGH_THRESHOLD = 8
MANUAL_MODERATE_THRESHOLD = 3
MANUAL_LOW_THRESHOLD = 1

ScoreSource = Literal["automated", "manual", "prefer_manual"]


def clamp_score(value: int, low: int = MIN_SCORE, high: int = MAX_SCORE) -> int:
    return max(low, min(high, value))


def classify_score(final_score: int) -> RiskTier:
    """Tier for an automated 1-10 score"""
    for floor, tier in AUTOMATED_TIER_FLOORS:
        if final_score >= floor:
            return tier
    return RiskTier.LOW


def classify_manual_score(score: int) -> Optional[RiskTier]:
    """
    Tier for a manual likelihood x severity score

    Returns None for a score below 1 (nothing rated yet).
    """
    if score >= MANUAL_EXTREME_THRESHOLD:
        return RiskTier.EXTREME
    if score >= MANUAL_HIGH_THRESHOLD:
        return RiskTier.HIGH
    if score >= MANUAL_MODERATE_THRESHOLD:
        return RiskTier.MODERATE
    if score >= MANUAL_LOW_THRESHOLD:
        return RiskTier.LOW
    return None


def calculate_manual_score(likelihood: int, severity: int) -> Tuple[int, Optional[RiskTier]]:
    """
    Manual score and tier from likelihood and severity (each 1-4)

    Raises:
        ValueError: likelihood or severity outside 1-4
    """
    for name, value in (("likelihood", likelihood), ("severity", severity)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{name} must be an integer, got {value!r}")
        if not MANUAL_RATING_MIN <= value <= MANUAL_RATING_MAX:
            raise ValueError(
                f"{name} must be between {MANUAL_RATING_MIN} and {MANUAL_RATING_MAX}, got {value}"
            )

    score = likelihood * severity
    return score, classify_manual_score(score)


def apply_manual_rating(
    assessment: RiskAssessment, likelihood: int, severity: int
) -> RiskAssessment:
    """Copy of the assessment with the manual fields recomputed; automated fields untouched"""
    score, tier = calculate_manual_score(likelihood, severity)
    return assessment.model_copy(
        update={
            "likelihood": likelihood,
            "severity": severity,
            "manual_score": score,
            "manual_tier": tier,
        }
    )


def effective_tier(
    assessment: RiskAssessment, source: ScoreSource = "automated"
) -> Optional[RiskTier]:
    """Pick which of the two coexisting tiers a caller wants to act on"""
    if source == "automated":
        return assessment.tier
    if source == "manual":
        return assessment.manual_tier
    if source == "prefer_manual":
        return assessment.manual_tier if assessment.has_manual_score else assessment.tier
    raise ValueError(f"Unknown score source: {source}")


class RiskScorer:
    """Calculate composite risk scores for a business against each hazard"""

    # Default weights for each input (must sum to 1.0)
    DEFAULT_WEIGHTS = {
        "hazard_level": 0.4,
        "vulnerability_level": 0.4,
        "impact_severity": 0.2,
    }

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        """
        Initialize risk scorer

        Args:
            weights: Custom weights for hazard_level, vulnerability_level and
                impact_severity. If None, uses defaults.
        """
        self.weights = dict(weights) if weights is not None else dict(self.DEFAULT_WEIGHTS)

        missing = set(self.DEFAULT_WEIGHTS) - set(self.weights)
        if missing:
            raise ValueError(f"Missing weights: {sorted(missing)}")

        # Validate weights sum to 1.0
        total_weight = sum(self.weights.values())
        if not np.isclose(total_weight, 1.0):
            logger.warning(f"Weights sum to {total_weight:.2f}, normalizing to 1.0")
            self.weights = {k: v / total_weight for k, v in self.weights.items()}

    def calculate_composite_base(
        self, hazard_level: int, vulnerability_level: int, impact_severity: int
    ) -> int:
        """Weighted blend of location and business inputs, rounded and clamped to 1-10"""
        blended = (
            hazard_level * self.weights["hazard_level"]
            + vulnerability_level * self.weights["vulnerability_level"]
            + impact_severity * self.weights["impact_severity"]
        )
        # Guard against float noise such as 7.499999999 for an exact .5
        return clamp_score(round_half_up(round(blended, 6)))

    def calculate_final_score(self, composite_base: int, combined_multiplier: float) -> int:
        return clamp_score(round_half_up(round(composite_base * combined_multiplier, 6)))

    def assess(
        self,
        hazard_id: str,
        hazard: HazardLevel,
        vulnerability: Vulnerability,
        multiplier: MultiplierResult,
        hazard_name: str = "",
        is_seasonally_active: bool = False,
        cascading_risks: Optional[List[str]] = None,
    ) -> RiskAssessment:
        """
        Build the automated risk assessment for one hazard

        Seasonality only annotates the reasoning and the ordering of equal
        scores; it never changes the score itself.

        Returns:
            RiskAssessment with composite base, final score, tier and trace
        """
        composite_base = self.calculate_composite_base(
            hazard.level, vulnerability.vulnerability_level, vulnerability.impact_severity
        )
        final_score = self.calculate_final_score(composite_base, multiplier.combined_multiplier)
        tier = classify_score(final_score)

        reasoning = (
            f"Location level {hazard.level}{' (estimated)' if hazard.is_estimated else ''}, "
            f"vulnerability {vulnerability.vulnerability_level}, "
            f"impact {vulnerability.impact_severity}"
            f"{' (estimated)' if vulnerability.is_estimated else ''}"
            f" -> base {composite_base}; {multiplier.reasoning}"
        )
        if is_seasonally_active:
            reasoning += "; currently in peak season"

        return RiskAssessment(
            hazard_id=hazard_id,
            hazard_name=hazard_name,
            hazard_level=hazard.level,
            vulnerability_level=vulnerability.vulnerability_level,
            impact_severity=vulnerability.impact_severity,
            composite_base=composite_base,
            combined_multiplier=multiplier.combined_multiplier,
            raw_combined_factor=multiplier.raw_combined_factor,
            final_score=final_score,
            tier=tier,
            applied_rules=multiplier.applied_rules,
            skipped_rules=multiplier.skipped_rules,
            location_estimated=hazard.is_estimated,
            vulnerability_estimated=vulnerability.is_estimated,
            is_seasonally_active=is_seasonally_active,
            cascading_risks=list(cascading_risks or []),
            reasoning=reasoning,
        )

    def rescore(self, assessment: RiskAssessment, multiplier: MultiplierResult) -> RiskAssessment:
        """Re-apply a new multiplier result to an existing automated assessment"""
        rescored = self.assess(
            assessment.hazard_id,
            HazardLevel(assessment.hazard_level, assessment.location_estimated),
            Vulnerability(
                assessment.vulnerability_level,
                assessment.impact_severity,
                assessment.vulnerability_estimated,
            ),
            multiplier,
            hazard_name=assessment.hazard_name,
            is_seasonally_active=assessment.is_seasonally_active,
            cascading_risks=assessment.cascading_risks,
        )
        # Manual fields belong to the user and carry over unchanged
        return rescored.model_copy(
            update={
                "likelihood": assessment.likelihood,
                "severity": assessment.severity,
                "manual_score": assessment.manual_score,
                "manual_tier": assessment.manual_tier,
            }
        )
