"""
Risk Scoring Module

Composite risk scoring, multiplier rules and strategy recommendations for
small business disaster preparedness.
"""

from .engine import RecommendationEngine
from .exceptions import InvalidCharacteristicValue, RiskEngineError
from .models import (
    AppliedMultiplier,
    AssessmentMetadata,
    MultiplierResult,
    RankedStrategy,
    RecommendationResponse,
    RiskAssessment,
    RiskCalculationResponse,
    RiskTier,
)
from .multipliers import MultiplierEngine
from .risk_scorer import RiskScorer, calculate_manual_score, classify_manual_score, classify_score
from .strategies import StrategyMatcher

__all__ = [
    "RecommendationEngine",
    "InvalidCharacteristicValue",
    "RiskEngineError",
    "AppliedMultiplier",
    "AssessmentMetadata",
    "MultiplierResult",
    "RankedStrategy",
    "RecommendationResponse",
    "RiskAssessment",
    "RiskCalculationResponse",
    "RiskTier",
    "MultiplierEngine",
    "RiskScorer",
    "calculate_manual_score",
    "classify_manual_score",
    "classify_score",
    "StrategyMatcher",
]
