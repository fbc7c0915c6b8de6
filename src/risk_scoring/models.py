"""
Risk Scoring Result Models

Structures produced by the engine and consumed by the wizard, the API and
document export.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..reference_data.models import (
    ActionStep,
    CostTier,
    SelectionTier,
    StrategyCategory,
)


class RiskTier(str, Enum):
    """Classified risk label"""
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"
    VERY_HIGH = "VeryHigh"
    EXTREME = "Extreme"


TIER_RANK = {
    RiskTier.LOW: 1,
    RiskTier.MODERATE: 2,
    RiskTier.HIGH: 3,
    RiskTier.VERY_HIGH: 4,
    RiskTier.EXTREME: 5,
}


class AppliedMultiplier(BaseModel):
    """A multiplier rule that fired for a hazard"""

    rule_id: str
    name: str
    characteristic_type: str
    priority: int
    factor: float
    reasoning: str


class SkippedMultiplier(BaseModel):
    """A rule that could not be evaluated against the supplied value"""

    rule_id: str
    name: str
    characteristic_type: str
    priority: int
    reason: str


class MultiplierResult(BaseModel):
    """Combined multiplier for one hazard plus the trace of rules that fired"""

    hazard_id: str
    combined_multiplier: float = Field(..., ge=1.0)
    raw_combined_factor: float = Field(..., ge=1.0)
    applied_rules: List[AppliedMultiplier] = Field(default_factory=list)
    skipped_rules: List[SkippedMultiplier] = Field(default_factory=list)

    @property
    def winners(self) -> Dict[str, AppliedMultiplier]:
        """Winning rule per characteristic type"""
        return {rule.characteristic_type: rule for rule in self.applied_rules}

    @property
    def reasoning(self) -> str:
        if not self.applied_rules:
            return "No multipliers applied"
        parts = [f"{rule.name} ×{rule.factor:g}" for rule in self.applied_rules]
        return f"Multipliers applied: {', '.join(parts)}"


class RiskAssessment(BaseModel):
    """
    Risk result for one hazard in one session

    The automated 1-10 score and the manual likelihood x severity score are
    independent; neither is ever derived from the other.
    """

    hazard_id: str
    hazard_name: str = ""

    # Automated path
    hazard_level: Optional[int] = Field(None, ge=1, le=10)
    vulnerability_level: Optional[int] = Field(None, ge=1, le=10)
    impact_severity: Optional[int] = Field(None, ge=1, le=10)
    composite_base: Optional[int] = Field(None, ge=1, le=10)
    combined_multiplier: Optional[float] = Field(None, ge=1.0)
    raw_combined_factor: Optional[float] = Field(None, ge=1.0)
    final_score: Optional[int] = Field(None, ge=1, le=10)
    tier: Optional[RiskTier] = None
    applied_rules: List[AppliedMultiplier] = Field(default_factory=list)
    skipped_rules: List[SkippedMultiplier] = Field(default_factory=list)
    location_estimated: bool = False
    vulnerability_estimated: bool = False
    is_seasonally_active: bool = False
    cascading_risks: List[str] = Field(default_factory=list)
    reasoning: str = ""

    # Manual path
    likelihood: Optional[int] = Field(None, ge=1, le=4)
    severity: Optional[int] = Field(None, ge=1, le=4)
    manual_score: Optional[int] = Field(None, ge=1, le=16)
    manual_tier: Optional[RiskTier] = None

    @property
    def is_estimated(self) -> bool:
        return self.location_estimated or self.vulnerability_estimated

    @property
    def has_automated_score(self) -> bool:
        return self.final_score is not None

    @property
    def has_manual_score(self) -> bool:
        return self.manual_score is not None

    def multiplier_result(self) -> MultiplierResult:
        """Rebuild the multiplier trace stored on this assessment"""
        return MultiplierResult(
            hazard_id=self.hazard_id,
            combined_multiplier=self.combined_multiplier or 1.0,
            raw_combined_factor=self.raw_combined_factor or 1.0,
            applied_rules=self.applied_rules,
            skipped_rules=self.skipped_rules,
        )


class RankedStrategy(BaseModel):
    """A selected strategy with merged hazard-match metadata"""

    strategy_id: str
    name: str = ""
    category: StrategyCategory
    effectiveness: int
    cost_tier: CostTier
    selection_tier: SelectionTier
    relevance_score: int
    matched_hazards: List[str] = Field(default_factory=list)
    rationale: List[str] = Field(default_factory=list)
    highest_tier: Optional[RiskTier] = None
    surfaced_for_diversity: bool = False
    action_steps: List[ActionStep] = Field(default_factory=list)


class AssessmentMetadata(BaseModel):
    business_type_found: bool
    location_found: bool
    estimated_hazards: List[str] = Field(default_factory=list)
    data_quality: str = "limited"
    typical_impacts: List[str] = Field(default_factory=list)
    total_candidates: int = 0


class RecommendationResponse(BaseModel):
    risks: List[RiskAssessment]
    strategies: List[RankedStrategy]
    no_specific_guidance: bool = False
    metadata: AssessmentMetadata


class RiskCalculationResponse(BaseModel):
    risk_calculations: List[RiskAssessment]
    strategies: List[RankedStrategy]
    no_specific_guidance: bool = False
    metadata: AssessmentMetadata
