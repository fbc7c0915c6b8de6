"""
Recommendation Engine

Entry points used by the wizard: assess a business's hazards, rank
mitigation strategies for them, and record manual likelihood x severity
ratings. Every call is a pure computation over the repository snapshot.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..reference_data.hazard_ids import get_canonical_hazard_id
from ..reference_data.models import HazardType
from ..reference_data.repository import ReferenceRepository
from .characteristics import CharacteristicValue, apply_location_defaults
from .models import (
    AssessmentMetadata,
    RankedStrategy,
    RecommendationResponse,
    RiskAssessment,
    RiskCalculationResponse,
    RiskTier,
)
from .multipliers import MultiplierEngine
from .risk_scorer import RiskScorer, ScoreSource, apply_manual_rating, effective_tier
from .strategies import StrategyMatcher

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

FLOOD_HAZARD = "flooding"

# Impacts worth calling out when a hazard reaches VeryHigh or Extreme
HAZARD_IMPACTS = {
    "hurricane": "Structural damage and extended closure periods",
    "flooding": "Equipment damage and inventory loss",
    "earthquake": "Building damage and supply chain disruption",
    "drought": "Water restrictions affecting operations",
    "fire": "Total facility loss and equipment replacement needs",
    "break_in_theft": "Inventory loss and employee safety concerns",
}

DEPENDENCY_IMPACTS = (
    ("power_dependency", 80, "Extended power outages could halt all operations"),
    ("water_dependency", 80, "Water supply disruption could force closure"),
    ("tourism_share", 60, "Tourist evacuations could eliminate customer base"),
)

FLAG_IMPACTS = (
    ("supply_chain_complex", "Supply chain disruptions could create inventory shortages"),
    ("perishable_goods", "Product spoilage during extended outages"),
)


def data_quality(assessments: Sequence[RiskAssessment]) -> str:
    """Share of hazards scored from real (non-estimated) reference data"""
    if not assessments:
        return "limited"

    percentage = 100 * sum(not a.is_estimated for a in assessments) / len(assessments)
    if percentage >= 80:
        return "excellent"
    if percentage >= 60:
        return "good"
    if percentage >= 40:
        return "fair"
    return "limited"


def typical_impacts(
    assessments: Sequence[RiskAssessment],
    characteristics: Mapping[str, CharacteristicValue],
) -> List[str]:
    impacts = []

    for key, threshold, text in DEPENDENCY_IMPACTS:
        value = characteristics.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value >= threshold:
            impacts.append(text)

    for key, text in FLAG_IMPACTS:
        if characteristics.get(key) is True:
            impacts.append(text)

    for assessment in assessments:
        if assessment.tier in (RiskTier.VERY_HIGH, RiskTier.EXTREME):
            text = HAZARD_IMPACTS.get(assessment.hazard_id)
            if text and text not in impacts:
                impacts.append(text)

    return impacts


def validate_month(month: Optional[int]) -> Optional[int]:
    if month is None:
        return None
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise ValueError(f"month must be an integer between 1 and 12, got {month!r}")
    return month


def is_seasonally_active(hazard_type: Optional[HazardType], month: Optional[int]) -> bool:
    """True when the hazard's peak season includes the given month"""
    if hazard_type is None or month is None:
        return False
    return hazard_type.is_peak_month(month)


def _risk_sort_key(assessment: RiskAssessment):
    # In-season hazards go first among equal scores
    return (
        -(assessment.final_score or 0),
        not assessment.is_seasonally_active,
        assessment.hazard_id,
    )


class RecommendationEngine:
    """Risk scoring and strategy recommendation for one reference snapshot"""

    def __init__(
        self,
        repository: ReferenceRepository,
        scorer: Optional[RiskScorer] = None,
        multiplier_engine: Optional[MultiplierEngine] = None,
        max_strategies: Optional[int] = None,
    ):
        self.repository = repository
        self.scorer = scorer or RiskScorer()
        self.multipliers = multiplier_engine or MultiplierEngine(repository)
        self.matcher = StrategyMatcher(repository, max_strategies=max_strategies)

    # Risk assessment

    def prepare_characteristics(
        self,
        location_id: Optional[str],
        characteristics: Optional[Mapping[str, CharacteristicValue]],
    ) -> Dict[str, CharacteristicValue]:
        """User answers plus facts inferred from the location record"""
        flood = self.repository.get_hazard_level(location_id, FLOOD_HAZARD)
        return apply_location_defaults(
            characteristics or {},
            self.repository.get_location(location_id),
            flood_level=None if flood.is_estimated else flood.level,
        )

    def assess_hazards(
        self,
        hazard_ids: Iterable[str],
        business_type_id: str,
        location_id: Optional[str],
        characteristics: Optional[Mapping[str, CharacteristicValue]] = None,
        month: Optional[int] = None,
    ) -> List[RiskAssessment]:
        """
        Automated assessment for each hazard

        Multiplier rules for all hazards are fetched in a single batched call.
        When ``month`` (1-12) is given, hazards whose peak season includes it
        are flagged as seasonally active.
        """
        values = self.prepare_characteristics(location_id, characteristics)
        return self._assess(hazard_ids, business_type_id, location_id, values, month)

    def _assess(
        self,
        hazard_ids: Iterable[str],
        business_type_id: str,
        location_id: Optional[str],
        values: Mapping[str, CharacteristicValue],
        month: Optional[int],
    ) -> List[RiskAssessment]:
        month = validate_month(month)
        hazards = list(dict.fromkeys(get_canonical_hazard_id(h) for h in hazard_ids if h))
        rules_by_hazard = self.repository.get_multipliers_for_hazards(hazards)

        assessments = []
        for hazard_id in hazards:
            multiplier = self.multipliers.evaluate(
                hazard_id, values, rules=rules_by_hazard.get(hazard_id, [])
            )
            hazard_type = self.repository.get_hazard_type(hazard_id)
            assessments.append(
                self.scorer.assess(
                    hazard_id,
                    self.repository.get_hazard_level(location_id, hazard_id),
                    self.repository.get_vulnerability(business_type_id, hazard_id),
                    multiplier,
                    hazard_name=self.repository.get_hazard_name(hazard_id),
                    is_seasonally_active=is_seasonally_active(hazard_type, month),
                    cascading_risks=hazard_type.cascading_risks if hazard_type else None,
                )
            )

        return assessments

    def recompute(
        self,
        previous: Sequence[RiskAssessment],
        location_id: Optional[str],
        characteristics: Optional[Mapping[str, CharacteristicValue]],
        changed: Iterable[str],
    ) -> List[RiskAssessment]:
        """
        Refresh assessments after the user re-answers some characteristics

        Only hazards with a rule keyed to a changed characteristic are
        re-evaluated; every other assessment is returned as is.
        """
        changed = set(changed)
        values = self.prepare_characteristics(location_id, characteristics)
        rules_by_hazard = self.repository.get_multipliers_for_hazards(
            a.hazard_id for a in previous
        )

        refreshed = []
        for assessment in previous:
            rules = rules_by_hazard.get(assessment.hazard_id, [])
            if not assessment.has_automated_score or not self.multipliers.is_affected_by(
                assessment.hazard_id, changed, rules=rules
            ):
                refreshed.append(assessment)
                continue

            multiplier = self.multipliers.reevaluate(
                assessment.multiplier_result(), values, changed, rules=rules
            )
            logger.info(
                f"Re-evaluated {assessment.hazard_id} after change to {sorted(changed)}"
            )
            refreshed.append(self.scorer.rescore(assessment, multiplier))

        return refreshed

    def set_manual_rating(
        self,
        hazard_id: str,
        likelihood: int,
        severity: int,
        assessment: Optional[RiskAssessment] = None,
    ) -> RiskAssessment:
        """
        Record a manual likelihood x severity rating

        The automated fields of ``assessment`` (if given) are preserved as is.

        Raises:
            ValueError: likelihood or severity outside 1-4, or the assessment
                belongs to another hazard
        """
        hazard_id = get_canonical_hazard_id(hazard_id)
        if assessment is None:
            assessment = RiskAssessment(
                hazard_id=hazard_id, hazard_name=self.repository.get_hazard_name(hazard_id)
            )
        elif get_canonical_hazard_id(assessment.hazard_id) != hazard_id:
            raise ValueError(
                f"Assessment is for '{assessment.hazard_id}', not '{hazard_id}'"
            )
        else:
            assessment = assessment.model_copy(update={"hazard_id": hazard_id})

        return apply_manual_rating(assessment, likelihood, severity)

    # Recommendations

    def rank_strategies(
        self,
        assessments: Sequence[RiskAssessment],
        business_type_id: str,
        score_source: ScoreSource = "automated",
    ) -> List[RankedStrategy]:
        assessed = {a.hazard_id: effective_tier(a, score_source) for a in assessments}
        return self.matcher.rank(assessed, business_type_id)

    def get_smart_recommendations(
        self,
        business_type_id: str,
        location_id: Optional[str],
        characteristics: Optional[Mapping[str, CharacteristicValue]] = None,
        score_source: ScoreSource = "automated",
        month: Optional[int] = None,
    ) -> RecommendationResponse:
        """Assess every hazard known for the location or business type and rank strategies"""
        hazards = self.repository.get_known_hazards(location_id, business_type_id)
        risks, strategies, metadata = self._run(
            hazards, business_type_id, location_id, characteristics, score_source, None, month
        )
        return RecommendationResponse(
            risks=risks,
            strategies=strategies,
            no_specific_guidance=not strategies,
            metadata=metadata,
        )

    def get_risk_calculations(
        self,
        hazard_ids: Iterable[str],
        business_type_id: str,
        location_id: Optional[str],
        characteristics: Optional[Mapping[str, CharacteristicValue]] = None,
        score_source: ScoreSource = "automated",
        manual_ratings: Optional[Mapping[str, Tuple[int, int]]] = None,
        month: Optional[int] = None,
    ) -> RiskCalculationResponse:
        """
        Assess the given hazards and rank strategies for them

        Args:
            hazard_ids: Hazards selected by the user
            business_type_id: Business type being assessed
            location_id: Location (None or unknown falls back to estimates)
            characteristics: User-declared characteristic values
            score_source: Which tier drives strategy matching
            manual_ratings: hazard id -> (likelihood, severity) already entered
            month: Current month (1-12) for peak-season flags, None to skip
        """
        risks, strategies, metadata = self._run(
            hazard_ids,
            business_type_id,
            location_id,
            characteristics,
            score_source,
            manual_ratings,
            month,
        )
        return RiskCalculationResponse(
            risk_calculations=risks,
            strategies=strategies,
            no_specific_guidance=not strategies,
            metadata=metadata,
        )

    def _run(
        self,
        hazard_ids: Iterable[str],
        business_type_id: str,
        location_id: Optional[str],
        characteristics: Optional[Mapping[str, CharacteristicValue]],
        score_source: ScoreSource,
        manual_ratings: Optional[Mapping[str, Tuple[int, int]]],
        month: Optional[int] = None,
    ):
        values = self.prepare_characteristics(location_id, characteristics)
        risks = self._assess(hazard_ids, business_type_id, location_id, values, month)

        if manual_ratings:
            ratings = {get_canonical_hazard_id(h): r for h, r in manual_ratings.items()}
            risks = [
                apply_manual_rating(a, *ratings[a.hazard_id]) if a.hazard_id in ratings else a
                for a in risks
            ]

        risks.sort(key=_risk_sort_key)
        strategies = self.rank_strategies(risks, business_type_id, score_source)

        if not strategies:
            logger.info(f"No specific guidance for {business_type_id} at {location_id}")

        metadata = AssessmentMetadata(
            business_type_found=self.repository.get_business_type(business_type_id) is not None,
            location_found=self.repository.get_location(location_id) is not None,
            estimated_hazards=[a.hazard_id for a in risks if a.is_estimated],
            data_quality=data_quality(risks),
            typical_impacts=typical_impacts(risks, values),
            total_candidates=len(self.matcher.find_candidates(
                {a.hazard_id: effective_tier(a, score_source) for a in risks}, business_type_id
            )),
        )

        return risks, strategies, metadata
