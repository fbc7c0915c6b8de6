"""
Assessment Reporting

Tabular views of engine output for the dashboard and document export.
"""

from typing import Dict, Sequence

import pandas as pd

from .models import RankedStrategy, RiskAssessment, RiskTier

ASSESSMENT_COLUMNS = [
    "hazard_id",
    "hazard_name",
    "hazard_level",
    "vulnerability_level",
    "impact_severity",
    "composite_base",
    "combined_multiplier",
    "final_score",
    "tier",
    "manual_score",
    "manual_tier",
    "is_estimated",
    "in_peak_season",
    "applied_rules",
]

STRATEGY_COLUMNS = [
    "strategy_id",
    "name",
    "category",
    "relevance_score",
    "effectiveness",
    "cost_tier",
    "selection_tier",
    "matched_hazards",
    "highest_tier",
    "surfaced_for_diversity",
    "action_steps",
]


def _value(member):
    return member.value if member is not None else None


def assessments_to_frame(assessments: Sequence[RiskAssessment]) -> pd.DataFrame:
    """One row per hazard"""
    records = [
        {
            "hazard_id": a.hazard_id,
            "hazard_name": a.hazard_name or a.hazard_id,
            "hazard_level": a.hazard_level,
            "vulnerability_level": a.vulnerability_level,
            "impact_severity": a.impact_severity,
            "composite_base": a.composite_base,
            "combined_multiplier": a.combined_multiplier,
            "final_score": a.final_score,
            "tier": _value(a.tier),
            "manual_score": a.manual_score,
            "manual_tier": _value(a.manual_tier),
            "is_estimated": a.is_estimated,
            "in_peak_season": a.is_seasonally_active,
            "applied_rules": ", ".join(r.name for r in a.applied_rules),
        }
        for a in assessments
    ]
    return pd.DataFrame(records, columns=ASSESSMENT_COLUMNS)


def strategies_to_frame(strategies: Sequence[RankedStrategy]) -> pd.DataFrame:
    """One row per ranked strategy, in ranking order"""
    records = [
        {
            "strategy_id": s.strategy_id,
            "name": s.name or s.strategy_id,
            "category": s.category.value,
            "relevance_score": s.relevance_score,
            "effectiveness": s.effectiveness,
            "cost_tier": s.cost_tier.value,
            "selection_tier": s.selection_tier.value,
            "matched_hazards": ", ".join(s.matched_hazards),
            "highest_tier": _value(s.highest_tier),
            "surfaced_for_diversity": s.surfaced_for_diversity,
            "action_steps": len(s.action_steps),
        }
        for s in strategies
    ]
    return pd.DataFrame(records, columns=STRATEGY_COLUMNS)


def tier_distribution(assessments: Sequence[RiskAssessment]) -> Dict[str, int]:
    """Count of hazards per automated tier, every tier present"""
    counts = pd.Series([a.tier.value for a in assessments if a.tier is not None], dtype=object)
    counts = counts.value_counts()
    return {tier.value: int(counts.get(tier.value, 0)) for tier in RiskTier}
