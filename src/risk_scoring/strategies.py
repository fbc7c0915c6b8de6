"""
Strategy Matching & Ranking

Selects mitigation strategies for the assessed hazards, scores them,
merges strategies that match several hazards and keeps every strategy
category represented in the final list.
"""

import logging
from typing import Dict, List, Mapping, Optional

from ..reference_data.hazard_ids import get_canonical_hazard_id
from ..reference_data.models import CostTier, SelectionTier, Strategy, StrategyCategory
from ..reference_data.repository import ReferenceRepository
from .action_steps import order_action_steps
from .models import TIER_RANK, RankedStrategy, RiskTier

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

COST_TIER_RANK = {
    CostTier.LOW: 0,
    CostTier.MEDIUM: 1,
    CostTier.HIGH: 2,
}

SELECTION_TIER_BONUS = {
    SelectionTier.ESSENTIAL: 3,
    SelectionTier.RECOMMENDED: 1,
    SelectionTier.OPTIONAL: 0,
}


def relevance_score(strategy: Strategy) -> int:
    """effectiveness*2 + (3 - cost rank) + selection tier bonus"""
    return (
        strategy.effectiveness * 2
        + (3 - COST_TIER_RANK[strategy.cost_tier])
        + SELECTION_TIER_BONUS[strategy.selection_tier]
    )


def ranking_key(ranked: RankedStrategy):
    return (-ranked.relevance_score, COST_TIER_RANK[ranked.cost_tier], ranked.strategy_id)


class StrategyMatcher:
    """Match and rank strategies across an assessed hazard set"""

    def __init__(self, repository: ReferenceRepository, max_strategies: Optional[int] = None):
        """
        Initialize strategy matcher

        Args:
            repository: Source of active strategies
            max_strategies: Cutoff on the ranked list. None keeps every candidate.
        """
        if max_strategies is not None and max_strategies < 1:
            raise ValueError(f"max_strategies must be positive, got {max_strategies}")

        self.repository = repository
        self.max_strategies = max_strategies

    def find_candidates(
        self,
        assessed_hazards: Mapping[str, Optional[RiskTier]],
        business_type_id: str,
    ) -> List[RankedStrategy]:
        """
        One entry per strategy matching any assessed hazard, hazards merged

        Args:
            assessed_hazards: hazard id -> tier (None if not rated)
            business_type_id: Business type being assessed
        """
        hazards = {get_canonical_hazard_id(h): tier for h, tier in assessed_hazards.items()}
        candidates: Dict[str, RankedStrategy] = {}

        for strategy in self.repository.get_active_strategies():
            if not strategy.applies_to_business_type(business_type_id):
                continue

            for hazard_id, tier in hazards.items():
                if hazard_id not in strategy.applicable_hazards:
                    continue

                entry = candidates.get(strategy.strategy_id)
                if entry is None:
                    entry = self._new_entry(strategy)
                    candidates[strategy.strategy_id] = entry

                self._merge_hazard(entry, hazard_id, tier)

        return list(candidates.values())

    def rank(
        self,
        assessed_hazards: Mapping[str, Optional[RiskTier]],
        business_type_id: str,
    ) -> List[RankedStrategy]:
        """
        Ranked, deduplicated strategies with every present category represented

        Returns:
            Ordered list (empty when nothing matches)
        """
        ranked = sorted(self.find_candidates(assessed_hazards, business_type_id), key=ranking_key)

        if not ranked:
            logger.info(f"No candidate strategies for {business_type_id} / {sorted(assessed_hazards)}")
            return []

        if self.max_strategies is None or len(ranked) <= self.max_strategies:
            return ranked

        selected = ranked[:self.max_strategies]
        covered = {s.category for s in selected}

        for category in StrategyCategory:
            if category in covered:
                continue
            best = next((s for s in ranked if s.category == category), None)
            if best is not None:
                logger.info(
                    f"Surfacing {best.strategy_id} so {category.value} strategies are represented"
                )
                selected.append(best.model_copy(update={"surfaced_for_diversity": True}))

        return sorted(selected, key=ranking_key)

    def _new_entry(self, strategy: Strategy) -> RankedStrategy:
        rationale = [strategy.reasoning] if strategy.reasoning else []
        return RankedStrategy(
            strategy_id=strategy.strategy_id,
            name=strategy.name,
            category=strategy.category,
            effectiveness=strategy.effectiveness,
            cost_tier=strategy.cost_tier,
            selection_tier=strategy.selection_tier,
            relevance_score=relevance_score(strategy),
            rationale=rationale,
            action_steps=order_action_steps(strategy.action_steps),
        )

    def _merge_hazard(
        self, entry: RankedStrategy, hazard_id: str, tier: Optional[RiskTier]
    ) -> None:
        if hazard_id not in entry.matched_hazards:
            entry.matched_hazards.append(hazard_id)

        hazard_name = self.repository.get_hazard_name(hazard_id)
        note = (
            f"Addresses {hazard_name} ({tier.value} risk)" if tier else f"Addresses {hazard_name}"
        )
        if note not in entry.rationale:
            entry.rationale.append(note)

        if tier is not None and (
            entry.highest_tier is None or TIER_RANK[tier] > TIER_RANK[entry.highest_tier]
        ):
            entry.highest_tier = tier
