"""
Multiplier Rule Engine

Evaluates admin-defined multiplier rules against a session's business
characteristics and combines the rules that fire into one capped factor.
"""

import logging
import math
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np

from ..reference_data.hazard_ids import get_canonical_hazard_id
from ..reference_data.models import (
    BooleanCondition,
    MultiplierRule,
    RangeCondition,
    ThresholdCondition,
)
from ..reference_data.repository import ReferenceRepository
from .exceptions import InvalidCharacteristicValue
from .models import AppliedMultiplier, MultiplierResult, SkippedMultiplier

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

CharacteristicValue = Union[bool, int, float]


def _is_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and not (isinstance(value, float) and math.isnan(value))
    )


def condition_matches(rule: MultiplierRule, value: CharacteristicValue) -> bool:
    """
    Check a rule's condition against a characteristic value

    Raises:
        InvalidCharacteristicValue: value type cannot be compared with the condition
    """
    condition = rule.condition

    if isinstance(condition, BooleanCondition):
        if not isinstance(value, bool):
            raise InvalidCharacteristicValue(
                rule.rule_id, rule.characteristic_type, value, "a boolean"
            )
        return value is True

    if not _is_number(value):
        raise InvalidCharacteristicValue(
            rule.rule_id, rule.characteristic_type, value, "a number"
        )

    if isinstance(condition, ThresholdCondition):
        return value >= condition.threshold

    if isinstance(condition, RangeCondition):
        return condition.min_value <= value <= condition.max_value

    raise InvalidCharacteristicValue(
        rule.rule_id, rule.characteristic_type, value, f"a supported condition, not {condition!r}"
    )


class MultiplierEngine:
    """Select, de-duplicate and combine multiplier rules for a hazard"""

    # Ceiling on the combined factor
    MULTIPLIER_CAP = 2.0

    def __init__(self, repository: ReferenceRepository, cap: Optional[float] = None):
        """
        Initialize multiplier engine

        Args:
            repository: Source of multiplier rules
            cap: Maximum combined multiplier. If None, uses MULTIPLIER_CAP.
        """
        self.repository = repository
        self.cap = cap if cap is not None else self.MULTIPLIER_CAP

        if self.cap < 1.0:
            raise ValueError(f"Multiplier cap must be at least 1.0, got {self.cap}")

    def evaluate(
        self,
        hazard_id: str,
        characteristics: Mapping[str, CharacteristicValue],
        rules: Optional[List[MultiplierRule]] = None,
    ) -> MultiplierResult:
        """
        Compute the combined multiplier for a hazard

        Args:
            hazard_id: Hazard being assessed
            characteristics: User-declared characteristic values
            rules: Applicable rules if already fetched (batched lookups);
                otherwise they are read from the repository

        Returns:
            MultiplierResult with the capped factor and the trace of applied rules
        """
        hazard_id = get_canonical_hazard_id(hazard_id)
        if rules is None:
            rules = self.repository.get_applicable_multipliers(hazard_id)

        winners, skipped = self._select(rules, characteristics)
        return self._combine(hazard_id, list(winners.values()), skipped)

    def reevaluate(
        self,
        previous: MultiplierResult,
        characteristics: Mapping[str, CharacteristicValue],
        changed: Iterable[str],
        rules: Optional[List[MultiplierRule]] = None,
    ) -> MultiplierResult:
        """
        Re-run only the rules keyed to changed characteristics

        Winners for every other characteristic are carried over from
        ``previous`` untouched.
        """
        changed = set(changed)
        if rules is None:
            rules = self.repository.get_applicable_multipliers(previous.hazard_id)

        relevant = [r for r in rules if r.characteristic_type in changed]
        if not relevant:
            return previous

        kept = [w for c, w in previous.winners.items() if c not in changed]
        skipped = [s for s in previous.skipped_rules if s.characteristic_type not in changed]

        winners, new_skipped = self._select(relevant, characteristics)
        return self._combine(previous.hazard_id, kept + list(winners.values()), skipped + new_skipped)

    def is_affected_by(
        self,
        hazard_id: str,
        changed: Iterable[str],
        rules: Optional[List[MultiplierRule]] = None,
    ) -> bool:
        """True if any rule for the hazard is keyed to a changed characteristic"""
        if rules is None:
            rules = self.repository.get_applicable_multipliers(hazard_id)
        changed = set(changed)
        return any(r.characteristic_type in changed for r in rules)

    def _select(
        self,
        rules: List[MultiplierRule],
        characteristics: Mapping[str, CharacteristicValue],
    ) -> Tuple[Dict[str, AppliedMultiplier], List[SkippedMultiplier]]:
        """Evaluate rules in priority order keeping one winner per characteristic"""
        winners: Dict[str, AppliedMultiplier] = {}
        skipped: List[SkippedMultiplier] = []

        for rule in sorted(rules, key=lambda r: (r.priority, r.rule_id)):
            if not rule.is_active:
                continue

            value = characteristics.get(rule.characteristic_type)
            if value is None:
                # Unknown, not false
                continue

            try:
                matched = condition_matches(rule, value)
            except InvalidCharacteristicValue as e:
                logger.warning(f"Skipping multiplier: {e}")
                skipped.append(
                    SkippedMultiplier(
                        rule_id=rule.rule_id,
                        name=rule.name,
                        characteristic_type=rule.characteristic_type,
                        priority=rule.priority,
                        reason=str(e),
                    )
                )
                continue

            if not matched:
                continue

            if rule.characteristic_type in winners:
                logger.debug(
                    f"Rule '{rule.rule_id}' suppressed by higher precedence rule "
                    f"'{winners[rule.characteristic_type].rule_id}' on '{rule.characteristic_type}'"
                )
                continue

            winners[rule.characteristic_type] = AppliedMultiplier(
                rule_id=rule.rule_id,
                name=rule.name,
                characteristic_type=rule.characteristic_type,
                priority=rule.priority,
                factor=rule.multiplier_factor,
                reasoning=rule.explanation,
            )

        return winners, skipped

    def _combine(
        self,
        hazard_id: str,
        applied: List[AppliedMultiplier],
        skipped: List[SkippedMultiplier],
    ) -> MultiplierResult:
        applied = sorted(applied, key=lambda a: (a.priority, a.rule_id))
        skipped = sorted(skipped, key=lambda s: (s.priority, s.rule_id))

        raw = round(float(np.prod([a.factor for a in applied])), 4)
        combined = min(raw, self.cap)

        if raw > self.cap:
            logger.info(f"Combined multiplier for {hazard_id} capped at {self.cap} (raw {raw})")

        return MultiplierResult(
            hazard_id=hazard_id,
            combined_multiplier=combined,
            raw_combined_factor=raw,
            applied_rules=applied,
            skipped_rules=skipped,
        )
