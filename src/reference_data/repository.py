"""
Reference Data Repository

Read-only lookups over admin-maintained reference data. The engine only ever
talks to the ``ReferenceRepository`` interface, so the storage behind it
(JSON bundle, CSV export, remote admin API) can change freely.
"""

import json
import logging
import math
import os
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

import numpy as np
import pandas as pd

from .exceptions import MissingReferenceData, MultiplierConfigError
from .hazard_ids import get_canonical_hazard_id
from .models import (
    BusinessType,
    HazardProfile,
    HazardType,
    Location,
    MultiplierRule,
    ReferenceDataset,
    Strategy,
    VulnerabilityProfile,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEFAULT_HAZARD_LEVEL = 5
NEUTRAL_VULNERABILITY = 5
NEUTRAL_IMPACT = 5

# CSV file names used by load_reference_tables
TABLE_FILES = {
    "locations": "locations.csv",
    "business_types": "business_types.csv",
    "hazard_types": "hazard_types.csv",
    "hazard_profiles": "hazard_profiles.csv",
    "vulnerability_profiles": "vulnerability_profiles.csv",
    "multiplier_rules": "multiplier_rules.csv",
    "strategies": "strategies.csv",
    "action_steps": "action_steps.csv",
}


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 always rounding up"""
    return int(math.floor(value + 0.5))


class HazardLevel(NamedTuple):
    level: int
    is_estimated: bool


class Vulnerability(NamedTuple):
    vulnerability_level: int
    impact_severity: int
    is_estimated: bool


class ReferenceRepository(ABC):
    """Read contract the risk engine depends on"""

    @abstractmethod
    def get_hazard_level(self, location_id: Optional[str], hazard_id: str) -> HazardLevel:
        ...

    @abstractmethod
    def get_vulnerability(self, business_type_id: str, hazard_id: str) -> Vulnerability:
        ...

    @abstractmethod
    def get_applicable_multipliers(self, hazard_id: str) -> List[MultiplierRule]:
        ...

    @abstractmethod
    def get_active_strategies(self) -> List[Strategy]:
        ...

    @abstractmethod
    def get_known_hazards(
        self, location_id: Optional[str], business_type_id: Optional[str]
    ) -> List[str]:
        ...

    @abstractmethod
    def get_location(self, location_id: Optional[str]) -> Optional[Location]:
        ...

    @abstractmethod
    def get_business_type(self, business_type_id: str) -> Optional[BusinessType]:
        ...

    def get_hazard_name(self, hazard_id: str) -> str:
        return hazard_id.replace("_", " ").title()

    def get_hazard_type(self, hazard_id: str) -> Optional[HazardType]:
        """Catalogue entry (peak months, cascading risks), None when unknown"""
        return None

    def get_multipliers_for_hazards(
        self, hazard_ids: Iterable[str]
    ) -> Dict[str, List[MultiplierRule]]:
        """Batched lookup: one call covering every hazard in an assessment"""
        return {
            get_canonical_hazard_id(h): self.get_applicable_multipliers(h)
            for h in hazard_ids
        }


class InMemoryReferenceRepository(ReferenceRepository):
    """Repository over a ReferenceDataset snapshot"""

    def __init__(self, dataset: Optional[ReferenceDataset] = None):
        self.dataset = dataset if dataset is not None else ReferenceDataset()

        self._locations = {loc.location_id: loc for loc in self.dataset.locations}
        self._business_types = {
            bt.business_type_id: bt for bt in self.dataset.business_types
        }
        self._hazard_levels = {
            (p.location_id, p.hazard_id): p for p in self.dataset.hazard_profiles
        }
        self._vulnerabilities = {
            (p.business_type_id, p.hazard_id): p
            for p in self.dataset.vulnerability_profiles
        }
        self._hazard_names = {
            get_canonical_hazard_id(h): name for h, name in self.dataset.hazard_names.items()
        }
        self._hazard_types = {ht.hazard_id: ht for ht in self.dataset.hazard_types}

        self._rules_by_hazard: Dict[str, List[MultiplierRule]] = defaultdict(list)
        for rule in self.dataset.multiplier_rules:
            if not rule.is_active:
                continue
            for hazard_id in rule.applicable_hazards:
                self._rules_by_hazard[hazard_id].append(rule)
        for rules in self._rules_by_hazard.values():
            rules.sort(key=lambda r: (r.priority, r.rule_id))

    def get_hazard_level(self, location_id: Optional[str], hazard_id: str) -> HazardLevel:
        hazard_id = get_canonical_hazard_id(hazard_id)
        profile = self._hazard_levels.get((location_id, hazard_id))

        if profile is None:
            logger.info(str(MissingReferenceData("location", str(location_id), hazard_id)))
            return HazardLevel(DEFAULT_HAZARD_LEVEL, True)

        return HazardLevel(profile.level, False)

    def get_vulnerability(self, business_type_id: str, hazard_id: str) -> Vulnerability:
        hazard_id = get_canonical_hazard_id(hazard_id)
        profile = self._vulnerabilities.get((business_type_id, hazard_id))

        if profile is not None:
            return Vulnerability(profile.vulnerability_level, profile.impact_severity, False)

        logger.info(str(MissingReferenceData("business type", business_type_id, hazard_id)))

        # Fall back to the average of business types in the same category
        business_type = self._business_types.get(business_type_id)
        if business_type is not None:
            peers = [
                p for (bt_id, h_id), p in self._vulnerabilities.items()
                if h_id == hazard_id
                and bt_id in self._business_types
                and self._business_types[bt_id].category == business_type.category
            ]
            if peers:
                return Vulnerability(
                    round_half_up(np.mean([p.vulnerability_level for p in peers])),
                    round_half_up(np.mean([p.impact_severity for p in peers])),
                    True,
                )

        return Vulnerability(NEUTRAL_VULNERABILITY, NEUTRAL_IMPACT, True)

    def get_applicable_multipliers(self, hazard_id: str) -> List[MultiplierRule]:
        return list(self._rules_by_hazard.get(get_canonical_hazard_id(hazard_id), []))

    def get_active_strategies(self) -> List[Strategy]:
        return [s for s in self.dataset.strategies if s.is_active]

    def get_known_hazards(
        self, location_id: Optional[str], business_type_id: Optional[str]
    ) -> List[str]:
        hazards = {h for (loc, h) in self._hazard_levels if loc == location_id}
        hazards |= {h for (bt, h) in self._vulnerabilities if bt == business_type_id}
        return sorted(hazards)

    def get_location(self, location_id: Optional[str]) -> Optional[Location]:
        return self._locations.get(location_id)

    def get_business_type(self, business_type_id: str) -> Optional[BusinessType]:
        return self._business_types.get(business_type_id)

    def get_hazard_name(self, hazard_id: str) -> str:
        hazard_id = get_canonical_hazard_id(hazard_id)
        hazard_type = self._hazard_types.get(hazard_id)
        if hazard_type is not None and hazard_type.name:
            return hazard_type.name
        return self._hazard_names.get(hazard_id) or super().get_hazard_name(hazard_id)

    def get_hazard_type(self, hazard_id: str) -> Optional[HazardType]:
        return self._hazard_types.get(get_canonical_hazard_id(hazard_id))


# Loading

def _clean_value(value: Any) -> Any:
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and np.isnan(value):
        return None
    return value


def _frame_records(df: Optional[pd.DataFrame]) -> List[Dict[str, Any]]:
    """Convert a DataFrame to records, dropping empty cells"""
    if df is None or df.empty:
        return []

    records = []
    for row in df.to_dict(orient="records"):
        cleaned = {k: _clean_value(v) for k, v in row.items()}
        records.append({k: v for k, v in cleaned.items() if v is not None})
    return records


def load_multiplier_rules(records: Iterable[Dict[str, Any]], strict: bool = False):
    """
    Validate multiplier rule definitions

    Args:
        records: Typed or flat admin rule records
        strict: Raise MultiplierConfigError on the first invalid rule instead
            of rejecting it

    Returns:
        (valid rules, ids of rejected rules)
    """
    rules = []
    rejected = []

    for record in records:
        try:
            rules.append(MultiplierRule.from_record(record))
        except MultiplierConfigError as e:
            if strict:
                raise
            logger.error(f"Rejected multiplier rule at load time: {e}")
            rejected.append(e.rule_id)

    return rules, rejected


def dataset_from_records(raw: Dict[str, Any], strict: bool = False) -> ReferenceDataset:
    """Build a validated ReferenceDataset from plain records"""
    if not isinstance(raw, dict):
        raise ValueError(
            f"reference data must be an object of tables, got {type(raw).__name__}"
        )

    rules, rejected = load_multiplier_rules(raw.get("multiplier_rules", []), strict=strict)

    steps_by_strategy: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    for step in raw.get("action_steps", []):
        steps_by_strategy[step.get("strategy_id")].append(step)

    strategies = []
    for record in raw.get("strategies", []):
        record = dict(record)
        extra_steps = steps_by_strategy.pop(record.get("strategy_id"), [])
        if extra_steps:
            record["action_steps"] = list(record.get("action_steps", [])) + extra_steps
        strategies.append(Strategy.model_validate(record))

    for strategy_id in steps_by_strategy:
        logger.warning(f"Ignoring action steps for unknown strategy '{strategy_id}'")

    dataset = ReferenceDataset(
        locations=[Location.model_validate(r) for r in raw.get("locations", [])],
        business_types=[BusinessType.model_validate(r) for r in raw.get("business_types", [])],
        hazard_names=raw.get("hazard_names", {}),
        hazard_types=[HazardType.model_validate(r) for r in raw.get("hazard_types", [])],
        hazard_profiles=[HazardProfile.model_validate(r) for r in raw.get("hazard_profiles", [])],
        vulnerability_profiles=[
            VulnerabilityProfile.model_validate(r)
            for r in raw.get("vulnerability_profiles", [])
        ],
        multiplier_rules=rules,
        strategies=strategies,
        rejected_rules=rejected,
    )

    logger.info(
        f"Loaded reference data: {len(dataset.hazard_profiles)} hazard profiles, "
        f"{len(dataset.vulnerability_profiles)} vulnerability profiles, "
        f"{len(rules)} multipliers ({len(rejected)} rejected), "
        f"{len(strategies)} strategies"
    )
    return dataset


def dataset_from_frames(strict: bool = False, **frames: Optional[pd.DataFrame]) -> ReferenceDataset:
    """
    Build a ReferenceDataset from one DataFrame per table

    Keyword names follow TABLE_FILES (locations, hazard_profiles, ...).
    """
    unknown = set(frames) - set(TABLE_FILES)
    if unknown:
        raise ValueError(f"Unknown reference tables: {sorted(unknown)}")

    raw = {name: _frame_records(df) for name, df in frames.items()}
    return dataset_from_records(raw, strict=strict)


def load_reference_tables(directory: str, strict: bool = False) -> ReferenceDataset:
    """Load a CSV export (one file per table) from a directory"""
    frames = {}
    for name, filename in TABLE_FILES.items():
        path = os.path.join(directory, filename)
        if os.path.exists(path):
            frames[name] = pd.read_csv(path)
        else:
            logger.warning(f"Reference table not found: {path}")
    return dataset_from_frames(strict=strict, **frames)


def load_reference_data(path: str, strict: bool = False) -> ReferenceDataset:
    """Load reference data from a JSON bundle or a directory of CSV tables"""
    if os.path.isdir(path):
        return load_reference_tables(path, strict=strict)

    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    return dataset_from_records(raw, strict=strict)
