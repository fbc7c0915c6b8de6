"""
Reference Data Accessors

Read-only access to location hazard profiles, business type vulnerability
profiles, multiplier rules and mitigation strategies.
"""

from .admin_connector import AdminReferenceConnector
from .cache import CachedReferenceRepository
from .exceptions import MissingReferenceData, MultiplierConfigError, ReferenceDataError
from .hazard_ids import get_canonical_hazard_id
from .models import (
    ActionPhase,
    ActionStep,
    BooleanCondition,
    BusinessType,
    CostTier,
    ExecutionTiming,
    HazardProfile,
    HazardType,
    Location,
    MultiplierRule,
    RangeCondition,
    ReferenceDataset,
    SelectionTier,
    Strategy,
    StrategyCategory,
    ThresholdCondition,
    VulnerabilityProfile,
)
from .repository import (
    HazardLevel,
    InMemoryReferenceRepository,
    ReferenceRepository,
    Vulnerability,
    dataset_from_frames,
    dataset_from_records,
    load_reference_data,
    round_half_up,
)

__all__ = [
    "AdminReferenceConnector",
    "CachedReferenceRepository",
    "MissingReferenceData",
    "MultiplierConfigError",
    "ReferenceDataError",
    "get_canonical_hazard_id",
    "ActionPhase",
    "ActionStep",
    "BooleanCondition",
    "BusinessType",
    "CostTier",
    "ExecutionTiming",
    "HazardProfile",
    "HazardType",
    "Location",
    "MultiplierRule",
    "RangeCondition",
    "ReferenceDataset",
    "SelectionTier",
    "Strategy",
    "StrategyCategory",
    "ThresholdCondition",
    "VulnerabilityProfile",
    "HazardLevel",
    "InMemoryReferenceRepository",
    "ReferenceRepository",
    "Vulnerability",
    "dataset_from_frames",
    "dataset_from_records",
    "load_reference_data",
    "round_half_up",
]
