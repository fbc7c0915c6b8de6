"""
Reference Data Models

Typed records for the admin-maintained reference data the risk engine reads:
location hazard profiles, business type vulnerability profiles, multiplier
rules and mitigation strategies with their action steps.
"""

import json
from enum import Enum
from typing import Annotated, Any, Dict, FrozenSet, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .exceptions import MultiplierConfigError
from .hazard_ids import get_canonical_hazard_id


def parse_hazard_ids(value: Any) -> FrozenSet[str]:
    """Accept a JSON array string, a list or a set and return canonical ids"""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        value = value.strip()
        if value.startswith("["):
            value = json.loads(value)
        else:
            value = [part for part in value.split(",") if part.strip()]
    return frozenset(get_canonical_hazard_id(h) for h in value if h)


class StrategyCategory(str, Enum):
    PREVENTION = "prevention"
    PREPARATION = "preparation"
    RESPONSE = "response"
    RECOVERY = "recovery"


class CostTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SelectionTier(str, Enum):
    ESSENTIAL = "essential"
    RECOMMENDED = "recommended"
    OPTIONAL = "optional"


class ActionPhase(str, Enum):
    IMMEDIATE = "immediate"
    SHORT_TERM = "short_term"
    MEDIUM_TERM = "medium_term"
    LONG_TERM = "long_term"


class ExecutionTiming(str, Enum):
    BEFORE_CRISIS = "before_crisis"
    DURING_CRISIS = "during_crisis"
    AFTER_CRISIS = "after_crisis"


def parse_months(value: Any) -> FrozenSet[int]:
    """Accept '["8", "9"]', "8,9" or a list and return month numbers 1-12"""
    if value is None:
        return frozenset()
    if isinstance(value, (int, float)):
        value = [value]
    elif isinstance(value, str):
        value = value.strip()
        if value.startswith("["):
            value = json.loads(value)
        else:
            value = [part for part in value.split(",") if part.strip()]

    months = frozenset(
        int(m) if isinstance(m, (int, float)) else int(str(m).strip()) for m in value
    )
    invalid = sorted(m for m in months if not 1 <= m <= 12)
    if invalid:
        raise ValueError(f"months must be between 1 and 12, got {invalid}")
    return months


# Hazards, locations and business profiles

class HazardType(BaseModel):
    """Hazard catalogue entry with its seasonal peak and knock-on hazards"""

    hazard_id: str
    name: str = ""
    peak_months: FrozenSet[int] = frozenset()
    cascading_risks: List[str] = Field(default_factory=list)

    @field_validator("hazard_id")
    @classmethod
    def _canonical_hazard(cls, value: str) -> str:
        return get_canonical_hazard_id(value)

    @field_validator("peak_months", mode="before")
    @classmethod
    def _parse_months(cls, value: Any) -> FrozenSet[int]:
        return parse_months(value)

    @field_validator("cascading_risks", mode="before")
    @classmethod
    def _parse_cascading(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = json.loads(value) if value.strip().startswith("[") else value.split(",")
        return list(dict.fromkeys(get_canonical_hazard_id(h) for h in value if str(h).strip()))

    def is_peak_month(self, month: int) -> bool:
        return month in self.peak_months


class Location(BaseModel):
    location_id: str
    name: str = ""
    country_code: Optional[str] = None
    is_coastal: Optional[bool] = None
    is_urban: Optional[bool] = None


class BusinessType(BaseModel):
    business_type_id: str
    name: str = ""
    category: str = "general"


class HazardProfile(BaseModel):
    """Base hazard level of a location (1-10)"""

    location_id: str
    hazard_id: str
    level: int = Field(..., ge=1, le=10)
    rationale: Optional[str] = None

    @field_validator("hazard_id")
    @classmethod
    def _canonical_hazard(cls, value: str) -> str:
        return get_canonical_hazard_id(value)


class VulnerabilityProfile(BaseModel):
    """How exposed a business type is to a hazard and how badly it is hit"""

    business_type_id: str
    hazard_id: str
    vulnerability_level: int = Field(..., ge=1, le=10)
    impact_severity: int = Field(..., ge=1, le=10)
    rationale: Optional[str] = None

    @field_validator("hazard_id")
    @classmethod
    def _canonical_hazard(cls, value: str) -> str:
        return get_canonical_hazard_id(value)


# Multiplier conditions

class BooleanCondition(BaseModel):
    """Matches when the characteristic is exactly True"""

    model_config = ConfigDict(frozen=True, strict=True)

    kind: Literal["boolean"] = "boolean"


class ThresholdCondition(BaseModel):
    """Matches when the numeric characteristic is >= threshold"""

    model_config = ConfigDict(frozen=True, strict=True)

    kind: Literal["threshold"] = "threshold"
    threshold: float


class RangeCondition(BaseModel):
    """Matches when min_value <= characteristic <= max_value"""

    model_config = ConfigDict(frozen=True, strict=True)

    kind: Literal["range"] = "range"
    min_value: float
    max_value: float

    @model_validator(mode="after")
    def _ordered_bounds(self) -> "RangeCondition":
        if self.min_value > self.max_value:
            raise ValueError(
                f"range minimum {self.min_value} is greater than maximum {self.max_value}"
            )
        return self


Condition = Annotated[
    Union[BooleanCondition, ThresholdCondition, RangeCondition],
    Field(discriminator="kind"),
]


class MultiplierRule(BaseModel):
    """Conditional amplification factor for one or more hazards"""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    name: str
    characteristic_type: str
    condition: Condition
    multiplier_factor: float
    applicable_hazards: FrozenSet[str]
    priority: int = 0
    is_active: bool = True
    description: str = ""
    reasoning: Optional[str] = None

    @field_validator("multiplier_factor")
    @classmethod
    def _amplifying(cls, value: float) -> float:
        if value <= 1.0:
            raise ValueError(f"multiplier factor must be greater than 1.0, got {value}")
        return value

    @field_validator("applicable_hazards", mode="before")
    @classmethod
    def _parse_hazards(cls, value: Any) -> FrozenSet[str]:
        return parse_hazard_ids(value)

    @property
    def explanation(self) -> str:
        return self.reasoning or self.description or self.name

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "MultiplierRule":
        """
        Build a rule from either the typed form or the flat admin form

        The admin form stores the condition as ``conditionType`` plus
        ``thresholdValue`` / ``minValue`` / ``maxValue`` and the hazards as a
        JSON-encoded array. Any invalid definition raises MultiplierConfigError.
        """
        rule_id = str(record.get("rule_id") or record.get("id") or record.get("name") or "?")

        if "condition" in record:
            data = dict(record)
            data.setdefault("rule_id", rule_id)
        else:
            condition_type = record.get("conditionType", record.get("condition_type"))
            if condition_type == "boolean":
                condition = {"kind": "boolean"}
            elif condition_type == "threshold":
                condition = {
                    "kind": "threshold",
                    "threshold": record.get("thresholdValue", record.get("threshold_value")),
                }
            elif condition_type == "range":
                condition = {
                    "kind": "range",
                    "min_value": record.get("minValue", record.get("min_value")),
                    "max_value": record.get("maxValue", record.get("max_value")),
                }
            else:
                raise MultiplierConfigError(rule_id, f"unknown condition type '{condition_type}'")

            data = {
                "rule_id": rule_id,
                "name": record.get("name", rule_id),
                "characteristic_type": record.get(
                    "characteristicType", record.get("characteristic_type")
                ),
                "condition": condition,
                "multiplier_factor": record.get(
                    "multiplierFactor", record.get("multiplier_factor")
                ),
                "applicable_hazards": record.get(
                    "applicableHazards", record.get("applicable_hazards")
                ),
                "priority": record.get("priority", 0),
                "is_active": record.get("isActive", record.get("is_active", True)),
                "description": record.get("description") or "",
                "reasoning": record.get("reasoning"),
            }

        try:
            return cls.model_validate(data)
        except (ValidationError, ValueError) as e:
            raise MultiplierConfigError(rule_id, str(e)) from e


# Strategies

class ActionStep(BaseModel):
    step_id: str
    strategy_id: Optional[str] = None
    title: str = ""
    phase: ActionPhase
    execution_timing: ExecutionTiming
    sort_order: int = 0


class Strategy(BaseModel):
    strategy_id: str
    name: str = ""
    category: StrategyCategory
    applicable_hazards: FrozenSet[str]
    applicable_business_types: Union[Literal["all"], FrozenSet[str]] = "all"
    effectiveness: int = Field(..., ge=1, le=10)
    cost_tier: CostTier
    selection_tier: SelectionTier = SelectionTier.RECOMMENDED
    is_active: bool = True
    reasoning: Optional[str] = None
    action_steps: List[ActionStep] = Field(default_factory=list)

    @field_validator("applicable_hazards", mode="before")
    @classmethod
    def _parse_hazards(cls, value: Any) -> FrozenSet[str]:
        return parse_hazard_ids(value)

    @field_validator("applicable_business_types", mode="before")
    @classmethod
    def _parse_business_types(cls, value: Any) -> Any:
        if value is None or value == "all":
            return "all"
        if isinstance(value, str):
            value = json.loads(value) if value.strip().startswith("[") else [value]
        if "all" in value:
            return "all"
        return frozenset(value)

    @model_validator(mode="before")
    @classmethod
    def _claim_steps(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("action_steps"):
            owner = data.get("strategy_id")
            steps = []
            for step in data["action_steps"]:
                if isinstance(step, dict) and not step.get("strategy_id"):
                    step = {**step, "strategy_id": owner}
                steps.append(step)
            data = {**data, "action_steps": steps}
        return data

    @model_validator(mode="after")
    def _owns_steps(self) -> "Strategy":
        for step in self.action_steps:
            if step.strategy_id != self.strategy_id:
                raise ValueError(
                    f"action step '{step.step_id}' belongs to '{step.strategy_id}', "
                    f"not '{self.strategy_id}'"
                )
        return self

    def applies_to_business_type(self, business_type_id: str) -> bool:
        if self.applicable_business_types == "all":
            return True
        return business_type_id in self.applicable_business_types


class ReferenceDataset(BaseModel):
    """Everything the engine needs for one snapshot of reference data"""

    locations: List[Location] = Field(default_factory=list)
    business_types: List[BusinessType] = Field(default_factory=list)
    hazard_names: Dict[str, str] = Field(default_factory=dict)
    hazard_types: List[HazardType] = Field(default_factory=list)
    hazard_profiles: List[HazardProfile] = Field(default_factory=list)
    vulnerability_profiles: List[VulnerabilityProfile] = Field(default_factory=list)
    multiplier_rules: List[MultiplierRule] = Field(default_factory=list)
    strategies: List[Strategy] = Field(default_factory=list)
    rejected_rules: List[str] = Field(default_factory=list)
