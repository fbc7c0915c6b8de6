"""
Business Characteristics

Turns wizard answers into the fact-based characteristic values that
multiplier rules are evaluated against.
"""

from typing import Dict, Literal, Mapping, Optional, Set, Union

from pydantic import BaseModel

from ..reference_data.models import Location

CharacteristicValue = Union[bool, int, float]
Characteristics = Dict[str, CharacteristicValue]

# Location flood level above which a business counts as flood prone
FLOOD_PRONE_LEVEL = 7


class SimplifiedAnswers(BaseModel):
    """Plain-language wizard answers"""

    customer_base: Optional[Literal["mainly_tourists", "mix", "mainly_locals"]] = None
    power_dependency: Optional[Literal["can_operate", "partially", "cannot_operate"]] = None
    digital_dependency: Optional[Literal["essential", "helpful", "not_used"]] = None
    imports_from_overseas: bool = False
    sells_perishable: bool = False
    minimal_inventory: bool = False
    expensive_equipment: bool = False
    is_coastal: bool = False
    is_urban: bool = False
    flood_risk: Optional[int] = None


class LegacyCharacteristics(BaseModel):
    """Older 1-10 slider answers"""

    tourism_dependency: Optional[float] = None
    digital_dependency: Optional[float] = None
    physical_asset_intensity: Optional[float] = None
    supply_chain_complexity: Optional[float] = None
    seasonality_factor: Optional[float] = None
    is_coastal: bool = False
    is_urban: bool = False


def convert_simplified_inputs(answers: SimplifiedAnswers) -> Characteristics:
    """Map simplified answers to characteristic values"""
    tourism_share, local_share = {
        "mainly_tourists": (80, 15),
        "mix": (40, 50),
    }.get(answers.customer_base, (10, 85))

    power = {"cannot_operate": 95, "partially": 50}.get(answers.power_dependency, 10)
    digital = {"essential": 95, "helpful": 50}.get(answers.digital_dependency, 10)

    return {
        "location_coastal": answers.is_coastal,
        "location_urban": answers.is_urban,
        "location_flood_prone": (answers.flood_risk or 0) > FLOOD_PRONE_LEVEL,
        "tourism_share": tourism_share,
        "local_customer_share": local_share,
        "export_share": 5,
        "power_dependency": power,
        "digital_dependency": digital,
        "water_dependency": 90 if answers.sells_perishable else 30,
        # TODO: split into separate characteristics once multiplier rules key on them individually
        "supply_chain_complex": (
            answers.imports_from_overseas
            or answers.minimal_inventory
            or answers.sells_perishable
        ),
        "perishable_goods": answers.sells_perishable,
        "just_in_time_inventory": answers.minimal_inventory,
        "seasonal_business": False,
        "physical_asset_intensive": answers.expensive_equipment,
        "own_building": False,
        "significant_inventory": not answers.minimal_inventory,
    }


def _slider_to_share(value: Optional[float]) -> float:
    # 1 -> 0%, 10 -> ~100%
    return round(((value if value is not None else 5) - 1) * 11.11, 2)


def _slider_is_high(value: Optional[float], threshold: float = 7) -> bool:
    return (value if value is not None else 5) >= threshold


def convert_legacy_characteristics(legacy: LegacyCharacteristics) -> Characteristics:
    """Map 1-10 slider answers to characteristic values"""
    tourism = _slider_to_share(legacy.tourism_dependency)
    digital = _slider_to_share(legacy.digital_dependency)

    return {
        "location_coastal": legacy.is_coastal,
        "location_urban": legacy.is_urban,
        "tourism_share": tourism,
        "local_customer_share": round(100 - tourism, 2),
        "export_share": 0,
        "digital_dependency": digital,
        "power_dependency": digital,
        "water_dependency": 30,
        "supply_chain_complex": _slider_is_high(legacy.supply_chain_complexity),
        "perishable_goods": False,
        "just_in_time_inventory": _slider_is_high(legacy.supply_chain_complexity),
        "seasonal_business": _slider_is_high(legacy.seasonality_factor),
        "physical_asset_intensive": _slider_is_high(legacy.physical_asset_intensity),
        "own_building": False,
        "significant_inventory": _slider_is_high(legacy.physical_asset_intensity, 5),
    }


def apply_location_defaults(
    characteristics: Mapping[str, CharacteristicValue],
    location: Optional[Location],
    flood_level: Optional[int] = None,
) -> Characteristics:
    """
    Fill location facts the user did not answer from the location record

    Answers already present always win.
    """
    merged = dict(characteristics)
    if location is not None:
        if location.is_coastal is not None:
            merged.setdefault("location_coastal", location.is_coastal)
        if location.is_urban is not None:
            merged.setdefault("location_urban", location.is_urban)
    if flood_level is not None:
        merged.setdefault("location_flood_prone", flood_level > FLOOD_PRONE_LEVEL)
    return merged


def changed_characteristics(
    before: Mapping[str, CharacteristicValue],
    after: Mapping[str, CharacteristicValue],
) -> Set[str]:
    """Names whose value was added, removed or re-answered"""
    keys = set(before) | set(after)
    return {
        k for k in keys
        if k not in before
        or k not in after
        or before[k] != after[k]
        or type(before[k]) is not type(after[k])
    }
