"""
Hazard ID Normalization

Maps the various hazard identifiers used by admin data and wizard answers
onto one canonical snake_case id per hazard.
"""

import re

# Aliases that do not follow from plain camelCase -> snake_case conversion
HAZARD_ID_ALIASES = {
    "flood": "flooding",
    "cyber_attack": "cybersecurity_incident",
    "theft": "break_in_theft",
    "crime": "break_in_theft",
    "crime_theft": "break_in_theft",
    "theft_vandalism": "break_in_theft",
    "pandemic": "health_emergency",
    "pandemic_disease": "health_emergency",
    "supply_chain_disruption": "supply_disruption",
}

CANONICAL_HAZARDS = (
    "hurricane",
    "flooding",
    "drought",
    "earthquake",
    "landslide",
    "power_outage",
    "fire",
    "cybersecurity_incident",
    "civil_unrest",
    "break_in_theft",
    "health_emergency",
    "supply_disruption",
    "economic_downturn",
)


def _to_snake_case(hazard_id: str) -> str:
    value = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", hazard_id.strip())
    value = value.lower()
    value = re.sub(r"[\s-]+", "_", value)
    value = re.sub(r"[^a-z0-9_]", "", value)
    value = re.sub(r"_+", "_", value)
    return value.strip("_")


def get_canonical_hazard_id(hazard_id: str) -> str:
    """
    Return the canonical id for a hazard

    Examples:
        "powerOutage" -> "power_outage"
        "Flood"       -> "flooding"
        "cyberAttack" -> "cybersecurity_incident"
    """
    if not hazard_id:
        return ""

    snake = _to_snake_case(hazard_id)
    return HAZARD_ID_ALIASES.get(snake, snake)
