"""Pytest fixtures"""
import os

import pytest

from src.reference_data import InMemoryReferenceRepository, dataset_from_records
from src.risk_scoring import RecommendationEngine

SAMPLE_REFERENCE_DATA = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data", "sample_reference.json"
)


@pytest.fixture
def reference_records() -> dict:
    """Reference data in the raw admin export shape"""
    return {
        "hazard_names": {"hurricane": "Hurricane", "powerOutage": "Power Outage"},
        "hazard_types": [
            {
                "hazard_id": "hurricane", "name": "Hurricane",
                "peak_months": "[\"8\", \"9\", \"10\"]",
                "cascading_risks": "[\"powerOutage\", \"flood\"]",
            },
            {"hazard_id": "drought", "name": "Drought", "peak_months": "1,2,3"},
            {"hazard_id": "landslide", "name": "Landslide", "peak_months": [9, 10]},
        ],
        "locations": [
            {"location_id": "coastal_town", "name": "Coastal Town", "is_coastal": True, "is_urban": False},
            {"location_id": "city", "name": "City", "is_coastal": False, "is_urban": True},
        ],
        "business_types": [
            {"business_type_id": "grocery", "name": "Grocery", "category": "retail"},
            {"business_type_id": "pharmacy", "name": "Pharmacy", "category": "retail"},
            {"business_type_id": "hardware_store", "name": "Hardware Store", "category": "retail"},
            {"business_type_id": "cafe", "name": "Cafe", "category": "hospitality"},
        ],
        "hazard_profiles": [
            {"location_id": "coastal_town", "hazard_id": "hurricane", "level": 8},
            {"location_id": "coastal_town", "hazard_id": "flood", "level": 6},
            {"location_id": "city", "hazard_id": "fire", "level": 5},
            {"location_id": "city", "hazard_id": "powerOutage", "level": 6},
        ],
        "vulnerability_profiles": [
            {"business_type_id": "grocery", "hazard_id": "hurricane", "vulnerability_level": 8, "impact_severity": 9},
            {"business_type_id": "grocery", "hazard_id": "power_outage", "vulnerability_level": 8, "impact_severity": 7},
            {"business_type_id": "pharmacy", "hazard_id": "hurricane", "vulnerability_level": 6, "impact_severity": 7},
            {"business_type_id": "pharmacy", "hazard_id": "power_outage", "vulnerability_level": 7, "impact_severity": 6},
            {"business_type_id": "cafe", "hazard_id": "fire", "vulnerability_level": 8, "impact_severity": 8},
        ],
        "multiplier_rules": [
            {
                "id": "coastal_location", "name": "Coastal Location",
                "characteristicType": "location_coastal", "conditionType": "boolean",
                "multiplierFactor": 1.3, "applicableHazards": "[\"hurricane\", \"flood\"]",
                "priority": 1, "reasoning": "Storm surge exposure",
            },
            {
                "id": "power_critical", "name": "Cannot Operate Without Power",
                "characteristicType": "power_dependency", "conditionType": "threshold",
                "thresholdValue": 80, "multiplierFactor": 1.5,
                "applicableHazards": "[\"powerOutage\", \"hurricane\"]", "priority": 1,
            },
            {
                "id": "power_partial", "name": "Partially Power Dependent",
                "characteristicType": "power_dependency", "conditionType": "range",
                "minValue": 40, "maxValue": 90, "multiplierFactor": 1.2,
                "applicableHazards": "[\"powerOutage\"]", "priority": 3,
            },
            {
                "id": "tourism_dependent", "name": "Tourism Dependent",
                "characteristicType": "tourism_share", "conditionType": "threshold",
                "thresholdValue": 60, "multiplierFactor": 1.3,
                "applicableHazards": "[\"hurricane\"]", "priority": 5,
            },
            {
                "id": "urban_fire", "name": "Urban Location",
                "characteristicType": "location_urban", "conditionType": "boolean",
                "multiplierFactor": 1.9, "applicableHazards": "[\"fire\"]",
                "priority": 2, "isActive": False,
            },
            {
                "id": "not_amplifying", "name": "Broken Factor",
                "characteristicType": "location_urban", "conditionType": "boolean",
                "multiplierFactor": 0.9, "applicableHazards": "[\"fire\"]", "priority": 4,
            },
            {
                "id": "inverted_range", "name": "Broken Range",
                "characteristicType": "power_dependency", "conditionType": "range",
                "minValue": 90, "maxValue": 40, "multiplierFactor": 1.2,
                "applicableHazards": "[\"powerOutage\"]", "priority": 9,
            },
        ],
        "strategies": [
            {
                "strategy_id": "backup_generator", "name": "Backup Generator", "category": "prevention",
                "applicable_hazards": ["power_outage", "hurricane"], "effectiveness": 9,
                "cost_tier": "high", "selection_tier": "essential",
            },
            {
                "strategy_id": "storm_shutters", "name": "Storm Shutters", "category": "prevention",
                "applicable_hazards": ["hurricane"], "effectiveness": 8,
                "cost_tier": "medium", "selection_tier": "recommended",
            },
            {
                "strategy_id": "emergency_kit", "name": "Emergency Kit", "category": "preparation",
                "applicable_hazards": ["hurricane", "flooding"], "effectiveness": 6,
                "cost_tier": "low", "selection_tier": "essential",
            },
            {
                "strategy_id": "business_insurance", "name": "Business Insurance", "category": "recovery",
                "applicable_hazards": ["hurricane", "fire"], "effectiveness": 7,
                "cost_tier": "medium", "selection_tier": "recommended",
            },
            {
                "strategy_id": "contact_tree", "name": "Staff Contact Tree", "category": "response",
                "applicable_hazards": ["hurricane"], "effectiveness": 5,
                "cost_tier": "low", "selection_tier": "recommended",
            },
            {
                "strategy_id": "fire_suppression", "name": "Kitchen Fire Suppression", "category": "prevention",
                "applicable_hazards": ["fire"], "applicable_business_types": ["cafe"],
                "effectiveness": 9, "cost_tier": "medium", "selection_tier": "essential",
            },
            {
                "strategy_id": "retired_plan", "name": "Retired Plan", "category": "response",
                "applicable_hazards": ["hurricane"], "effectiveness": 10,
                "cost_tier": "low", "selection_tier": "essential", "is_active": False,
            },
        ],
        "action_steps": [
            {"step_id": "gen_2", "strategy_id": "backup_generator", "title": "Install transfer switch",
             "phase": "short_term", "execution_timing": "before_crisis", "sort_order": 1},
            {"step_id": "gen_1", "strategy_id": "backup_generator", "title": "Size generator",
             "phase": "immediate", "execution_timing": "before_crisis", "sort_order": 1},
        ],
    }


@pytest.fixture
def dataset(reference_records):
    """Validated reference dataset"""
    return dataset_from_records(reference_records)


@pytest.fixture
def repository(dataset) -> InMemoryReferenceRepository:
    """In-memory repository over the test dataset"""
    return InMemoryReferenceRepository(dataset)


@pytest.fixture
def engine(repository) -> RecommendationEngine:
    """Engine without a strategy cutoff"""
    return RecommendationEngine(repository)


@pytest.fixture
def sample_reference_path() -> str:
    """Bundled sample reference data"""
    return SAMPLE_REFERENCE_DATA
