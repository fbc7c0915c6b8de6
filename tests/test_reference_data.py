"""Reference data loading and lookup tests"""
import json

import pandas as pd
import pytest
from pydantic import ValidationError

from src.reference_data import (
    HazardType,
    InMemoryReferenceRepository,
    MultiplierConfigError,
    MultiplierRule,
    RangeCondition,
    Strategy,
    ThresholdCondition,
    dataset_from_frames,
    dataset_from_records,
    load_reference_data,
    round_half_up,
)
from src.reference_data.models import parse_hazard_ids, parse_months
from src.reference_data.repository import load_reference_tables


class TestRoundHalfUp:
    """Half-up rounding"""

    @pytest.mark.parametrize(
        "value, expected",
        [(0.5, 1), (1.5, 2), (2.5, 3), (6.5, 7), (7.49, 7), (8.2, 8)],
    )
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestHazardLevel:
    """Location hazard level lookups"""

    def test_known_profile(self, repository):
        level = repository.get_hazard_level("coastal_town", "hurricane")

        assert level.level == 8
        assert level.is_estimated is False

    def test_alias_lookup(self, repository):
        """Profiles stored under an alias are found by canonical id"""
        assert repository.get_hazard_level("coastal_town", "flooding").level == 6
        assert repository.get_hazard_level("city", "power_outage").level == 6

    def test_unknown_location_uses_default(self, repository):
        level = repository.get_hazard_level("atlantis", "hurricane")

        assert level.level == 5
        assert level.is_estimated is True

    def test_missing_location_uses_default(self, repository):
        assert tuple(repository.get_hazard_level(None, "hurricane")) == (5, True)


class TestVulnerability:
    """Business type vulnerability lookups"""

    def test_known_profile(self, repository):
        assert tuple(repository.get_vulnerability("grocery", "hurricane")) == (8, 9, False)

    def test_category_average(self, repository):
        """Missing profile falls back to the category average"""
        vulnerability = repository.get_vulnerability("hardware_store", "hurricane")

        assert vulnerability.vulnerability_level == 7
        assert vulnerability.impact_severity == 8
        assert vulnerability.is_estimated is True

    def test_category_average_rounds_half_up(self, repository):
        # grocery 8/7 and pharmacy 7/6 average to 7.5/6.5
        vulnerability = repository.get_vulnerability("hardware_store", "power_outage")

        assert (vulnerability.vulnerability_level, vulnerability.impact_severity) == (8, 7)

    def test_unknown_business_type_is_neutral(self, repository):
        assert tuple(repository.get_vulnerability("spaceport", "hurricane")) == (5, 5, True)

    def test_no_peers_is_neutral(self, repository):
        assert tuple(repository.get_vulnerability("cafe", "hurricane")) == (5, 5, True)


class TestMultiplierLookup:
    """Applicable multiplier lookups"""

    def test_sorted_by_priority_then_id(self, repository):
        rules = repository.get_applicable_multipliers("hurricane")

        assert [r.rule_id for r in rules] == [
            "coastal_location",
            "power_critical",
            "tourism_dependent",
        ]

    def test_inactive_rules_excluded(self, repository):
        assert repository.get_applicable_multipliers("fire") == []

    def test_batched_lookup(self, repository):
        rules = repository.get_multipliers_for_hazards(["powerOutage", "flood"])

        assert set(rules) == {"power_outage", "flooding"}
        assert [r.rule_id for r in rules["power_outage"]] == ["power_critical", "power_partial"]
        assert [r.rule_id for r in rules["flooding"]] == ["coastal_location"]


class TestMultiplierRuleValidation:
    """Rules are validated when loaded"""

    def test_invalid_rules_rejected(self, dataset):
        assert sorted(dataset.rejected_rules) == ["inverted_range", "not_amplifying"]
        assert "inverted_range" not in {r.rule_id for r in dataset.multiplier_rules}

    def test_strict_load_raises(self, reference_records):
        with pytest.raises(MultiplierConfigError) as exc_info:
            dataset_from_records(reference_records, strict=True)

        assert exc_info.value.rule_id == "not_amplifying"

    def test_flat_admin_form(self):
        rule = MultiplierRule.from_record(
            {
                "id": "power_partial",
                "name": "Partial",
                "characteristicType": "power_dependency",
                "conditionType": "range",
                "minValue": 40,
                "maxValue": 79,
                "multiplierFactor": 1.2,
                "applicableHazards": "[\"powerOutage\"]",
                "priority": 6,
            }
        )

        assert isinstance(rule.condition, RangeCondition)
        assert rule.condition.min_value == 40
        assert rule.applicable_hazards == frozenset({"power_outage"})
        assert rule.is_active is True

    def test_typed_form(self):
        rule = MultiplierRule.from_record(
            {
                "rule_id": "tourism",
                "name": "Tourism",
                "characteristic_type": "tourism_share",
                "condition": {"kind": "threshold", "threshold": 60},
                "multiplier_factor": 1.3,
                "applicable_hazards": ["hurricane"],
            }
        )

        assert isinstance(rule.condition, ThresholdCondition)
        assert rule.explanation == "Tourism"

    def test_factor_must_amplify(self):
        with pytest.raises(MultiplierConfigError):
            MultiplierRule.from_record(
                {
                    "id": "neutral",
                    "characteristicType": "location_urban",
                    "conditionType": "boolean",
                    "multiplierFactor": 1.0,
                    "applicableHazards": "[\"fire\"]",
                }
            )

    def test_unknown_condition_type(self):
        with pytest.raises(MultiplierConfigError) as exc_info:
            MultiplierRule.from_record(
                {
                    "id": "mystery",
                    "characteristicType": "location_urban",
                    "conditionType": "fuzzy",
                    "multiplierFactor": 1.2,
                    "applicableHazards": "[\"fire\"]",
                }
            )

        assert "fuzzy" in str(exc_info.value)

    def test_threshold_must_be_numeric(self):
        with pytest.raises(MultiplierConfigError):
            MultiplierRule.from_record(
                {
                    "id": "text_threshold",
                    "characteristicType": "power_dependency",
                    "conditionType": "threshold",
                    "thresholdValue": "eighty",
                    "multiplierFactor": 1.5,
                    "applicableHazards": "[\"powerOutage\"]",
                }
            )

    def test_parse_hazard_ids(self):
        assert parse_hazard_ids("[\"flood\", \"powerOutage\"]") == {"flooding", "power_outage"}
        assert parse_hazard_ids("hurricane, flood") == {"hurricane", "flooding"}
        assert parse_hazard_ids(None) == frozenset()


class TestStrategies:
    """Strategy records"""

    def test_action_steps_attached_to_strategy(self, dataset):
        generator = next(s for s in dataset.strategies if s.strategy_id == "backup_generator")

        assert {step.step_id for step in generator.action_steps} == {"gen_1", "gen_2"}

    def test_steps_of_other_strategy_rejected(self):
        with pytest.raises(ValidationError):
            Strategy.model_validate(
                {
                    "strategy_id": "kit",
                    "category": "preparation",
                    "applicable_hazards": ["hurricane"],
                    "effectiveness": 5,
                    "cost_tier": "low",
                    "action_steps": [
                        {
                            "step_id": "s1",
                            "strategy_id": "generator",
                            "phase": "immediate",
                            "execution_timing": "before_crisis",
                        }
                    ],
                }
            )

    def test_business_type_filter(self, dataset):
        suppression = next(s for s in dataset.strategies if s.strategy_id == "fire_suppression")

        assert suppression.applies_to_business_type("cafe")
        assert not suppression.applies_to_business_type("grocery")

    def test_only_active_strategies(self, repository):
        ids = {s.strategy_id for s in repository.get_active_strategies()}

        assert "retired_plan" not in ids
        assert "backup_generator" in ids


class TestHazardTypes:
    """Peak seasons and cascading risks"""

    def test_admin_json_strings(self):
        hazard = HazardType(
            hazard_id="Hurricane",
            peak_months="[\"8\", \"9\", \"10\"]",
            cascading_risks="[\"powerOutage\", \"flood\", \"power_outage\"]",
        )

        assert hazard.hazard_id == "hurricane"
        assert hazard.peak_months == frozenset({8, 9, 10})
        assert hazard.cascading_risks == ["power_outage", "flooding"]
        assert hazard.is_peak_month(9)
        assert not hazard.is_peak_month(3)

    @pytest.mark.parametrize("value", ["1,2,3", [1, 2, 3], ["1", "2", "3"], "[1, 2, 3]"])
    def test_parse_months(self, value):
        assert parse_months(value) == frozenset({1, 2, 3})

    def test_single_month_from_csv_cell(self):
        assert parse_months(7) == frozenset({7})

    def test_no_season(self):
        hazard = HazardType(hazard_id="earthquake")

        assert hazard.peak_months == frozenset()
        assert hazard.cascading_risks == []

    @pytest.mark.parametrize("value", ["[\"0\"]", "13", [6, 14]])
    def test_month_out_of_range(self, value):
        with pytest.raises(ValidationError):
            HazardType(hazard_id="hurricane", peak_months=value)

    def test_repository_lookup(self, repository):
        assert repository.get_hazard_type("Hurricane").peak_months == frozenset({8, 9, 10})
        assert repository.get_hazard_type("earthquake") is None
        assert repository.get_hazard_name("landslide") == "Landslide"

    def test_hazard_types_from_frames(self):
        dataset = dataset_from_frames(
            hazard_types=pd.DataFrame(
                [
                    {"hazard_id": "flood", "name": "Flooding", "peak_months": "5,6,10"},
                    {"hazard_id": "drought", "name": "Drought", "peak_months": "3"},
                ]
            )
        )
        repository = InMemoryReferenceRepository(dataset)

        assert repository.get_hazard_type("flooding").peak_months == frozenset({5, 6, 10})
        assert repository.get_hazard_type("drought").peak_months == frozenset({3})


class TestRepositoryMisc:
    """Names, known hazards and records"""

    def test_known_hazards(self, repository):
        assert repository.get_known_hazards("coastal_town", "grocery") == [
            "flooding",
            "hurricane",
            "power_outage",
        ]

    def test_hazard_names(self, repository):
        assert repository.get_hazard_name("power_outage") == "Power Outage"
        assert repository.get_hazard_name("flood") == "Flooding"

    def test_location_and_business_type(self, repository):
        assert repository.get_location("coastal_town").is_coastal is True
        assert repository.get_location(None) is None
        assert repository.get_business_type("cafe").category == "hospitality"

    def test_empty_repository(self):
        repository = InMemoryReferenceRepository()

        assert repository.get_active_strategies() == []
        assert repository.get_hazard_level("anywhere", "hurricane").is_estimated


class TestLoading:
    """Loading from frames, CSV exports and JSON bundles"""

    def test_dataset_from_frames(self):
        dataset = dataset_from_frames(
            hazard_profiles=pd.DataFrame(
                [
                    {"location_id": "kingston", "hazard_id": "flood", "level": 7},
                    {"location_id": "kingston", "hazard_id": "hurricane", "level": 8},
                ]
            ),
            multiplier_rules=pd.DataFrame(
                [
                    {
                        "id": "coastal", "name": "Coastal", "characteristicType": "location_coastal",
                        "conditionType": "boolean", "thresholdValue": None,
                        "multiplierFactor": 1.3, "applicableHazards": "hurricane", "priority": 1,
                    },
                    {
                        "id": "power", "name": "Power", "characteristicType": "power_dependency",
                        "conditionType": "threshold", "thresholdValue": 80,
                        "multiplierFactor": 1.5, "applicableHazards": "powerOutage", "priority": 2,
                    },
                ]
            ),
        )
        repository = InMemoryReferenceRepository(dataset)

        assert repository.get_hazard_level("kingston", "flooding").level == 7
        assert [r.rule_id for r in repository.get_applicable_multipliers("power_outage")] == ["power"]
        assert dataset.rejected_rules == []

    def test_unknown_table(self):
        with pytest.raises(ValueError):
            dataset_from_frames(parishes=pd.DataFrame())

    def test_load_reference_tables(self, tmp_path):
        pd.DataFrame(
            [{"location_id": "kingston", "name": "Kingston", "is_coastal": True, "is_urban": True}]
        ).to_csv(tmp_path / "locations.csv", index=False)
        pd.DataFrame(
            [{"location_id": "kingston", "hazard_id": "hurricane", "level": 8}]
        ).to_csv(tmp_path / "hazard_profiles.csv", index=False)
        pd.DataFrame(
            [
                {
                    "strategy_id": "kit", "name": "Kit", "category": "preparation",
                    "applicable_hazards": "hurricane,flood", "applicable_business_types": "all",
                    "effectiveness": 6, "cost_tier": "low", "selection_tier": "essential",
                }
            ]
        ).to_csv(tmp_path / "strategies.csv", index=False)

        repository = InMemoryReferenceRepository(load_reference_data(str(tmp_path)))

        assert repository.get_location("kingston").is_coastal is True
        assert repository.get_hazard_level("kingston", "hurricane").level == 8
        [strategy] = repository.get_active_strategies()
        assert strategy.applicable_hazards == frozenset({"hurricane", "flooding"})

    def test_load_reference_tables_empty_directory(self, tmp_path):
        dataset = load_reference_tables(str(tmp_path))

        assert dataset.strategies == []
        assert dataset.hazard_profiles == []

    def test_load_json_bundle(self, tmp_path, reference_records):
        path = tmp_path / "reference.json"
        path.write_text(json.dumps(reference_records), encoding="utf-8")

        dataset = load_reference_data(str(path))

        assert len(dataset.strategies) == 7
        assert len(dataset.multiplier_rules) == 5

    def test_sample_bundle_is_valid(self, sample_reference_path):
        dataset = load_reference_data(sample_reference_path)

        assert dataset.rejected_rules == []
        assert {s.category.value for s in dataset.strategies} == {
            "prevention",
            "preparation",
            "response",
            "recovery",
        }
        hurricane = InMemoryReferenceRepository(dataset).get_hazard_type("hurricane")
        assert hurricane.peak_months == frozenset({8, 9, 10})
        assert "power_outage" in hurricane.cascading_risks

    def test_records_must_be_an_object(self):
        with pytest.raises(ValueError):
            dataset_from_records([])
