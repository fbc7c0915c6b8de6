"""HTTP API tests"""
import pytest
from fastapi.testclient import TestClient

from api.main import app, get_engine
from src.reference_data import CachedReferenceRepository
from src.risk_scoring import RecommendationEngine


@pytest.fixture
def cached_engine(repository) -> RecommendationEngine:
    return RecommendationEngine(CachedReferenceRepository(repository))


@pytest.fixture
def client(cached_engine):
    app.dependency_overrides[get_engine] = lambda: cached_engine
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestEndpoints:
    """Wizard and admin endpoints"""

    def test_root_and_health(self, client):
        assert "endpoints" in client.get("/").json()

        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_smart_recommendations(self, client):
        response = client.post(
            "/api/v1/wizard/smart-recommendations",
            json={"business_type_id": "grocery", "location_id": "coastal_town"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["risks"][0]["hazard_id"] == "hurricane"
        assert body["risks"][0]["tier"] == "Extreme"
        assert body["no_specific_guidance"] is False
        assert body["metadata"]["location_found"] is True

    def test_simplified_answers_are_converted(self, client):
        response = client.post(
            "/api/v1/wizard/risk-calculations",
            json={
                "business_type_id": "grocery",
                "location_id": "city",
                "hazard_ids": ["powerOutage"],
                "simplified_answers": {"power_dependency": "cannot_operate"},
            },
        )

        assert response.status_code == 200
        [risk] = response.json()["risk_calculations"]
        assert risk["hazard_id"] == "power_outage"
        assert [r["rule_id"] for r in risk["applied_rules"]] == ["power_critical"]

    def test_risk_calculations_with_manual_ratings(self, client):
        response = client.post(
            "/api/v1/wizard/risk-calculations",
            json={
                "business_type_id": "grocery",
                "location_id": "coastal_town",
                "hazard_ids": ["hurricane"],
                "characteristics": {"power_dependency": 95},
                "manual_ratings": {"hurricane": {"likelihood": 4, "severity": 3}},
                "score_source": "prefer_manual",
            },
        )

        assert response.status_code == 200
        [risk] = response.json()["risk_calculations"]
        assert risk["combined_multiplier"] == pytest.approx(1.95)
        assert risk["manual_score"] == 12
        assert risk["manual_tier"] == "Extreme"

    def test_invalid_manual_rating_in_calculation(self, client):
        response = client.post(
            "/api/v1/wizard/risk-calculations",
            json={
                "business_type_id": "grocery",
                "hazard_ids": ["hurricane"],
                "manual_ratings": {"hurricane": {"likelihood": 7, "severity": 3}},
            },
        )

        assert response.status_code == 400

    def test_month_flags_peak_season(self, client):
        response = client.post(
            "/api/v1/wizard/risk-calculations",
            json={
                "business_type_id": "grocery",
                "location_id": "coastal_town",
                "hazard_ids": ["hurricane"],
                "month": 9,
            },
        )

        assert response.status_code == 200
        [risk] = response.json()["risk_calculations"]
        assert risk["is_seasonally_active"] is True
        assert risk["cascading_risks"] == ["power_outage", "flooding"]

    def test_month_out_of_range(self, client):
        response = client.post(
            "/api/v1/wizard/smart-recommendations",
            json={"business_type_id": "grocery", "location_id": "coastal_town", "month": 13},
        )

        assert response.status_code == 422

    def test_missing_hazards_rejected(self, client):
        response = client.post(
            "/api/v1/wizard/risk-calculations",
            json={"business_type_id": "grocery", "hazard_ids": []},
        )

        assert response.status_code == 422

    def test_manual_rating(self, client):
        response = client.post(
            "/api/v1/wizard/manual-rating",
            json={"hazard_id": "hurricane", "likelihood": 2, "severity": 2},
        )

        assert response.status_code == 200
        assert response.json()["manual_score"] == 4
        assert response.json()["manual_tier"] == "Moderate"

    def test_manual_rating_out_of_range(self, client):
        response = client.post(
            "/api/v1/wizard/manual-rating",
            json={"hazard_id": "hurricane", "likelihood": 0, "severity": 2},
        )

        assert response.status_code == 400

    def test_invalidate_cache(self, client, cached_engine):
        client.post(
            "/api/v1/wizard/risk-calculations",
            json={"business_type_id": "grocery", "hazard_ids": ["hurricane"]},
        )
        assert cached_engine.repository.misses > 0

        response = client.post("/api/v1/admin/reference-data/invalidate")

        assert response.status_code == 200
        assert response.json()["invalidated"] is True

    def test_engine_from_environment(self, monkeypatch, sample_reference_path):
        monkeypatch.setenv("REFERENCE_DATA_PATH", sample_reference_path)
        monkeypatch.setenv("MAX_STRATEGIES", "3")
        get_engine.cache_clear()

        try:
            engine = get_engine()
        finally:
            get_engine.cache_clear()

        assert engine.matcher.max_strategies == 3
        assert isinstance(engine.repository, CachedReferenceRepository)
        assert engine.repository.get_location("kingston").name == "Kingston"
