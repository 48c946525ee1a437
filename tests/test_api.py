"""Tests for the REST API."""

import pytest
from fastapi.testclient import TestClient

from decision_checkpoint.api import app, get_pipeline
from decision_checkpoint.pipeline import DecisionEvaluationPipeline
from decision_checkpoint.samples import SAMPLE_RISK_ANSWERS, SPECULATIVE_ANSWERS, SYSTEMATIC_ANSWERS


@pytest.fixture
def client():
    pipeline = DecisionEvaluationPipeline()
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestMetaEndpoints:
    def test_health(self, client):
        res = client.get("/health")
        assert res.status_code == 200
        assert res.json()["status"] == "ok"
        assert res.json()["augmentation"] is False

    def test_questions(self, client):
        res = client.get("/questions")
        assert res.status_code == 200
        assert len(res.json()) == 28

    def test_questions_for_one_stage(self, client):
        res = client.get("/questions", params={"stage": 4})
        assert res.status_code == 200
        assert [q["id"] for q in res.json()] == ["4-1", "4-2", "4-3", "4-4"]

    def test_questions_unknown_stage(self, client):
        res = client.get("/questions", params={"stage": 9})
        assert res.status_code == 404

    def test_risk_questions_chinese(self, client):
        res = client.get("/risk-questions", params={"language": "zh"})
        assert res.json()[0]["text"].startswith("您的可投资资产")


class TestEvaluate:
    def test_systematic(self, client):
        res = client.post("/evaluate", json={"name": "Quality", "answers": SYSTEMATIC_ANSWERS})
        assert res.status_code == 200
        body = res.json()
        assert body["rating"] == "system"
        assert body["total_score"] == 97
        assert set(body["stage_scores"]) == {"1", "2", "3", "4", "5", "6", "7"}

    def test_speculative(self, client):
        res = client.post("/evaluate", json={"name": "Punt", "answers": SPECULATIVE_ANSWERS})
        assert res.json()["rating"] == "high-risk"
        assert res.json()["base_rating"] == "cautious"

    def test_name_only_returns_422_with_fields(self, client):
        res = client.post("/evaluate", json={"name": "Only a name"})
        assert res.status_code == 422
        assert "1-1" in res.json()["fields"]

    def test_missing_name(self, client):
        res = client.post("/evaluate", json={"answers": SYSTEMATIC_ANSWERS})
        assert res.status_code == 422
        assert res.json()["fields"] == ["name"]

    def test_non_string_answer_rejected(self, client):
        res = client.post("/evaluate", json={"name": "x", "answers": {"1-1": 42}})
        assert res.status_code == 422

    def test_sample(self, client):
        res = client.get("/sample")
        assert res.status_code == 200
        assert res.json()["decision_name"] == "Diversified quality portfolio"


class TestValidate:
    def test_valid(self, client):
        res = client.post("/validate", json={"name": "Quality", "answers": SYSTEMATIC_ANSWERS})
        assert res.json() == {"valid": True, "missing": [], "mismatched": []}

    def test_reports_missing_and_mismatched(self, client):
        res = client.post("/validate", json={"name": "", "answers": {"1-2": "Forever"}})
        body = res.json()
        assert body["valid"] is False
        assert body["missing"][0] == "name"
        assert body["mismatched"] == ["1-2"]


class TestInsightsAndRisk:
    def test_insights(self, client):
        res = client.post("/insights", json={"name": "Punt", "answers": SPECULATIVE_ANSWERS})
        assert res.status_code == 200
        assert res.json()["consistency_score"] == 5.5

    def test_risk_profile(self, client):
        res = client.post("/risk-profile", json={"answers": SAMPLE_RISK_ANSWERS})
        assert res.status_code == 200
        body = res.json()
        assert body["profile_type"] == "balanced"
        assert body["needs_verification"] is True

    def test_risk_profile_incomplete(self, client):
        res = client.post("/risk-profile", json={"answers": {}})
        assert res.status_code == 422
        assert len(res.json()["fields"]) == 12
