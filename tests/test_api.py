"""
Tests for api/endpoints.py - FastAPI routes.
"""

import pytest
from fastapi.testclient import TestClient

from clearance_engine.api import endpoints
from clearance_engine.config.settings import LLM_CONFIG, OUTPUT_COLUMNS
from clearance_engine.engine import ClearanceScoringEngine
from clearance_engine.storage.cache_store import InMemoryCacheStore

from conftest import EXAMPLE_HEADER, EXAMPLE_RECORD, FakeEnricher


@pytest.fixture
def enricher():
    return FakeEnricher()


@pytest.fixture
def client(monkeypatch, sensor_config, enricher):
    engine = ClearanceScoringEngine(
        scoring_config=sensor_config, cache_store=InMemoryCacheStore(), enricher=enricher
    )
    monkeypatch.setattr(endpoints, "default_engine", engine)
    return TestClient(endpoints.app)


class TestInfo:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "Score Batch" in response.json()["endpoints"]

    def test_health(self, client):
        data = client.get("/api/health").json()
        assert data["status"] == "healthy"
        assert data["cached_recaps"] == 0


class TestScoring:
    def test_score_record(self, client):
        response = client.post("/api/score/record", json={
            "header": EXAMPLE_HEADER + ["Applicant"],
            "record": EXAMPLE_RECORD + ["Acme"],
        })

        assert response.status_code == 200
        data = response.json()
        assert data["record_id"] == "K123456"
        assert data["category"] == "High"
        assert data["output"]["PT_Wt"] == 0.60

    def test_score_batch(self, client):
        response = client.post("/api/score/batch", json={
            "header": EXAMPLE_HEADER,
            "rows": [EXAMPLE_RECORD, EXAMPLE_RECORD],
        })

        assert response.status_code == 200
        data = response.json()
        assert data["total_processed"] == 2
        assert data["categories"]["High"] == 2
        assert data["columns"] == OUTPUT_COLUMNS
        assert len(data["rows"][0]) == len(OUTPUT_COLUMNS)

    def test_missing_columns_return_422(self, client):
        response = client.post("/api/score/batch", json={
            "header": ["K_Number", "AC"],
            "rows": [["K1", "OR"]],
        })

        assert response.status_code == 422
        missing = response.json()["detail"]["missing_fields"]
        assert "DeviceName" in missing and "ProcTimeDays" in missing

    def test_enrichment_requires_deployment_gate(self, client, enricher, monkeypatch):
        monkeypatch.setitem(LLM_CONFIG, "enabled", False)
        client.post("/api/score/batch", json={
            "header": EXAMPLE_HEADER + ["Applicant"],
            "rows": [EXAMPLE_RECORD + ["Acme"]],
            "allow_enrichment": True,
        })
        assert enricher.calls == []

    def test_enrichment_when_gate_open(self, client, enricher, monkeypatch):
        monkeypatch.setitem(LLM_CONFIG, "enabled", True)
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test-123456789")
        response = client.post("/api/score/batch", json={
            "header": EXAMPLE_HEADER + ["Applicant"],
            "rows": [EXAMPLE_RECORD + ["Acme"]],
            "allow_enrichment": True,
        })
        assert enricher.calls == ["Acme"]
        assert response.json()["rows"][0][-1] == enricher.text


class TestRecaps:
    def test_cached_recap(self, client):
        endpoints.default_engine.recap_cache.put("Acme", "Acme recap")
        response = client.get("/api/recap/acme")
        assert response.status_code == 200
        assert response.json()["recap"] == "Acme recap"

    def test_unknown_recap_404(self, client):
        assert client.get("/api/recap/Nobody").status_code == 404

    def test_stats(self, client):
        client.post("/api/score/batch", json={"header": EXAMPLE_HEADER, "rows": [EXAMPLE_RECORD]})
        stats = client.get("/api/stats").json()["default_engine"]
        assert stats["total_processed"] == 1
