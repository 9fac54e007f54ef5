"""
Tests for the FastAPI adapter
==============================
The engine dependency is overridden with one bound to the demo store.
"""

import pytest
from fastapi.testclient import TestClient

from api.main import app, get_engine
from conftest import CURRENT_USER


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health_lists_tables_and_cache(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "healthy"
        assert "tasks" in body["tables"]
        assert body["cache"]["loaded"] is False

    def test_health_degrades_when_store_is_down(self, client, engine):
        engine.store.close()
        body = client.get("/api/health").json()
        assert body["status"] == "degraded"
        assert body["tables"] == []


class TestExtract:
    def test_entities_with_offsets(self, client):
        response = client.post("/api/extract", json={"text": "my tasks today", "user_id": CURRENT_USER})
        assert response.status_code == 200
        entities = response.json()["entities"]
        assert [(e["kind"], e["start"], e["end"]) for e in entities] == [
            ("Pronoun", 0, 2), ("TableEntity", 3, 8), ("Temporal", 9, 14),
        ]
        assert entities[2]["canonical_value"]["start"] == "2024-06-12T00:00:00"

    def test_missing_text_is_rejected(self, client):
        assert client.post("/api/extract", json={}).status_code == 422


class TestQuery:
    def test_full_pipeline(self, client):
        response = client.post("/api/query", json={"text": "pending tasks", "user_id": CURRENT_USER})
        assert response.status_code == 200
        body = response.json()
        assert body["counts"] == {"tasks": 3}
        assert body["predicates"]["tasks"][0]["operator"] == "equals"
        assert body["summary_text"].startswith("Found 3 records")

    def test_empty_text_is_a_bad_request(self, client):
        assert client.post("/api/query", json={"text": "  "}).status_code == 400

    def test_non_positive_timeout_is_rejected(self, client):
        response = client.post("/api/query", json={"text": "tasks", "timeout_seconds": 0})
        assert response.status_code == 422

    def test_pipeline_failure_is_still_200(self, client, engine, monkeypatch):
        monkeypatch.setattr(engine.router, "route", lambda entities: 1 / 0)
        response = client.post("/api/query", json={"text": "tasks"})
        assert response.status_code == 200
        assert response.json()["error"] == "division by zero"


class TestCache:
    def test_suggestions(self, client):
        response = client.post("/api/suggestions", json={"query": "lap", "category": "product", "limit": 5})
        assert [s["value"] for s in response.json()["suggestions"]] == ["Business Laptop", "Gaming Laptop"]

    def test_unknown_suggestion_category(self, client):
        response = client.post("/api/suggestions", json={"query": "lap", "category": "vehicle"})
        assert response.status_code == 422

    def test_refresh(self, client):
        body = client.post("/api/cache/refresh").json()
        assert body["status"] == "ok"
        assert body["values_by_category"]["product"] == 6
        assert body["errors"] == {}
