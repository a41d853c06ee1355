"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from pattern_nexus.api.main import app
from pattern_nexus.config import StoreConfig
from pattern_nexus.core.store import PatternMemoryStore


@pytest.fixture
def client():
    app.state.store = PatternMemoryStore(StoreConfig(backend_timeout=1.0))
    with TestClient(app) as c:
        yield c


def _store(client, action, outcome, price=100.0):
    response = client.post(
        "/v1/patterns",
        json={"pattern": {"action": action, "price": price, "volume": 5000}, "outcome": outcome},
    )
    assert response.status_code == 200
    return response.json()


class TestPublicEndpoints:
    def test_root(self, client):
        data = client.get("/").json()
        assert data["status"] == "operational"
        assert "similar" in data["endpoints"]

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestPatternEndpoints:
    def test_store_pattern(self, client):
        first = _store(client, "buy", 10)
        second = _store(client, "sell", -5)
        assert (first["id"], first["success"]) == (0, True)
        assert (second["id"], second["success"]) == (1, False)

    def test_store_requires_outcome(self, client):
        response = client.post("/v1/patterns", json={"pattern": {"action": "buy"}})
        assert response.status_code == 422

    def test_similar(self, client):
        _store(client, "buy", 10)
        _store(client, "sell", -5)
        _store(client, "buy", 20, price=105)

        response = client.post("/v1/similar", json={"pattern": {"action": "buy", "price": 100}, "k": 5})
        data = response.json()
        assert data["count"] == 2
        assert sorted(m["id"] for m in data["matches"]) == [0, 2]
        assert all(m["success"] for m in data["matches"])

    def test_similar_empty_store(self, client):
        response = client.post("/v1/similar", json={"pattern": {"action": "buy"}})
        assert response.json() == {"count": 0, "matches": []}

    def test_similar_rejects_bad_k(self, client):
        response = client.post("/v1/similar", json={"pattern": {"action": "buy"}, "k": 0})
        assert response.status_code == 422

    def test_causal(self, client):
        _store(client, "buy", 10)
        _store(client, "sell", -5)
        _store(client, "buy", 20)

        sell = client.get("/v1/causal/sell").json()
        assert sell["causal_paths"] == [
            {"from_id": 1, "to_id": 2, "delta_outcome": 25.0, "confidence": 0.8, "weight": 1.0}
        ]
        assert client.get("/v1/causal/buy").json()["causal_paths"] == []

    def test_causal_unknown_action(self, client):
        data = client.get("/v1/causal/hold").json()
        assert data["insight"] == "No patterns found for this action"

    def test_critique(self, client):
        _store(client, "buy", 10)
        data = client.post("/v1/critique", json={"trajectory": [{"action": "buy"}]}).json()
        assert data["summary"] == "Retrieved 1 similar episodes for buy"
        assert data["episodes"][0]["payload"]["action"] == "buy"

    def test_critique_empty(self, client):
        data = client.post("/v1/critique", json={}).json()
        assert data == {"episodes": [], "summary": "No episodes found for unknown"}

    def test_skills_and_stats(self, client):
        _store(client, "buy", 10)
        _store(client, "sell", 3)
        _store(client, "hold", -1)

        skills = client.get("/v1/skills").json()
        assert skills["count"] == 2
        assert client.get("/v1/skills", params={"query": "sell"}).json()["count"] == 1

        stats = client.get("/v1/stats").json()
        assert stats["patterns"] == 3
        assert stats["relationships"] == 2
