"""API endpoint tests — FastAPI routes over the packaged sample catalog."""

import pytest
from fastapi.testclient import TestClient

from configurator.api.main import create_app


@pytest.fixture
def client():
    return TestClient(create_app())


# =============================================================================
# HEALTH & RULES
# =============================================================================

class TestBasics:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_rules(self, client):
        resp = client.get("/api/rules")
        assert resp.status_code == 200
        rules = resp.json()
        assert len(rules) == 6
        assert rules[0]["name"] == "High output requires dimmable driver"
        assert rules[-1]["malformed"] is True


# =============================================================================
# AVAILABILITY
# =============================================================================

class TestAvailability:
    def test_two_phase_result(self, client):
        resp = client.post("/api/availability", json={
            "product_line": 1,
            "selection": {"size": 3, "light_output": 2, "color_temperature": 4, "driver": 1},
        })
        assert resp.status_code == 200
        body = resp.json()
        assert body["published"] is True
        assert body["available"]["driver"] == ["2"]
        assert body["available"]["color_temperature"] == ["1", "2", "3"]
        assert body["effective_selection"]["driver"] == "2"
        assert [a["field"] for a in body["adjustments"]] == ["color_temperature"]
        assert body["unavailable_fields"] == []

    def test_explicit_candidates(self, client):
        resp = client.post("/api/availability", json={
            "product_line": 1,
            "selection": {"size": 1},
            "candidates": {"light_output": [1, 2]},
        })
        assert resp.status_code == 200
        assert resp.json()["available"] == {"light_output": ["1"]}


# =============================================================================
# SKU
# =============================================================================

class TestSku:
    def test_resolve_exact(self, client):
        resp = client.post("/api/sku/resolve", json={"sku": "T01D-2436-S-27-N-V"})
        assert resp.status_code == 200
        result = resp.json()["results"][0]
        assert result["confidence"] == "exact"
        assert result["configuration"]["size"] == "1"

    def test_resolve_ambiguous(self, client):
        resp = client.post("/api/sku/resolve", json={"sku": "T01"})
        results = resp.json()["results"]
        assert [r["product_sku"] for r in results] == ["T01D", "T01I"]
        assert {r["confidence"] for r in results} == {"ambiguous"}

    def test_resolve_rejects_non_string(self, client):
        resp = client.post("/api/sku/resolve", json={"sku": ["T01D"]})
        assert resp.status_code == 422

    def test_build(self, client):
        resp = client.post("/api/sku/build", json={
            "product_id": 1,
            "configuration": {"size": 2, "light_output": 1, "color_temperature": 2,
                              "driver": 2, "mounting_option": 2, "accessory": [1]},
        })
        assert resp.status_code == 200
        assert resp.json() == {"product_id": "1", "sku": "T01D-3036-S-30-D-H-AN"}

    def test_build_unknown_product(self, client):
        resp = client.post("/api/sku/build", json={"product_id": 999, "configuration": {}})
        assert resp.status_code == 404

    def test_base_suggestions(self, client):
        resp = client.get("/api/sku/suggestions", params={"q": "T0", "limit": 2})
        assert [s["product_sku"] for s in resp.json()] == ["T01D", "T01I"]

    def test_segment_suggestions(self, client):
        resp = client.get("/api/sku/segments", params={"base": "L51D", "index": 0, "q": "48"})
        assert resp.status_code == 200
        assert [s["sku_code"] for s in resp.json()] == ["4860", "3648"]

    def test_segment_suggestions_unknown_base(self, client):
        resp = client.get("/api/sku/segments", params={"base": "NOPE"})
        assert resp.status_code == 404
