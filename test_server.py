"""Tests for the FastAPI boundary."""

import base64

import pytest
from fastapi.testclient import TestClient

from conftest import make_orchestrator
from server import app, orchestrator_dependency

ADDRESS = "1600 Amphitheatre Pkwy, Mountain View, CA 94043"


@pytest.fixture
def orchestrator():
    return make_orchestrator()


@pytest.fixture
def client(orchestrator):
    app.dependency_overrides[orchestrator_dependency] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_assessment_round_trip(client):
    response = client.post("/api/assessments", json={"address": ADDRESS, "monthly_bill_usd": 180})
    assert response.status_code == 200
    body = response.json()
    assessment = body["assessment"]
    assert assessment["provenance"]["location"] == "melissa"
    assert assessment["overall_confidence"] == 0.9
    assert len(assessment["solar"]["monthly_series"]) == 12
    assert body["next_steps"]

    fetched = client.get(f"/api/assessments/{assessment['assessment_id']}")
    assert fetched.status_code == 200
    assert fetched.json()["assessment_id"] == assessment["assessment_id"]


def test_proposal(client):
    created = client.post("/api/assessments", json={"address": ADDRESS}).json()
    assessment_id = created["assessment"]["assessment_id"]

    response = client.post(
        f"/api/assessments/{assessment_id}/proposal",
        json={"include_battery": True, "panel_type": "Bifacial"},
    )

    assert response.status_code == 200
    proposal = response.json()["proposal"]
    assert proposal["include_battery"] is True
    assert proposal["panel_type"] == "Bifacial"

    stored = client.get(f"/api/assessments/{assessment_id}").json()
    assert stored["proposal"]["proposal_id"] == proposal["proposal_id"]


def test_invalid_request_is_400(client, orchestrator):
    response = client.post("/api/assessments", json={"address": "   "})
    assert response.status_code == 400
    assert "address" in response.json()["detail"]

    response = client.post("/api/assessments", json={"address": ADDRESS, "roof_age_years": -1})
    assert response.status_code == 400


def test_missing_address_is_rejected_by_schema(client):
    response = client.post("/api/assessments", json={"monthly_bill_usd": 100})
    assert response.status_code == 422


def test_imagery_must_be_base64(client):
    response = client.post(
        "/api/assessments", json={"address": ADDRESS, "imagery_base64": "not base64!"}
    )
    assert response.status_code == 400


def test_imagery_is_accepted(client):
    imagery = base64.b64encode(b"\x89PNG\r\n\x1a\n" + b"\x00" * 16).decode()
    response = client.post("/api/assessments", json={"address": ADDRESS, "imagery_base64": imagery})
    assert response.status_code == 200


def test_unknown_assessment_is_404(client):
    assert client.get("/api/assessments/unknown").status_code == 404
    assert client.post("/api/assessments/unknown/proposal").status_code == 404


def test_lifespan_starts_and_stops_cache_sweeper(client, orchestrator):
    with client:
        assert orchestrator.cache._sweeper is not None
        assert client.get("/health").status_code == 200
    assert orchestrator.cache._sweeper is None
