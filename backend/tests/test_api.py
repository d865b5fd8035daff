"""
API tests: routing, status-code mapping and response shapes.

The analyzer dependency is overridden, so no database or network is touched.
"""

import pytest
from fastapi.testclient import TestClient

from signalpro.main import app
from signalpro.services.analysis import get_analyzer_service
from signalpro.services.base import ExternalAPIError, RateLimitError

from conftest import KEY, USER, FakeMarketData, make_analyzer


@pytest.fixture
def analyzer():
    return make_analyzer()


@pytest.fixture
def client(analyzer):
    app.dependency_overrides[get_analyzer_service] = lambda: analyzer
    yield TestClient(app)
    app.dependency_overrides.clear()


def analyze(client, **overrides):
    body = {"instrument_key": KEY, "user_id": USER, "profile": "intraday"}
    body.update(overrides)
    return client.post("/api/v1/analysis", json=body)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert set(response.json()) >= {"market_data", "advisory_providers"}


def test_analyze(client):
    response = analyze(client)
    assert response.status_code == 200

    data = response.json()
    assert data["from_cache"] is False
    assert data["symbol"] == "INE002A01018"
    assert data["profile"] == "intraday"
    assert data["plan"]["direction"] in ("LONG", "SHORT", "NEUTRAL")
    assert data["plan"]["source"] == "fallback"
    assert 0 <= data["score"]["score"] <= 10


def test_second_analyze_is_cached(client):
    analyze(client)
    data = analyze(client).json()
    assert data["from_cache"] is True
    assert data["cache_age_seconds"] >= 0


def test_missing_user_is_rejected(client):
    response = analyze(client, user_id="")
    assert response.status_code == 422


def test_blank_user_is_a_validation_error(client):
    response = analyze(client, user_id="   ")
    assert response.status_code == 400
    assert response.json()["detail"]["service"] == "AnalyzerService"


@pytest.mark.parametrize(
    "error,status",
    [
        (RateLimitError("UpstoxMarketData", "Rate limited"), 429),
        (ExternalAPIError("UpstoxMarketData", "Upstream unavailable"), 502),
    ],
)
def test_provider_errors_map_to_status(error, status):
    app.dependency_overrides[get_analyzer_service] = lambda: make_analyzer(
        market_data=FakeMarketData(error=error)
    )
    try:
        response = analyze(TestClient(app))
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == status
    assert response.json()["detail"]["error"] == error.message


def test_recent_and_search(client):
    analyze(client)

    recent = client.get("/api/v1/analysis/recent", params={"user_id": USER})
    assert recent.status_code == 200
    assert [row["instrument_key"] for row in recent.json()] == [KEY]

    found = client.get("/api/v1/analysis/search", params={"user_id": USER, "q": "ine002"})
    assert [row["symbol"] for row in found.json()] == ["INE002A01018"]

    missing = client.get("/api/v1/analysis/search", params={"user_id": USER, "q": "tcs"})
    assert missing.json() == []


def test_delete(client):
    analyze(client)

    response = client.delete(f"/api/v1/analysis/{KEY}", params={"user_id": USER})
    assert response.status_code == 200
    assert response.json() == {"deleted": True, "instrument_key": KEY}

    again = client.delete(f"/api/v1/analysis/{KEY}", params={"user_id": USER})
    assert again.status_code == 404
