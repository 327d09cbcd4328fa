"""Tests for the HTTP endpoints (mocked DB session)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import uuid
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from main import app
from db.database import get_db
from models.settlement import Settlement


@pytest.fixture
def db_session():
    session = MagicMock()
    session.commit = AsyncMock()

    async def _refresh(obj):
        obj.created_at = datetime(2026, 3, 1, 9, 30)

    session.refresh = AsyncMock(side_effect=_refresh)
    session.execute = AsyncMock()

    app.dependency_overrides[get_db] = lambda: session
    yield session
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


# ── Payouts ────────────────────────────────────────────────

def test_breakdown_plain(client):
    resp = client.post("/api/payouts/breakdown", json={"base": 100, "deadhead_km": 5})
    assert resp.status_code == 200
    data = resp.json()
    assert data["collector_total"] == pytest.approx(85)
    assert data["app_bucket"] == pytest.approx(16)
    assert data["user_total"] == pytest.approx(101)
    assert data["loyalty_tier"] is None
    assert data["collector_total_display"] == "₵85"


def test_breakdown_surge_and_loyalty(client):
    resp = client.post("/api/payouts/breakdown", json={
        "base": 100, "deadhead_km": 5, "surge_multiplier": 1.5, "loyalty_rate": 0.03,
    })
    data = resp.json()
    assert data["collector_surge"] == pytest.approx(37.5)
    assert data["loyalty_tier"] == "Platinum"


def test_breakdown_missing_base(client):
    """Missing base is a pricing error (400), not a schema error."""
    resp = client.post("/api/payouts/breakdown", json={"deadhead_km": 5})
    assert resp.status_code == 400
    assert "Base price" in resp.json()["detail"]


def test_breakdown_negative_tips(client):
    resp = client.post("/api/payouts/breakdown", json={"base": 100, "tips": -3})
    assert resp.status_code == 400


def test_estimate(client):
    resp = client.post("/api/payouts/estimate", json={
        "base_amount": 100, "urgent_enabled": True, "deadhead_km": 8,
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["is_estimate"] is True
    assert data["excludes_tips"] is True
    assert data["billed_km"] == 3
    assert data["tips"] == 0


def test_estimate_without_price(client):
    resp = client.post("/api/payouts/estimate", json={"deadhead_km": 2})
    assert resp.status_code == 400


def test_deadhead_share_endpoint(client):
    resp = client.get("/api/payouts/deadhead-share", params={"deadhead_km": 7.5})
    assert resp.json()["share"] == pytest.approx(0.885)


def test_billed_distance_endpoint(client):
    resp = client.get("/api/payouts/billed-distance", params={"distance_km": 15, "urgent_enabled": True})
    assert resp.json()["billed_km"] == 5


def test_anchor_distance(client):
    resp = client.post("/api/payouts/anchor-distance", json={
        "anchor_at_quote_km": 6.0, "current_km": 9.0,
    })
    assert resp.json()["distance_km"] == 6.0


def test_breakdown_tier_matches_settlement(client, db_session):
    """No cashback means no tier, on the quote as on the stored record."""
    body = {"base": 100, "deadhead_km": 5}
    quote = client.post("/api/payouts/breakdown", json=body).json()
    stored = client.post("/api/settlements", json=body).json()
    assert quote["loyalty_tier"] is None
    assert stored["loyalty_tier"] is None


def test_breakdown_rejects_infinite_number(client):
    resp = client.post(
        "/api/payouts/breakdown",
        content='{"base": 100, "tips": Infinity}',
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 422


@pytest.mark.parametrize("path,params", [
    ("/api/payouts/deadhead-share", {"deadhead_km": "inf"}),
    ("/api/payouts/deadhead-share", {"deadhead_km": "nan"}),
    ("/api/payouts/billed-distance", {"distance_km": "inf", "urgent_enabled": True}),
    ("/api/payouts/loyalty-tier", {"rate": "nan"}),
    ("/api/payouts/loyalty-tier", {"rate": "inf"}),
])
def test_query_rejects_non_finite(client, path, params):
    resp = client.get(path, params=params)
    assert resp.status_code == 422


def test_loyalty_tier_endpoint(client):
    resp = client.get("/api/payouts/loyalty-tier", params={"rate": 0.02})
    assert resp.json()["tier"] == "Gold"


def test_loyalty_tier_response_keys(client):
    resp = client.get("/api/payouts/loyalty-tier", params={"rate": 0.03})
    assert resp.json() == {"rate": 0.03, "tier": "Platinum"}


# ── Geo ────────────────────────────────────────────────────

def test_distance_endpoint(client):
    resp = client.post("/api/geo/distance", json={
        "a": {"lat": 0.0, "lng": 0.0}, "b": {"lat": 0.0, "lng": 0.0},
    })
    assert resp.status_code == 200
    assert resp.json() == {"distance_m": 0.0, "formatted": "0m"}


def test_distance_out_of_range(client):
    resp = client.post("/api/geo/distance", json={
        "a": {"lat": 95.0, "lng": 0.0}, "b": {"lat": 0.0, "lng": 0.0},
    })
    assert resp.status_code == 422


def test_within_radius_default(client):
    resp = client.post("/api/geo/within-radius", json={
        "user": {"lat": 5.6037, "lng": -0.1870},
        "target": {"lat": 5.6040, "lng": -0.1870},
    })
    data = resp.json()
    assert data["within_radius"] is True
    assert data["radius_m"] == 50


def test_within_radius_outside(client):
    resp = client.post("/api/geo/within-radius", json={
        "user": {"lat": 5.6037, "lng": -0.1870},
        "target": {"lat": 5.6047, "lng": -0.1870},
        "radius_m": 50,
    })
    assert resp.json()["within_radius"] is False


def test_route_endpoint(client):
    resp = client.post("/api/geo/route", json={
        "start": {"lat": 0.0, "lng": 0.0},
        "points": [{"lat": 0.0, "lng": 0.2}, {"lat": 0.0, "lng": 0.1}],
    })
    assert resp.status_code == 200
    data = resp.json()
    assert [p["lng"] for p in data["route"]] == [0.1, 0.2]
    assert data["total_distance_km"] > 0
    assert data["estimated_minutes"] > 0
    assert data["directions_url"].startswith("https://www.openstreetmap.org/directions")


def test_route_keeps_stop_ids(client):
    resp = client.post("/api/geo/route", json={
        "start": {"lat": 0.0, "lng": 0.0},
        "points": [
            {"lat": 0.0, "lng": 0.2, "id": "req-far"},
            {"lat": 0.0, "lng": 0.1, "id": "req-near"},
        ],
    })
    assert [p["id"] for p in resp.json()["route"]] == ["req-near", "req-far"]


@pytest.mark.parametrize("field", ["average_pickup_min", "average_speed_kmh"])
def test_route_rejects_infinite_timing(client, field):
    body = '{"start": {"lat": 0.0, "lng": 0.0}, "points": [{"lat": 0.0, "lng": 0.1}], "%s": Infinity}' % field
    resp = client.post("/api/geo/route", content=body, headers={"Content-Type": "application/json"})
    assert resp.status_code == 422


def test_within_radius_rejects_infinite_radius(client):
    body = '{"user": {"lat": 0.0, "lng": 0.0}, "target": {"lat": 0.0, "lng": 0.0}, "radius_m": Infinity}'
    resp = client.post("/api/geo/within-radius", content=body, headers={"Content-Type": "application/json"})
    assert resp.status_code == 422


def test_route_empty(client):
    resp = client.post("/api/geo/route", json={"start": {"lat": 0.0, "lng": 0.0}, "points": []})
    data = resp.json()
    assert data["route"] == []
    assert data["estimated_minutes"] == 0
    assert data["directions_url"] == ""


# ── Settlements ────────────────────────────────────────────

def test_create_settlement(client, db_session):
    resp = client.post("/api/settlements", json={
        "base": 100, "deadhead_km": 5, "tips": 5, "recycler_gross": 20,
        "loyalty_rate": 0.02, "request_id": "req-42", "collector_id": "col-7",
    })
    assert resp.status_code == 201
    data = resp.json()
    assert data["request_id"] == "req-42"
    assert data["loyalty_tier"] == "Gold"
    assert data["collector_total_payout"] == pytest.approx(85 + 1.7 + 5 + 12)
    assert data["breakdown"]["user_recyclables"] == pytest.approx(5)

    db_session.add.assert_called_once()
    stored = db_session.add.call_args[0][0]
    assert isinstance(stored, Settlement)
    db_session.commit.assert_awaited_once()


def test_create_settlement_invalid(client, db_session):
    """Rejected input must not touch the database."""
    resp = client.post("/api/settlements", json={"base": 0})
    assert resp.status_code == 400
    db_session.add.assert_not_called()
    db_session.commit.assert_not_called()


def test_get_settlement(client, db_session):
    settlement_id = uuid.uuid4()
    stored = Settlement(
        id=settlement_id, request_id="req-1", collector_id=None,
        collector_total_payout=85.0, app_bucket=16.0, user_total=101.0,
        user_recyclables=0.0, deadhead_km=5.0, billed_km=0.0, surge_multiplier=1.0,
        loyalty_tier=None, breakdown={"collector_total": 85.0},
        created_at=datetime(2026, 3, 1, 9, 30),
    )
    result = MagicMock()
    result.scalar_one_or_none.return_value = stored
    db_session.execute.return_value = result

    resp = client.get(f"/api/settlements/{settlement_id}")
    assert resp.status_code == 200
    assert resp.json()["id"] == str(settlement_id)


def test_get_settlement_missing(client, db_session):
    result = MagicMock()
    result.scalar_one_or_none.return_value = None
    db_session.execute.return_value = result

    resp = client.get(f"/api/settlements/{uuid.uuid4()}")
    assert resp.status_code == 404


def test_create_settlement_surge_too_large_to_store(client, db_session):
    """A surge the surge column can't hold is a 400, never a database error."""
    resp = client.post("/api/settlements", json={"base": 100, "surge_multiplier": 150})
    assert resp.status_code == 400
    assert "surge_multiplier" in resp.json()["detail"]
    db_session.add.assert_not_called()


def test_create_settlement_total_too_large_to_store(client, db_session):
    resp = client.post("/api/settlements", json={
        "base": 99_999_999, "deadhead_km": 5, "surge_multiplier": 2,
    })
    assert resp.status_code == 400
    db_session.add.assert_not_called()
    db_session.commit.assert_not_called()


def test_create_settlement_rejects_infinite_tips(client, db_session):
    resp = client.post(
        "/api/settlements",
        content='{"base": 100, "tips": Infinity}',
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 422
    db_session.add.assert_not_called()
