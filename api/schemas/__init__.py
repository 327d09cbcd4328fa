"""Pydantic schemas for API request/response models."""

from __future__ import annotations
import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class FiniteModel(BaseModel):
    """Request body whose numbers must be finite (JSON Infinity/NaN is a 422)."""
    model_config = ConfigDict(allow_inf_nan=False)


# ── Geo Schemas ────────────────────────────────────────────

class Point(FiniteModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class DistanceRequest(FiniteModel):
    a: Point
    b: Point


class DistanceResponse(BaseModel):
    distance_m: float
    formatted: str


class RadiusCheckRequest(FiniteModel):
    user: Point
    target: Point
    radius_m: float | None = Field(None, ge=0)


class RadiusCheckResponse(BaseModel):
    within_radius: bool
    distance_m: float
    radius_m: float


class RouteStop(Point):
    # Caller's pickup reference, echoed back in route order
    id: str | None = Field(None, max_length=64)


class RouteRequest(FiniteModel):
    start: Point
    points: list[RouteStop] = []
    average_speed_kmh: float | None = Field(None, gt=0)
    average_pickup_min: float | None = Field(None, ge=0)


class RouteResponse(BaseModel):
    route: list[RouteStop]
    total_distance_km: float
    estimated_minutes: int
    directions_url: str


# ── Payout Schemas ─────────────────────────────────────────

class PaymentInputRequest(FiniteModel):
    # Left optional so a missing base is rejected by the calculator with a 400
    base: float | None = None
    on_site: float = 0.0
    discount: float = 0.0
    urgent_enabled: bool = False
    deadhead_km: float = 0.0
    billed_km: float = 0.0
    surge_multiplier: float = 1.0
    request_fee: float = 1.0
    taxes: float = 0.0
    tips: float = 0.0
    recycler_gross: float = 0.0
    loyalty_rate: float = 0.0


class BreakdownResponse(BaseModel):
    user_total: float
    base: float
    on_site: float
    discount: float
    urgent_amt: float
    per_km: float
    distance_amt: float
    surge_uplift: float
    request_fee: float
    taxes: float

    collector_total: float
    collector_core: float
    collector_urg: float
    collector_dist: float
    collector_surge: float
    collector_recyclables: float
    collector_pre_loyalty: float
    loyalty_cashback: float
    tips: float

    app_bucket: float
    platform_core: float
    platform_urg: float
    platform_surge: float
    platform_recyclables: float

    user_recyclables: float

    deadhead_share: float
    deadhead_km: float
    billed_km: float
    surge_multiplier: float
    non_distance_core: float
    eligible_surge_base: float

    # None when no cashback applies
    loyalty_tier: str | None = None
    collector_total_display: str


class EstimateRequest(FiniteModel):
    base_amount: float | None = None
    fee: float | None = None
    onsite_surcharges: float = 0.0
    discount_amount: float = 0.0
    urgent_enabled: bool = False
    distance_billed_km: float | None = None
    surge_multiplier: float = 1.0
    request_fee: float | None = None
    taxes: float = 0.0
    deadhead_km: float = Field(..., ge=0)


class EstimateResponse(BreakdownResponse):
    is_estimate: bool = True
    excludes_tips: bool = True
    excludes_recyclables: bool = True
    excludes_loyalty: bool = True


class AnchorDistanceRequest(FiniteModel):
    anchor_at_quote_km: float | None = None
    anchor_at_accept_km: float | None = None
    current_km: float


class AnchorDistanceResponse(BaseModel):
    distance_km: float


# ── Settlement Schemas ─────────────────────────────────────

class SettlementCreate(PaymentInputRequest):
    request_id: str | None = Field(None, max_length=64)
    collector_id: str | None = Field(None, max_length=64)


class SettlementResponse(BaseModel):
    id: uuid.UUID
    request_id: str | None
    collector_id: str | None
    collector_total_payout: float
    app_bucket: float
    user_total: float
    user_recyclables: float
    deadhead_km: float
    billed_km: float
    surge_multiplier: float
    loyalty_tier: str | None
    breakdown: dict
    created_at: datetime

    class Config:
        from_attributes = True
