"""
Payout endpoints — quotes, pre-acceptance estimates and distance anchoring.

Nothing here is persisted; final settlements go through /api/settlements.
"""

import logging
from dataclasses import fields

from fastapi import APIRouter, HTTPException, Query

from schemas import (
    PaymentInputRequest, BreakdownResponse, EstimateRequest, EstimateResponse,
    AnchorDistanceRequest, AnchorDistanceResponse,
)
from services.payouts import (
    InvalidInput, PaymentInput, PaymentBreakdown, PayoutRequest,
    calculate_payment_breakdown, estimate_collector_payout,
    deadhead_share, billed_distance, apply_only_down_rule,
    loyalty_tier_name, format_payout,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def to_payment_input(data: PaymentInputRequest) -> PaymentInput:
    """Build the calculator input from any request schema carrying its fields."""
    names = {f.name for f in fields(PaymentInput)}
    return PaymentInput(**data.model_dump(include=names))


def applied_loyalty_tier(loyalty_rate: float) -> str | None:
    """Tier name for a cashback rate, None when no cashback was applied."""
    return loyalty_tier_name(loyalty_rate) if loyalty_rate else None


def breakdown_payload(breakdown: PaymentBreakdown, loyalty_rate: float = 0.0) -> dict:
    """Breakdown fields plus the display extras every payout response carries."""
    payload = breakdown.as_dict()
    payload["loyalty_tier"] = applied_loyalty_tier(loyalty_rate)
    payload["collector_total_display"] = format_payout(breakdown.collector_total)
    return payload


@router.post("/breakdown", response_model=BreakdownResponse)
async def payment_breakdown(data: PaymentInputRequest):
    """Itemized split of one pickup between collector, platform and user."""
    try:
        breakdown = calculate_payment_breakdown(to_payment_input(data))
    except InvalidInput as e:
        logger.warning("Breakdown rejected: %s", e)
        raise HTTPException(status_code=400, detail=str(e))
    return breakdown_payload(breakdown, data.loyalty_rate)


@router.post("/estimate", response_model=EstimateResponse)
async def payout_estimate(data: EstimateRequest):
    """Provisional payout shown to a collector before they accept a request."""
    request_fields = data.model_dump(exclude={"deadhead_km"}, exclude_none=True)
    try:
        estimate = estimate_collector_payout(PayoutRequest(**request_fields), data.deadhead_km)
    except InvalidInput as e:
        logger.warning("Estimate rejected: %s", e)
        raise HTTPException(status_code=400, detail=str(e))

    payload = breakdown_payload(estimate.breakdown)
    payload.update(estimate.as_dict())
    return payload


@router.get("/deadhead-share")
async def get_deadhead_share(deadhead_km: float = Query(..., ge=0, allow_inf_nan=False)):
    try:
        share = deadhead_share(deadhead_km)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"deadhead_km": deadhead_km, "share": share}


@router.get("/billed-distance")
async def get_billed_distance(
    distance_km: float = Query(..., ge=0, allow_inf_nan=False),
    urgent_enabled: bool = Query(False),
):
    try:
        billed_km = billed_distance(urgent_enabled, distance_km)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"distance_km": distance_km, "urgent_enabled": urgent_enabled, "billed_km": billed_km}


@router.post("/anchor-distance", response_model=AnchorDistanceResponse)
async def anchor_distance(data: AnchorDistanceRequest):
    """Re-measured distance after the only-down rule (never above a quoted anchor)."""
    try:
        distance_km = apply_only_down_rule(
            data.anchor_at_quote_km, data.anchor_at_accept_km, data.current_km,
        )
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AnchorDistanceResponse(distance_km=distance_km)


@router.get("/loyalty-tier")
async def get_loyalty_tier(rate: float = Query(..., ge=0, allow_inf_nan=False)):
    try:
        tier = loyalty_tier_name(rate)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"rate": rate, "tier": tier}
