"""
Settlement endpoints — final payout computed at completion and stored as an audit record.

The stored breakdown is the calculator output verbatim; the rounded columns
exist for reporting queries.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models.settlement import Settlement
from routers.payouts import to_payment_input, applied_loyalty_tier
from schemas import SettlementCreate, SettlementResponse
from services.payouts import InvalidInput, calculate_payment_breakdown

logger = logging.getLogger(__name__)

router = APIRouter()


# Largest magnitudes the Numeric columns of the settlements table can hold
MONEY_MAX = 99_999_999.99        # Numeric(10, 2)
DISTANCE_MAX = 999_999.99        # Numeric(8, 2)
SURGE_MAX = 99.99                # Numeric(4, 2)


def _money(value: float) -> float:
    return round(value, 2)


def _check_column_limits(b) -> None:
    """Reject a breakdown the audit columns would overflow on (400, not a DB error)."""
    limits = {
        "collector_total": MONEY_MAX,
        "collector_core": MONEY_MAX,
        "collector_urg": MONEY_MAX,
        "collector_dist": MONEY_MAX,
        "collector_surge": MONEY_MAX,
        "tips": MONEY_MAX,
        "collector_recyclables": MONEY_MAX,
        "loyalty_cashback": MONEY_MAX,
        "app_bucket": MONEY_MAX,
        "user_total": MONEY_MAX,
        "user_recyclables": MONEY_MAX,
        "deadhead_km": DISTANCE_MAX,
        "billed_km": DISTANCE_MAX,
        "surge_multiplier": SURGE_MAX,
    }
    for name, limit in limits.items():
        value = round(getattr(b, name), 2)
        if abs(value) > limit:
            raise InvalidInput(f"{name} {value} exceeds the storable maximum {limit}")


@router.post("", response_model=SettlementResponse, status_code=201)
async def create_settlement(data: SettlementCreate, db: AsyncSession = Depends(get_db)):
    """Compute the final breakdown for a completed pickup and persist it."""
    try:
        b = calculate_payment_breakdown(to_payment_input(data))
        _check_column_limits(b)
    except InvalidInput as e:
        logger.warning("Settlement rejected for request %s: %s", data.request_id, e)
        raise HTTPException(status_code=400, detail=str(e))

    settlement = Settlement(
        id=uuid.uuid4(),
        request_id=data.request_id,
        collector_id=data.collector_id,
        collector_core_payout=_money(b.collector_core),
        collector_urgent_payout=_money(b.collector_urg),
        collector_distance_payout=_money(b.collector_dist),
        collector_surge_payout=_money(b.collector_surge),
        collector_tips=_money(b.tips),
        collector_recyclables_payout=_money(b.collector_recyclables),
        collector_loyalty_cashback=_money(b.loyalty_cashback),
        collector_total_payout=_money(b.collector_total),
        app_bucket=_money(b.app_bucket),
        user_total=_money(b.user_total),
        user_recyclables=_money(b.user_recyclables),
        deadhead_km=_money(b.deadhead_km),
        billed_km=_money(b.billed_km),
        surge_multiplier=_money(b.surge_multiplier),
        loyalty_tier=applied_loyalty_tier(data.loyalty_rate),
        breakdown=b.as_dict(),
    )
    db.add(settlement)
    await db.commit()
    await db.refresh(settlement)

    logger.info(
        "Settlement %s stored: request=%s collector=%s total=%.2f",
        settlement.id, data.request_id, data.collector_id, b.collector_total,
    )
    return settlement


@router.get("/{settlement_id}", response_model=SettlementResponse)
async def get_settlement(settlement_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Settlement).where(Settlement.id == settlement_id))
    settlement = result.scalar_one_or_none()
    if not settlement:
        raise HTTPException(status_code=404, detail="Settlement not found")
    return settlement
