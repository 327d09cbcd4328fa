"""
Payout Engine — collector/platform/user split for a pickup request.

Split rules:
  1. Core (base + on-site − discount): collector keeps 85% → 92% by deadhead
  2. Urgent surcharge (30% of base): 75% collector / 25% platform
  3. Distance charge (6% of base per billed km): 100% collector
  4. Surge uplift: 75% collector / 25% platform
  5. Tips: 100% collector
  6. Recyclables: 60% collector / 25% user / 15% platform
  7. Loyalty cashback: 1–3% of the collector's job payout, funded by the platform

The same calculation serves the pre-acceptance estimate and the final
settlement, so every intermediate amount is returned, not just totals.
"""

from __future__ import annotations
import math
from dataclasses import asdict, dataclass, field

from config import settings


# ── Constants ──────────────────────────────────────────────

DEADHEAD_MIN_SHARE = 0.85     # collector share at ≤5 km deadhead
DEADHEAD_MAX_SHARE = 0.92     # collector share at ≥10 km deadhead
DEADHEAD_FLOOR_KM = 5.0
DEADHEAD_CAP_KM = 10.0

URGENT_RATE = 0.30            # of base
PER_KM_RATE = 0.06            # of base, per billed km
BILLED_FREE_KM = 5.0          # first 5 km are never billed
BILLED_CAP_KM = 10.0          # nothing past 10 km is billed

COLLECTOR_URGENT_SHARE = 0.75
COLLECTOR_SURGE_SHARE = 0.75

RECYCLABLES_SPLIT = {
    "collector": 0.60,
    "user": 0.25,
    "platform": 0.15,
}

LOYALTY_TIERS = [
    (0.03, "Platinum"),
    (0.02, "Gold"),
]


class InvalidInput(ValueError):
    """Pricing input that must not reach a money calculation."""


# ── Data classes ───────────────────────────────────────────

@dataclass(frozen=True)
class PaymentInput:
    base: float | None
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


@dataclass(frozen=True)
class PaymentBreakdown:
    # User side
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

    # Collector side
    collector_total: float
    collector_core: float
    collector_urg: float
    collector_dist: float
    collector_surge: float
    collector_recyclables: float
    collector_pre_loyalty: float
    loyalty_cashback: float
    tips: float

    # Platform side (App Bucket)
    app_bucket: float
    platform_core: float
    platform_urg: float
    platform_surge: float
    platform_recyclables: float

    # Recyclables returned to the requester
    user_recyclables: float

    # Metadata
    deadhead_share: float
    deadhead_km: float
    billed_km: float
    surge_multiplier: float
    non_distance_core: float
    eligible_surge_base: float

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PayoutRequest:
    """
    Pricing fields of a pickup request as stored by the app.

    base_amount wins over fee; distance_billed_km is used as-is when the
    request already carries it, otherwise it is derived from deadhead.
    """
    base_amount: float | None = None
    fee: float | None = None
    onsite_surcharges: float = 0.0
    discount_amount: float = 0.0
    urgent_enabled: bool = False
    distance_billed_km: float | None = None
    surge_multiplier: float = 1.0
    request_fee: float = field(default_factory=lambda: settings.DEFAULT_REQUEST_FEE)
    taxes: float = 0.0


@dataclass(frozen=True)
class PayoutEstimate:
    breakdown: PaymentBreakdown
    is_estimate: bool = True
    excludes_tips: bool = True
    excludes_recyclables: bool = True
    excludes_loyalty: bool = True

    def as_dict(self) -> dict:
        data = self.breakdown.as_dict()
        data.update(
            is_estimate=self.is_estimate,
            excludes_tips=self.excludes_tips,
            excludes_recyclables=self.excludes_recyclables,
            excludes_loyalty=self.excludes_loyalty,
        )
        return data


# ── Validation ─────────────────────────────────────────────

def _is_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _require_non_negative(name: str, value) -> None:
    if not _is_number(value):
        raise InvalidInput(f"{name} must be a finite number, got {value!r}")
    if value < 0:
        raise InvalidInput(f"{name} must not be negative, got {value!r}")


def _validate(p: PaymentInput) -> None:
    if not _is_number(p.base) or p.base <= 0:
        raise InvalidInput(f"Base price must be greater than 0, got {p.base!r}")

    for name in (
        "on_site", "discount", "deadhead_km", "billed_km",
        "request_fee", "taxes", "tips", "recycler_gross",
    ):
        _require_non_negative(name, getattr(p, name))

    if not _is_number(p.surge_multiplier) or p.surge_multiplier <= 0:
        raise InvalidInput(f"surge_multiplier must be a positive number, got {p.surge_multiplier!r}")
    if not _is_number(p.loyalty_rate) or not 0 <= p.loyalty_rate <= 1:
        raise InvalidInput(f"loyalty_rate must be between 0 and 1, got {p.loyalty_rate!r}")
    if not isinstance(p.urgent_enabled, bool):
        raise InvalidInput(f"urgent_enabled must be a boolean, got {p.urgent_enabled!r}")


# ── Core Functions ─────────────────────────────────────────

def deadhead_share(deadhead_km: float) -> float:
    """
    Collector's share of the core amount for a given deadhead distance.

    85% up to 5 km, 92% from 10 km, linear in between.
    """
    _require_non_negative("deadhead_km", deadhead_km)
    if deadhead_km <= DEADHEAD_FLOOR_KM:
        return DEADHEAD_MIN_SHARE
    if deadhead_km >= DEADHEAD_CAP_KM:
        return DEADHEAD_MAX_SHARE

    t = (deadhead_km - DEADHEAD_FLOOR_KM) / (DEADHEAD_CAP_KM - DEADHEAD_FLOOR_KM)
    return DEADHEAD_MIN_SHARE + t * (DEADHEAD_MAX_SHARE - DEADHEAD_MIN_SHARE)


def billed_distance(urgent_enabled: bool, distance_km: float) -> float:
    """Billable km: only the stretch between 5 and 10 km of an urgent pickup."""
    _require_non_negative("distance_km", distance_km)
    if not isinstance(urgent_enabled, bool):
        raise InvalidInput(f"urgent_enabled must be a boolean, got {urgent_enabled!r}")
    if not urgent_enabled or distance_km <= BILLED_FREE_KM:
        return 0.0
    return min(distance_km, BILLED_CAP_KM) - BILLED_FREE_KM


def apply_only_down_rule(
    anchor_at_quote: float | None,
    anchor_at_accept: float | None,
    current_distance: float,
) -> float:
    """
    Distance to charge after re-measuring at accept/completion time.

    A quoted distance may shrink later in the flow but never grow, so the
    result is the smallest of the anchors that exist and the current value.
    """
    _require_non_negative("current_distance", current_distance)
    candidates = [current_distance]
    for anchor in (anchor_at_quote, anchor_at_accept):
        if anchor is not None:
            _require_non_negative("anchor distance", anchor)
            candidates.append(anchor)
    return min(candidates)


def calculate_payment_breakdown(payment_input: PaymentInput) -> PaymentBreakdown:
    """
    Calculate the full payout breakdown for a pickup.

    Args:
        payment_input: Prices, urgency, surge, deadhead and extras for one pricing event

    Returns:
        PaymentBreakdown with every intermediate amount

    Raises:
        InvalidInput: base missing or ≤ 0, or any other field non-finite/out of range
    """
    p = payment_input
    _validate(p)

    # Core (non-distance) amount
    non_distance_core = max(0.0, p.base + p.on_site - p.discount)

    # Urgent surcharge and distance charge only exist for urgent pickups
    urgent_amt = URGENT_RATE * p.base if p.urgent_enabled else 0.0
    per_km = PER_KM_RATE * p.base if p.urgent_enabled else 0.0
    distance_amt = p.billed_km * per_km

    # Core split by deadhead
    share = deadhead_share(p.deadhead_km)
    collector_core = non_distance_core * share
    platform_core = non_distance_core - collector_core

    collector_urg = COLLECTOR_URGENT_SHARE * urgent_amt
    platform_urg = urgent_amt - collector_urg

    collector_dist = distance_amt

    # Surge
    eligible_surge_base = non_distance_core + urgent_amt + distance_amt
    surge_uplift = max(0.0, (p.surge_multiplier - 1) * eligible_surge_base)
    collector_surge = COLLECTOR_SURGE_SHARE * surge_uplift
    platform_surge = surge_uplift - collector_surge

    # Recyclables
    collector_recyclables = RECYCLABLES_SPLIT["collector"] * p.recycler_gross
    user_recyclables = RECYCLABLES_SPLIT["user"] * p.recycler_gross
    platform_recyclables = RECYCLABLES_SPLIT["platform"] * p.recycler_gross

    # Loyalty applies to the job payout only, before tips and recyclables
    collector_pre_loyalty = collector_core + collector_urg + collector_dist + collector_surge
    loyalty_cashback = p.loyalty_rate * collector_pre_loyalty

    collector_total = collector_pre_loyalty + loyalty_cashback + p.tips + collector_recyclables
    app_bucket = platform_core + platform_urg + platform_surge + p.request_fee + platform_recyclables
    user_total = non_distance_core + urgent_amt + distance_amt + p.request_fee + p.taxes

    return PaymentBreakdown(
        user_total=user_total,
        base=p.base,
        on_site=p.on_site,
        discount=p.discount,
        urgent_amt=urgent_amt,
        per_km=per_km,
        distance_amt=distance_amt,
        surge_uplift=surge_uplift,
        request_fee=p.request_fee,
        taxes=p.taxes,
        collector_total=collector_total,
        collector_core=collector_core,
        collector_urg=collector_urg,
        collector_dist=collector_dist,
        collector_surge=collector_surge,
        collector_recyclables=collector_recyclables,
        collector_pre_loyalty=collector_pre_loyalty,
        loyalty_cashback=loyalty_cashback,
        tips=p.tips,
        app_bucket=app_bucket,
        platform_core=platform_core,
        platform_urg=platform_urg,
        platform_surge=platform_surge,
        platform_recyclables=platform_recyclables,
        user_recyclables=user_recyclables,
        deadhead_share=share,
        deadhead_km=p.deadhead_km,
        billed_km=p.billed_km,
        surge_multiplier=p.surge_multiplier,
        non_distance_core=non_distance_core,
        eligible_surge_base=eligible_surge_base,
    )


def estimate_collector_payout(request: PayoutRequest, collector_deadhead_km: float) -> PayoutEstimate:
    """
    Payout a collector would see before accepting a request.

    Tips, recyclables and loyalty are unknown until completion and are left
    at zero; the result is flagged as an estimate.
    """
    base = request.base_amount if request.base_amount is not None else request.fee

    billed_km = request.distance_billed_km
    if billed_km is None:
        billed_km = billed_distance(request.urgent_enabled, collector_deadhead_km)

    breakdown = calculate_payment_breakdown(PaymentInput(
        base=base,
        on_site=request.onsite_surcharges,
        discount=request.discount_amount,
        urgent_enabled=request.urgent_enabled,
        deadhead_km=collector_deadhead_km,
        billed_km=billed_km,
        surge_multiplier=request.surge_multiplier,
        request_fee=request.request_fee,
        taxes=request.taxes,
        tips=0.0,
        recycler_gross=0.0,
        loyalty_rate=0.0,
    ))
    return PayoutEstimate(breakdown=breakdown)


def loyalty_tier_name(cashback_rate: float) -> str:
    """Map a cashback rate to its tier: Silver (1%), Gold (2%), Platinum (3%)."""
    _require_non_negative("cashback_rate", cashback_rate)
    for threshold, name in LOYALTY_TIERS:
        if cashback_rate >= threshold:
            return name
    return "Silver"


def format_payout(amount: float | None, show_symbol: bool = True, symbol: str | None = None) -> str:
    """Whole-unit display amount, e.g. '₵1,235'."""
    if symbol is None:
        symbol = settings.CURRENCY_SYMBOL
    value = 0 if amount is None else round(amount)
    formatted = f"{value:,}"
    return f"{symbol}{formatted}" if show_symbol else formatted
