"""Settlement ORM model — audit record of a finalized payout breakdown."""

import uuid
from datetime import datetime
from sqlalchemy import String, Numeric, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from db.database import Base


class Settlement(Base):
    __tablename__ = "settlements"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    request_id: Mapped[str | None] = mapped_column(String(64), index=True)
    collector_id: Mapped[str | None] = mapped_column(String(64), index=True)

    # Collector payout
    collector_core_payout: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    collector_urgent_payout: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    collector_distance_payout: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    collector_surge_payout: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    collector_tips: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    collector_recyclables_payout: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    collector_loyalty_cashback: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    collector_total_payout: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)

    # Platform and user
    app_bucket: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    user_total: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    user_recyclables: Mapped[float] = mapped_column(Numeric(10, 2), default=0)

    # Pricing context
    deadhead_km: Mapped[float] = mapped_column(Numeric(8, 2), default=0)
    billed_km: Mapped[float] = mapped_column(Numeric(8, 2), default=0)
    surge_multiplier: Mapped[float] = mapped_column(Numeric(4, 2), default=1.0)
    loyalty_tier: Mapped[str | None] = mapped_column(String(20))

    # Unrounded breakdown, stored verbatim
    breakdown: Mapped[dict] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
