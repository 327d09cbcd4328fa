"""
TrashDrop Payout Service — FastAPI Backend
Collector payout calculation, geofencing and settlement records
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from db.database import engine
from routers import payouts, geo, settlements

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("TrashDrop payout API starting (geofence %.0f m)", settings.GEOFENCE_RADIUS_M)
    yield
    await engine.dispose()
    logger.info("TrashDrop payout API shut down.")


app = FastAPI(
    title="TrashDrop Payout API",
    description="Collector payout engine and geo utilities for the collector app",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS ───────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ────────────────────────────────────────────────
app.include_router(payouts.router, prefix="/api/payouts", tags=["Payouts"])
app.include_router(geo.router, prefix="/api/geo", tags=["Geo"])
app.include_router(settlements.router, prefix="/api/settlements", tags=["Settlements"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "TrashDrop Payout API"}
