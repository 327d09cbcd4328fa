import os
from functools import lru_cache

from pydantic import BaseModel


class Settings(BaseModel):
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql+asyncpg://trashdrop:trashdrop@db:5432/trashdrop",
    )
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Geofence a collector must be inside to complete an assignment
    GEOFENCE_RADIUS_M: float = float(os.getenv("GEOFENCE_RADIUS_M", "50"))

    # Route time estimation
    AVG_SPEED_KMH: float = float(os.getenv("AVG_SPEED_KMH", "30"))
    AVG_PICKUP_MIN: float = float(os.getenv("AVG_PICKUP_MIN", "10"))

    CURRENCY_SYMBOL: str = os.getenv("CURRENCY_SYMBOL", "₵")
    DEFAULT_REQUEST_FEE: float = float(os.getenv("DEFAULT_REQUEST_FEE", "1.0"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
