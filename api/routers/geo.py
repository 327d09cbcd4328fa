"""Geo endpoints — distance, geofence checks and pickup route ordering."""

from fastapi import APIRouter, HTTPException

from config import settings
from schemas import (
    DistanceRequest, DistanceResponse, RadiusCheckRequest, RadiusCheckResponse,
    RouteRequest, RouteResponse,
)
from services.geo import (
    InvalidCoordinate, distance_meters, is_within_radius, format_distance,
    nearest_neighbor_route, route_distance_km, estimate_route_time, directions_url,
)

router = APIRouter()


@router.post("/distance", response_model=DistanceResponse)
async def distance(data: DistanceRequest):
    try:
        d = distance_meters(data.a.model_dump(), data.b.model_dump())
    except InvalidCoordinate as e:
        raise HTTPException(status_code=400, detail=str(e))
    return DistanceResponse(distance_m=round(d, 2), formatted=format_distance(d))


@router.post("/within-radius", response_model=RadiusCheckResponse)
async def within_radius(data: RadiusCheckRequest):
    """Geofence gate, e.g. a collector must be within 50 m to complete a pickup."""
    radius = settings.GEOFENCE_RADIUS_M if data.radius_m is None else data.radius_m
    user = data.user.model_dump()
    target = data.target.model_dump()
    try:
        inside = is_within_radius(user, target, radius)
        d = distance_meters(user, target)
    except (InvalidCoordinate, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return RadiusCheckResponse(within_radius=inside, distance_m=round(d, 2), radius_m=radius)


@router.post("/route", response_model=RouteResponse)
async def optimize_route(data: RouteRequest):
    """Order pickups nearest-first from the collector's position."""
    start = data.start.model_dump()
    try:
        stops = nearest_neighbor_route(data.points, start, key=lambda s: (s.lat, s.lng))
        route = [(s.lat, s.lng) for s in stops]
        minutes = estimate_route_time(
            route, start,
            average_speed_kmh=data.average_speed_kmh,
            average_pickup_min=data.average_pickup_min,
        )
    except (InvalidCoordinate, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    return RouteResponse(
        route=stops,
        total_distance_km=round(route_distance_km(route, start), 2),
        estimated_minutes=minutes,
        directions_url=directions_url(route, start),
    )
