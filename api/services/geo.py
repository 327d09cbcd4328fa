"""
Geo Primitives — distance, geofencing and pickup route ordering.

  1. Haversine distance in meters (Earth radius 6,371,000 m)
  2. Radius containment for location-gated steps ("within 50 m to complete")
  3. Nearest-neighbor ordering of a collector's pickups

Every function takes coordinates through Coordinate.parse, so a bad point
raises InvalidCoordinate instead of leaking inf/NaN into a distance.
"""

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from config import settings

EARTH_RADIUS_M = 6_371_000

DIRECTIONS_BASE_URL = "https://www.openstreetmap.org/directions?engine=graphhopper_car&route="


class InvalidCoordinate(ValueError):
    """Latitude/longitude missing, non-numeric or out of range."""


def _axis(value: Any, name: str, limit: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidCoordinate(f"{name} must be a number, got {value!r}")
    value = float(value)
    if not math.isfinite(value) or not -limit <= value <= limit:
        raise InvalidCoordinate(f"{name} must be within ±{limit:g}, got {value!r}")
    return value


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float

    def __post_init__(self):
        object.__setattr__(self, "lat", _axis(self.lat, "latitude", 90))
        object.__setattr__(self, "lng", _axis(self.lng, "longitude", 180))

    @classmethod
    def parse(cls, value: Any) -> Coordinate:
        """
        Convert a boundary value into a Coordinate.

        Accepts a Coordinate, a (lat, lng) pair, or a mapping keyed by
        lat/lng, latitude/longitude or lat/lon.
        """
        if isinstance(value, Coordinate):
            return value
        if isinstance(value, dict):
            lat = value.get("lat", value.get("latitude"))
            lng = value.get("lng", value.get("longitude", value.get("lon")))
            return cls(lat, lng)
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(value[0], value[1])
        raise InvalidCoordinate(f"Unrecognized coordinate: {value!r}")

    def as_pair(self) -> tuple[float, float]:
        return (self.lat, self.lng)


# ── Distance ───────────────────────────────────────────────

def distance_meters(a: Any, b: Any) -> float:
    """Great-circle distance in meters using the Haversine formula."""
    p1 = Coordinate.parse(a)
    p2 = Coordinate.parse(b)

    lat1 = math.radians(p1.lat)
    lat2 = math.radians(p2.lat)
    dlat = lat2 - lat1
    dlng = math.radians(p2.lng - p1.lng)

    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    )
    # Clamp: rounding can push h a hair above 1 for antipodal points
    h = min(1.0, h)
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


def is_within_radius(user: Any, target: Any, radius_meters: float | None = None) -> bool:
    """
    Check whether the user is inside the geofence around target.

    Args:
        user: Collector's current position
        target: Reported pickup/dumping location
        radius_meters: Geofence radius (defaults to GEOFENCE_RADIUS_M)
    """
    if radius_meters is None:
        radius_meters = settings.GEOFENCE_RADIUS_M
    if not math.isfinite(radius_meters) or radius_meters < 0:
        raise ValueError(f"radius_meters must be a finite, non-negative number, got {radius_meters!r}")
    return distance_meters(user, target) <= radius_meters


def format_distance(meters: float) -> str:
    """Format a distance for display: '850m' or '2.4km'."""
    if meters < 1000:
        return f"{round(meters)}m"
    return f"{meters / 1000:.1f}km"


# ── Route ordering ─────────────────────────────────────────

def nearest_neighbor_route(
    points: Iterable[Any],
    start: Any,
    key: Callable[[Any], Any] | None = None,
) -> list[Any]:
    """
    Order pickups greedily: always drive to the closest unvisited point.

    O(n²) in the number of points. This approximates the Traveling Salesman
    Problem and can be noticeably longer than the optimal tour; ties go to
    the point that appears first in the input.

    Args:
        points: Coordinates, or records when key is given
        start: Collector position
        key: Extracts the coordinate from a record (e.g. a pickup dict);
             the records themselves are returned in visiting order

    Returns:
        Coordinates in visiting order, or the records when key is given
    """
    records = list(points)
    unvisited = [
        (Coordinate.parse(key(r) if key else r), r) for r in records
    ]
    current = Coordinate.parse(start)
    route: list[Any] = []

    while unvisited:
        nearest_idx = 0
        nearest_d = distance_meters(current, unvisited[0][0])
        for i in range(1, len(unvisited)):
            d = distance_meters(current, unvisited[i][0])
            if d < nearest_d:
                nearest_d = d
                nearest_idx = i

        current, record = unvisited.pop(nearest_idx)
        route.append(record if key else current)

    return route


def route_distance_km(route: Iterable[Any], start: Any) -> float:
    """Total driven distance in km from start through each stop in order."""
    total_m = 0.0
    current = Coordinate.parse(start)
    for stop in route:
        stop = Coordinate.parse(stop)
        total_m += distance_meters(current, stop)
        current = stop
    return total_m / 1000


def estimate_route_time(
    route: list[Any],
    start: Any,
    average_speed_kmh: float | None = None,
    average_pickup_min: float | None = None,
) -> int:
    """
    Estimate minutes to finish a route: travel time + time spent per pickup.

    Returns:
        Whole minutes, 0 for an empty route
    """
    if not route:
        return 0

    speed = settings.AVG_SPEED_KMH if average_speed_kmh is None else average_speed_kmh
    pickup_min = settings.AVG_PICKUP_MIN if average_pickup_min is None else average_pickup_min
    if not math.isfinite(speed) or speed <= 0:
        raise ValueError(f"average_speed_kmh must be a positive finite number, got {speed!r}")
    if not math.isfinite(pickup_min) or pickup_min < 0:
        raise ValueError(f"average_pickup_min must be a non-negative finite number, got {pickup_min!r}")

    travel_min = route_distance_km(route, start) / speed * 60
    return round(travel_min + len(route) * pickup_min)


def directions_url(route: list[Any], start: Any) -> str:
    """OpenStreetMap turn-by-turn URL for the route ('' when there are no stops)."""
    if not route:
        return ""
    stops = [Coordinate.parse(start)] + [Coordinate.parse(p) for p in route]
    return DIRECTIONS_BASE_URL + ";".join(f"{p.lng},{p.lat}" for p in stops)
