"""Great-circle routing estimator for the reference API.

Stands in for a real road router: distance is the haversine distance and
duration assumes a constant average speed.
"""

import math
from dataclasses import dataclass

from route_timeline.config import get_settings
from route_timeline.models.common import Geo

EARTH_RADIUS_M = 6371000.0


@dataclass(frozen=True)
class LegEstimate:
    distance_meters: int
    duration_seconds: int


def haversine_m(a_lat: float, a_lon: float, b_lat: float, b_lon: float) -> float:
    """Great-circle distance between two points in metres."""
    phi1 = math.radians(a_lat)
    phi2 = math.radians(b_lat)
    dphi = math.radians(b_lat - a_lat)
    dlmb = math.radians(b_lon - a_lon)

    s = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(s))


def estimate_leg(a: Geo | None, b: Geo | None, avg_speed_kmh: float | None = None) -> LegEstimate:
    """Distance and drive time between two stops; zero when either position is unknown."""
    if a is None or b is None:
        return LegEstimate(0, 0)

    speed_kmh = avg_speed_kmh or get_settings().routing_avg_speed_kmh
    distance_m = haversine_m(a.lat, a.lon, b.lat, b.lon)
    duration_s = distance_m / (speed_kmh * 1000 / 3600)
    return LegEstimate(round(distance_m), round(duration_s))
