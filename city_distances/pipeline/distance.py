"""Great-circle distance with the authoritative range cutoff."""

from __future__ import annotations

import math

from city_distances.common.constants import EARTH_RADIUS_KM
from city_distances.common.models import GeoPoint


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    a = min(max(a, 0.0), 1.0)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


class DistanceEngine:
    def __init__(self, max_distance_km: float) -> None:
        self.max_distance_km = max_distance_km

    def measure(self, a: GeoPoint, b: GeoPoint) -> float | None:
        """Return the unrounded distance, or None when the pair is out of range."""
        distance_km = haversine_km(a.lat, a.lon, b.lat, b.lon)
        if distance_km > self.max_distance_km:
            return None
        return distance_km
