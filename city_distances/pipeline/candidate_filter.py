"""Bounding-box pre-filter applied before exact distance computation.

The flat-earth limits (111 km per degree) reject most far-apart pairs using
only subtraction. They are necessary-but-not-sufficient: every pair that
survives is still measured exactly by the distance engine. The longitude
limit is widened to the exact spherical bound wherever the heuristic would
be tighter than the geometry allows, so the filter never rejects a pair that
is truly within range.
"""

from __future__ import annotations

import math

from city_distances.common.constants import EARTH_RADIUS_KM, KM_PER_DEGREE, MIN_COS_LAT
from city_distances.common.models import GeoPoint


def max_lat_diff(max_distance_km: float) -> float:
    return max_distance_km / KM_PER_DEGREE


def max_lon_diff(max_distance_km: float, at_lat_deg: float) -> float:
    cos_lat = abs(math.cos(math.radians(at_lat_deg)))
    if cos_lat < MIN_COS_LAT:
        cos_lat = MIN_COS_LAT
    return max_distance_km / (KM_PER_DEGREE * cos_lat)


def spherical_lon_bound(max_distance_km: float, at_lat_deg: float) -> float | None:
    """Largest longitude gap reachable within range from a point at this latitude.

    None means every longitude is reachable (the range covers a pole or a
    full quarter of the globe).
    """
    delta = max_distance_km / EARTH_RADIUS_KM
    phi = math.radians(abs(at_lat_deg))
    if delta >= math.pi / 2 or phi + delta >= math.pi / 2:
        return None
    ratio = math.sin(delta) / math.cos(phi)
    if ratio >= 1:
        return None
    return math.degrees(math.asin(ratio))


def lon_separation(lon_a: float, lon_b: float) -> float:
    diff = abs(lon_a - lon_b) % 360
    return min(diff, 360 - diff)


class BoundingBoxFilter:
    def __init__(self, max_distance_km: float) -> None:
        self.max_distance_km = max_distance_km
        self.max_lat_diff = max_lat_diff(max_distance_km)

    def lon_limit(self, a: GeoPoint, b: GeoPoint) -> float | None:
        avg_lat = (a.lat + b.lat) / 2
        heuristic = max_lon_diff(self.max_distance_km, avg_lat)
        nearer_equator = min(abs(a.lat), abs(b.lat))
        exact = spherical_lon_bound(self.max_distance_km, nearer_equator)
        if exact is None:
            return None
        return max(heuristic, exact)

    def passes(self, a: GeoPoint, b: GeoPoint) -> bool:
        if abs(a.lat - b.lat) > self.max_lat_diff:
            return False
        limit = self.lon_limit(a, b)
        if limit is None:
            return True
        return lon_separation(a.lon, b.lon) <= limit
