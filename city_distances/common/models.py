"""Data models used across the pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from city_distances.common.constants import SOURCE_TAG


def canonical_pair(a: object, b: object) -> tuple[str, str]:
    left, right = str(a), str(b)
    if left <= right:
        return left, right
    return right, left


def pair_key(a: object, b: object) -> str:
    lo, hi = canonical_pair(a, b)
    return f"{lo}|{hi}"


def _finite_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


@dataclass(frozen=True)
class GeoPoint:
    id: str
    lat: float
    lon: float
    name: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> GeoPoint | None:
        """Coerce a store row, returning None for rows that cannot be placed on the globe."""
        point_id = row.get("id")
        if point_id is None or point_id == "":
            return None
        lat = _finite_float(row.get("lat"))
        lon = _finite_float(row.get("lon"))
        if lat is None or lon is None:
            return None
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            return None
        name = row.get("city_name")
        return cls(id=str(point_id), lat=lat, lon=lon, name=str(name) if name is not None else None)


@dataclass(frozen=True)
class DistanceRecord:
    point_a_id: str
    point_b_id: str
    distance_km: float
    source: str = SOURCE_TAG

    @classmethod
    def build(cls, a: GeoPoint, b: GeoPoint, distance_km: float) -> DistanceRecord:
        lo, hi = canonical_pair(a.id, b.id)
        return cls(point_a_id=lo, point_b_id=hi, distance_km=round(distance_km, 3))

    @property
    def key(self) -> str:
        return pair_key(self.point_a_id, self.point_b_id)

    def to_row(self) -> dict[str, Any]:
        return {
            "city_a_id": self.point_a_id,
            "city_b_id": self.point_b_id,
            "distance_km": self.distance_km,
            "source": self.source,
        }
