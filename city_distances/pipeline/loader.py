"""Snapshot loading of geocoded cities and existing distance pairs."""

from __future__ import annotations

from dataclasses import dataclass

import requests

from city_distances.common.config_loader import PipelineConfig
from city_distances.common.errors import FetchError
from city_distances.common.http import HttpRequestError
from city_distances.common.models import GeoPoint, pair_key
from city_distances.common.store import RestStore

POINT_COLUMNS = ("id", "city_name", "lat", "lon")
PAIR_COLUMNS = ("city_a_id", "city_b_id")


@dataclass(frozen=True)
class LoadedPoints:
    points: list[GeoPoint]
    skipped: int


def _fetch(store: RestStore, what: str, table: str, columns, **kwargs) -> list[dict]:
    try:
        return store.select(table, columns, **kwargs)
    except HttpRequestError as exc:
        status = exc.status_code
        raise FetchError(
            f"Failed to fetch {what}: {status if status is not None else 'no status'} {exc.body or exc}",
            status=status,
            detail=exc.body or str(exc),
        ) from exc
    except requests.RequestException as exc:
        raise FetchError(f"Failed to fetch {what}: no status {exc}", status=None, detail=str(exc)) from exc


def load_points(store: RestStore, config: PipelineConfig) -> LoadedPoints:
    rows = _fetch(
        store,
        "cities",
        config.points_table,
        POINT_COLUMNS,
        filters={"lat": "not.is.null", "lon": "not.is.null"},
    )
    points: list[GeoPoint] = []
    skipped = 0
    for row in rows:
        point = GeoPoint.from_row(row) if isinstance(row, dict) else None
        if point is None:
            skipped += 1
            continue
        points.append(point)
    return LoadedPoints(points=points, skipped=skipped)


def load_existing_pairs(store: RestStore, config: PipelineConfig) -> set[str]:
    # Single request capped by existing_pairs_limit; larger tables need pagination.
    rows = _fetch(
        store,
        "existing distances",
        config.distances_table,
        PAIR_COLUMNS,
        limit=config.existing_pairs_limit,
    )
    known: set[str] = set()
    for row in rows:
        if not isinstance(row, dict):
            continue
        a, b = row.get("city_a_id"), row.get("city_b_id")
        if a in (None, "") or b in (None, ""):
            continue
        known.add(pair_key(a, b))
    return known
