from __future__ import annotations

import pytest

from city_distances.common.http import ConflictError, HttpRequestError
from city_distances.common.models import pair_key


class InMemoryStore:
    """Mimics the PostgREST tables the pipeline touches, including the pair uniqueness constraint."""

    def __init__(self, cities: list[dict], distances: list[dict] | None = None) -> None:
        self.cities = list(cities)
        self.distances = list(distances or [])
        self.insert_calls: list[list] = []
        self.select_calls: list[tuple] = []
        self.fail_inserts_with: HttpRequestError | None = None
        self.fail_selects_with: Exception | None = None

    def select(self, table, columns, *, filters=None, limit=None):
        self.select_calls.append((table, tuple(columns), filters, limit))
        if self.fail_selects_with is not None:
            raise self.fail_selects_with
        if table == "cities":
            return [dict(row) for row in self.cities if row.get("lat") is not None and row.get("lon") is not None]
        rows = [{"city_a_id": row["city_a_id"], "city_b_id": row["city_b_id"]} for row in self.distances]
        return rows[:limit] if limit is not None else rows

    def insert_distances(self, records) -> int:
        self.insert_calls.append(list(records))
        if self.fail_inserts_with is not None:
            raise self.fail_inserts_with
        existing = {pair_key(row["city_a_id"], row["city_b_id"]) for row in self.distances}
        if any(record.key in existing for record in records):
            raise ConflictError("HTTP conflict: 409", status_code=409, body="duplicate key value")
        self.distances.extend(record.to_row() for record in records)
        return len(records)


@pytest.fixture
def memory_store():
    return InMemoryStore
