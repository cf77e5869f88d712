"""PostgREST table access for the Supabase REST endpoint."""

from __future__ import annotations

from typing import Any, Iterable

from city_distances.common.http import HttpClient, HttpRequestError
from city_distances.common.models import DistanceRecord


class RestStore:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        client: HttpClient,
        *,
        distances_table: str = "city_distances",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.client = client
        self.distances_table = distances_table

    def _table_url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def _auth_headers(self) -> dict[str, str]:
        return {"apikey": self.api_key, "Authorization": f"Bearer {self.api_key}"}

    def select(
        self,
        table: str,
        columns: Iterable[str],
        *,
        filters: dict[str, str] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"select": ",".join(columns)}
        if filters:
            params.update(filters)
        if limit is not None:
            params["limit"] = limit
        rows = self.client.get_json(self._table_url(table), params=params, headers=self._auth_headers())
        if not isinstance(rows, list):
            raise HttpRequestError(f"Expected a JSON array from {table}, got {type(rows).__name__}")
        return rows

    def insert(self, table: str, rows: list[dict[str, Any]]) -> list[Any]:
        headers = self._auth_headers()
        headers["Prefer"] = "return=representation"
        created = self.client.post_json(self._table_url(table), payload=rows, headers=headers)
        if isinstance(created, list):
            return created
        return []

    def insert_distances(self, records: list[DistanceRecord]) -> int:
        """Bulk insert and return how many rows the store confirms it created."""
        if not records:
            return 0
        created = self.insert(self.distances_table, [record.to_row() for record in records])
        return len(created)
