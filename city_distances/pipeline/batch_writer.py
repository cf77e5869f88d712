"""Buffered, paced bulk inserts of new distance records."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Protocol

import requests

from city_distances.common.http import ConflictError, HttpRequestError
from city_distances.common.models import DistanceRecord, GeoPoint, pair_key


class DistanceSink(Protocol):
    def insert_distances(self, records: list[DistanceRecord]) -> int: ...


@dataclass(frozen=True)
class BatchResult:
    batch_number: int
    size: int
    inserted: int
    conflict: bool = False
    error: str | None = None
    error_code: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "batch_number": self.batch_number,
            "size": self.size,
            "inserted": self.inserted,
            "conflict": self.conflict,
            "error": self.error,
            "error_code": self.error_code,
        }


class BatchWriter:
    """Owns the pending buffer and the run's known-pairs set.

    Pairs are marked known as soon as they are buffered, so a pair is never
    proposed twice in one run even before its batch reaches the store. A
    failed batch is dropped without un-marking its pairs; the next run
    reloads existing pairs and recomputes them.
    """

    def __init__(
        self,
        store: DistanceSink,
        known_pairs: set[str],
        *,
        batch_size: int = 500,
        batch_delay_ms: float = 25,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.known_pairs = known_pairs
        self.batch_size = batch_size
        self.batch_delay_ms = batch_delay_ms
        self.sleep = sleep
        self.pending: list[DistanceRecord] = []
        self.batches = 0

    def is_known(self, a: GeoPoint, b: GeoPoint) -> bool:
        return pair_key(a.id, b.id) in self.known_pairs

    def propose_distance(self, a: GeoPoint, b: GeoPoint, distance_km: float) -> bool:
        key = pair_key(a.id, b.id)
        if key in self.known_pairs:
            return False
        self.known_pairs.add(key)
        self.pending.append(DistanceRecord.build(a, b, distance_km))
        return True

    def flush_if_full(self) -> BatchResult | None:
        if len(self.pending) < self.batch_size:
            return None
        result = self._flush()
        if result.ok and self.batch_delay_ms > 0:
            self.sleep(self.batch_delay_ms / 1000)
        return result

    def flush_remaining(self) -> BatchResult | None:
        if not self.pending:
            return None
        return self._flush()

    def _flush(self) -> BatchResult:
        batch = self.pending
        self.pending = []
        self.batches += 1
        number = self.batches

        try:
            inserted = self.store.insert_distances(batch)
        except ConflictError as exc:
            return BatchResult(number, len(batch), 0, conflict=True, error_code=exc.error_code)
        except HttpRequestError as exc:
            detail = f"{exc} {exc.body}".strip()
            return BatchResult(number, len(batch), 0, error=detail, error_code=exc.error_code)
        except requests.RequestException as exc:
            return BatchResult(number, len(batch), 0, error=str(exc), error_code="HTTP_ERROR")

        return BatchResult(number, len(batch), inserted)
