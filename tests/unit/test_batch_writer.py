import pytest
import requests

from city_distances.common.http import ConflictError, HttpRequestError
from city_distances.common.models import GeoPoint
from city_distances.pipeline.batch_writer import BatchWriter


class RecordingStore:
    def __init__(self, outcomes=None):
        self.calls = []
        self.outcomes = list(outcomes or [])

    def insert_distances(self, records):
        self.calls.append(list(records))
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return len(records)


def _points(count):
    return [GeoPoint(id=f"p{i:02d}", lat=0.0, lon=i * 0.1) for i in range(count)]


def _writer(store, known=None, batch_size=2, sleeps=None):
    return BatchWriter(
        store,
        known if known is not None else set(),
        batch_size=batch_size,
        batch_delay_ms=25,
        sleep=(sleeps.append if sleeps is not None else lambda _s: None),
    )


def test_propose_distance_dedups_both_directions():
    store = RecordingStore()
    writer = _writer(store, batch_size=10)
    a, b = _points(2)

    assert writer.propose_distance(a, b, 11.1234) is True
    assert writer.propose_distance(b, a, 11.1234) is False

    assert len(writer.pending) == 1
    assert writer.pending[0].point_a_id == "p00"
    assert writer.pending[0].distance_km == 11.123
    assert writer.known_pairs == {"p00|p01"}


def test_propose_distance_skips_already_known_pairs():
    writer = _writer(RecordingStore(), known={"p00|p01"})
    a, b = _points(2)
    assert writer.propose_distance(b, a, 1.0) is False
    assert writer.pending == []


def test_flush_happens_exactly_at_batch_size_and_final_partial_once():
    store = RecordingStore()
    sleeps = []
    writer = _writer(store, batch_size=2, sleeps=sleeps)
    points = _points(6)

    results = []
    for other in points[1:]:
        writer.propose_distance(points[0], other, 10.0)
        results.append(writer.flush_if_full())

    assert [r is not None for r in results] == [False, True, False, True, False]
    assert [len(call) for call in store.calls] == [2, 2]
    assert sleeps == [pytest.approx(0.025), pytest.approx(0.025)]

    final = writer.flush_remaining()
    assert final.size == 1
    assert writer.flush_remaining() is None
    assert [len(call) for call in store.calls] == [2, 2, 1]
    assert len(sleeps) == 2
    assert sum(r.inserted for r in results if r is not None) + final.inserted == 5
    assert final.batch_number == 3


def test_partial_confirmation_counts_only_confirmed_rows():
    store = RecordingStore(outcomes=[1])
    writer = _writer(store, batch_size=2)
    a, b, c = _points(3)
    writer.propose_distance(a, b, 1.0)
    writer.propose_distance(a, c, 1.0)

    result = writer.flush_if_full()

    assert result.inserted == 1
    assert result.size == 2


def test_conflict_counts_zero_and_continues():
    store = RecordingStore(outcomes=[ConflictError("HTTP conflict: 409", status_code=409)])
    sleeps = []
    writer = _writer(store, batch_size=2, sleeps=sleeps)
    a, b, c = _points(3)
    writer.propose_distance(a, b, 1.0)
    writer.propose_distance(a, c, 1.0)

    result = writer.flush_if_full()

    assert result.conflict is True
    assert result.ok is True
    assert result.inserted == 0
    assert result.error is None
    assert writer.pending == []
    assert len(sleeps) == 1


def test_unexpected_error_drops_batch_but_keeps_known_pairs():
    store = RecordingStore(outcomes=[HttpRequestError("HTTP status: 500", status_code=500, body="boom")])
    sleeps = []
    writer = _writer(store, batch_size=2, sleeps=sleeps)
    a, b, c = _points(3)
    writer.propose_distance(a, b, 1.0)
    writer.propose_distance(a, c, 1.0)

    result = writer.flush_if_full()

    assert result.ok is False
    assert "boom" in result.error
    assert result.error_code == "HTTP_ERROR"
    assert writer.pending == []
    assert sleeps == []
    assert writer.known_pairs == {"p00|p01", "p00|p02"}

    writer.propose_distance(b, c, 1.0)
    assert writer.flush_remaining().inserted == 1


def test_rejects_non_positive_batch_size():
    with pytest.raises(ValueError):
        BatchWriter(RecordingStore(), set(), batch_size=0)


def test_transport_error_is_recorded_as_failed_batch():
    store = RecordingStore(outcomes=[requests.exceptions.ChunkedEncodingError("connection broken")])
    writer = _writer(store, batch_size=1)
    a, b = _points(2)
    writer.propose_distance(a, b, 1.0)

    result = writer.flush_if_full()

    assert result.ok is False
    assert result.inserted == 0
    assert "connection broken" in result.error
