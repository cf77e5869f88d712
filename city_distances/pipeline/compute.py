"""Pairwise distance computation: filter, measure, buffer, flush."""

from __future__ import annotations

import logging
import time
from typing import Callable, Sequence

from city_distances.common.config_loader import PipelineConfig
from city_distances.common.deterministic import iter_unordered_pairs
from city_distances.common.logging import log_event
from city_distances.common.models import GeoPoint
from city_distances.common.store import RestStore
from city_distances.pipeline.batch_writer import BatchResult, BatchWriter
from city_distances.pipeline.candidate_filter import BoundingBoxFilter
from city_distances.pipeline.distance import DistanceEngine
from city_distances.pipeline.loader import load_existing_pairs, load_points
from city_distances.pipeline.reports import RunSummary


def _record_batch(summary: RunSummary, result: BatchResult | None, logger: logging.Logger | None) -> None:
    if result is None:
        return
    summary.batches.append(result)
    if logger is None:
        return
    fields = {
        "run_id": summary.run_id,
        "stage": "write",
        "batch": result.batch_number,
        "rows_in": result.size,
        "rows_out": result.inserted,
        "error_code": result.error_code,
    }
    if result.conflict:
        log_event(
            logger,
            "batch insert conflict (some rows already exist)",
            level=logging.WARNING,
            event="BATCH_CONFLICT",
            status="conflict",
            **fields,
        )
    elif not result.ok:
        log_event(
            logger,
            f"batch insert failed: {result.error}",
            level=logging.WARNING,
            event="BATCH_FAIL",
            status="error",
            **fields,
        )
    else:
        log_event(logger, "batch inserted", event="BATCH_FLUSH", status="ok", **fields)


def compute_distances(
    points: Sequence[GeoPoint],
    writer: BatchWriter,
    max_distance_km: float,
    *,
    summary: RunSummary | None = None,
    logger: logging.Logger | None = None,
) -> RunSummary:
    summary = summary or RunSummary(run_id="adhoc", points=len(points))
    bbox = BoundingBoxFilter(max_distance_km)
    engine = DistanceEngine(max_distance_km)

    for a, b in iter_unordered_pairs(points):
        if not bbox.passes(a, b):
            summary.filtered_out += 1
            continue
        summary.candidates += 1

        # Known pairs skip the trig entirely.
        if writer.is_known(a, b):
            summary.already_known += 1
            continue

        distance_km = engine.measure(a, b)
        if distance_km is None:
            continue
        summary.passed_exact += 1

        writer.propose_distance(a, b, distance_km)
        _record_batch(summary, writer.flush_if_full(), logger)

    _record_batch(summary, writer.flush_remaining(), logger)
    summary.finalise()
    return summary


def run_pipeline(
    config: PipelineConfig,
    store: RestStore,
    run_id: str,
    *,
    logger: logging.Logger | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunSummary:
    """Load the snapshot and compute every missing in-range distance.

    Load failures propagate as FetchError; batch failures are recorded in
    the returned summary and never end the run.
    """
    summary = RunSummary(run_id=run_id)
    started = time.monotonic()

    loaded = load_points(store, config)
    summary.points = len(loaded.points)
    summary.skipped_points = loaded.skipped
    if logger is not None:
        log_event(
            logger,
            f"loaded {summary.points} cities with coordinates",
            run_id=run_id,
            stage="load",
            event="LOAD_POINTS",
            status="ok",
            rows_in=summary.points + summary.skipped_points,
            rows_out=summary.points,
        )

    if summary.points < 2:
        summary.status = "nothing_to_do"
        if logger is not None:
            log_event(
                logger,
                "not enough cities with coordinates",
                run_id=run_id,
                stage="load",
                event="NOTHING_TO_DO",
                status="ok",
            )
        return summary

    known_pairs = load_existing_pairs(store, config)
    summary.existing_pairs = len(known_pairs)
    if logger is not None:
        log_event(
            logger,
            f"loaded {summary.existing_pairs} existing pairs",
            run_id=run_id,
            stage="load",
            event="LOAD_PAIRS",
            status="ok",
            rows_out=summary.existing_pairs,
        )

    writer = BatchWriter(
        store,
        known_pairs,
        batch_size=config.batch_size,
        batch_delay_ms=config.batch_delay_ms,
        sleep=sleep,
    )
    compute_distances(loaded.points, writer, config.max_distance_km, summary=summary, logger=logger)

    if logger is not None:
        log_event(
            logger,
            f"inserted {summary.inserted} distances",
            run_id=run_id,
            stage="write",
            event="RUN_SUMMARY",
            status=summary.status,
            rows_in=summary.passed_exact,
            rows_out=summary.inserted,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
    return summary
