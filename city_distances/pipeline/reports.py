"""Run summary aggregation."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from city_distances.common.fs import write_json
from city_distances.pipeline.batch_writer import BatchResult


@dataclass
class RunSummary:
    run_id: str
    points: int = 0
    skipped_points: int = 0
    existing_pairs: int = 0
    candidates: int = 0
    filtered_out: int = 0
    already_known: int = 0
    passed_exact: int = 0
    inserted: int = 0
    batches: list[BatchResult] = field(default_factory=list)
    status: str = "success"

    @property
    def failed_batches(self) -> list[BatchResult]:
        return [batch for batch in self.batches if not batch.ok]

    @property
    def conflict_batches(self) -> list[BatchResult]:
        return [batch for batch in self.batches if batch.conflict]

    def finalise(self) -> None:
        self.inserted = sum(batch.inserted for batch in self.batches)
        self.status = "partial" if self.failed_batches else "success"

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "status": self.status,
            "counts": {
                "points": self.points,
                "skipped_points": self.skipped_points,
                "existing_pairs": self.existing_pairs,
                "candidates": self.candidates,
                "filtered_out": self.filtered_out,
                "already_known": self.already_known,
                "passed_exact": self.passed_exact,
                "inserted": self.inserted,
            },
            "batches": [batch.to_dict() for batch in self.batches],
            "warning_count": len(self.conflict_batches) + len(self.failed_batches),
        }


def summary_lines(summary: RunSummary) -> list[str]:
    lines = [
        "--- Summary ---",
        f"Cities: {summary.points}",
        f"Candidates passed cheap filters: {summary.candidates}",
        f"Filtered-out by cheap checks: {summary.filtered_out}",
        f"Passed Haversine and buffered: {summary.passed_exact}",
        f"Inserted rows: {summary.inserted}",
    ]
    if summary.skipped_points:
        lines.append(f"Skipped cities without usable coordinates: {summary.skipped_points}")
    for batch in summary.conflict_batches:
        lines.append(f"Warning: batch {batch.batch_number} conflicted ({batch.size} rows, some already exist)")
    for batch in summary.failed_batches:
        lines.append(f"Warning: batch {batch.batch_number} failed ({batch.size} rows): {batch.error}")
    return lines


def write_run_summary(path: Path, summary: RunSummary) -> Path:
    write_json(path, summary.to_dict())
    return path
