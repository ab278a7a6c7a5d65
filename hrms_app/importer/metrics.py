"""Prometheus metrics helpers for the importer."""

from __future__ import annotations

from typing import Literal

from prometheus_client import Counter, Histogram

_chunk_counter = Counter(
    "importer_chunks_total",
    "Import chunks processed by entity kind and outcome.",
    ["kind", "outcome"],
)
_rows_committed_counter = Counter(
    "importer_rows_committed_total",
    "Rows written by committed import chunks.",
    ["kind", "operation"],
)
_row_issue_counter = Counter(
    "importer_row_issues_total",
    "Row-level validation issues by entity kind and severity.",
    ["kind", "severity"],
)
_chunk_duration = Histogram(
    "importer_chunk_duration_seconds",
    "Duration of import chunk processing in seconds.",
    ["kind"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
)


def record_chunk(
    *,
    kind: str,
    outcome: Literal["completed", "aborted", "failed", "empty"],
    duration_seconds: float,
    created: int = 0,
    updated: int = 0,
    errors: int = 0,
    warnings: int = 0,
) -> None:
    """Capture metrics for one processed chunk."""

    _chunk_counter.labels(kind=kind, outcome=outcome).inc()
    _chunk_duration.labels(kind=kind).observe(duration_seconds)
    if created:
        _rows_committed_counter.labels(kind=kind, operation="created").inc(created)
    if updated:
        _rows_committed_counter.labels(kind=kind, operation="updated").inc(updated)
    if errors:
        _row_issue_counter.labels(kind=kind, severity="error").inc(errors)
    if warnings:
        _row_issue_counter.labels(kind=kind, severity="warning").inc(warnings)
