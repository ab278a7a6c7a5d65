"""
Two-pass chunk processor.

Pass 1 normalizes and validates every row of a chunk, collecting all issues
without stopping at the first. Only a chunk with zero errors reaches pass 2,
where derived values are computed and the whole chunk is written inside one
transaction. A chunk therefore persists all of its rows or none of them.

Validation problems are returned as values on :class:`ChunkResult`; only
session-store failures propagate (as ``ImportSessionError``).
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from sqlalchemy.exc import SQLAlchemyError

from hrms_app.importer.metrics import record_chunk

from .cross_field import evaluate_cross_field
from .duplicates import DuplicateTracker
from .issues import RowIssue
from .loader import CandidateRecord, EntityLoader, RowValidation
from .lookups import LookupSnapshot
from .normalize import NormalizedRow, RowNormalizer
from .session import PROCESSED, UPDATED, ImportSessionStore
from .store import RecordStore

logger = logging.getLogger(__name__)

SKIPPED = "skipped"


class ChunkState(str, enum.Enum):
    NORMALIZING = "normalizing"
    VALIDATING_ALL = "validating_all"
    ABORTED = "aborted"
    COMPUTING_DERIVED = "computing_derived"
    COMMITTING = "committing"
    COMPLETED = "completed"


@dataclass
class ChunkResult:
    state: ChunkState
    start_row: int
    row_count: int = 0
    created: int = 0
    updated: int = 0
    errors: list[RowIssue] = field(default_factory=list)
    warnings: list[RowIssue] = field(default_factory=list)
    system_error: str | None = None

    @property
    def committed(self) -> bool:
        return self.state is ChunkState.COMPLETED

    @property
    def skipped(self) -> int:
        return 0 if self.committed else self.row_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "start_row": self.start_row,
            "row_count": self.row_count,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": [issue.render() for issue in self.errors],
            "warnings": [issue.render() for issue in self.warnings],
            "system_error": self.system_error,
        }


def _validation_failure(validation: RowValidation, raw: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "row": validation.row_number,
        "field": ", ".join(dict.fromkeys(issue.field for issue in validation.errors)),
        "messages": [issue.message for issue in validation.errors],
        "raw_values": {key: (None if value is None else str(value)) for key, value in raw.items()},
    }


class TwoPassChunkProcessor:
    """Run normalize -> validate-all -> derive -> commit for one entity loader."""

    def __init__(
        self,
        loader: EntityLoader,
        snapshot: LookupSnapshot,
        sessions: ImportSessionStore,
        import_id: str,
        store: RecordStore | None = None,
    ) -> None:
        self.loader = loader
        self.snapshot = snapshot
        self.sessions = sessions
        self.import_id = import_id
        self.store = store or RecordStore()
        self.normalizer = RowNormalizer(loader.contract)
        self.state = ChunkState.NORMALIZING

    def _log_extra(self, start_row: int, **extra: Any) -> dict[str, Any]:
        return {
            "importer_import_id": self.import_id,
            "importer_kind": self.loader.kind,
            "importer_chunk_start_row": start_row,
            **{f"importer_{key}": value for key, value in extra.items()},
        }

    def process(self, rows: Sequence[Mapping[str, Any]], start_row: int) -> ChunkResult:
        """
        Process one chunk whose first row sits at spreadsheet row ``start_row``.

        Blank rows keep their position in the numbering but are otherwise
        ignored.
        """

        started = time.perf_counter()

        self.state = ChunkState.NORMALIZING
        normalized: list[NormalizedRow] = []
        for offset, raw in enumerate(rows):
            row = self.normalizer.normalize(raw, start_row + offset)
            if row.is_blank:
                logger.debug("Skipping empty row %s", row.row_number, extra=self._log_extra(start_row))
                continue
            normalized.append(row)

        result = ChunkResult(state=self.state, start_row=start_row, row_count=len(normalized))
        if not normalized:
            result.state = self.state = ChunkState.COMPLETED
            record_chunk(kind=self.loader.kind, outcome="empty", duration_seconds=time.perf_counter() - started)
            return result

        first = normalized[0]
        if self.sessions.capture_first_row(self.import_id, first.raw):
            logger.debug(
                "First row snapshot for import %s: %s",
                self.import_id,
                list(first.raw.keys()),
                extra=self._log_extra(start_row, first_row=dict(first.raw)),
            )

        self.state = ChunkState.VALIDATING_ALL
        tracker = DuplicateTracker(
            seen=self.sessions.seen_keys(self.import_id),
            existing=self.snapshot.existing_keys,
        )
        candidates, failures = self._validate_all(normalized, tracker, result)

        if result.errors:
            self.state = result.state = ChunkState.ABORTED
            self._record_aborted(result, failures)
            logger.warning(
                "Import chunk starting at row %s aborted with %s error(s)",
                start_row,
                len(result.errors),
                extra=self._log_extra(start_row, error_count=len(result.errors)),
            )
            record_chunk(
                kind=self.loader.kind,
                outcome="aborted",
                duration_seconds=time.perf_counter() - started,
                errors=len(result.errors),
                warnings=len(result.warnings),
            )
            return result

        self.state = result.state = ChunkState.COMPUTING_DERIVED
        for candidate in candidates:
            candidate.payload = self.loader.compute_derived(candidate, self.snapshot)

        self.state = result.state = ChunkState.COMMITTING
        try:
            with self.store.transaction() as session:
                counts = self.loader.write(session, candidates, self.snapshot)
        except SQLAlchemyError as exc:
            self.state = result.state = ChunkState.ABORTED
            result.system_error = f"Import chunk failed: {exc}"
            logger.exception(
                "Import chunk starting at row %s failed during commit",
                start_row,
                extra=self._log_extra(start_row),
            )
            self.sessions.append_errors(self.import_id, [result.system_error])
            self.sessions.append_warnings(self.import_id, [issue.render() for issue in result.warnings])
            self.sessions.increment_counts(self.import_id, SKIPPED, result.row_count)
            record_chunk(kind=self.loader.kind, outcome="failed", duration_seconds=time.perf_counter() - started)
            return result

        result.created, result.updated = counts.created, counts.updated
        self.state = result.state = ChunkState.COMPLETED
        self.sessions.mark_seen(self.import_id, tracker.pending)
        if counts.created:
            self.sessions.increment_counts(self.import_id, PROCESSED, counts.created)
        if counts.updated:
            self.sessions.increment_counts(self.import_id, UPDATED, counts.updated)
        self.sessions.append_warnings(self.import_id, [issue.render() for issue in result.warnings])
        logger.info(
            "Committed %s chunk starting at row %s: %s created, %s updated",
            self.loader.kind,
            start_row,
            counts.created,
            counts.updated,
            extra=self._log_extra(start_row, created=counts.created, updated=counts.updated),
        )
        record_chunk(
            kind=self.loader.kind,
            outcome="completed",
            duration_seconds=time.perf_counter() - started,
            created=counts.created,
            updated=counts.updated,
            warnings=len(result.warnings),
        )
        return result

    def _validate_all(
        self, normalized: Sequence[NormalizedRow], tracker: DuplicateTracker, result: ChunkResult
    ) -> tuple[list[CandidateRecord], list[dict[str, Any]]]:
        rules = self.loader.cross_field_rules()
        candidates: list[CandidateRecord] = []
        failures: list[dict[str, Any]] = []

        for row in normalized:
            validation = self.loader.validate_row(row, self.snapshot)
            if rules:
                # Rules see validated values where available and the raw cell otherwise
                merged = {**row.raw, **{k: v for k, v in validation.values.items() if v is not None}}
                cross = evaluate_cross_field(rules, merged, row.row_number, self.loader.context.today)
                validation.errors.extend(cross.errors)
                validation.warnings.extend(cross.warnings)

            key = self.loader.duplicate_key(validation)
            if key is not None:
                source = tracker.check(key)
                if source is not None:
                    message = self.loader.duplicate_message(key, source, row.row_number)
                    validation.error(self.loader.duplicate_field(), message)
                elif validation.valid:
                    tracker.accept(key)

            result.errors.extend(validation.errors)
            result.warnings.extend(validation.warnings)
            if validation.valid:
                candidates.append(
                    CandidateRecord(row_number=row.row_number, values=validation.values, raw=row.raw, key=key)
                )
            else:
                failures.append(_validation_failure(validation, row.raw))
        return candidates, failures

    def _record_aborted(self, result: ChunkResult, failures: list[dict[str, Any]]) -> None:
        self.sessions.append_errors(self.import_id, [issue.render() for issue in result.errors])
        self.sessions.append_warnings(self.import_id, [issue.render() for issue in result.warnings])
        self.sessions.append_validation_failures(self.import_id, failures)
        self.sessions.increment_counts(self.import_id, SKIPPED, result.row_count)


__all__ = ["ChunkResult", "ChunkState", "SKIPPED", "TwoPassChunkProcessor"]
