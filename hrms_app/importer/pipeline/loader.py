"""
Entity loader interface used by the chunk processor.

A loader owns everything entity-specific: its column contract, the lookup
snapshot it prefetches, per-row validation, the duplicate key, derived
values and the batched write. The processor owns the control flow.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping, Sequence

from sqlalchemy.orm import Session

from hrms_app.importer.contracts.fields import ImportContract

from .context import ImportContext
from .cross_field import CrossFieldRule
from .duplicates import DuplicateKey, DuplicateSource
from .issues import RowIssue, Severity, cell_reference
from .lookups import LookupSnapshot
from .normalize import NormalizedRow, is_blank
from .validators import FieldValidator, Required, ZeroPolicy, run_validators


@dataclass
class RowValidation:
    """Outcome of validating one row: clean values plus every issue found."""

    row_number: int
    values: dict[str, Any] = field(default_factory=dict)
    errors: list[RowIssue] = field(default_factory=list)
    warnings: list[RowIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def error(self, field_name: str, message: str) -> None:
        self.errors.append(RowIssue(row=self.row_number, field=field_name, message=message))

    def warn(self, field_name: str, message: str) -> None:
        self.warnings.append(
            RowIssue(row=self.row_number, field=field_name, message=message, severity=Severity.WARNING)
        )

    def check(
        self,
        field_name: str,
        value: Any,
        *validators: FieldValidator,
        required: bool = False,
        label: str | None = None,
        column: str | None = None,
    ) -> Any:
        """
        Run ``validators`` over ``value`` and record the outcome.

        Blank optional values are stored as ``None`` without running the
        validators. Returns the normalized value (``None`` on failure).
        """

        if is_blank(value):
            if required:
                result = Required(label or field_name, column).validate(value, self.row_number)
                self.error(field_name, result.error or f"{field_name} is required")
            self.values[field_name] = None
            return None
        result = run_validators(value, self.row_number, validators)
        for warning in result.warnings:
            self.warn(field_name, warning)
        if not result.valid:
            self.error(field_name, result.error or f"Invalid {field_name}")
            self.values[field_name] = None
            return None
        self.values[field_name] = result.normalized_value
        return result.normalized_value


@dataclass
class CandidateRecord:
    """A staged row that passed validation; exists only within one chunk."""

    row_number: int
    values: dict[str, Any]
    raw: Mapping[str, Any]
    key: DuplicateKey | None = None
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WriteCounts:
    created: int = 0
    updated: int = 0


class EntityLoader(ABC):
    """Base class for one importable entity kind."""

    kind: ClassVar[str]
    title: ClassVar[str]
    contract: ClassVar[ImportContract]
    chunk_size: ClassVar[int] = 40

    def __init__(self, context: ImportContext) -> None:
        self.context = context

    def zero_policy(self, name: str, default: ZeroPolicy) -> ZeroPolicy:
        return ZeroPolicy.resolve(self.context.zero_policies, name, default)

    def column(self, name: str) -> str | None:
        return self.contract.column_of(name)

    @abstractmethod
    def prefetch(self, session: Session) -> LookupSnapshot:
        """Read every reference table the row validation needs, once."""

    @abstractmethod
    def validate_row(self, row: NormalizedRow, snapshot: LookupSnapshot) -> RowValidation:
        """Field-level validation and snapshot lookups for one row."""

    def resolve(
        self,
        check: RowValidation,
        snapshot: LookupSnapshot,
        field_name: str,
        table: str,
        message: str,
    ) -> Any:
        """
        Look a validated value up in a snapshot table.

        A miss is a row error; ``message`` is formatted with ``value``. Lookups
        are only as fresh as the snapshot taken when the import started.
        """

        value = check.values.get(field_name)
        if value is None:
            return None
        found = snapshot.lookup(table, value)
        if found is None:
            cell = cell_reference(self.column(field_name), check.row_number)
            check.error(field_name, message.format(value=value) + cell)
        return found

    def cross_field_rules(self) -> Sequence[CrossFieldRule]:
        return ()

    def duplicate_key(self, validation: RowValidation) -> DuplicateKey | None:
        """Composite key for duplicate detection; ``None`` disables the check."""
        return None

    def duplicate_message(self, key: DuplicateKey, source: DuplicateSource, row: int) -> str:
        cell = cell_reference(self.column(self.duplicate_field()), row)
        if source is DuplicateSource.FILE:
            return f"Duplicate {self.title.lower()} '{key.identifier}' found in import file{cell}"
        return f"{self.title} '{key.identifier}' already exists in database{cell}"

    def duplicate_field(self) -> str:
        return "staff_id"

    def compute_derived(self, candidate: CandidateRecord, snapshot: LookupSnapshot) -> dict[str, Any]:
        """Build the stored record from validated values."""
        return dict(candidate.values)

    def audit_fields(self) -> dict[str, Any]:
        return {"created_by": self.context.actor, "updated_by": self.context.actor}

    @abstractmethod
    def write(self, session: Session, candidates: Sequence[CandidateRecord], snapshot: LookupSnapshot) -> WriteCounts:
        """Persist every candidate inside the caller's transaction."""


__all__ = ["CandidateRecord", "EntityLoader", "RowValidation", "WriteCounts"]
