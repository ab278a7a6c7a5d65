"""CSV row source for entity imports.

Validates the header row against an entity's import contract, then streams
rows as dictionaries keyed by canonical field name with every cell kept as
text. Typing and validation happen later in the pipeline.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from typing import IO, Iterator, Sequence

from hrms_app.importer.contracts import ImportContract, normalize_header


class CSVAdapterError(Exception):
    """Base exception for CSV adapter failures."""


class CSVHeaderError(CSVAdapterError):
    """Raised when the CSV header row does not meet contract requirements."""

    def __init__(
        self,
        *,
        missing: Sequence[str] | None = None,
        duplicates: Sequence[str] | None = None,
    ) -> None:
        details: list[str] = []
        if missing:
            details.append(f"Missing required columns: {', '.join(sorted(missing))}.")
        if duplicates:
            details.append(
                "Duplicate canonical columns detected: "
                + ", ".join(sorted(duplicates))
                + ". Ensure each canonical field appears only once."
            )

        message = "CSV header validation failed. " + " ".join(details) if details else "CSV header validation failed."
        super().__init__(message)
        self.missing = tuple(missing or ())
        self.duplicates = tuple(duplicates or ())


@dataclass(frozen=True)
class HeaderValidationResult:
    raw_headers: tuple[str, ...]
    canonical_headers: tuple[str | None, ...]
    ignored: tuple[str, ...] = ()


@dataclass
class CSVStatistics:
    rows_read: int = 0
    rows_skipped_blank: int = 0


def _sanitize_header(header: str | None) -> str:
    token = (header or "").strip()
    return token.lstrip("\ufeff").strip()


def validate_headers(raw_headers: Sequence[str], contract: ImportContract) -> HeaderValidationResult:
    """Map raw headers to canonical names; unknown columns are ignored, not rejected."""

    sanitized = tuple(_sanitize_header(header) for header in raw_headers)
    alias_map = contract.alias_map()
    seen: set[str] = set()
    duplicates: list[str] = []
    ignored: list[str] = []
    canonical_headers: list[str | None] = []

    for header in sanitized:
        canonical = alias_map.get(normalize_header(header))
        if canonical is None:
            ignored.append(header)
            canonical_headers.append(None)
            continue
        if canonical in seen:
            duplicates.append(canonical)
        seen.add(canonical)
        canonical_headers.append(canonical)

    missing = sorted(set(contract.required_headers()) - seen)
    if missing or duplicates:
        raise CSVHeaderError(missing=missing, duplicates=duplicates)
    return HeaderValidationResult(
        raw_headers=sanitized,
        canonical_headers=tuple(canonical_headers),
        ignored=tuple(ignored),
    )


def _row_is_blank(row: dict[str, str | None]) -> bool:
    return all(value is None or value.strip() == "" for value in row.values())


class CSVRowSource:
    """
    Iterate a CSV export of an import template.

    Rows between the header and the template's first data row (hint rows)
    are skipped. Blank rows are skipped too unless ``skip_blank_rows`` is
    false; keeping them lets the pipeline number rows exactly as the
    spreadsheet does.
    """

    def __init__(self, file_obj: IO[str], contract: ImportContract, *, skip_blank_rows: bool = True) -> None:
        self._file_obj = file_obj
        self.contract = contract
        self.skip_blank_rows = skip_blank_rows
        self.statistics = CSVStatistics()
        self._header_result: HeaderValidationResult | None = None

    @property
    def header(self) -> HeaderValidationResult | None:
        return self._header_result

    def _prepare_reader(self) -> Iterator[list[str]]:
        self._file_obj.seek(0)
        reader = csv.reader(self._file_obj)
        try:
            raw_headers = next(reader)
        except StopIteration:
            raise CSVHeaderError(missing=self.contract.required_headers()) from None
        self._header_result = validate_headers(raw_headers, self.contract)
        return reader

    def read_header(self) -> HeaderValidationResult:
        """Validate the header row without consuming data rows."""
        self._prepare_reader()
        return self._header_result

    def __iter__(self) -> Iterator[dict[str, str | None]]:
        reader = self._prepare_reader()
        canonical = self._header_result.canonical_headers
        hint_rows = max(0, self.contract.data_start_row - 2)
        for index, cells in enumerate(reader):
            if index < hint_rows:
                continue
            row = {
                name: (cells[position] if position < len(cells) else None)
                for position, name in enumerate(canonical)
                if name is not None
            }
            if _row_is_blank(row) and self.skip_blank_rows:
                self.statistics.rows_skipped_blank += 1
                continue
            self.statistics.rows_read += 1
            yield row


__all__ = ["CSVAdapterError", "CSVHeaderError", "CSVRowSource", "HeaderValidationResult", "validate_headers"]
