"""Row-level problems reported by validators and the chunk processor."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Sequence


class Severity(str, enum.Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class RowIssue:
    """A ``{row, field, message}`` triple; warnings never block a commit."""

    row: int
    field: str
    message: str
    severity: Severity = Severity.ERROR

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def render(self) -> str:
        return f"Row {self.row} Column {self.field}: {self.message}"

    def as_dict(self) -> dict[str, object]:
        return {
            "row": self.row,
            "field": self.field,
            "message": self.message,
            "severity": self.severity.value,
        }


def cell_reference(column: str | None, row: int) -> str:
    """Return the `` (Cell B3)`` suffix, or an empty string when the column is unknown."""

    if not column:
        return ""
    return f" (Cell {column}{row})"


def cells_reference(columns: Sequence[str | None], row: int) -> str:
    """Return `` (Cells AA3, AB3)`` for several columns, or the single-cell form."""

    known = [column for column in columns if column]
    if not known:
        return ""
    if len(known) == 1:
        return cell_reference(known[0], row)
    return " (Cells " + ", ".join(f"{column}{row}" for column in known) + ")"
