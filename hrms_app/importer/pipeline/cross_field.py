"""
Cross-field rule engine.

Rules run against the validated values of one row after the field validators
and return :class:`RowIssue` objects. A row may produce warnings without any
errors, so the engine reports both lists instead of a single verdict.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping, Sequence

from .issues import RowIssue, Severity, cell_reference, cells_reference
from .normalize import is_blank
from .validators import parse_date

PHONE_PATTERN = re.compile(r"^[\d\s\-\+\(\)]{7,20}$")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


class CrossFieldRule:
    """Declarative rule spanning two or more fields of a row."""

    def __init__(self, code: str, description: str, severity: Severity = Severity.ERROR) -> None:
        self.code = code
        self.description = description
        self.severity = severity

    def evaluate(self, values: Mapping[str, Any], row: int, today: date) -> Iterable[RowIssue]:
        """Return issues for the provided row values."""
        raise NotImplementedError

    def _issue(self, row: int, fields: Sequence[str], message: str) -> RowIssue:
        return RowIssue(row=row, field=", ".join(fields), message=message, severity=self.severity)


class MatchingCompanionRule(CrossFieldRule):
    """
    ``field`` equal to ``expected`` requires ``companion``; a present
    ``companion`` requires ``field`` to be ``expected``.
    """

    def __init__(
        self,
        *,
        field_name: str,
        expected: str,
        companion: str,
        label: str,
        companion_label: str,
        remove_hint: str | None = None,
        columns: Sequence[str | None] = (),
    ) -> None:
        super().__init__(
            code=f"{field_name.upper()}_{companion.upper()}",
            description=f"{label} '{expected}' and {companion_label} go together.",
        )
        self.field_name = field_name
        self.expected = expected
        self.companion = companion
        self.label = label
        self.companion_label = companion_label
        self.remove_hint = remove_hint or companion_label
        self.columns = tuple(columns)

    def evaluate(self, values: Mapping[str, Any], row: int, today: date) -> Iterable[RowIssue]:
        current = _text(values.get(self.field_name))
        companion = _text(values.get(self.companion))
        cells = cells_reference(self.columns, row)
        fields = (self.field_name, self.companion)
        matches = current.casefold() == self.expected.casefold()
        if matches and not companion:
            return [
                self._issue(
                    row, fields, f"{self.label} is '{self.expected}' but {self.companion_label} is missing{cells}"
                )
            ]
        if companion and current and not matches:
            return [
                self._issue(
                    row,
                    fields,
                    f"{self.companion_label.capitalize()} provided but {self.label.lower()} is '{current}'. "
                    f"Change to '{self.expected}' or remove {self.remove_hint}{cells}",
                )
            ]
        return []


class PairedPresenceRule(CrossFieldRule):
    """Either both fields are present or neither is."""

    def __init__(
        self, *, first: str, second: str, first_label: str, second_label: str, columns: Sequence[str | None] = ()
    ) -> None:
        super().__init__(
            code=f"{first.upper()}_PAIR",
            description=f"{first_label} and {second_label} must be provided together.",
        )
        self.first = first
        self.second = second
        self.first_label = first_label
        self.second_label = second_label
        self.columns = tuple(columns)

    def evaluate(self, values: Mapping[str, Any], row: int, today: date) -> Iterable[RowIssue]:
        first = _text(values.get(self.first))
        second = _text(values.get(self.second))
        cells = cells_reference(self.columns, row)
        fields = (self.first, self.second)
        if first and not second:
            message = f"{self.first_label} '{first}' provided but {self.second_label.lower()} is missing{cells}"
            return [self._issue(row, fields, message)]
        if second and not first:
            return [
                self._issue(
                    row, fields, f"{self.second_label} provided but {self.first_label.lower()} is missing{cells}"
                )
            ]
        return []


class RequiresCompanionRule(CrossFieldRule):
    """A present ``field`` needs ``companion``; severity decides whether it blocks."""

    def __init__(
        self,
        *,
        field_name: str,
        companion: str,
        message: str,
        severity: Severity = Severity.ERROR,
        columns: Sequence[str | None] = (),
    ) -> None:
        super().__init__(code=f"{field_name.upper()}_NEEDS_{companion.upper()}", description=message, severity=severity)
        self.field_name = field_name
        self.companion = companion
        self.message = message
        self.columns = tuple(columns)

    def evaluate(self, values: Mapping[str, Any], row: int, today: date) -> Iterable[RowIssue]:
        if is_blank(values.get(self.field_name)) or not is_blank(values.get(self.companion)):
            return []
        cells = cells_reference(self.columns, row)
        return [self._issue(row, (self.field_name, self.companion), f"{self.message}{cells}")]


class DateOrderRule(CrossFieldRule):
    """When both dates parse, ``end`` must be strictly after ``start``."""

    def __init__(self, *, start: str, end: str, message: str, columns: Sequence[str | None] = ()) -> None:
        super().__init__(code=f"{end.upper()}_AFTER_{start.upper()}", description=message)
        self.start = start
        self.end = end
        self.message = message
        self.columns = tuple(columns)

    def evaluate(self, values: Mapping[str, Any], row: int, today: date) -> Iterable[RowIssue]:
        start = parse_date(values.get(self.start))
        end = parse_date(values.get(self.end))
        # Unparseable dates are reported by the field validators
        if start is None or end is None or end > start:
            return []
        return [self._issue(row, (self.start, self.end), f"{self.message}{cells_reference(self.columns, row)}")]


class NotInFutureRule(CrossFieldRule):
    def __init__(self, *, field_name: str, label: str, column: str | None = None) -> None:
        super().__init__(code=f"{field_name.upper()}_NOT_FUTURE", description=f"{label} cannot be in the future.")
        self.field_name = field_name
        self.label = label
        self.column = column

    def evaluate(self, values: Mapping[str, Any], row: int, today: date) -> Iterable[RowIssue]:
        value = parse_date(values.get(self.field_name))
        if value is None or value <= today:
            return []
        return [
            self._issue(
                row, (self.field_name,), f"{self.label} cannot be in the future{cell_reference(self.column, row)}"
            )
        ]


class PhoneFormatRule(CrossFieldRule):
    """Informational phone checks; never blocks a commit."""

    def __init__(self, labels: Mapping[str, str]) -> None:
        super().__init__(
            code="PHONE_FORMAT",
            description="Phone numbers should contain 7-20 digits, spaces or +-() characters.",
            severity=Severity.WARNING,
        )
        self.labels = dict(labels)

    def evaluate(self, values: Mapping[str, Any], row: int, today: date) -> Iterable[RowIssue]:
        issues = []
        for name, label in self.labels.items():
            value = _text(values.get(name))
            if value and not PHONE_PATTERN.match(value):
                message = f"Phone number format unusual '{value}'"
                issues.append(RowIssue(row=row, field=label, message=message, severity=self.severity))
        return issues


@dataclass
class CrossFieldResult:
    errors: list[RowIssue] = field(default_factory=list)
    warnings: list[RowIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def evaluate_cross_field(
    rules: Iterable[CrossFieldRule], values: Mapping[str, Any], row: int, today: date
) -> CrossFieldResult:
    """Run every rule and split the outcome into blocking errors and warnings."""

    result = CrossFieldResult()
    for rule in rules:
        for issue in rule.evaluate(values, row, today):
            if issue.is_error:
                result.errors.append(issue)
            else:
                result.warnings.append(issue)
    return result


__all__ = [
    "CrossFieldResult",
    "CrossFieldRule",
    "DateOrderRule",
    "MatchingCompanionRule",
    "NotInFutureRule",
    "PHONE_PATTERN",
    "PairedPresenceRule",
    "PhoneFormatRule",
    "RequiresCompanionRule",
    "evaluate_cross_field",
]
