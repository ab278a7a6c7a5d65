"""
Field validator set.

Each validator is a small frozen object whose ``validate(value, row)`` is a
pure function returning a :class:`ValidationResult`. Validators never touch
shared state; the chunk processor turns failed results into row issues.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence

from rapidfuzz.distance import Levenshtein

from .issues import cell_reference
from .normalize import is_blank

DATE_FORMATS: tuple[str, ...] = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d", "%d %b %Y", "%d %B %Y")


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    normalized_value: Any = None
    error: str | None = None
    warnings: tuple[str, ...] = ()

    @classmethod
    def ok(cls, value: Any = None, warnings: Iterable[str] = ()) -> "ValidationResult":
        return cls(valid=True, normalized_value=value, warnings=tuple(warnings))

    @classmethod
    def fail(cls, error: str, value: Any = None) -> "ValidationResult":
        return cls(valid=False, normalized_value=value, error=error)


class ZeroPolicy(str, enum.Enum):
    """How a numeric field treats an exact zero."""

    ALLOW = "allow"
    WARN = "warn"
    ERROR = "error"

    @classmethod
    def resolve(cls, policies: Mapping[str, str] | None, name: str, default: "ZeroPolicy") -> "ZeroPolicy":
        raw = (policies or {}).get(name)
        if raw is None:
            return default
        try:
            return cls(str(raw).lower())
        except ValueError:
            return default


def closest_match(value: str, choices: Sequence[str], *, threshold: int) -> str | None:
    """
    Return the allowed value with the smallest edit distance to ``value``.

    Comparison is case-insensitive. Ties keep the first choice in declared
    order. ``None`` is returned when the best distance exceeds ``threshold``.
    """

    needle = value.upper()
    best: str | None = None
    best_distance: int | None = None
    for choice in choices:
        distance = Levenshtein.distance(needle, choice.upper())
        if best_distance is None or distance < best_distance:
            best, best_distance = choice, distance
    if best_distance is None or best_distance > threshold:
        return None
    return best


def parse_date(value: Any) -> date | None:
    """Parse a normalized date cell; ``None`` when it is not a recognizable date."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    token = value.strip()
    if not token:
        return None
    # Timestamps such as "2024-01-31 00:00:00" keep only the date part
    if len(token) > 10 and token[4:5] == "-" and token[10:11] in (" ", "T"):
        token = token[:10]
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(token, fmt).date()
        except ValueError:
            continue
    return None


def _as_decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    token = str(value).strip()
    if not re.match(r"^[+-]?(\d+(\.\d*)?|\.\d+)$", token):
        return None
    return Decimal(token)


class FieldValidator:
    """Base class; subclasses implement :meth:`validate`."""

    def validate(self, value: Any, row: int) -> ValidationResult:  # pragma: no cover - interface
        raise NotImplementedError


@dataclass(frozen=True)
class Required(FieldValidator):
    label: str
    column: str | None = None

    def validate(self, value: Any, row: int) -> ValidationResult:
        if is_blank(value):
            return ValidationResult.fail(f"{self.label} is required{cell_reference(self.column, row)}")
        return ValidationResult.ok(value)


@dataclass(frozen=True)
class Length(FieldValidator):
    """Bounds on character count (code points, not bytes)."""

    label: str
    minimum: int | None = None
    maximum: int | None = None
    column: str | None = None

    def validate(self, value: Any, row: int) -> ValidationResult:
        text = str(value).strip()
        size = len(text)
        cell = cell_reference(self.column, row)
        if self.minimum is not None and size < self.minimum:
            return ValidationResult.fail(
                f"{self.label} must be at least {self.minimum} characters, got '{text}'{cell}", text
            )
        if self.maximum is not None and size > self.maximum:
            return ValidationResult.fail(f"{self.label} exceeds {self.maximum} characters{cell}", text)
        return ValidationResult.ok(text)


@dataclass(frozen=True)
class OneOf(FieldValidator):
    """Membership in a fixed set, suggesting the closest value on a near miss."""

    label: str
    choices: tuple[str, ...]
    threshold: int = 2
    column: str | None = None

    def validate(self, value: Any, row: int) -> ValidationResult:
        text = str(value).strip()
        folded = text.casefold()
        for choice in self.choices:
            if choice.casefold() == folded:
                return ValidationResult.ok(choice)
        cell = cell_reference(self.column, row)
        suggestion = closest_match(text, self.choices, threshold=self.threshold)
        if suggestion is not None:
            return ValidationResult.fail(f"Invalid {self.label} '{text}'. Did you mean '{suggestion}'?{cell}", text)
        return ValidationResult.fail(
            f"Invalid {self.label} '{text}'. Must be one of: {', '.join(self.choices)}{cell}", text
        )


@dataclass(frozen=True)
class Pattern(FieldValidator):
    label: str
    regex: re.Pattern
    description: str
    column: str | None = None

    def validate(self, value: Any, row: int) -> ValidationResult:
        text = str(value).strip()
        if not self.regex.fullmatch(text):
            return ValidationResult.fail(f"{self.label} {self.description}{cell_reference(self.column, row)}", text)
        return ValidationResult.ok(text)


def _zero_outcome(label: str, number: Decimal, policy: ZeroPolicy) -> ValidationResult:
    if policy is ZeroPolicy.ERROR:
        return ValidationResult.fail(f"{label} must not be zero", number)
    if policy is ZeroPolicy.WARN:
        return ValidationResult.ok(number, (f"{label} is zero",))
    return ValidationResult.ok(number)


@dataclass(frozen=True)
class NumberRange(FieldValidator):
    label: str
    minimum: Decimal | None = None
    maximum: Decimal | None = None
    zero_policy: ZeroPolicy = ZeroPolicy.ALLOW
    integer: bool = False

    def validate(self, value: Any, row: int) -> ValidationResult:
        number = _as_decimal(value)
        if number is None:
            return ValidationResult.fail(f"{self.label} must be a number (got '{value}')", value)
        if self.integer and number != number.to_integral_value():
            return ValidationResult.fail(f"{self.label} must be a whole number (got {number})", value)
        if self.minimum is not None and number < self.minimum:
            return ValidationResult.fail(f"{self.label} {number} is below the minimum of {self.minimum}", number)
        if self.maximum is not None and number > self.maximum:
            return ValidationResult.fail(f"{self.label} {number} is above the maximum of {self.maximum}", number)
        if self.integer:
            number = Decimal(int(number))
        if number == 0:
            return _zero_outcome(self.label, number, self.zero_policy)
        return ValidationResult.ok(int(number) if self.integer else number)


@dataclass(frozen=True)
class Percentage(FieldValidator):
    """Fraction produced by the percentage normalizer; must land in ``[0, 1]``."""

    label: str
    zero_policy: ZeroPolicy = ZeroPolicy.ALLOW

    def validate(self, value: Any, row: int) -> ValidationResult:
        number = _as_decimal(value)
        if number is None:
            return ValidationResult.fail(
                f"{self.label} must be a percentage such as 75, 75% or 0.75 (got '{value}')", value
            )
        if number < 0:
            return ValidationResult.fail(f"{self.label} {number} is below the minimum of 0%", number)
        if number > 1:
            return ValidationResult.fail(f"{self.label} {number} is above the maximum of 100%", number)
        if number == 0:
            return _zero_outcome(self.label, number, self.zero_policy)
        return ValidationResult.ok(number)


@dataclass(frozen=True)
class DateValue(FieldValidator):
    label: str
    column: str | None = None

    def validate(self, value: Any, row: int) -> ValidationResult:
        parsed = parse_date(value)
        if parsed is None:
            return ValidationResult.fail(
                f"Invalid date '{value}' for {self.label}{cell_reference(self.column, row)}", value
            )
        return ValidationResult.ok(parsed)


@dataclass(frozen=True)
class BirthDate(FieldValidator):
    """Age bounds computed against an explicit ``today``."""

    today: date
    minimum_age: int = 18
    maximum_age: int = 84
    warning_age: int = 65
    minimum_year: int = 1940
    column: str | None = None

    def validate(self, value: Any, row: int) -> ValidationResult:
        born = parse_date(value)
        cell = cell_reference(self.column, row)
        if born is None:
            return ValidationResult.fail(f"Invalid date '{value}' for date_of_birth{cell}", value)
        if born > self.today:
            return ValidationResult.fail(f"Date of birth '{born.isoformat()}' is in the future{cell}", born)
        if born.year < self.minimum_year:
            return ValidationResult.fail(
                f"Date of birth '{born.isoformat()}' is before {self.minimum_year}{cell}", born
            )
        age = self.today.year - born.year - ((self.today.month, self.today.day) < (born.month, born.day))
        if age < self.minimum_age:
            return ValidationResult.fail(
                f"Date of birth '{born.isoformat()}' indicates age under {self.minimum_age}{cell}", born
            )
        if age > self.maximum_age:
            return ValidationResult.fail(
                f"Date of birth '{born.isoformat()}' indicates age over {self.maximum_age}{cell}", born
            )
        if age >= self.warning_age:
            return ValidationResult.ok(born, (f"Employee age {age} exceeds typical retirement age",))
        return ValidationResult.ok(born)


def run_validators(value: Any, row: int, validators: Sequence[FieldValidator]) -> ValidationResult:
    """
    Chain validators, feeding each one the previous normalized value.

    Stops at the first failure; warnings from every passing step are kept.
    """

    warnings: list[str] = []
    current = value
    for validator in validators:
        result = validator.validate(current, row)
        warnings.extend(result.warnings)
        if not result.valid:
            return ValidationResult(
                valid=False, normalized_value=result.normalized_value, error=result.error, warnings=tuple(warnings)
            )
        current = result.normalized_value
    return ValidationResult.ok(current, warnings)


__all__ = [
    "BirthDate",
    "DATE_FORMATS",
    "DateValue",
    "FieldValidator",
    "Length",
    "NumberRange",
    "OneOf",
    "Pattern",
    "Percentage",
    "Required",
    "ValidationResult",
    "ZeroPolicy",
    "closest_match",
    "parse_date",
    "run_validators",
]
