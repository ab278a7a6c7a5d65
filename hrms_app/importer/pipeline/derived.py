"""
Derived value calculator.

Values that are not literal column contents: probation-aware base salary,
allocated amount from salary and FTE, and booleans parsed from free text.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from .normalize import is_blank
from .validators import ValidationResult, ZeroPolicy

MONEY_QUANTUM = Decimal("0.01")

PROBATION_SALARY = "probation_salary"
PASS_PROBATION_SALARY = "pass_probation_salary"
SALARY_TYPES: tuple[str, ...] = (PROBATION_SALARY, PASS_PROBATION_SALARY)

FLAG_TRUE_VALUES = frozenset({"1", "true", "yes", "y", "on"})
FLAG_FALSE_VALUES = frozenset({"0", "false", "no", "n", "off"})

MILITARY_TRUE_VALUES = frozenset({"completed", "exempt", "yes", "true", "1"})
MILITARY_FALSE_VALUES = frozenset({"notapplicable", "n/a", "not applicable", "no", "false", "0"})

PAY_METHODS: tuple[str, ...] = ("Bank Transfer", "Cash", "Cheque")


def round_money(value: Decimal) -> Decimal:
    """Round half away from zero to two places (0.005 -> 0.01)."""

    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class SalarySelection:
    amount: Decimal | None
    salary_type: str


def select_base_salary(
    *,
    pass_probation_salary: Decimal | None,
    probation_salary: Decimal | None,
    pass_probation_date: date | None,
    today: date,
) -> SalarySelection:
    """
    Pick the salary an allocation is computed from.

    While the probation end date lies in the future and a probation salary is
    recorded, the probation salary applies; otherwise the post-probation one.
    """

    on_probation = pass_probation_date is not None and pass_probation_date > today
    if on_probation and probation_salary:
        return SalarySelection(amount=probation_salary, salary_type=PROBATION_SALARY)
    return SalarySelection(amount=pass_probation_salary, salary_type=PASS_PROBATION_SALARY)


def compute_allocated_amount(
    base_salary: Decimal | None, fte: Decimal, *, zero_policy: ZeroPolicy = ZeroPolicy.ERROR
) -> ValidationResult:
    """``base_salary * fte`` rounded to cents, or an error when the base is unusable."""

    if base_salary is None:
        return ValidationResult.fail("Cannot compute allocated_amount: employment has no base salary")
    if base_salary < 0:
        return ValidationResult.fail(f"Cannot compute allocated_amount: base salary {base_salary} is negative")
    if base_salary == 0:
        if zero_policy is ZeroPolicy.ERROR:
            return ValidationResult.fail("Cannot compute allocated_amount: base salary is zero")
        warnings = ("Allocated amount computed from a zero base salary",) if zero_policy is ZeroPolicy.WARN else ()
        return ValidationResult.ok(round_money(Decimal(0)), warnings)
    return ValidationResult.ok(round_money(Decimal(base_salary) * Decimal(fte)))


def parse_military_status(value: Any) -> bool | None:
    """``Completed``/``Exempt`` are true, ``N/A`` is false, anything else is unknown."""

    if is_blank(value):
        return None
    token = str(value).strip().lower()
    if token in MILITARY_TRUE_VALUES:
        return True
    if token in MILITARY_FALSE_VALUES:
        return False
    return None


def parse_flag(value: Any, *, label: str, default: bool) -> ValidationResult:
    """Parse a yes/no column; blank takes ``default`` and unknown text is an error."""

    if is_blank(value):
        return ValidationResult.ok(default)
    if isinstance(value, bool):
        return ValidationResult.ok(value)
    token = str(value).strip().lower()
    if token in FLAG_TRUE_VALUES:
        return ValidationResult.ok(True)
    if token in FLAG_FALSE_VALUES:
        return ValidationResult.ok(False)
    return ValidationResult.fail(f"Invalid {label} '{value}'. Use yes/no, true/false or 1/0", value)


def map_pay_method(value: Any) -> str | None:
    """Collapse free-text pay methods onto the stored labels; other text is kept."""

    if is_blank(value):
        return None
    text = str(value).strip()
    token = text.lower()
    if "bank" in token or "transfer" in token:
        return "Bank Transfer"
    if "cash" in token:
        return "Cash"
    if "cheque" in token or "check" in token:
        return "Cheque"
    return text


__all__ = [
    "FLAG_FALSE_VALUES",
    "FLAG_TRUE_VALUES",
    "MILITARY_FALSE_VALUES",
    "MILITARY_TRUE_VALUES",
    "PASS_PROBATION_SALARY",
    "PAY_METHODS",
    "PROBATION_SALARY",
    "SALARY_TYPES",
    "SalarySelection",
    "compute_allocated_amount",
    "map_pay_method",
    "parse_flag",
    "parse_military_status",
    "round_money",
    "select_base_salary",
]
