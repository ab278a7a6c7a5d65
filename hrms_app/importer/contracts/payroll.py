"""Payroll import template contract."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

from hrms_app.models.payroll import PAYROLL_AMOUNT_COLUMNS

from .fields import FieldKind, FieldSpec, ImportContract, with_template_columns


@dataclass(frozen=True)
class PayrollRow:
    staff_id: Any = None
    employee_funding_allocation_id: Any = None
    pay_period_date: Any = None
    gross_salary: Any = None
    gross_salary_by_fte: Any = None
    compensation_refund: Any = None
    thirteen_month_salary: Any = None
    pvd: Any = None
    saving_fund: Any = None
    employer_social_security: Any = None
    employee_social_security: Any = None
    employer_health_welfare: Any = None
    employee_health_welfare: Any = None
    tax: Any = None
    net_salary: Any = None
    total_salary: Any = None
    total_income: Any = None
    total_deduction: Any = None
    notes: Any = None


REQUIRED_AMOUNTS: Tuple[str, ...] = ("gross_salary", "gross_salary_by_fte", "net_salary")

PAYROLL_FIELDS: Tuple[FieldSpec, ...] = with_template_columns(
    (
        FieldSpec("staff_id", "Staff identifier with an active employment.", required=True),
        FieldSpec(
            "employee_funding_allocation_id",
            "Funding allocation charged for this pay line.",
            FieldKind.INTEGER,
            required=True,
            aliases=("funding_allocation_id", "allocation_id"),
        ),
        FieldSpec("pay_period_date", "Pay period date.", FieldKind.DATE, required=True, aliases=("pay_period",)),
        *(
            FieldSpec(
                name,
                name.replace("_", " ").capitalize() + ".",
                FieldKind.MONEY,
                required=name in REQUIRED_AMOUNTS,
            )
            for name in PAYROLL_AMOUNT_COLUMNS
        ),
        FieldSpec("notes", "Free-text notes."),
    )
)

PAYROLL_CONTRACT: ImportContract[PayrollRow] = ImportContract(
    kind="payrolls",
    fields=PAYROLL_FIELDS,
    row_type=PayrollRow,
)
