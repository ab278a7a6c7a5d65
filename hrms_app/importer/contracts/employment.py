"""Employment import template contract (one row per employee's active contract)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

from .fields import FieldKind, FieldSpec, ImportContract, with_template_columns


@dataclass(frozen=True)
class EmploymentRow:
    staff_id: Any = None
    employment_type: Any = None
    start_date: Any = None
    pass_probation_date: Any = None
    end_date: Any = None
    pay_method: Any = None
    site_code: Any = None
    department: Any = None
    section_department: Any = None
    position: Any = None
    pass_probation_salary: Any = None
    probation_salary: Any = None
    health_welfare: Any = None
    pvd: Any = None
    saving_fund: Any = None
    status: Any = None


EMPLOYMENT_FIELDS: Tuple[FieldSpec, ...] = with_template_columns(
    (
        FieldSpec("staff_id", "Staff identifier of an existing employee.", required=True, aliases=("staff_no",)),
        FieldSpec("employment_type", "Full-time, Part-time, Contract or Temporary."),
        FieldSpec("start_date", "First day of employment.", FieldKind.DATE, required=True),
        FieldSpec("pass_probation_date", "Probation end date.", FieldKind.DATE, aliases=("probation_end_date",)),
        FieldSpec("end_date", "Last day of employment.", FieldKind.DATE),
        FieldSpec("pay_method", "Bank Transfer, Cash or Cheque."),
        FieldSpec("site_code", "Work site code.", aliases=("site",)),
        FieldSpec("department", "Department name.", aliases=("department_name",)),
        FieldSpec("section_department", "Section within the department.", aliases=("section",)),
        FieldSpec("position", "Position title.", aliases=("position_title",)),
        FieldSpec(
            "pass_probation_salary",
            "Monthly salary after probation.",
            FieldKind.MONEY,
            required=True,
            aliases=("salary", "position_salary"),
        ),
        FieldSpec("probation_salary", "Monthly salary during probation.", FieldKind.MONEY),
        FieldSpec("health_welfare", "Enrolled in health welfare (yes/no).", FieldKind.FLAG),
        FieldSpec("pvd", "Enrolled in the provident fund (yes/no).", FieldKind.FLAG),
        FieldSpec("saving_fund", "Enrolled in the saving fund (yes/no).", FieldKind.FLAG),
        FieldSpec("status", "Employment is active (yes/no).", FieldKind.FLAG, aliases=("active",)),
    )
)

EMPLOYMENT_CONTRACT: ImportContract[EmploymentRow] = ImportContract(
    kind="employments",
    fields=EMPLOYMENT_FIELDS,
    row_type=EmploymentRow,
)
