"""Funding allocation import template contract."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

from .fields import FieldKind, FieldSpec, ImportContract, with_template_columns


@dataclass(frozen=True)
class FundingAllocationRow:
    staff_id: Any = None
    employment_id: Any = None
    grant_item_id: Any = None
    fte: Any = None
    allocation_type: Any = None
    allocated_amount: Any = None
    salary_type: Any = None
    status: Any = None
    start_date: Any = None
    end_date: Any = None


FUNDING_ALLOCATION_FIELDS: Tuple[FieldSpec, ...] = with_template_columns(
    (
        FieldSpec("staff_id", "Staff identifier of an existing employee.", required=True),
        FieldSpec("employment_id", "Employment id; the active employment is used when blank.", FieldKind.INTEGER),
        FieldSpec("grant_item_id", "Grant item funding the allocation.", FieldKind.INTEGER, required=True),
        FieldSpec("fte", "Share of the salary, 0-100 or a fraction.", FieldKind.PERCENT, required=True),
        FieldSpec("allocation_type", "grant or org_funded."),
        FieldSpec("allocated_amount", "Monthly amount; computed from salary and FTE when blank.", FieldKind.MONEY),
        FieldSpec("salary_type", "probation_salary or pass_probation_salary."),
        FieldSpec("status", "active, historical or terminated."),
        FieldSpec("start_date", "Allocation start.", FieldKind.DATE, required=True),
        FieldSpec("end_date", "Allocation end.", FieldKind.DATE),
    )
)

FUNDING_ALLOCATION_CONTRACT: ImportContract[FundingAllocationRow] = ImportContract(
    kind="funding_allocations",
    fields=FUNDING_ALLOCATION_FIELDS,
    row_type=FundingAllocationRow,
)
