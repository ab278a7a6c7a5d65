"""Column contracts for every importable entity."""

from __future__ import annotations

from .employee import EMPLOYEE_CONTRACT, EmployeeRow
from .employment import EMPLOYMENT_CONTRACT, EmploymentRow
from .fields import FieldKind, FieldSpec, ImportContract, column_letter, normalize_header
from .funding import FUNDING_ALLOCATION_CONTRACT, FundingAllocationRow
from .grant import GRANT_CONTRACT, GrantRow
from .payroll import PAYROLL_CONTRACT, PayrollRow

__all__ = [
    "EMPLOYEE_CONTRACT",
    "EMPLOYMENT_CONTRACT",
    "FUNDING_ALLOCATION_CONTRACT",
    "GRANT_CONTRACT",
    "PAYROLL_CONTRACT",
    "EmployeeRow",
    "EmploymentRow",
    "FundingAllocationRow",
    "GrantRow",
    "PayrollRow",
    "FieldKind",
    "FieldSpec",
    "ImportContract",
    "column_letter",
    "normalize_header",
]
