"""Payroll import: insert-only pay lines against an employee's active employment."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrms_app.importer.contracts.payroll import PAYROLL_CONTRACT, REQUIRED_AMOUNTS
from hrms_app.models import PAYROLL_AMOUNT_COLUMNS, EmployeeFundingAllocation, Payroll

from .employments import active_employments, employee_ids
from .issues import cell_reference
from .loader import CandidateRecord, EntityLoader, RowValidation, WriteCounts
from .lookups import LookupSnapshot
from .normalize import NormalizedRow
from .validators import DateValue, Length, NumberRange, ZeroPolicy


class PayrollLoader(EntityLoader):
    kind = "payrolls"
    title = "Payroll"
    contract = PAYROLL_CONTRACT
    chunk_size = 50

    def prefetch(self, session: Session) -> LookupSnapshot:
        allocations = {
            str(pk): employment_id
            for pk, employment_id in session.execute(
                select(EmployeeFundingAllocation.id, EmployeeFundingAllocation.employment_id)
            )
        }
        return LookupSnapshot(
            kind=self.kind,
            tables={
                "employees": employee_ids(session),
                "active_employments": active_employments(session, self.context.today),
                "allocations": allocations,
            },
        )

    def validate_row(self, row: NormalizedRow, snapshot: LookupSnapshot) -> RowValidation:
        data = row.row
        col = self.column
        check = RowValidation(row_number=row.row_number)

        check.check(
            "staff_id",
            data.staff_id,
            Length("Staff ID", 1, 50, column=col("staff_id")),
            required=True,
            label="Staff ID",
            column=col("staff_id"),
        )
        employee_id = self.resolve(
            check, snapshot, "staff_id", "employees", "Employee with staff_id '{value}' not found in database"
        )
        employment_id = None
        if employee_id is not None:
            employment_id = self.resolve(
                check, snapshot, "staff_id", "active_employments", "No active employment found for staff_id '{value}'"
            )
        check.values["employment_id"] = employment_id

        allocation_id = check.check(
            "employee_funding_allocation_id",
            data.employee_funding_allocation_id,
            NumberRange("Funding allocation ID", minimum=Decimal(1), integer=True),
            required=True,
            label="Funding allocation ID",
            column=col("employee_funding_allocation_id"),
        )
        if allocation_id is not None:
            owner = snapshot.lookup("allocations", allocation_id)
            cell = cell_reference(col("employee_funding_allocation_id"), row.row_number)
            if owner is None:
                check.error(
                    "employee_funding_allocation_id",
                    f"Invalid employee_funding_allocation_id '{allocation_id}'{cell}",
                )
            elif employment_id is not None and owner != employment_id:
                check.error(
                    "employee_funding_allocation_id",
                    f"Funding allocation '{allocation_id}' does not belong to the active employment "
                    f"of staff_id '{check.values.get('staff_id')}'{cell}",
                )

        check.check(
            "pay_period_date",
            data.pay_period_date,
            DateValue("pay_period_date", column=col("pay_period_date")),
            required=True,
            label="Pay period date",
            column=col("pay_period_date"),
        )
        for name in PAYROLL_AMOUNT_COLUMNS:
            label = name.replace("_", " ").capitalize()
            check.check(
                name,
                getattr(data, name),
                NumberRange(label, minimum=Decimal(0), zero_policy=self.zero_policy(name, ZeroPolicy.ALLOW)),
                required=name in REQUIRED_AMOUNTS,
                label=label,
                column=col(name),
            )
        check.check("notes", data.notes, Length("Notes", maximum=2000, column=col("notes")))
        return check

    def compute_derived(self, candidate: CandidateRecord, snapshot: LookupSnapshot) -> dict[str, Any]:
        values = candidate.values
        record = {
            "employment_id": values["employment_id"],
            "employee_funding_allocation_id": values["employee_funding_allocation_id"],
            "pay_period_date": values["pay_period_date"],
            "notes": values.get("notes"),
        }
        record.update({name: values.get(name) for name in PAYROLL_AMOUNT_COLUMNS})
        return record

    def write(self, session: Session, candidates: Sequence[CandidateRecord], snapshot: LookupSnapshot) -> WriteCounts:
        payrolls = [Payroll(**candidate.payload) for candidate in candidates]
        session.add_all(payrolls)
        session.flush()
        return WriteCounts(created=len(payrolls))


__all__ = ["PayrollLoader"]
