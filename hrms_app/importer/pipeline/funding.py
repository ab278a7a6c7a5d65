"""
Funding allocation import.

Allocations are matched on (employee, employment, grant item, allocation
type): a match in the store is updated, anything else is inserted. When the
row leaves ``allocated_amount`` blank it is derived from the employment's
probation-aware salary and the FTE share.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrms_app.importer.contracts.funding import FUNDING_ALLOCATION_CONTRACT
from hrms_app.models import EmployeeFundingAllocation, Employment, GrantItem

from .cross_field import CrossFieldRule, DateOrderRule
from .derived import SALARY_TYPES, compute_allocated_amount, select_base_salary
from .duplicates import DuplicateKey, DuplicateSource
from .employments import active_employments, employee_ids
from .issues import cell_reference
from .loader import CandidateRecord, EntityLoader, RowValidation, WriteCounts
from .lookups import LookupSnapshot
from .normalize import NormalizedRow
from .validators import DateValue, Length, NumberRange, OneOf, Percentage, ZeroPolicy

ALLOCATION_TYPES: tuple[str, ...] = ("grant", "org_funded")
ALLOCATION_STATUSES: tuple[str, ...] = ("active", "historical", "terminated")


def allocation_key(employee_id: Any, employment_id: Any, grant_item_id: Any, allocation_type: str) -> str:
    return f"{employee_id}:{employment_id}:{grant_item_id}:{allocation_type}"


def _employment_entry(employment: Employment) -> dict[str, Any]:
    # Snapshot tables are stored as JSON, so decimals and dates travel as text
    return {
        "employee_id": employment.employee_id,
        "pass_probation_salary": _text(employment.pass_probation_salary),
        "probation_salary": _text(employment.probation_salary),
        "pass_probation_date": employment.pass_probation_date.isoformat() if employment.pass_probation_date else None,
    }


def _text(value: Any) -> str | None:
    return None if value is None else str(value)


def _decimal(value: Any) -> Decimal | None:
    return None if value is None else Decimal(str(value))


class FundingAllocationLoader(EntityLoader):
    kind = "funding_allocations"
    title = "Funding allocation"
    contract = FUNDING_ALLOCATION_CONTRACT
    chunk_size = 50

    def prefetch(self, session: Session) -> LookupSnapshot:
        employments = {str(item.id): _employment_entry(item) for item in session.scalars(select(Employment))}
        grant_items = {str(pk): grant_id for pk, grant_id in session.execute(select(GrantItem.id, GrantItem.grant_id))}
        allocations = {
            allocation_key(row.employee_id, row.employment_id, row.grant_item_id, row.allocation_type): row.id
            for row in session.execute(
                select(
                    EmployeeFundingAllocation.id,
                    EmployeeFundingAllocation.employee_id,
                    EmployeeFundingAllocation.employment_id,
                    EmployeeFundingAllocation.grant_item_id,
                    EmployeeFundingAllocation.allocation_type,
                )
            )
        }
        return LookupSnapshot(
            kind=self.kind,
            tables={
                "employees": employee_ids(session),
                "active_employments": active_employments(session, self.context.today),
                "employments": employments,
                "grant_items": grant_items,
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
        check.values["employee_id"] = employee_id

        check.check(
            "employment_id", data.employment_id, NumberRange("Employment ID", minimum=Decimal(1), integer=True)
        )
        employment = self._employment(check, snapshot, employee_id)

        check.check(
            "grant_item_id",
            data.grant_item_id,
            NumberRange("Grant item ID", minimum=Decimal(1), integer=True),
            required=True,
            label="Grant item ID",
            column=col("grant_item_id"),
        )
        self.resolve(check, snapshot, "grant_item_id", "grant_items", "Grant item '{value}' not found in database")

        fte = check.check(
            "fte",
            data.fte,
            Percentage("FTE", zero_policy=self.zero_policy("fte", ZeroPolicy.ALLOW)),
            required=True,
            label="FTE",
            column=col("fte"),
        )
        check.check(
            "allocation_type",
            data.allocation_type if data.allocation_type is not None else "grant",
            OneOf("allocation_type", ALLOCATION_TYPES, threshold=2, column=col("allocation_type")),
        )
        check.check(
            "status",
            data.status if data.status is not None else "active",
            OneOf("status", ALLOCATION_STATUSES, threshold=2, column=col("status")),
        )
        salary_type = check.check(
            "salary_type",
            data.salary_type,
            OneOf("salary_type", SALARY_TYPES, threshold=3, column=col("salary_type")),
        )
        check.check(
            "start_date",
            data.start_date,
            DateValue("start_date", column=col("start_date")),
            required=True,
            label="Start date",
            column=col("start_date"),
        )
        check.check("end_date", data.end_date, DateValue("end_date", column=col("end_date")))
        check.check("allocated_amount", data.allocated_amount, NumberRange("Allocated amount", minimum=Decimal(0)))

        if employment is not None:
            pass_probation_date = employment.get("pass_probation_date")
            selection = select_base_salary(
                pass_probation_salary=_decimal(employment.get("pass_probation_salary")),
                probation_salary=_decimal(employment.get("probation_salary")),
                pass_probation_date=date.fromisoformat(pass_probation_date) if pass_probation_date else None,
                today=self.context.today,
            )
            if salary_type is None and "salary_type" not in {issue.field for issue in check.errors}:
                check.values["salary_type"] = selection.salary_type
            if check.values.get("allocated_amount") is None and data.allocated_amount is None and fte is not None:
                self._derive_amount(check, selection.amount, fte)
        return check

    def _employment(
        self, check: RowValidation, snapshot: LookupSnapshot, employee_id: Any
    ) -> Mapping[str, Any] | None:
        """Explicit employment id when given, otherwise the employee's active employment."""

        if employee_id is None:
            return None
        cell = cell_reference(self.column("staff_id"), check.row_number)
        staff_id = check.values.get("staff_id")
        employment_id = check.values.get("employment_id")
        if employment_id is not None:
            employment = snapshot.lookup("employments", employment_id)
            if employment is None or employment.get("employee_id") != employee_id:
                check.error(
                    "employment_id",
                    f"Employment ID '{employment_id}' not found or doesn't belong to employee '{staff_id}'"
                    f"{cell_reference(self.column('employment_id'), check.row_number)}",
                )
                return None
            return employment
        if "employment_id" in {issue.field for issue in check.errors}:
            return None
        employment_id = snapshot.lookup("active_employments", staff_id)
        if employment_id is None:
            check.error(
                "staff_id",
                f"No active employment found for staff_id '{staff_id}' and no employment_id provided{cell}",
            )
            return None
        check.values["employment_id"] = employment_id
        return snapshot.lookup("employments", employment_id)

    def _derive_amount(self, check: RowValidation, base_salary: Decimal | None, fte: Decimal) -> None:
        result = compute_allocated_amount(
            base_salary, fte, zero_policy=self.zero_policy("allocation_base_salary", ZeroPolicy.ERROR)
        )
        for warning in result.warnings:
            check.warn("allocated_amount", warning)
        if not result.valid:
            cell = cell_reference(self.column("allocated_amount"), check.row_number)
            check.error("allocated_amount", f"{result.error}{cell}")
            return
        check.values["allocated_amount"] = result.normalized_value

    def cross_field_rules(self) -> Sequence[CrossFieldRule]:
        return (
            DateOrderRule(
                start="start_date",
                end="end_date",
                message="End date must be after start date",
                columns=(self.column("start_date"), self.column("end_date")),
            ),
        )

    def duplicate_key(self, validation: RowValidation) -> DuplicateKey | None:
        values = validation.values
        parts = (values.get("employee_id"), values.get("employment_id"), values.get("grant_item_id"))
        allocation_type = values.get("allocation_type")
        if any(part is None for part in parts) or not allocation_type:
            return None
        return DuplicateKey.of(":".join(str(part) for part in parts), allocation_type)

    def duplicate_field(self) -> str:
        return "grant_item_id"

    def duplicate_message(self, key: DuplicateKey, source: DuplicateSource, row: int) -> str:
        _, employment_id, grant_item_id = key.scope.split(":")
        cell = cell_reference(self.column("grant_item_id"), row)
        return (
            f"Duplicate {key.identifier} allocation for employment {employment_id} "
            f"and grant item {grant_item_id} found in import file{cell}"
        )

    def compute_derived(self, candidate: CandidateRecord, snapshot: LookupSnapshot) -> dict[str, Any]:
        values = candidate.values
        record = {
            name: values.get(name)
            for name in (
                "employee_id",
                "employment_id",
                "grant_item_id",
                "fte",
                "allocation_type",
                "allocated_amount",
                "salary_type",
                "status",
                "start_date",
                "end_date",
            )
        }
        record.update(self.audit_fields())
        key = allocation_key(
            record["employee_id"], record["employment_id"], record["grant_item_id"], record["allocation_type"]
        )
        return {"allocation_id": snapshot.lookup("allocations", key), "record": record}

    def write(self, session: Session, candidates: Sequence[CandidateRecord], snapshot: LookupSnapshot) -> WriteCounts:
        created: list[EmployeeFundingAllocation] = []
        updated = 0
        for candidate in candidates:
            record = dict(candidate.payload["record"])
            allocation_id = candidate.payload["allocation_id"]
            existing = session.get(EmployeeFundingAllocation, allocation_id) if allocation_id is not None else None
            if existing is None:
                created.append(EmployeeFundingAllocation(**record))
                continue
            record.pop("created_by", None)
            for name, value in record.items():
                setattr(existing, name, value)
            updated += 1
        session.add_all(created)
        session.flush()
        return WriteCounts(created=len(created), updated=updated)


__all__ = ["ALLOCATION_STATUSES", "ALLOCATION_TYPES", "FundingAllocationLoader", "allocation_key"]
