"""Employment import: creates an employee's employment or updates the active one."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from hrms_app.importer.contracts.employment import EMPLOYMENT_CONTRACT
from hrms_app.models import Department, Employee, Employment, Position, SectionDepartment, Site

from .cross_field import CrossFieldRule, DateOrderRule
from .derived import map_pay_method, parse_flag
from .duplicates import DuplicateKey, DuplicateSource
from .issues import cell_reference
from .loader import CandidateRecord, EntityLoader, RowValidation, WriteCounts
from .lookups import LookupSnapshot
from .normalize import NormalizedRow
from .validators import DateValue, Length, NumberRange, OneOf, ZeroPolicy

EMPLOYMENT_TYPES: tuple[str, ...] = ("Full-time", "Part-time", "Contract", "Temporary")
DEFAULT_EMPLOYMENT_TYPE = "Full-time"

# Flag column -> value used when the cell is blank
FLAG_DEFAULTS: dict[str, bool] = {
    "health_welfare": False,
    "pvd": False,
    "saving_fund": False,
    "status": True,
}

_SCOPE = "EMPLOYMENT"


def active_employments(session: Session, today) -> dict[str, int]:
    """staff_id -> id of the employment that is active on ``today``."""

    statement = (
        select(Employee.staff_id, Employment.id)
        .join(Employment, Employment.employee_id == Employee.id)
        .where(Employment.status.is_(True))
        .where(or_(Employment.end_date.is_(None), Employment.end_date >= today))
        .order_by(Employment.id)
    )
    return {staff_id: employment_id for staff_id, employment_id in session.execute(statement).all()}


def employee_ids(session: Session) -> dict[str, int]:
    return {staff_id: pk for staff_id, pk in session.execute(select(Employee.staff_id, Employee.id)).all()}


class EmploymentLoader(EntityLoader):
    kind = "employments"
    title = "Employment"
    contract = EMPLOYMENT_CONTRACT
    chunk_size = 40

    def prefetch(self, session: Session) -> LookupSnapshot:
        tables = {
            "employees": employee_ids(session),
            "active_employments": active_employments(session, self.context.today),
            "sites": {code: pk for code, pk in session.execute(select(Site.code, Site.id)).all()},
            "departments": {name: pk for name, pk in session.execute(select(Department.name, Department.id)).all()},
            "section_departments": {
                name: pk for name, pk in session.execute(select(SectionDepartment.name, SectionDepartment.id)).all()
            },
            "positions": {title: pk for title, pk in session.execute(select(Position.title, Position.id)).all()},
        }
        return LookupSnapshot(kind=self.kind, tables=tables)

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
        check.values["employee_id"] = self.resolve(
            check, snapshot, "staff_id", "employees", "Employee with staff_id '{value}' not found in database"
        )

        employment_type = data.employment_type if data.employment_type is not None else DEFAULT_EMPLOYMENT_TYPE
        check.check(
            "employment_type",
            employment_type,
            OneOf("employment type", EMPLOYMENT_TYPES, threshold=3, column=col("employment_type")),
        )

        check.check(
            "start_date",
            data.start_date,
            DateValue("start_date", column=col("start_date")),
            required=True,
            label="Start date",
            column=col("start_date"),
        )
        for name in ("pass_probation_date", "end_date"):
            check.check(name, getattr(data, name), DateValue(name, column=col(name)))

        check.check(
            "pass_probation_salary",
            data.pass_probation_salary,
            NumberRange(
                "Pass probation salary",
                minimum=Decimal(0),
                zero_policy=self.zero_policy("pass_probation_salary", ZeroPolicy.ERROR),
            ),
            required=True,
            label="Pass probation salary",
            column=col("pass_probation_salary"),
        )
        check.check(
            "probation_salary",
            data.probation_salary,
            NumberRange("Probation salary", minimum=Decimal(0)),
        )

        for name in ("site_code", "department", "section_department", "position"):
            check.check(name, getattr(data, name), Length(name.replace("_", " ").capitalize(), maximum=255))
        check.values["site_id"] = self.resolve(
            check, snapshot, "site_code", "sites", "Site '{value}' not found in database"
        )
        check.values["department_id"] = self.resolve(
            check, snapshot, "department", "departments", "Department '{value}' not found in database"
        )
        check.values["section_department_id"] = self.resolve(
            check,
            snapshot,
            "section_department",
            "section_departments",
            "Section department '{value}' not found in database",
        )
        check.values["position_id"] = self.resolve(
            check, snapshot, "position", "positions", "Position '{value}' not found in database"
        )

        check.values["pay_method"] = map_pay_method(data.pay_method)

        for name, default in FLAG_DEFAULTS.items():
            result = parse_flag(getattr(data, name), label=name, default=default)
            if result.valid:
                check.values[name] = result.normalized_value
            else:
                check.error(name, f"{result.error}{cell_reference(col(name), row.row_number)}")
        return check

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
        staff_id = validation.values.get("staff_id")
        if not staff_id:
            return None
        return DuplicateKey.of(_SCOPE, staff_id)

    def duplicate_message(self, key: DuplicateKey, source: DuplicateSource, row: int) -> str:
        cell = cell_reference(self.column("staff_id"), row)
        return f"Duplicate staff_id '{key.identifier}' found in import file{cell}"

    def compute_derived(self, candidate: CandidateRecord, snapshot: LookupSnapshot) -> dict[str, Any]:
        values = candidate.values
        record = {
            name: values.get(name)
            for name in (
                "employee_id",
                "employment_type",
                "start_date",
                "end_date",
                "pass_probation_date",
                "pay_method",
                "site_id",
                "department_id",
                "section_department_id",
                "position_id",
                "pass_probation_salary",
                "probation_salary",
                *FLAG_DEFAULTS,
            )
        }
        record.update(self.audit_fields())
        return {
            "employment_id": snapshot.lookup("active_employments", values.get("staff_id")),
            "record": record,
        }

    def write(self, session: Session, candidates: Sequence[CandidateRecord], snapshot: LookupSnapshot) -> WriteCounts:
        created: list[Employment] = []
        updated = 0
        for candidate in candidates:
            record = dict(candidate.payload["record"])
            employment_id = candidate.payload["employment_id"]
            existing = session.get(Employment, employment_id) if employment_id is not None else None
            if existing is None:
                created.append(Employment(**record))
                continue
            record.pop("created_by", None)
            for name, value in record.items():
                setattr(existing, name, value)
            updated += 1
        session.add_all(created)
        session.flush()
        return WriteCounts(created=len(created), updated=updated)


__all__ = ["DEFAULT_EMPLOYMENT_TYPE", "EMPLOYMENT_TYPES", "EmploymentLoader", "active_employments", "employee_ids"]
