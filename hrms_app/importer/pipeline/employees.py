"""Employee import: personal records plus up to two beneficiaries per row."""

from __future__ import annotations

import re
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrms_app.importer.contracts.employee import EMPLOYEE_CONTRACT
from hrms_app.models import Employee, EmployeeBeneficiary

from .cross_field import (
    CrossFieldRule,
    DateOrderRule,
    MatchingCompanionRule,
    NotInFutureRule,
    PairedPresenceRule,
    PhoneFormatRule,
    RequiresCompanionRule,
)
from .derived import parse_military_status
from .duplicates import DuplicateKey, DuplicateSource
from .issues import Severity, cell_reference
from .loader import CandidateRecord, EntityLoader, RowValidation, WriteCounts
from .lookups import LookupSnapshot
from .normalize import ID_TYPE_CODES, NormalizedRow
from .validators import BirthDate, DateValue, Length, OneOf, Pattern

ORGANIZATIONS: tuple[str, ...] = ("SMRU", "BHF")
EMPLOYEE_STATUSES: tuple[str, ...] = ("Expats (Local)", "Local ID Staff", "Local non ID Staff")
GENDERS: tuple[str, ...] = ("M", "F")
MARITAL_STATUSES: tuple[str, ...] = ("Single", "Married", "Divorced", "Widowed")

STAFF_ID_PATTERN = re.compile(r"^[A-Za-z0-9-]+$")

# Optional free-text columns: field -> (label, maximum length)
_TEXT_LIMITS: dict[str, tuple[str, int | None]] = {
    "initial": ("Initial", 10),
    "last_name": ("Last name", 255),
    "initial_th": ("Thai initial", 20),
    "first_name_th": ("Thai first name", 255),
    "last_name_th": ("Thai last name", 255),
    "nationality": ("Nationality", 100),
    "religion": ("Religion", 100),
    "id_number": ("Identification number", 50),
    "social_security_no": ("Social security number", 50),
    "tax_no": ("Tax number", 50),
    "driver_license": ("Driver license", 100),
    "bank_name": ("Bank name", 100),
    "bank_branch": ("Bank branch", 100),
    "bank_account_name": ("Bank account name", 100),
    "bank_account_no": ("Bank account number", 50),
    "mobile_no": ("Mobile phone", 50),
    "spouse_name": ("Spouse name", 200),
    "spouse_mobile_no": ("Spouse phone", 50),
    "emergency_contact_name": ("Emergency contact name", 100),
    "emergency_relationship": ("Emergency contact relationship", 100),
    "emergency_mobile_no": ("Emergency contact phone", 50),
    "father_name": ("Father name", 200),
    "father_occupation": ("Father occupation", 200),
    "father_mobile_no": ("Father phone", 50),
    "mother_name": ("Mother name", 200),
    "mother_occupation": ("Mother occupation", 200),
    "mother_mobile_no": ("Mother phone", 50),
    "kin_1_name": ("Beneficiary 1 name", 255),
    "kin_1_relationship": ("Beneficiary 1 relationship", 255),
    "kin_1_mobile": ("Beneficiary 1 phone", 50),
    "kin_2_name": ("Beneficiary 2 name", 255),
    "kin_2_relationship": ("Beneficiary 2 relationship", 255),
    "kin_2_mobile": ("Beneficiary 2 phone", 50),
    "military_status": ("Military status", 50),
    "remark": ("Remark", 255),
    "current_address": ("Current address", None),
    "permanent_address": ("Permanent address", None),
}

_PHONE_LABELS = {
    "mobile_no": "Mobile phone",
    "spouse_mobile_no": "Spouse phone",
    "emergency_mobile_no": "Emergency contact phone",
    "father_mobile_no": "Father phone",
    "mother_mobile_no": "Mother phone",
    "kin_1_mobile": "Beneficiary 1 phone",
    "kin_2_mobile": "Beneficiary 2 phone",
}

# Template field -> Employee column
_EMPLOYEE_COLUMNS = {
    "organization": "organization",
    "staff_id": "staff_id",
    "initial": "initial_en",
    "first_name": "first_name_en",
    "last_name": "last_name_en",
    "initial_th": "initial_th",
    "first_name_th": "first_name_th",
    "last_name_th": "last_name_th",
    "gender": "gender",
    "date_of_birth": "date_of_birth",
    "status": "status",
    "nationality": "nationality",
    "religion": "religion",
    "id_type": "identification_type",
    "id_number": "identification_number",
    "id_issue_date": "identification_issue_date",
    "id_expiry_date": "identification_expiry_date",
    "social_security_no": "social_security_number",
    "tax_no": "tax_number",
    "driver_license": "driver_license_number",
    "bank_name": "bank_name",
    "bank_branch": "bank_branch",
    "bank_account_name": "bank_account_name",
    "bank_account_no": "bank_account_number",
    "mobile_no": "mobile_phone",
    "marital_status": "marital_status",
    "spouse_name": "spouse_name",
    "spouse_mobile_no": "spouse_phone_number",
    "emergency_contact_name": "emergency_contact_person_name",
    "emergency_relationship": "emergency_contact_person_relationship",
    "emergency_mobile_no": "emergency_contact_person_phone",
    "father_name": "father_name",
    "father_occupation": "father_occupation",
    "father_mobile_no": "father_phone_number",
    "mother_name": "mother_name",
    "mother_occupation": "mother_occupation",
    "mother_mobile_no": "mother_phone_number",
    "remark": "remark",
    "current_address": "current_address",
    "permanent_address": "permanent_address",
}


class EmployeeLoader(EntityLoader):
    kind = "employees"
    title = "Employee"
    contract = EMPLOYEE_CONTRACT
    chunk_size = 40

    def prefetch(self, session: Session) -> LookupSnapshot:
        rows = session.execute(select(Employee.organization, Employee.staff_id)).all()
        existing = tuple(DuplicateKey.of(org, staff_id).encode() for org, staff_id in rows)
        return LookupSnapshot(kind=self.kind, existing_keys=existing)

    def validate_row(self, row: NormalizedRow, snapshot: LookupSnapshot) -> RowValidation:
        data = row.row
        col = self.column
        check = RowValidation(row_number=row.row_number)

        check.check(
            "organization",
            data.organization,
            OneOf("organization", ORGANIZATIONS, threshold=2, column=col("organization")),
            required=True,
            label="Organization",
            column=col("organization"),
        )
        check.check(
            "staff_id",
            data.staff_id,
            Length("Staff ID", 3, 50, column=col("staff_id")),
            Pattern(
                "Staff ID",
                STAFF_ID_PATTERN,
                "contains invalid characters. Only letters, numbers, dash allowed",
                column=col("staff_id"),
            ),
            required=True,
            label="Staff ID",
            column=col("staff_id"),
        )
        check.check(
            "first_name",
            data.first_name,
            Length("First name", 2, 255, column=col("first_name")),
            required=True,
            label="First name",
            column=col("first_name"),
        )
        check.check(
            "gender",
            str(data.gender).upper() if data.gender is not None else None,
            OneOf("gender", GENDERS, threshold=0, column=col("gender")),
            required=True,
            label="Gender",
            column=col("gender"),
        )
        check.check(
            "date_of_birth",
            data.date_of_birth,
            BirthDate(today=self.context.today, column=col("date_of_birth")),
            required=True,
            label="Date of birth",
            column=col("date_of_birth"),
        )
        check.check(
            "status",
            data.status,
            OneOf("status", EMPLOYEE_STATUSES, threshold=3, column=col("status")),
        )
        check.check(
            "marital_status",
            data.marital_status,
            OneOf("marital status", MARITAL_STATUSES, threshold=2, column=col("marital_status")),
        )
        check.check(
            "id_type",
            data.id_type,
            OneOf("identification type", ID_TYPE_CODES, threshold=3, column=col("id_type")),
        )
        for name in ("id_issue_date", "id_expiry_date"):
            check.check(name, getattr(data, name), DateValue(name, column=col(name)))
        for name, (label, maximum) in _TEXT_LIMITS.items():
            check.check(name, getattr(data, name), Length(label, maximum=maximum, column=col(name)))
        return check

    def cross_field_rules(self) -> Sequence[CrossFieldRule]:
        col = self.column
        return (
            MatchingCompanionRule(
                field_name="marital_status",
                expected="Married",
                companion="spouse_name",
                label="Marital status",
                companion_label="spouse name",
                remove_hint="spouse information",
                columns=(col("marital_status"), col("spouse_name")),
            ),
            RequiresCompanionRule(
                field_name="spouse_name",
                companion="spouse_mobile_no",
                message="Spouse name provided without spouse mobile number",
                severity=Severity.WARNING,
                columns=(col("spouse_name"), col("spouse_mobile_no")),
            ),
            PairedPresenceRule(
                first="id_type",
                second="id_number",
                first_label="Identification type",
                second_label="Identification number",
                columns=(col("id_type"), col("id_number")),
            ),
            DateOrderRule(
                start="id_issue_date",
                end="id_expiry_date",
                message="ID expiry date must be after issue date",
                columns=(col("id_issue_date"), col("id_expiry_date")),
            ),
            NotInFutureRule(field_name="id_issue_date", label="ID issue date", column=col("id_issue_date")),
            RequiresCompanionRule(
                field_name="kin_1_name",
                companion="kin_1_relationship",
                message="Beneficiary 1 name provided but relationship is missing",
                columns=(col("kin_1_name"), col("kin_1_relationship")),
            ),
            RequiresCompanionRule(
                field_name="kin_2_name",
                companion="kin_2_relationship",
                message="Beneficiary 2 name provided but relationship is missing",
                columns=(col("kin_2_name"), col("kin_2_relationship")),
            ),
            PhoneFormatRule(_PHONE_LABELS),
        )

    def duplicate_key(self, validation: RowValidation) -> DuplicateKey | None:
        organization = validation.values.get("organization")
        staff_id = validation.values.get("staff_id")
        if not organization or not staff_id:
            return None
        return DuplicateKey.of(organization, staff_id)

    def duplicate_message(self, key: DuplicateKey, source: DuplicateSource, row: int) -> str:
        cell = cell_reference(self.column("staff_id"), row)
        if source is DuplicateSource.FILE:
            return (
                f"Duplicate staff_id '{key.identifier}' found in import file "
                f"for organization '{key.scope}'{cell}"
            )
        return f"Staff ID '{key.identifier}' already exists in database for organization '{key.scope}'{cell}"

    def compute_derived(self, candidate: CandidateRecord, snapshot: LookupSnapshot) -> dict[str, Any]:
        values = candidate.values
        employee = {column: values.get(name) for name, column in _EMPLOYEE_COLUMNS.items()}
        employee["military_status"] = parse_military_status(values.get("military_status"))
        employee.update(self.audit_fields())

        beneficiaries = []
        for prefix in ("kin_1", "kin_2"):
            name = values.get(f"{prefix}_name")
            if not name:
                continue
            beneficiaries.append(
                {
                    "beneficiary_name": name,
                    "beneficiary_relationship": values.get(f"{prefix}_relationship"),
                    "phone_number": values.get(f"{prefix}_mobile"),
                    **self.audit_fields(),
                }
            )
        return {"employee": employee, "beneficiaries": beneficiaries}

    def write(self, session: Session, candidates: Sequence[CandidateRecord], snapshot: LookupSnapshot) -> WriteCounts:
        employees = []
        for candidate in candidates:
            employee = Employee(**candidate.payload["employee"])
            employee.beneficiaries = [EmployeeBeneficiary(**item) for item in candidate.payload["beneficiaries"]]
            employees.append(employee)
        session.add_all(employees)
        session.flush()
        return WriteCounts(created=len(employees))
