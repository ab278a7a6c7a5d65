from __future__ import annotations

from datetime import date

from sqlalchemy import select

from hrms_app.importer.pipeline.employees import EmployeeLoader
from hrms_app.models import Employee, db


def _messages(result):
    return [issue.render() for issue in result.errors]


def test_employee_row_is_persisted_with_audit_fields(run_chunk, employee_row):
    row = employee_row(
        staff_id="EMP100",
        date_of_birth="33000",
        id_type="Thai ID",
        id_number="1-2345-67890-12-3",
        military_status="Exempt",
        kin_1_name="Saw Htoo",
        kin_1_relationship="Brother",
        kin_1_mobile="0812345678",
    )

    result = run_chunk(EmployeeLoader, [row], start_row=3)

    assert result.committed, _messages(result)
    employee = db.session.execute(select(Employee).filter_by(staff_id="EMP100")).scalar_one()
    assert employee.organization == "SMRU"
    assert employee.first_name_en == "Naw"
    assert employee.date_of_birth == date(1990, 5, 7)
    assert employee.identification_type == "ThaiID"
    assert employee.military_status is True
    assert employee.created_by == "importer-test"
    assert [b.beneficiary_name for b in employee.beneficiaries] == ["Saw Htoo"]
    assert employee.beneficiaries[0].phone_number == "0812345678"


def test_required_fields_are_reported_with_cells(run_chunk, employee_row):
    row = employee_row(organization="", first_name="", date_of_birth="")

    result = run_chunk(EmployeeLoader, [row], start_row=3)

    assert "Row 3 Column organization: Organization is required (Cell A3)" in _messages(result)
    assert "Row 3 Column first_name: First name is required (Cell D3)" in _messages(result)
    assert "Row 3 Column date_of_birth: Date of birth is required (Cell J3)" in _messages(result)


def test_staff_id_pattern(run_chunk, employee_row):
    result = run_chunk(EmployeeLoader, [employee_row(staff_id="EMP#1")], start_row=3)

    assert _messages(result) == [
        "Row 3 Column staff_id: Staff ID contains invalid characters. "
        "Only letters, numbers, dash allowed (Cell B3)"
    ]


def test_status_is_optional_but_checked(run_chunk, employee_row):
    assert run_chunk(EmployeeLoader, [employee_row(staff_id="EMP101", status="")], start_row=3).committed

    result = run_chunk(EmployeeLoader, [employee_row(staff_id="EMP102", status="Local ID Staf")], start_row=4)
    assert _messages(result) == [
        "Row 4 Column status: Invalid status 'Local ID Staf'. Did you mean 'Local ID Staff'? (Cell L4)"
    ]


def test_married_without_spouse(run_chunk, employee_row):
    result = run_chunk(EmployeeLoader, [employee_row(marital_status="Married")], start_row=3)

    assert _messages(result) == [
        "Row 3 Column marital_status, spouse_name: "
        "Marital status is 'Married' but spouse name is missing (Cells AA3, AB3)"
    ]


def test_spouse_without_mobile_is_only_a_warning(run_chunk, employee_row):
    row = employee_row(marital_status="Married", spouse_name="Mya")

    result = run_chunk(EmployeeLoader, [row], start_row=3)

    assert result.committed
    assert [issue.message for issue in result.warnings] == [
        "Spouse name provided without spouse mobile number (Cells AB3, AC3)"
    ]


def test_identification_rules(run_chunk, employee_row):
    rows = [
        employee_row(staff_id="EMP110", id_type="Passport"),
        employee_row(staff_id="EMP111", id_type="Passport", id_number="P1", id_issue_date="2030-01-01"),
        employee_row(
            staff_id="EMP112",
            id_type="Passport",
            id_number="P2",
            id_issue_date="2024-01-01",
            id_expiry_date="2023-01-01",
        ),
    ]

    messages = _messages(run_chunk(EmployeeLoader, rows, start_row=3))

    assert (
        "Row 3 Column id_type, id_number: Identification type 'Passport' provided but "
        "identification number is missing (Cells O3, P3)"
    ) in messages
    assert "Row 4 Column id_issue_date: ID issue date cannot be in the future (Cell Q4)" in messages
    assert (
        "Row 5 Column id_issue_date, id_expiry_date: ID expiry date must be after issue date (Cells Q5, R5)"
    ) in messages


def test_beneficiary_needs_relationship(run_chunk, employee_row):
    result = run_chunk(EmployeeLoader, [employee_row(kin_2_name="Paw Say")], start_row=3)

    assert result.errors[0].message.startswith("Beneficiary 2 name provided but relationship is missing")


def test_age_is_computed_against_import_clock(run_chunk, employee_row):
    # Turns 18 on 2025-06-16, one day after the frozen import date
    result = run_chunk(EmployeeLoader, [employee_row(date_of_birth="2007-06-16")], start_row=3)

    assert _messages(result) == [
        "Row 3 Column date_of_birth: Date of birth '2007-06-16' indicates age under 18 (Cell J3)"
    ]
