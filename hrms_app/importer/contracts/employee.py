"""Employee import template contract.

Row 1 of the template holds the headers and row 2 a hint line describing each
column, so employee data starts on spreadsheet row 3. Column letters follow the
template order and are used in cell references such as ``(Cell J5)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

from .fields import FieldKind, FieldSpec, ImportContract, with_template_columns


@dataclass(frozen=True)
class EmployeeRow:
    organization: Any = None
    staff_id: Any = None
    initial: Any = None
    first_name: Any = None
    last_name: Any = None
    initial_th: Any = None
    first_name_th: Any = None
    last_name_th: Any = None
    gender: Any = None
    date_of_birth: Any = None
    age: Any = None
    status: Any = None
    nationality: Any = None
    religion: Any = None
    id_type: Any = None
    id_number: Any = None
    id_issue_date: Any = None
    id_expiry_date: Any = None
    social_security_no: Any = None
    tax_no: Any = None
    driver_license: Any = None
    bank_name: Any = None
    bank_branch: Any = None
    bank_account_name: Any = None
    bank_account_no: Any = None
    mobile_no: Any = None
    marital_status: Any = None
    spouse_name: Any = None
    spouse_mobile_no: Any = None
    emergency_contact_name: Any = None
    emergency_relationship: Any = None
    emergency_mobile_no: Any = None
    father_name: Any = None
    father_occupation: Any = None
    father_mobile_no: Any = None
    mother_name: Any = None
    mother_occupation: Any = None
    mother_mobile_no: Any = None
    kin_1_name: Any = None
    kin_1_relationship: Any = None
    kin_1_mobile: Any = None
    kin_2_name: Any = None
    kin_2_relationship: Any = None
    kin_2_mobile: Any = None
    military_status: Any = None
    remark: Any = None
    current_address: Any = None
    permanent_address: Any = None


EMPLOYEE_FIELDS: Tuple[FieldSpec, ...] = with_template_columns(
    (
        FieldSpec("organization", "Organization code (SMRU or BHF).", required=True, aliases=("org", "subsidiary")),
        FieldSpec("staff_id", "Staff identifier, unique per organization.", required=True, aliases=("staff_no",)),
        FieldSpec("initial", "English title or initial (Mr, Ms).", aliases=("initial_en",)),
        FieldSpec("first_name", "English given name.", required=True, aliases=("first_name_en",)),
        FieldSpec("last_name", "English family name.", aliases=("last_name_en",)),
        FieldSpec("initial_th", "Thai title or initial."),
        FieldSpec("first_name_th", "Thai given name."),
        FieldSpec("last_name_th", "Thai family name."),
        FieldSpec("gender", "M or F.", required=True, aliases=("sex",)),
        FieldSpec("date_of_birth", "Date of birth.", FieldKind.DATE, required=True, aliases=("dob", "birth_date")),
        FieldSpec("age", "Formula column in the template; ignored."),
        FieldSpec("status", "Employee status.", aliases=("employee_status",)),
        FieldSpec("nationality", "Nationality."),
        FieldSpec("religion", "Religion."),
        FieldSpec("id_type", "Identification document type.", FieldKind.ID_TYPE, aliases=("identification_type",)),
        FieldSpec("id_number", "Identification document number.", aliases=("identification_number",)),
        FieldSpec("id_issue_date", "Identification issue date.", FieldKind.DATE),
        FieldSpec("id_expiry_date", "Identification expiry date.", FieldKind.DATE),
        FieldSpec("social_security_no", "Social security number.", aliases=("social_security_number",)),
        FieldSpec("tax_no", "Tax number.", aliases=("tax_number",)),
        FieldSpec("driver_license", "Driver license number.", aliases=("driver_license_number",)),
        FieldSpec("bank_name", "Bank name."),
        FieldSpec("bank_branch", "Bank branch."),
        FieldSpec("bank_account_name", "Bank account holder."),
        FieldSpec("bank_account_no", "Bank account number.", aliases=("bank_account_number",)),
        FieldSpec("mobile_no", "Mobile phone.", aliases=("mobile_phone", "mobile")),
        FieldSpec("marital_status", "Single, Married, Divorced or Widowed."),
        FieldSpec("spouse_name", "Spouse full name."),
        FieldSpec("spouse_mobile_no", "Spouse phone.", aliases=("spouse_phone_number",)),
        FieldSpec("emergency_contact_name", "Emergency contact person."),
        FieldSpec("emergency_relationship", "Emergency contact relationship.", aliases=("relationship",)),
        FieldSpec("emergency_mobile_no", "Emergency contact phone."),
        FieldSpec("father_name", "Father name."),
        FieldSpec("father_occupation", "Father occupation."),
        FieldSpec("father_mobile_no", "Father phone."),
        FieldSpec("mother_name", "Mother name."),
        FieldSpec("mother_occupation", "Mother occupation."),
        FieldSpec("mother_mobile_no", "Mother phone."),
        FieldSpec("kin_1_name", "Beneficiary 1 name."),
        FieldSpec("kin_1_relationship", "Beneficiary 1 relationship."),
        FieldSpec("kin_1_mobile", "Beneficiary 1 phone."),
        FieldSpec("kin_2_name", "Beneficiary 2 name."),
        FieldSpec("kin_2_relationship", "Beneficiary 2 relationship."),
        FieldSpec("kin_2_mobile", "Beneficiary 2 phone."),
        FieldSpec("military_status", "Completed, Exempt or N/A."),
        FieldSpec("remark", "Free-text remark."),
        FieldSpec("current_address", "Current address."),
        FieldSpec("permanent_address", "Permanent address."),
    )
)

EMPLOYEE_CONTRACT: ImportContract[EmployeeRow] = ImportContract(
    kind="employees",
    fields=EMPLOYEE_FIELDS,
    row_type=EmployeeRow,
    data_start_row=3,
)
