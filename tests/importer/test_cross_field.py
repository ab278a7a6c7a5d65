from __future__ import annotations

from datetime import date

from hrms_app.importer.pipeline.cross_field import (
    DateOrderRule,
    MatchingCompanionRule,
    NotInFutureRule,
    PairedPresenceRule,
    PhoneFormatRule,
    RequiresCompanionRule,
    evaluate_cross_field,
)
from hrms_app.importer.pipeline.issues import Severity

TODAY = date(2025, 6, 15)


def _spouse_rule():
    return MatchingCompanionRule(
        field_name="marital_status",
        expected="Married",
        companion="spouse_name",
        label="Marital status",
        companion_label="spouse name",
        columns=("AA", "AB"),
    )


def test_married_without_spouse_is_an_error():
    result = evaluate_cross_field([_spouse_rule()], {"marital_status": "married", "spouse_name": ""}, 4, TODAY)
    assert result.valid is False
    assert result.errors[0].message == "Marital status is 'Married' but spouse name is missing (Cells AA4, AB4)"
    assert result.errors[0].field == "marital_status, spouse_name"


def test_spouse_with_other_status_suggests_fix():
    result = evaluate_cross_field([_spouse_rule()], {"marital_status": "Single", "spouse_name": "Mya"}, 4, TODAY)
    assert result.errors[0].message == (
        "Spouse name provided but marital status is 'Single'. "
        "Change to 'Married' or remove spouse name (Cells AA4, AB4)"
    )


def test_spouse_rule_passes_consistent_rows():
    assert evaluate_cross_field([_spouse_rule()], {"marital_status": "Married", "spouse_name": "Mya"}, 4, TODAY).valid
    assert evaluate_cross_field([_spouse_rule()], {"marital_status": "Single"}, 4, TODAY).valid


def test_paired_presence_rule():
    rule = PairedPresenceRule(
        first="id_type", second="id_number", first_label="ID type", second_label="ID number", columns=("O", "P")
    )
    missing_number = evaluate_cross_field([rule], {"id_type": "Passport"}, 3, TODAY)
    assert missing_number.errors[0].message == "ID type 'Passport' provided but id number is missing (Cells O3, P3)"

    missing_type = evaluate_cross_field([rule], {"id_number": "AB123"}, 3, TODAY)
    assert missing_type.errors[0].message == "ID number provided but id type is missing (Cells O3, P3)"
    assert evaluate_cross_field([rule], {}, 3, TODAY).valid


def test_requires_companion_rule_can_be_a_warning():
    rule = RequiresCompanionRule(
        field_name="kin_1_name",
        companion="kin_1_relationship",
        message="Beneficiary relationship is missing",
        severity=Severity.WARNING,
    )
    result = evaluate_cross_field([rule], {"kin_1_name": "Saw"}, 5, TODAY)
    assert result.valid is True
    assert result.warnings[0].message == "Beneficiary relationship is missing"


def test_date_order_rule_ignores_unparseable_dates():
    rule = DateOrderRule(start="id_issue_date", end="id_expiry_date", message="ID expiry must be after issue date")
    bad = evaluate_cross_field([rule], {"id_issue_date": "2024-05-01", "id_expiry_date": "2024-05-01"}, 3, TODAY)
    assert bad.errors[0].message == "ID expiry must be after issue date"

    assert evaluate_cross_field([rule], {"id_issue_date": "2024-05-01", "id_expiry_date": "soon"}, 3, TODAY).valid
    assert evaluate_cross_field([rule], {"id_issue_date": "2024-05-01", "id_expiry_date": "2030-05-01"}, 3, TODAY).valid


def test_not_in_future_rule():
    rule = NotInFutureRule(field_name="id_issue_date", label="ID issue date", column="Q")
    result = evaluate_cross_field([rule], {"id_issue_date": "2025-06-16"}, 3, TODAY)
    assert result.errors[0].message == "ID issue date cannot be in the future (Cell Q3)"
    assert evaluate_cross_field([rule], {"id_issue_date": "2025-06-15"}, 3, TODAY).valid


def test_phone_format_rule_only_warns():
    rule = PhoneFormatRule({"mobile_no": "mobile_no"})
    result = evaluate_cross_field([rule], {"mobile_no": "call me"}, 3, TODAY)
    assert result.valid is True
    assert result.warnings[0].message == "Phone number format unusual 'call me'"
    assert not evaluate_cross_field([rule], {"mobile_no": "+66 81-234-5678"}, 3, TODAY).warnings
