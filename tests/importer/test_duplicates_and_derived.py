from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from hrms_app.importer.pipeline.derived import (
    PASS_PROBATION_SALARY,
    PROBATION_SALARY,
    compute_allocated_amount,
    map_pay_method,
    parse_flag,
    parse_military_status,
    round_money,
    select_base_salary,
)
from hrms_app.importer.pipeline.duplicates import DuplicateKey, DuplicateSource, DuplicateTracker
from hrms_app.importer.pipeline.lookups import LookupSnapshot
from hrms_app.importer.pipeline.validators import ZeroPolicy

TODAY = date(2025, 6, 15)


def test_duplicate_key_normalizes_scope():
    key = DuplicateKey.of(" smru ", " EMP001 ")
    assert key == DuplicateKey(scope="SMRU", identifier="EMP001")
    assert key.encode() == "SMRU|EMP001"
    assert DuplicateKey.decode("SMRU|EMP|001") == DuplicateKey(scope="SMRU", identifier="EMP|001")


def test_tracker_checks_file_before_store():
    key = DuplicateKey.of("SMRU", "EMP001")
    tracker = DuplicateTracker(seen=[key.encode()], existing=[key.encode()])
    assert tracker.check(key) is DuplicateSource.FILE

    store_only = DuplicateTracker(existing=[key.encode()])
    assert store_only.check(key) is DuplicateSource.STORE
    assert store_only.check(DuplicateKey.of("BHF", "EMP001")) is None


def test_tracker_pending_keys_block_later_rows_in_same_chunk():
    tracker = DuplicateTracker()
    key = DuplicateKey.of("SMRU", "EMP002")
    tracker.accept(key)
    tracker.accept(key)

    assert tracker.check(key) is DuplicateSource.FILE
    assert tracker.pending == ["SMRU|EMP002"]


def test_lookup_snapshot_round_trips_through_json_shape():
    snapshot = LookupSnapshot(kind="employments", tables={"sites": {"MRM": 4}}, existing_keys=("SMRU|EMP1",))
    restored = LookupSnapshot.from_dict(snapshot.to_dict())

    assert restored == snapshot
    assert restored.lookup("sites", "MRM") == 4
    assert restored.lookup("sites", None) is None
    assert restored.lookup("positions", "Medic") is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (Decimal("0.005"), Decimal("0.01")),
        (Decimal("-0.005"), Decimal("-0.01")),
        (Decimal("10.124"), Decimal("10.12")),
        (Decimal("10.125"), Decimal("10.13")),
    ],
)
def test_round_money_half_up(value, expected):
    assert round_money(value) == expected


def test_select_base_salary_prefers_probation_salary_during_probation():
    during = select_base_salary(
        pass_probation_salary=Decimal("30000"),
        probation_salary=Decimal("25000"),
        pass_probation_date=date(2025, 9, 1),
        today=TODAY,
    )
    assert during.amount == Decimal("25000")
    assert during.salary_type == PROBATION_SALARY

    after = select_base_salary(
        pass_probation_salary=Decimal("30000"),
        probation_salary=Decimal("25000"),
        pass_probation_date=TODAY,
        today=TODAY,
    )
    assert after.amount == Decimal("30000")
    assert after.salary_type == PASS_PROBATION_SALARY

    no_probation_salary = select_base_salary(
        pass_probation_salary=Decimal("30000"),
        probation_salary=None,
        pass_probation_date=date(2025, 9, 1),
        today=TODAY,
    )
    assert no_probation_salary.salary_type == PASS_PROBATION_SALARY


def test_compute_allocated_amount():
    assert compute_allocated_amount(Decimal("30000"), Decimal("0.333")).normalized_value == Decimal("9990.00")
    assert compute_allocated_amount(Decimal("1000.01"), Decimal("0.5")).normalized_value == Decimal("500.01")
    assert compute_allocated_amount(None, Decimal("1")).valid is False
    assert compute_allocated_amount(Decimal("-1"), Decimal("1")).valid is False

    zero_error = compute_allocated_amount(Decimal("0"), Decimal("1"))
    assert zero_error.error == "Cannot compute allocated_amount: base salary is zero"

    zero_warn = compute_allocated_amount(Decimal("0"), Decimal("1"), zero_policy=ZeroPolicy.WARN)
    assert zero_warn.valid is True
    assert zero_warn.normalized_value == Decimal("0.00")
    assert zero_warn.warnings


def test_parse_flags_and_military_status():
    assert parse_flag("", label="pvd", default=False).normalized_value is False
    assert parse_flag("Yes", label="pvd", default=False).normalized_value is True
    assert parse_flag("0", label="pvd", default=True).normalized_value is False
    assert parse_flag("maybe", label="pvd", default=False).error == (
        "Invalid pvd 'maybe'. Use yes/no, true/false or 1/0"
    )

    assert parse_military_status("Completed") is True
    assert parse_military_status("N/A") is False
    assert parse_military_status("pending") is None
    assert parse_military_status(None) is None


def test_map_pay_method():
    assert map_pay_method("bank transfer") == "Bank Transfer"
    assert map_pay_method("CASH") == "Cash"
    assert map_pay_method("check") == "Cheque"
    assert map_pay_method("Voucher") == "Voucher"
    assert map_pay_method("") is None
