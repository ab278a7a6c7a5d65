from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from hrms_app.importer.contracts.employee import EMPLOYEE_CONTRACT
from hrms_app.importer.pipeline.normalize import (
    RowNormalizer,
    date_to_excel_serial,
    excel_serial_to_date,
    normalize_date,
    normalize_id_type,
    normalize_integer,
    normalize_money,
    normalize_percentage,
    normalize_text,
)


@pytest.mark.parametrize(
    ("serial", "expected"),
    [
        (1, date(1900, 1, 1)),
        (59, date(1900, 2, 28)),
        (61, date(1900, 3, 1)),
        (45292, date(2024, 1, 1)),
        (2958465, date(9999, 12, 31)),
    ],
)
def test_excel_serial_to_date(serial, expected):
    assert excel_serial_to_date(serial) == expected


def test_excel_serial_rejects_fictitious_leap_day_and_out_of_range():
    with pytest.raises(ValueError):
        excel_serial_to_date(60)
    with pytest.raises(ValueError):
        excel_serial_to_date(0)
    with pytest.raises(ValueError):
        excel_serial_to_date(2958466)


def test_date_to_excel_serial_inverts_conversion():
    assert date_to_excel_serial(date(2024, 1, 1)) == 45292
    assert date_to_excel_serial(date(1900, 2, 28)) == 59


def test_normalize_date_converts_serials_and_passes_text_through():
    assert normalize_date("45292") == "2024-01-01"
    assert normalize_date("45292.75") == "2024-01-01"
    assert normalize_date(" 2024-02-01 ") == "2024-02-01"
    assert normalize_date("not a date") == "not a date"
    assert normalize_date("60") == "60"
    assert normalize_date("") is None
    assert normalize_date(date(2024, 5, 1)) == "2024-05-01"


@pytest.mark.parametrize("raw", ["75", "75%", "0.75", " 75 % "])
def test_normalize_percentage_yields_fraction(raw):
    assert normalize_percentage(raw) == Decimal("0.75")


def test_normalize_percentage_edges():
    assert normalize_percentage("100") == Decimal("1")
    assert normalize_percentage("1") == Decimal("1")
    assert normalize_percentage("150") == Decimal("150")
    assert normalize_percentage("-5") == Decimal("-5")
    assert normalize_percentage("abc") == "abc"
    assert normalize_percentage(None) is None


def test_normalize_money_strips_symbols():
    assert normalize_money("฿30,000.50") == Decimal("30000.50")
    assert normalize_money("THB 1,200") == Decimal("1200")
    assert normalize_money("n/a") is None
    assert normalize_money("") is None
    assert normalize_money(1500) == Decimal("1500")


def test_normalize_integer_and_text():
    assert normalize_integer("3") == 3
    assert normalize_integer("3.0") == 3
    assert normalize_integer("3.5") == "3.5"
    assert normalize_text(1234.0) == "1234"
    assert normalize_text("  EMP001 ") == "EMP001"
    assert normalize_text("   ") is None


def test_normalize_id_type_maps_labels():
    assert normalize_id_type("10 years ID") == "10YearsID"
    assert normalize_id_type("thai id") == "ThaiID"
    assert normalize_id_type("passport") == "Passport"
    assert normalize_id_type("Library card") == "Library card"


def test_row_normalizer_canonicalizes_headers():
    normalizer = RowNormalizer(EMPLOYEE_CONTRACT)
    normalized = normalizer.normalize(
        {"Organization": " SMRU ", "Staff ID": "EMP1", "Date of Birth": "33000", "Gender": "M"}, row_number=3
    )

    assert normalized.row_number == 3
    assert normalized.row.organization == "SMRU"
    assert normalized.row.staff_id == "EMP1"
    assert normalized.row.date_of_birth == "1990-05-07"
    assert normalized.is_blank is False


def test_row_normalizer_blank_row():
    normalized = RowNormalizer(EMPLOYEE_CONTRACT).normalize({"organization": "", "staff_id": "  "}, row_number=4)
    assert normalized.is_blank is True
