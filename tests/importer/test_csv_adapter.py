from __future__ import annotations

import io

import pytest

from hrms_app.importer.adapters.csv_rows import CSVHeaderError, CSVRowSource, validate_headers
from hrms_app.importer.contracts import EMPLOYEE_CONTRACT, GRANT_CONTRACT


def _source(text: str, contract=GRANT_CONTRACT, **kwargs) -> CSVRowSource:
    return CSVRowSource(io.StringIO(text), contract, **kwargs)


def test_validate_headers_maps_aliases_and_ignores_unknown_columns():
    result = validate_headers(["Code", "Name", "Subsidiary", "Grant Position", "Notes"], GRANT_CONTRACT)

    assert result.canonical_headers == ("grant_code", "grant_name", "organization", "position", None)
    assert result.ignored == ("Notes",)


def test_validate_headers_reports_missing_columns():
    with pytest.raises(CSVHeaderError) as excinfo:
        validate_headers(["grant_code", "position"], GRANT_CONTRACT)

    assert str(excinfo.value) == "CSV header validation failed. Missing required columns: grant_name, organization."
    assert excinfo.value.missing == ("grant_name", "organization")


def test_validate_headers_rejects_duplicate_canonical_columns():
    with pytest.raises(CSVHeaderError) as excinfo:
        validate_headers(["grant_code", "code", "grant_name", "organization", "position"], GRANT_CONTRACT)

    assert excinfo.value.duplicates == ("grant_code",)
    assert "Duplicate canonical columns detected: grant_code." in str(excinfo.value)


def test_rows_are_keyed_by_canonical_name():
    source = _source(
        "\ufeffGrant Code,Grant Name,Organization,Position,Salary,Extra\n"
        "GR-1,Malaria,SMRU,Medic,\"30,000\",ignored\n"
        "GR-1,Malaria,SMRU,Nurse\n"
    )

    rows = list(source)

    assert rows[0] == {
        "grant_code": "GR-1",
        "grant_name": "Malaria",
        "organization": "SMRU",
        "position": "Medic",
        "salary": "30,000",
    }
    assert rows[1]["salary"] is None
    assert source.statistics.rows_read == 2


def test_employee_hint_row_is_skipped():
    source = _source(
        "organization,staff_id,first_name,gender,date_of_birth\n"
        "SMRU or BHF,required,required,M/F,yyyy-mm-dd\n"
        "SMRU,EMP001,Naw,F,1992-03-14\n",
        contract=EMPLOYEE_CONTRACT,
    )

    rows = list(source)

    assert [row["staff_id"] for row in rows] == ["EMP001"]


def test_blank_rows_skipped_by_default():
    source = _source("grant_code,grant_name,organization,position\nGR-1,A,SMRU,Medic\n,,,\nGR-2,B,BHF,Nurse\n")

    assert [row["grant_code"] for row in source] == ["GR-1", "GR-2"]
    assert source.statistics.rows_skipped_blank == 1


def test_blank_rows_can_be_kept_for_row_numbering():
    source = _source(
        "grant_code,grant_name,organization,position\nGR-1,A,SMRU,Medic\n,,,\nGR-2,B,BHF,Nurse\n",
        skip_blank_rows=False,
    )

    rows = list(source)

    assert [row["grant_code"] for row in rows] == ["GR-1", "", "GR-2"]
    assert source.statistics.rows_skipped_blank == 0
    assert source.statistics.rows_read == 3


def test_read_header_does_not_consume_rows():
    source = _source("grant_code,grant_name,organization,position\nGR-1,A,SMRU,Medic\n")

    header = source.read_header()

    assert source.header is header
    assert header.canonical_headers == ("grant_code", "grant_name", "organization", "position")
    assert len(list(source)) == 1


def test_empty_file_reports_every_required_column():
    with pytest.raises(CSVHeaderError) as excinfo:
        _source("").read_header()

    assert excinfo.value.missing == GRANT_CONTRACT.required_headers()
