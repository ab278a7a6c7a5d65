from __future__ import annotations

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from hrms_app.importer.pipeline.chunk import SKIPPED, ChunkState, TwoPassChunkProcessor
from hrms_app.importer.pipeline.employees import EmployeeLoader
from hrms_app.models import Employee, db


def _employee_count() -> int:
    return db.session.execute(select(func.count(Employee.id))).scalar_one()


@pytest.fixture
def processor_factory(import_context, session_store):
    def _factory(import_id: str = "chunk-test") -> TwoPassChunkProcessor:
        if not session_store.exists(import_id):
            session_store.init(import_id, owner_id=None, kind="employees")
        loader = EmployeeLoader(import_context)
        snapshot = loader.prefetch(db.session)
        return TwoPassChunkProcessor(loader, snapshot, session_store, import_id)

    return _factory


def test_clean_chunk_commits_every_row(processor_factory, session_store, employee_row):
    processor = processor_factory()
    rows = [employee_row(staff_id="EMP100"), employee_row(staff_id="EMP101")]

    result = processor.process(rows, start_row=3)

    assert result.state is ChunkState.COMPLETED
    assert result.committed is True
    assert result.created == 2
    assert result.errors == []
    assert _employee_count() == 2

    snapshot = session_store.snapshot("chunk-test")
    assert snapshot.processed_count == 2
    assert snapshot.seen_keys == {"SMRU": ["EMP100", "EMP101"]}
    assert snapshot.first_row["values"]["staff_id"] == "EMP100"


def test_one_bad_row_aborts_whole_chunk_and_reports_all_errors(processor_factory, session_store, employee_row):
    processor = processor_factory()
    rows = [
        employee_row(staff_id="EMP100"),
        employee_row(staff_id="EMP101", gender="X"),
        employee_row(staff_id="EMP102", organization="SMRO", date_of_birth="2015-01-01"),
    ]

    result = processor.process(rows, start_row=3)

    assert result.state is ChunkState.ABORTED
    assert result.skipped == 3
    assert _employee_count() == 0
    rendered = [issue.render() for issue in result.errors]
    assert "Row 4 Column gender: Invalid gender 'X'. Must be one of: M, F (Cell I4)" in rendered
    assert "Row 5 Column organization: Invalid organization 'SMRO'. Did you mean 'SMRU'? (Cell A5)" in rendered
    assert any(message.startswith("Row 5 Column date_of_birth:") for message in rendered)

    snapshot = session_store.snapshot("chunk-test")
    assert snapshot.errors == rendered
    assert snapshot.counts[SKIPPED] == 3
    assert snapshot.processed_count == 0
    assert [failure["row"] for failure in snapshot.validation_failures] == [4, 5]
    # Keys from an aborted chunk are never recorded, so the rows can be resubmitted
    assert snapshot.seen_keys == {}


def test_duplicate_within_chunk(processor_factory, employee_row):
    processor = processor_factory()
    rows = [employee_row(staff_id="EMP100"), employee_row(staff_id="EMP100", organization="smru")]

    result = processor.process(rows, start_row=3)

    assert result.state is ChunkState.ABORTED
    assert [issue.render() for issue in result.errors] == [
        "Row 4 Column staff_id: Duplicate staff_id 'EMP100' found in import file for organization 'SMRU' (Cell B4)"
    ]


def test_duplicate_across_chunks_uses_session_state(processor_factory, session_store, employee_row):
    first = processor_factory("cross-chunk").process([employee_row(staff_id="EMP200")], start_row=3)
    assert first.committed

    second = processor_factory("cross-chunk").process(
        [employee_row(staff_id="EMP201"), employee_row(staff_id="EMP200")], start_row=4
    )

    assert second.state is ChunkState.ABORTED
    assert second.errors[0].render() == (
        "Row 5 Column staff_id: Duplicate staff_id 'EMP200' found in import file for organization 'SMRU' (Cell B5)"
    )
    assert _employee_count() == 1


def test_existing_staff_id_is_reported_against_store(processor_factory, employee_factory, employee_row):
    employee_factory(staff_id="EMP300", organization="BHF")
    processor = processor_factory()

    result = processor.process([employee_row(staff_id="EMP300", organization="BHF")], start_row=3)

    assert result.errors[0].message == (
        "Staff ID 'EMP300' already exists in database for organization 'BHF' (Cell B3)"
    )


def test_aborted_keys_can_be_resubmitted(processor_factory, employee_row):
    aborted = processor_factory("retry").process(
        [employee_row(staff_id="EMP400"), employee_row(staff_id="EMP401", gender="?")], start_row=3
    )
    assert aborted.state is ChunkState.ABORTED

    retried = processor_factory("retry").process(
        [employee_row(staff_id="EMP400"), employee_row(staff_id="EMP401")], start_row=5
    )
    assert retried.committed
    assert retried.created == 2


def test_blank_rows_are_skipped_but_keep_numbering(processor_factory, employee_row):
    processor = processor_factory()
    rows = [
        employee_row(staff_id="EMP500"),
        {"organization": "", "staff_id": ""},
        employee_row(staff_id="E5", gender=""),
    ]

    result = processor.process(rows, start_row=3)

    assert result.row_count == 2
    rendered = [issue.render() for issue in result.errors]
    assert "Row 5 Column gender: Gender is required (Cell I5)" in rendered
    assert "Row 5 Column staff_id: Staff ID must be at least 3 characters, got 'E5' (Cell B5)" in rendered


def test_all_blank_chunk_completes_without_writes(processor_factory, session_store):
    result = processor_factory().process([{"staff_id": " "}, {}], start_row=3)

    assert result.state is ChunkState.COMPLETED
    assert result.row_count == 0
    assert session_store.snapshot("chunk-test").first_row is None


def test_warnings_do_not_block_commit(processor_factory, session_store, employee_row):
    row = employee_row(staff_id="EMP600", date_of_birth="1955-01-01", mobile_no="call me")

    result = processor_factory().process([row], start_row=3)

    assert result.committed
    warnings = session_store.snapshot("chunk-test").warnings
    assert "Row 3 Column date_of_birth: Employee age 70 exceeds typical retirement age" in warnings
    assert "Row 3 Column Mobile phone: Phone number format unusual 'call me'" in warnings


def test_write_failure_rolls_back_and_records_system_error(
    processor_factory, session_store, monkeypatch, employee_row
):
    def _fail(self, session, candidates, snapshot):
        session.add(Employee(organization="SMRU", staff_id="GHOST", first_name_en="Ghost", gender="M"))
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(EmployeeLoader, "write", _fail)
    processor = processor_factory()

    result = processor.process([employee_row(staff_id="EMP700"), employee_row(staff_id="EMP701")], start_row=3)

    assert result.state is ChunkState.ABORTED
    assert result.system_error == "Import chunk failed: disk full"
    assert _employee_count() == 0
    snapshot = session_store.snapshot("chunk-test")
    assert snapshot.errors == ["Import chunk failed: disk full"]
    assert snapshot.counts[SKIPPED] == 2
    assert snapshot.seen_keys == {}


def test_write_failure_is_counted_as_failed_chunk(processor_factory, monkeypatch, employee_row):
    def _fail(self, session, candidates, snapshot):
        raise SQLAlchemyError("connection reset")

    monkeypatch.setattr(EmployeeLoader, "write", _fail)
    labels = {"kind": "employees", "outcome": "failed"}
    before = REGISTRY.get_sample_value("importer_chunks_total", labels) or 0.0

    processor_factory().process([employee_row(staff_id="EMP702")], start_row=3)

    assert REGISTRY.get_sample_value("importer_chunks_total", labels) == before + 1
