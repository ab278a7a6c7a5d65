from __future__ import annotations

import logging

import pytest
from sqlalchemy import select

from hrms_app.importer.exceptions import ImportSessionNotFound, UnknownImportKind
from hrms_app.importer.pipeline.context import ImportContext
from hrms_app.importer.pipeline.job import ImportJob, iter_chunks
from hrms_app.importer.pipeline.summary import DatabaseNotifier, ImportSummary, LoggingNotifier
from hrms_app.models import Employee, ImportNotification, NotificationCategory, db


def test_iter_chunks_splits_rows():
    assert [len(chunk) for chunk in iter_chunks(range(7), 3)] == [3, 3, 1]
    assert list(iter_chunks([], 3)) == []


def test_start_stores_context_and_snapshot(session_store, import_context, employee_factory):
    employee_factory(staff_id="EMP900")

    job = ImportJob.start("Employees", sessions=session_store, context=import_context, import_id="job-1")

    assert job.kind == "employees"
    assert job.chunk_size == 40
    payload = session_store.get_lookups("job-1")
    assert payload["context"]["user_name"] == "importer-test"
    assert payload["snapshot"]["existing_keys"] == ["SMRU|EMP900"]


def test_start_rejects_unknown_kind(session_store):
    with pytest.raises(UnknownImportKind):
        ImportJob.start("volunteers", sessions=session_store)


def test_run_numbers_rows_from_template_start(session_store, import_context, employee_row):
    job = ImportJob.start("employees", sessions=session_store, context=import_context, chunk_size=2)
    rows = [
        employee_row(staff_id="EMP100"),
        employee_row(staff_id="EMP101"),
        employee_row(staff_id="EMP102", gender="Q"),
    ]

    results = job.run(rows)

    assert [result.start_row for result in results] == [3, 5]
    assert [result.committed for result in results] == [True, False]
    assert results[1].errors[0].row == 5


def test_resume_reuses_stored_actor_and_snapshot(session_store, import_context, employee_row, employee_factory):
    job = ImportJob.start("employees", sessions=session_store, context=import_context, import_id="job-2")
    # Created after the snapshot was taken, so the resumed job does not know about it
    employee_factory(staff_id="EMP777")

    resumed = ImportJob.resume("job-2", sessions=session_store)
    result = resumed.process_chunk([employee_row(staff_id="EMP778")], start_row=3)

    assert resumed.context.now > import_context.now
    assert resumed.context.zero_policies == import_context.zero_policies
    assert resumed.snapshot == job.snapshot
    assert result.committed
    assert resumed.loader.audit_fields()["created_by"] == "importer-test"


def test_resume_checks_dates_against_the_given_clock(session_store, import_context, employee_row):
    ImportJob.start("employees", sessions=session_store, context=import_context, import_id="job-clock")
    later = import_context.now.replace(year=2030)

    resumed = ImportJob.resume("job-clock", sessions=session_store, now=later)
    result = resumed.process_chunk([employee_row(staff_id="EMP779", id_issue_date="2028-03-01")], start_row=3)

    assert resumed.context.now == later
    assert result.committed, [issue.render() for issue in result.errors]


def test_resume_unknown_import(session_store):
    with pytest.raises(ImportSessionNotFound):
        ImportJob.resume("missing", sessions=session_store)


def test_finish_summarizes_clears_and_notifies(session_store, import_context, test_user, employee_row):
    context = ImportContext(now=import_context.now, user_id=test_user.id, user_name=test_user.name)
    job = ImportJob.start("employees", sessions=session_store, context=context, chunk_size=2, import_id="job-3")
    job.run(
        [
            employee_row(staff_id="EMP100"),
            employee_row(staff_id="EMP101", date_of_birth="1950-01-01"),
            employee_row(staff_id="EMP102", gender="Q"),
        ]
    )

    summary = job.finish(DatabaseNotifier())

    assert summary.message == "Employee import finished! Processed: 2, Updated: 0, Errors: 1, Warnings: 1, Skipped: 1"
    assert summary.owner_id == test_user.id
    assert session_store.exists("job-3") is False
    assert session_store.get_result("job-3")["processed"] == 2

    notification = db.session.execute(select(ImportNotification)).scalar_one()
    assert notification.user_id == test_user.id
    assert notification.category is NotificationCategory.IMPORT
    assert notification.message == summary.message
    assert notification.payload_json["skipped"] == 1
    assert db.session.execute(select(Employee)).scalars().all()[0].created_by == "Import Operator"


def test_finish_without_owner_skips_database_notification(session_store, import_context):
    job = ImportJob.start("grants", sessions=session_store, context=import_context)

    summary = job.finish(DatabaseNotifier())

    assert summary.message == "Grant import finished! Processed: 0, Updated: 0, Errors: 0, Warnings: 0, Skipped: 0"
    assert db.session.execute(select(ImportNotification)).first() is None


def test_logging_notifier_levels(caplog):
    ok = ImportSummary(import_id="a", kind="payrolls", title="Payroll", owner_id=None, processed=3)
    failed = ImportSummary(import_id="b", kind="payrolls", title="Payroll", owner_id=None, errors=["Row 2 ..."])

    with caplog.at_level(logging.INFO, logger="hrms_app.importer.pipeline.summary"):
        LoggingNotifier().notify(ok)
        LoggingNotifier().notify(failed)

    levels = [record.levelno for record in caplog.records if record.name == "hrms_app.importer.pipeline.summary"]
    assert levels == [logging.INFO, logging.WARNING]


def test_summary_round_trips_through_dict():
    summary = ImportSummary(
        import_id="x", kind="funding_allocations", title="Funding allocation", owner_id=4, processed=1, skipped=2
    )
    restored = ImportSummary.from_dict(summary.to_dict(), title="Funding allocation")

    assert restored == summary
    assert restored.succeeded is True
