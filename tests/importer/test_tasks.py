from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import select

from hrms_app.importer import get_celery_app
from hrms_app.importer.exceptions import ImportSessionNotFound
from hrms_app.importer.pipeline.context import ImportContext
from hrms_app.importer.pipeline.job import ImportJob
from hrms_app.importer.utils import get_session_store
from hrms_app.models import Grant, ImportNotification, db


def _write_grants(tmp_path: Path) -> Path:
    csv_file = tmp_path / "grants.csv"
    csv_file.write_text(
        "grant_code,grant_name,organization,position\nGR-1,Malaria research,SMRU,Medic\n",
        encoding="utf-8",
    )
    return csv_file


def _task(app, name):
    return get_celery_app(app).tasks[name]


def test_healthcheck_runs_eagerly(importer_app):
    payload = _task(importer_app, "importer.healthcheck").apply_async().get(timeout=5)

    assert payload["status"] == "ok"
    assert payload["app_version"] == importer_app.config.get("APP_VERSION")


def test_run_import_removes_uploaded_file(importer_app, tmp_path, test_user):
    csv_file = _write_grants(tmp_path)

    payload = (
        _task(importer_app, "importer.pipeline.run_import")
        .apply_async(kwargs={"kind": "grants", "file_path": str(csv_file), "user_id": test_user.id})
        .get(timeout=5)
    )

    assert payload["processed"] == 1
    assert payload["owner_id"] == test_user.id
    assert not csv_file.exists()
    assert db.session.execute(select(Grant.code)).scalar_one() == "GR-1"


def test_run_import_can_keep_file(importer_app, tmp_path):
    csv_file = _write_grants(tmp_path)

    _task(importer_app, "importer.pipeline.run_import").apply_async(
        kwargs={"kind": "grants", "file_path": str(csv_file), "keep_file": True}
    ).get(timeout=5)

    assert csv_file.exists()


def test_run_import_missing_file(importer_app, tmp_path):
    with pytest.raises(FileNotFoundError):
        _task(importer_app, "importer.pipeline.run_import").apply_async(
            kwargs={"kind": "grants", "file_path": str(tmp_path / "missing.csv")}
        ).get(timeout=5)


def test_chunks_fan_out_then_finalize(importer_app, employee_row, test_user):
    store = get_session_store(importer_app)
    context = ImportContext.current(user_id=test_user.id, user_name=test_user.name)
    ImportJob.start("employees", sessions=store, context=context, import_id="fan-out")

    first = (
        _task(importer_app, "importer.pipeline.process_chunk")
        .apply_async(kwargs={"import_id": "fan-out", "rows": [employee_row(staff_id="EMP100")], "start_row": 3})
        .get(timeout=5)
    )
    second = (
        _task(importer_app, "importer.pipeline.process_chunk")
        .apply_async(
            kwargs={"import_id": "fan-out", "rows": [employee_row(staff_id="EMP100", first_name="Saw")], "start_row": 4}
        )
        .get(timeout=5)
    )
    summary = _task(importer_app, "importer.pipeline.finalize_import").apply_async(
        kwargs={"import_id": "fan-out"}
    ).get(timeout=5)

    assert first["state"] == "completed"
    assert second["errors"] == [
        "Row 4 Column staff_id: Duplicate staff_id 'EMP100' found in import file for organization 'SMRU' (Cell B4)"
    ]
    assert (summary["processed"], summary["skipped"]) == (1, 1)
    assert db.session.execute(select(ImportNotification.import_id)).scalar_one() == "fan-out"


def test_process_chunk_after_finalize_fails(importer_app, import_context):
    store = get_session_store(importer_app)
    ImportJob.start("grants", sessions=store, context=import_context, import_id="done").finish()

    with pytest.raises(ImportSessionNotFound):
        _task(importer_app, "importer.pipeline.process_chunk").apply_async(
            kwargs={"import_id": "done", "rows": [], "start_row": 2}
        ).get(timeout=5)
