from __future__ import annotations

from hrms_app.importer import get_celery_app
from hrms_app.importer.celery_app import DEFAULT_QUEUE_NAME


def test_celery_defaults_to_sqlite_transport(importer_app, tmp_path):
    sqlite_path = tmp_path / "custom.sqlite"
    importer_app.config["CELERY_SQLITE_PATH"] = str(sqlite_path)
    importer_app.extensions["importer"]["celery_app"] = None

    celery_app = get_celery_app(importer_app)

    assert celery_app.conf.broker_url == f"sqla+sqlite:///{sqlite_path.as_posix()}"
    assert celery_app.conf.result_backend == f"db+sqlite:///{sqlite_path.as_posix()}"
    assert celery_app.conf.task_default_queue == DEFAULT_QUEUE_NAME
    assert celery_app.conf.worker_prefetch_multiplier == 1


def test_import_tasks_are_registered_and_json_only(importer_app):
    celery_app = get_celery_app(importer_app)

    assert {
        "importer.healthcheck",
        "importer.pipeline.run_import",
        "importer.pipeline.process_chunk",
        "importer.pipeline.finalize_import",
    } <= set(celery_app.tasks)
    assert celery_app.conf.accept_content == ["json"]
    assert celery_app.conf.result_expires == importer_app.config["IMPORTER_RESULT_TTL_SECONDS"]


def test_queue_and_extra_config_from_flask_config(importer_app):
    importer_app.config.update(
        {"IMPORTER_QUEUE_NAME": "hr-imports", "CELERY_CONFIG": '{"worker_concurrency": 2, "task_always_eager": true}'}
    )
    importer_app.extensions["importer"]["celery_app"] = None

    celery_app = get_celery_app(importer_app)

    assert celery_app.conf.task_default_queue == "hr-imports"
    assert celery_app.conf.task_routes == {"importer.*": {"queue": "hr-imports"}}
    assert celery_app.conf.worker_concurrency == 2


def test_invalid_celery_config_json_is_ignored(importer_app):
    importer_app.config["CELERY_CONFIG"] = "{not json"
    importer_app.extensions["importer"]["celery_app"] = None

    celery_app = get_celery_app(importer_app)

    assert celery_app.conf.task_always_eager is False
