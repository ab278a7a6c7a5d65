"""
Importer Celery tasks.

``run_import`` processes an uploaded file end to end. ``process_chunk`` and
``finalize_import`` let a caller that already holds the rows fan chunks out to
workers: each call resumes the job from session state, so chunks of one import
may run in different processes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from celery import shared_task
from flask import current_app

from hrms_app.importer.pipeline.job import ImportJob
from hrms_app.importer.pipeline.summary import DatabaseNotifier
from hrms_app.importer.runner import run_csv_import
from hrms_app.importer.utils import cleanup_upload, get_session_store


@shared_task(name="importer.healthcheck", bind=True)
def importer_healthcheck(self) -> dict[str, Any]:
    """
    Simple heartbeat task used by worker health checks.
    """
    now = datetime.now(timezone.utc)
    return {
        "status": "ok",
        "timestamp": now.isoformat(),
        "worker_hostname": self.request.hostname,
        "app_version": current_app.config.get("APP_VERSION"),
    }


@shared_task(name="importer.pipeline.run_import", bind=True)
def run_import(
    self,
    *,
    kind: str,
    file_path: str,
    user_id: int | None = None,
    chunk_size: int | None = None,
    import_id: str | None = None,
    keep_file: bool = False,
) -> dict[str, Any]:
    """Import every row of an uploaded CSV and notify the owner."""

    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {file_path}")

    cleanup_target: Path | None = None if keep_file else path
    try:
        summary = run_csv_import(
            current_app,
            kind=kind,
            csv_path=path,
            user_id=user_id,
            chunk_size=chunk_size,
            import_id=import_id,
        )
    except Exception as exc:
        current_app.logger.exception(
            "Importer run failed",
            extra={
                "importer_import_id": import_id,
                "importer_kind": kind,
                "importer_error": str(exc),
            },
        )
        raise
    finally:
        if cleanup_target is not None:
            cleanup_upload(cleanup_target)

    current_app.logger.info(
        "Importer run completed",
        extra={
            "importer_import_id": summary.import_id,
            "importer_kind": summary.kind,
            "importer_processed": summary.processed,
            "importer_updated": summary.updated,
            "importer_error_count": len(summary.errors),
            "importer_skipped": summary.skipped,
        },
    )
    return summary.to_dict()


@shared_task(name="importer.pipeline.process_chunk", bind=True)
def process_chunk(self, *, import_id: str, rows: list[dict[str, Any]], start_row: int) -> dict[str, Any]:
    job = ImportJob.resume(import_id, sessions=get_session_store(current_app))
    return job.process_chunk(rows, start_row).to_dict()


@shared_task(name="importer.pipeline.finalize_import", bind=True)
def finalize_import(self, *, import_id: str) -> dict[str, Any]:
    """Summarize a chunked import, clear its session state and notify the owner."""

    job = ImportJob.resume(import_id, sessions=get_session_store(current_app))
    return job.finish(DatabaseNotifier()).to_dict()
