"""
Run a whole CSV import in one call.

Shared by the ``flask importer run --inline`` command and the
``importer.pipeline.run_import`` Celery task.
"""

from __future__ import annotations

from pathlib import Path

from hrms_app.importer.adapters import CSVRowSource
from hrms_app.importer.pipeline.context import ImportContext
from hrms_app.importer.pipeline.job import ImportJob
from hrms_app.importer.pipeline.summary import DatabaseNotifier, ImportNotifier, ImportSummary
from hrms_app.importer.registry import resolve_kind
from hrms_app.importer.utils import get_session_store
from hrms_app.models import User, db
from hrms_app.utils.importer import get_chunk_size, get_zero_value_policies


def build_context(app, user_id: int | None) -> ImportContext:
    """Resolve the acting user; an unknown id is an error rather than an anonymous import."""
    user_name = None
    if user_id is not None:
        user = db.session.get(User, user_id)
        if user is None:
            raise LookupError(f"User {user_id} not found.")
        user_name = user.name
    return ImportContext.current(
        user_id=user_id,
        user_name=user_name,
        zero_policies=get_zero_value_policies(app),
    )


def run_csv_import(
    app,
    *,
    kind: str,
    csv_path: Path,
    user_id: int | None = None,
    chunk_size: int | None = None,
    import_id: str | None = None,
    notifier: ImportNotifier | None = None,
) -> ImportSummary:
    descriptor = resolve_kind(kind)
    context = build_context(app, user_id)
    size = chunk_size or get_chunk_size(descriptor.chunk_size, app)

    with csv_path.open("r", encoding="utf-8", newline="") as handle:
        # Blank rows are kept so row numbers match the spreadsheet
        source = CSVRowSource(handle, descriptor.loader_class.contract, skip_blank_rows=False)
        source.read_header()
        job = ImportJob.start(
            descriptor.name,
            sessions=get_session_store(app),
            context=context,
            chunk_size=size,
            import_id=import_id,
        )
        job.run(source)
    return job.finish(notifier or DatabaseNotifier())


__all__ = ["build_context", "run_csv_import"]
