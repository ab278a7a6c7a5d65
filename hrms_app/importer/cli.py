"""
``flask importer`` commands.

Imports run inline in the CLI process or are queued for the Celery worker.
Session state and final results are readable by import id either way.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional
from uuid import uuid4

import click
from celery import Celery
from celery.exceptions import TimeoutError as CeleryTimeoutError
from flask.cli import ScriptInfo

from hrms_app.importer.adapters import CSVAdapterError
from hrms_app.importer.celery_app import DEFAULT_QUEUE_NAME, get_celery_app
from hrms_app.importer.exceptions import ImporterError, UnknownImportKind
from hrms_app.importer.pipeline.summary import ImportSummary
from hrms_app.importer.registry import get_import_registry, resolve_kind, resolve_kinds
from hrms_app.importer.runner import run_csv_import
from hrms_app.importer.utils import cleanup_upload, get_session_store, persist_upload
from hrms_app.models import User, db
from hrms_app.utils.importer import get_chunk_size, is_importer_enabled


@click.group(name="importer", invoke_without_command=True)
@click.pass_context
def importer_cli(ctx):
    """
    Bulk HR spreadsheet imports.

    Lists the importable kinds when invoked without a subcommand.
    """
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    if not is_importer_enabled(app):
        raise click.ClickException(
            "Importer is disabled via IMPORTER_ENABLED=false. " "Enable it to run importer CLI commands."
        )
    if ctx.invoked_subcommand is None:
        click.echo("Importable kinds:")
        for name in get_import_registry():
            click.echo(f"  - {name}")


def get_disabled_importer_group() -> click.Group:
    """
    Return a minimal command group that informs the operator the importer is disabled.
    """

    @click.group(name="importer", invoke_without_command=True)
    def disabled_group():
        raise click.ClickException("Importer commands are unavailable because IMPORTER_ENABLED=false.")

    return disabled_group


def _resolve_celery(app) -> Celery:
    celery_app = get_celery_app(app)
    if celery_app is None:
        raise click.ClickException(
            "Importer Celery app is unavailable. Ensure IMPORTER_ENABLED=true and the "
            "importer package initialises before running worker commands."
        )
    return celery_app


def _format_summary(summary: ImportSummary) -> str:
    lines = [
        summary.message,
        f"  import_id : {summary.import_id}",
        f"  processed : {summary.processed}",
        f"  updated   : {summary.updated}",
        f"  skipped   : {summary.skipped}",
        f"  errors    : {len(summary.errors)}",
        f"  warnings  : {len(summary.warnings)}",
    ]
    lines.extend(f"    {message}" for message in summary.errors)
    return "\n".join(lines)


@importer_cli.command("kinds")
@click.argument("names", nargs=-1)
@click.pass_context
def importer_kinds(ctx, names: tuple[str, ...]):
    """Describe importable kinds: chunk size and required columns."""
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    registry = get_import_registry()
    try:
        descriptors = resolve_kinds(names, registry) if names else tuple(registry.values())
    except UnknownImportKind as exc:
        raise click.ClickException(str(exc)) from exc

    for descriptor in descriptors:
        chunk_size = get_chunk_size(descriptor.chunk_size, app)
        click.echo(f"{descriptor.name} ({descriptor.title})")
        if descriptor.summary:
            click.echo(f"  {descriptor.summary}")
        click.echo(f"  chunk size      : {chunk_size}")
        click.echo(f"  required columns: {', '.join(descriptor.required_headers)}")


@importer_cli.command("run")
@click.argument("kind")
@click.option(
    "--file",
    "file_path",
    required=True,
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    help="CSV export of the import template.",
)
@click.option("--user-id", type=int, help="User who owns the import and receives the summary notification.")
@click.option(
    "--inline/--no-inline",
    default=False,
    help="Run inline within the CLI process instead of queueing via Celery.",
)
@click.option("--chunk-size", type=click.IntRange(min=1), help="Rows per chunk; defaults to the kind's own size.")
@click.option(
    "--summary-json",
    is_flag=True,
    help="Emit a machine-readable summary payload after completion (inline runs only).",
)
@click.pass_context
def importer_run(
    ctx,
    kind: str,
    file_path: Path,
    user_id: Optional[int],
    inline: bool,
    chunk_size: Optional[int],
    summary_json: bool,
):
    """Import KIND rows from a CSV file."""
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    if not is_importer_enabled(app):
        raise click.ClickException("Importer is disabled; enable it via IMPORTER_ENABLED before running.")
    if summary_json and not inline:
        raise click.ClickException("--summary-json is only available for --inline runs.")

    try:
        descriptor = resolve_kind(kind)
    except UnknownImportKind as exc:
        raise click.ClickException(str(exc)) from exc
    if user_id is not None and db.session.get(User, user_id) is None:
        raise click.ClickException(f"User {user_id} not found.")

    csv_path = file_path.resolve()
    if not inline:
        celery_app = _resolve_celery(app)
        import_id = uuid4().hex
        try:
            stored_path = persist_upload(csv_path, app)
        except (OSError, ValueError) as exc:
            raise click.ClickException(str(exc)) from exc
        try:
            async_result = celery_app.send_task(
                "importer.pipeline.run_import",
                kwargs={
                    "kind": descriptor.name,
                    "file_path": str(stored_path),
                    "user_id": user_id,
                    "chunk_size": chunk_size,
                    "import_id": import_id,
                },
            )
        except Exception as exc:  # pragma: no cover - broker failures vary by transport
            cleanup_upload(stored_path)
            raise click.ClickException(f"Failed to enqueue {descriptor.name} import: {exc}") from exc
        app.logger.info(
            "Importer run queued via CLI",
            extra={
                "importer_import_id": import_id,
                "importer_task_id": async_result.id,
                "importer_kind": descriptor.name,
            },
        )
        click.echo(
            json.dumps(
                {
                    "import_id": import_id,
                    "task_id": async_result.id,
                    "status": "queued",
                    "kind": descriptor.name,
                }
            )
        )
        return

    try:
        summary = run_csv_import(
            app,
            kind=descriptor.name,
            csv_path=csv_path,
            user_id=user_id,
            chunk_size=chunk_size,
        )
    except (CSVAdapterError, ImporterError, LookupError) as exc:
        raise click.ClickException(f"Import failed: {exc}") from exc

    click.echo(_format_summary(summary))
    if summary_json:
        click.echo(json.dumps(summary.to_dict(), indent=2, sort_keys=True))


@importer_cli.command("session")
@click.argument("import_id")
@click.pass_context
def importer_session(ctx, import_id: str):
    """Show the in-flight session state of an import."""
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    store = get_session_store(app)
    if not store.exists(import_id):
        raise click.ClickException(f"Import session '{import_id}' was not found or has expired.")
    click.echo(json.dumps(store.snapshot(import_id).to_dict(), indent=2, sort_keys=True))


@importer_cli.command("result")
@click.argument("import_id")
@click.pass_context
def importer_result(ctx, import_id: str):
    """Show the final summary of a finished import (kept for a short time)."""
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    payload = get_session_store(app).get_result(import_id)
    if payload is None:
        raise click.ClickException(f"No result stored for import '{import_id}'.")
    click.echo(json.dumps(payload, indent=2, sort_keys=True))


@importer_cli.command("purge")
@click.pass_context
def importer_purge(ctx):
    """Delete expired session state and results."""
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    try:
        purged = get_session_store(app).purge_expired()
    except ImporterError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Purged {purged} expired import session entries.")


@importer_cli.group(name="worker")
@click.pass_context
def worker_group(ctx):
    """Manage the importer background worker."""
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    state = app.extensions.get("importer", {})
    if not state.get("worker_enabled") and not app.config.get("IMPORTER_WORKER_ENABLED"):
        click.echo(
            "Warning: IMPORTER_WORKER_ENABLED is false. Commands will still run, "
            "but enable the flag to surface accurate health status.",
            err=True,
        )


@worker_group.command("run")
@click.option("--loglevel", default="info", show_default=True)
@click.option("--concurrency", type=int, help="Number of worker processes/threads.")
@click.option("--pool", type=str, help="Celery pool implementation (e.g., 'prefork', 'solo', 'threads').")
@click.option("--queues", help="Comma-separated queue list to consume; defaults to IMPORTER_QUEUE_NAME.")
@click.pass_context
def worker_run(ctx, loglevel: str, concurrency: Optional[int], pool: Optional[str], queues: Optional[str]):
    """
    Start the Celery worker in the current process.
    """
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    celery_app = _resolve_celery(app)
    queues = queues or app.config.get("IMPORTER_QUEUE_NAME") or DEFAULT_QUEUE_NAME
    app.extensions.setdefault("importer", {})["worker_enabled"] = True

    argv = ["worker", "--loglevel", loglevel, "-Q", queues]
    if concurrency:
        argv.extend(["--concurrency", str(concurrency)])
    if pool:
        argv.extend(["--pool", pool])

    pool_msg = f", pool: {pool}" if pool else ""
    click.echo(f"Starting importer worker (queues: {queues}, loglevel: {loglevel}{pool_msg})")
    try:
        celery_app.worker_main(argv=argv)
    except KeyboardInterrupt:
        click.echo("Worker shutdown requested. Exiting...")


@worker_group.command("ping")
@click.option("--timeout", default=10.0, show_default=True, help="Seconds to wait for a response.")
@click.pass_context
def worker_ping(ctx, timeout: float):
    """
    Validate worker connectivity by executing the heartbeat task.
    """
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    celery_app = _resolve_celery(app)
    task = celery_app.tasks.get("importer.healthcheck")
    if task is None:
        raise click.ClickException("Heartbeat task 'importer.healthcheck' is not registered.")

    result = task.apply_async()
    try:
        payload = result.get(timeout=timeout)
    except CeleryTimeoutError as exc:
        raise click.ClickException(f"Worker did not respond within {timeout}s") from exc

    click.echo(json.dumps(payload, indent=2))
