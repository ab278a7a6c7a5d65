"""
Importer-specific utilities for staged upload files and the shared session store.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from uuid import uuid4

from flask import current_app

from hrms_app.importer.pipeline.session import ImportSessionStore, build_session_store

DEFAULT_UPLOAD_SUBDIR = "import_uploads"
CSV_EXTENSIONS: tuple[str, ...] = ("csv",)


def _normalize_upload_dir(configured_path: str | None, instance_path: str) -> Path:
    if not configured_path:
        return Path(instance_path) / DEFAULT_UPLOAD_SUBDIR

    candidate = Path(configured_path)
    if candidate.is_absolute():
        return candidate
    return Path(instance_path) / candidate


def resolve_upload_directory(app) -> Path:
    """
    Determine and create (if necessary) the importer upload directory.
    """

    upload_dir = _normalize_upload_dir(app.config.get("IMPORTER_UPLOAD_DIR"), app.instance_path)
    upload_dir.mkdir(parents=True, exist_ok=True)
    return upload_dir


def allowed_file(filename: str, allowed_extensions=CSV_EXTENSIONS) -> bool:
    if not filename or "." not in filename:
        return False
    extension = filename.rsplit(".", 1)[1].lower()
    return extension in {ext.lower() for ext in allowed_extensions}


def persist_upload(source: Path, app) -> Path:
    """
    Copy ``source`` into the upload directory and return the stored path.

    Queued imports read the copy, so the worker never depends on the caller's
    working directory. Files larger than ``IMPORTER_MAX_UPLOAD_MB`` are refused.
    """

    if not allowed_file(source.name):
        raise ValueError(f"Only CSV files can be imported, got '{source.name}'.")
    max_bytes = int(app.config.get("IMPORTER_MAX_UPLOAD_MB") or 25) * 1024 * 1024
    if source.stat().st_size > max_bytes:
        raise ValueError(f"Upload '{source.name}' exceeds the {max_bytes // (1024 * 1024)} MB limit.")

    target_path = resolve_upload_directory(app) / f"{uuid4().hex}{source.suffix.lower()}"
    shutil.copyfile(source, target_path)
    app.logger.debug("Importer upload persisted to %s", target_path)
    return target_path


def cleanup_upload(path: Path) -> None:
    """
    Remove a stored upload, logging but ignoring filesystem errors.
    """

    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        current_app.logger.warning("Failed to remove importer upload %s: %s", path, exc)


def get_session_store(app) -> ImportSessionStore:
    """Return the session store cached on the importer extension, building it on first use."""

    state = app.extensions.setdefault("importer", {})
    store = state.get("session_store")
    if store is None:
        store = build_session_store(app.config)
        state["session_store"] = store
    return store
