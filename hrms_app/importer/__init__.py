"""
Importer feature package.

Registers the ``flask importer`` CLI and the Celery worker when
``IMPORTER_ENABLED`` is set, and stays out of the way otherwise.
"""

from __future__ import annotations

from flask import Flask

from hrms_app.utils.importer import is_importer_enabled

from .celery_app import ensure_celery_app, get_celery_app
from .cli import get_disabled_importer_group, importer_cli
from .registry import get_import_registry
from .utils import get_session_store

IMPORTER_EXTENSION_KEY = "importer"

__all__ = [
    "IMPORTER_EXTENSION_KEY",
    "get_celery_app",
    "get_session_store",
    "init_importer",
]


def _ensure_extension_state(app: Flask) -> dict:
    return app.extensions.setdefault(
        IMPORTER_EXTENSION_KEY,
        {
            "enabled": False,
            "kinds": (),
            "worker_enabled": False,
            "celery_app": None,
            "session_store": None,
        },
    )


def _set_cli(app: Flask, enabled: bool) -> None:
    """Register the appropriate CLI group based on flag state."""
    # Avoid duplicate registrations when running tests
    command_name = importer_cli.name
    if command_name in app.cli.commands:
        app.cli.commands.pop(command_name)

    if enabled:
        app.cli.add_command(importer_cli)
    else:
        app.cli.add_command(get_disabled_importer_group())


def init_importer(app: Flask) -> None:
    """
    Conditionally mount the importer CLI and worker based on configuration.

    State is recorded in ``app.extensions['importer']``: the importable kinds,
    the Celery app and the session store shared by CLI and tasks.
    """
    enabled = is_importer_enabled(app)
    state = _ensure_extension_state(app)
    state.update(
        {
            "enabled": enabled,
            "worker_enabled": bool(app.config.get("IMPORTER_WORKER_ENABLED", False)),
        }
    )

    if not enabled:
        state["kinds"] = ()
        _set_cli(app, enabled=False)
        app.logger.info("Importer disabled via IMPORTER_ENABLED flag; skipping registration.")
        return

    state["kinds"] = tuple(get_import_registry())
    ensure_celery_app(app, state)
    get_session_store(app)
    _set_cli(app, enabled=True)
    app.logger.info(
        "Importer enabled for kinds: %s",
        ", ".join(state["kinds"]),
        extra={"importer_session_backend": app.config.get("IMPORTER_SESSION_BACKEND", "database")},
    )
