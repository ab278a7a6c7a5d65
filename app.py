# app.py

import logging
import os
import sqlite3

from dotenv import load_dotenv
from flask import Flask
from sqlalchemy import event

# Load environment variables from .env file first
load_dotenv()

# Module imports after load_dotenv() - E402 is intentional
from config import DevelopmentConfig, ProductionConfig, TestingConfig  # noqa: E402
from config.monitoring import (  # noqa: E402
    DevelopmentMonitoringConfig,
    ProductionMonitoringConfig,
    TestingMonitoringConfig,
)
from config.validation import validate_and_exit  # noqa: E402
from hrms_app.importer import init_importer  # noqa: E402
from hrms_app.models import db  # noqa: E402
from hrms_app.utils.logging_config import setup_logging  # noqa: E402

logger = logging.getLogger(__name__)

_CONFIGS = {
    "production": (ProductionConfig, ProductionMonitoringConfig),
    "testing": (TestingConfig, TestingMonitoringConfig),
    "development": (DevelopmentConfig, DevelopmentMonitoringConfig),
}


def _configure_sqlite_connection_factory(*, enable_foreign_keys: bool):
    """Return a connection hook applying concurrency-friendly pragmas."""

    def _configure_sqlite_connection(dbapi_connection, connection_record):  # pragma: no cover - instrumentation
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.execute("PRAGMA busy_timeout=5000")
            if enable_foreign_keys:
                cursor.execute("PRAGMA foreign_keys=ON")
        except sqlite3.Error as exc:
            logger.warning("Failed to apply SQLite PRAGMAs: %s", exc)
        finally:
            cursor.close()

    return _configure_sqlite_connection


def create_app(config_overrides=None, flask_env=None):
    """Build the Flask application for ``FLASK_ENV`` (development, testing or production)."""
    flask_env = flask_env or os.environ.get("FLASK_ENV", "development")
    if flask_env == "production":
        validate_and_exit(flask_env)

    app = Flask(__name__)
    config_class, monitoring_class = _CONFIGS.get(flask_env, _CONFIGS["development"])
    app.config.from_object(config_class)
    app.config.from_object(monitoring_class)
    if config_overrides:
        app.config.update(config_overrides)

    db.init_app(app)
    setup_logging(app)

    with app.app_context():
        engine = db.engine
        if engine.url.drivername.startswith("sqlite"):
            if not getattr(engine, "_sqlite_pragmas_configured", False):
                pragma_hook = _configure_sqlite_connection_factory(
                    enable_foreign_keys=not app.config.get("TESTING", False)
                )
                event.listen(engine, "connect", pragma_hook)
                engine._sqlite_pragmas_configured = True  # type: ignore[attr-defined]
        # No migrations: tables are created directly outside of tests
        if not app.config.get("TESTING", False):
            db.create_all()

    init_importer(app)
    return app


app = create_app()


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port)
