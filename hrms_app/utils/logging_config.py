"""
Application logging setup.

Configures ``app.logger`` from the monitoring config: JSON or text records,
optional rotating file output and console output. Structured context is passed
with ``extra={...}``; the JSON formatter copies those keys onto the record.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

_STANDARD_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()) | {
    "message",
    "asctime",
}

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _STANDARD_RECORD_ATTRS or key.startswith("_"):
                continue
            payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _build_formatter(log_format: str) -> logging.Formatter:
    if (log_format or "").lower() == "json":
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT)


def setup_logging(app) -> None:
    """
    (Re)configure the Flask application logger.

    Safe to call repeatedly: handlers installed by a previous call are removed
    first so tests can re-initialise with different settings.
    """
    level_name = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    formatter = _build_formatter(app.config.get("LOG_FORMAT", "text"))

    for handler in list(app.logger.handlers):
        if getattr(handler, "_hrms_managed", False):
            app.logger.removeHandler(handler)
            handler.close()

    handlers: list[logging.Handler] = []
    if app.config.get("ENABLE_CONSOLE_LOGGING", True):
        handlers.append(logging.StreamHandler())

    if app.config.get("ENABLE_FILE_LOGGING", False):
        log_dir = app.config.get("LOG_DIR", "logs")
        if not os.path.isabs(log_dir):
            log_dir = os.path.join(app.root_path, log_dir)
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                os.path.join(log_dir, app.config.get("LOG_FILE_NAME", "hrms_importer.log")),
                maxBytes=int(app.config.get("LOG_FILE_MAX_BYTES", 10485760)),
                backupCount=int(app.config.get("LOG_FILE_BACKUP_COUNT", 10)),
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        handler._hrms_managed = True  # type: ignore[attr-defined]
        app.logger.addHandler(handler)

    app.logger.setLevel(level)
    # Pipeline modules log through ``logging.getLogger(__name__)``
    logging.getLogger("hrms_app").setLevel(level)
