import json
import logging
import sys

from hrms_app.utils.logging_config import JSONFormatter, setup_logging


def _record(**extra):
    record = logging.LogRecord("hrms_app.importer", logging.INFO, __file__, 10, "Imported %s rows", (3,), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extra_fields():
    payload = json.loads(JSONFormatter().format(_record(importer_import_id="abc", importer_kind="grants")))

    assert payload["message"] == "Imported 3 rows"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "hrms_app.importer"
    assert payload["importer_import_id"] == "abc"
    assert payload["importer_kind"] == "grants"
    assert "args" not in payload


def test_json_formatter_renders_exceptions():
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), exc_info=sys.exc_info())

    payload = json.loads(JSONFormatter().format(record))

    assert "ValueError: boom" in payload["exception"]


def test_setup_logging_replaces_managed_handlers(app, tmp_path):
    app.config.update(
        {
            "LOG_LEVEL": "debug",
            "LOG_FORMAT": "json",
            "ENABLE_CONSOLE_LOGGING": True,
            "ENABLE_FILE_LOGGING": True,
            "LOG_DIR": str(tmp_path / "logs"),
        }
    )

    setup_logging(app)
    setup_logging(app)

    managed = [handler for handler in app.logger.handlers if getattr(handler, "_hrms_managed", False)]
    assert len(managed) == 2
    assert all(isinstance(handler.formatter, JSONFormatter) for handler in managed)
    assert app.logger.level == logging.DEBUG
    assert logging.getLogger("hrms_app").level == logging.DEBUG
    assert (tmp_path / "logs" / "hrms_importer.log").exists()


def test_setup_logging_can_disable_all_handlers(app):
    app.config.update({"ENABLE_CONSOLE_LOGGING": False, "ENABLE_FILE_LOGGING": False, "LOG_LEVEL": "WARNING"})

    setup_logging(app)

    assert not [handler for handler in app.logger.handlers if getattr(handler, "_hrms_managed", False)]
    assert app.logger.level == logging.WARNING
