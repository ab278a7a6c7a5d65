# config/monitoring.py

import os

from .base import _coerce_bool, _parse_int


class MonitoringConfig:
    """Logging settings shared by the web process, CLI and Celery worker"""

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    # 'json' for shipping to a log collector, 'text' for humans
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json").lower()
    LOG_DIR = os.environ.get("LOG_DIR", "logs")
    LOG_FILE_NAME = os.environ.get("LOG_FILE_NAME", "hrms_importer.log")
    LOG_FILE_MAX_BYTES = _parse_int(os.environ.get("LOG_FILE_MAX_BYTES"), 10 * 1024 * 1024, minimum=1024)
    LOG_FILE_BACKUP_COUNT = _parse_int(os.environ.get("LOG_FILE_BACKUP_COUNT"), 10, minimum=0)

    ENABLE_FILE_LOGGING = _coerce_bool(os.environ.get("ENABLE_FILE_LOGGING"), default=True)
    ENABLE_CONSOLE_LOGGING = _coerce_bool(os.environ.get("ENABLE_CONSOLE_LOGGING"), default=True)

    # Reported by the worker heartbeat task
    APP_NAME = os.environ.get("APP_NAME", "HRMS Importer")
    APP_VERSION = os.environ.get("APP_VERSION", "1.0.0")


class DevelopmentMonitoringConfig(MonitoringConfig):
    LOG_LEVEL = "DEBUG"
    LOG_FORMAT = "text"


class ProductionMonitoringConfig(MonitoringConfig):
    LOG_FORMAT = "json"
    # Containers collect stdout; the rotating file is kept for bare-metal hosts
    ENABLE_CONSOLE_LOGGING = _coerce_bool(os.environ.get("ENABLE_CONSOLE_LOGGING"), default=False)


class TestingMonitoringConfig(MonitoringConfig):
    LOG_LEVEL = "WARNING"
    LOG_FORMAT = "text"
    ENABLE_FILE_LOGGING = False
    ENABLE_CONSOLE_LOGGING = False
