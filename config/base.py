# config.py
import os


def _coerce_bool(value, default=False):
    """Convert environment-style truthy/falsey values to bool."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_int(value, default, *, minimum=None):
    """Parse an integer environment value, falling back to ``default``."""
    if value is None or str(value).strip() == "":
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    if minimum is not None and number < minimum:
        return default
    return number


def _parse_policy_map(value, *, allowed=("allow", "warn", "error")):
    """
    Parse ``field=policy`` pairs separated by commas.

    Returns:
        dict[str, str]: Field name to lower-cased policy. Unknown policies are ignored.
    """
    if not value:
        return {}

    policies = {}
    for raw_item in value.split(","):
        if "=" not in raw_item:
            continue
        field, policy = raw_item.split("=", 1)
        field = field.strip().lower()
        policy = policy.strip().lower()
        if not field or policy not in allowed:
            continue
        policies[field] = policy
    return policies


DEFAULT_ZERO_VALUE_POLICIES = {
    "grant_salary": "warn",
    "grant_benefit": "warn",
    "grant_level_of_effort": "warn",
    "pass_probation_salary": "error",
    "allocation_base_salary": "error",
    "gross_salary": "allow",
    "net_salary": "allow",
}


class Config:
    # SECRET_KEY must be set via environment variable in production
    _flask_env = os.environ.get("FLASK_ENV", "development")
    _is_testing = _flask_env == "testing"
    _is_production = _flask_env == "production"

    SECRET_KEY = os.environ.get("SECRET_KEY")

    if not SECRET_KEY and _is_production:
        raise ValueError(
            "SECRET_KEY environment variable is required in production. "
            'Generate with: python -c "import secrets; print(secrets.token_hex(32))"'
        )

    if not SECRET_KEY and not _is_testing:
        import warnings

        warnings.warn(
            "SECRET_KEY not set. Using default for development only. "
            "Set SECRET_KEY environment variable before deploying.",
            UserWarning,
        )
        SECRET_KEY = "dev-secret-key-change-in-production"

    if not SECRET_KEY:
        SECRET_KEY = "test-secret-key-placeholder"

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # Importer configuration
    IMPORTER_ENABLED = _coerce_bool(os.environ.get("IMPORTER_ENABLED"), default=False)
    IMPORTER_WORKER_ENABLED = _coerce_bool(os.environ.get("IMPORTER_WORKER_ENABLED"), default=False)
    # None keeps each entity's own chunk size (40 or 50 rows)
    IMPORTER_CHUNK_SIZE = _parse_int(os.environ.get("IMPORTER_CHUNK_SIZE"), None, minimum=1)

    IMPORTER_SESSION_BACKEND = os.environ.get("IMPORTER_SESSION_BACKEND", "database").strip().lower()
    if IMPORTER_SESSION_BACKEND not in {"database", "redis"}:
        raise ValueError(
            f"IMPORTER_SESSION_BACKEND must be 'database' or 'redis', got '{IMPORTER_SESSION_BACKEND}'."
        )
    IMPORTER_REDIS_URL = os.environ.get("IMPORTER_REDIS_URL", "redis://localhost:6379/0")
    IMPORTER_SESSION_TTL_SECONDS = _parse_int(os.environ.get("IMPORTER_SESSION_TTL_SECONDS"), 3600, minimum=1)
    IMPORTER_RESULT_TTL_SECONDS = _parse_int(os.environ.get("IMPORTER_RESULT_TTL_SECONDS"), 300, minimum=1)

    IMPORTER_ZERO_VALUE_POLICIES = {
        **DEFAULT_ZERO_VALUE_POLICIES,
        **_parse_policy_map(os.environ.get("IMPORTER_ZERO_VALUE_POLICIES", "")),
    }

    IMPORTER_QUEUE_NAME = os.environ.get("IMPORTER_QUEUE_NAME", "imports")
    CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL")
    CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND")
    CELERY_SQLITE_PATH = os.environ.get("CELERY_SQLITE_PATH")
    CELERY_CONFIG = os.environ.get("CELERY_CONFIG")
    IMPORTER_UPLOAD_DIR = os.environ.get("IMPORTER_UPLOAD_DIR")
    IMPORTER_MAX_UPLOAD_MB = _parse_int(os.environ.get("IMPORTER_MAX_UPLOAD_MB"), 25, minimum=1)


class DevelopmentConfig(Config):
    DEBUG = True
    # Keep the SQLite database in the instance folder next to the project
    _config_dir = os.path.dirname(os.path.abspath(__file__))
    _project_root = os.path.dirname(_config_dir)
    instance_path = os.path.join(_project_root, "instance")

    if not os.path.exists(instance_path):
        os.makedirs(instance_path, exist_ok=True)

    db_path = os.path.join(instance_path, "hrms_dev.db").replace("\\", "/")
    db_uri = f"sqlite:///{db_path}"

    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", db_uri)
    SQLALCHEMY_ECHO = _coerce_bool(os.environ.get("SQLALCHEMY_ECHO"), default=False)
    if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        SQLALCHEMY_ENGINE_OPTIONS = {
            "connect_args": {
                "check_same_thread": False,
                "timeout": 5,
            }
        }
    else:
        SQLALCHEMY_ENGINE_OPTIONS = {}


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get("SECRET_KEY", "test-secret-key-for-testing-only")
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {
            "check_same_thread": False,
            "timeout": 5,
        }
    }


class ProductionConfig(Config):
    DEBUG = False
    uri = os.environ.get("DATABASE_URL")
    if uri and uri.startswith("postgres://"):
        uri = uri.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = uri
    SQLALCHEMY_ECHO = False
