# config/validation.py

"""
Startup checks for a production deployment of the importer.

Development and test runs rely on the defaults in ``config.base``; only
production is checked, and every problem is reported at once so an operator
can fix the environment in a single pass.
"""

import os
import sys
from typing import List, Optional, Tuple

PLACEHOLDER_SECRETS = frozenset({"your-secret-key", "your_secret_key", "dev-secret-key-change-in-production"})
ZERO_POLICIES = ("allow", "warn", "error")

# (switch variable, value that turns it on, variable it then requires)
CONDITIONAL_REQUIREMENTS = (
    ("IMPORTER_SESSION_BACKEND", "redis", "IMPORTER_REDIS_URL"),
    ("IMPORTER_WORKER_ENABLED", "true", "CELERY_BROKER_URL"),
)


def _env(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


def _check_secret_key() -> Optional[str]:
    secret_key = _env("SECRET_KEY")
    if secret_key and secret_key not in PLACEHOLDER_SECRETS:
        return None
    return (
        "SECRET_KEY is required in production and must not be the default value. "
        'Generate a secure key: python -c "import secrets; print(secrets.token_hex(32))"'
    )


def _check_zero_value_policies() -> List[str]:
    """Malformed ``field=policy`` pairs are silently dropped by config.base; surface them here."""
    errors = []
    for item in _env("IMPORTER_ZERO_VALUE_POLICIES").split(","):
        item = item.strip()
        if not item:
            continue
        field, _, policy = item.partition("=")
        if not field.strip() or policy.strip().lower() not in ZERO_POLICIES:
            errors.append(
                f"IMPORTER_ZERO_VALUE_POLICIES entry '{item}' must look like field={'|'.join(ZERO_POLICIES)}"
            )
    return errors


def validate_environment(flask_env: str = None) -> Tuple[bool, List[str]]:
    """
    Check the environment variables a production importer needs.

    Args:
        flask_env: development, production or testing; read from FLASK_ENV when None

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    if flask_env is None:
        flask_env = _env("FLASK_ENV", "development")
    if flask_env != "production":
        return True, []

    errors: List[str] = []
    secret_error = _check_secret_key()
    if secret_error:
        errors.append(secret_error)

    if not _env("DATABASE_URL"):
        errors.append("DATABASE_URL is required in production. Set it to your PostgreSQL connection string.")

    for switch, enabling_value, required in CONDITIONAL_REQUIREMENTS:
        if _env(switch).lower() == enabling_value and not _env(required):
            errors.append(f"{required} is required when {switch}={enabling_value}")

    errors.extend(_check_zero_value_policies())
    return not errors, errors


def validate_and_exit(flask_env: str = None) -> None:
    """Print a report to stderr and exit with status 1 when the environment is invalid."""
    is_valid, errors = validate_environment(flask_env)
    if is_valid:
        return

    rule = "=" * 80
    lines = [rule, "ENVIRONMENT VALIDATION FAILED", rule, ""]
    lines.extend(f"{number}. {error}" for number, error in enumerate(errors, 1))
    lines.extend(["", "Fix the variables above in your .env file or deployment environment.", rule])
    print("\n".join(lines), file=sys.stderr)
    sys.exit(1)
