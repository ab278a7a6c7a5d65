import pytest

from config.base import DEFAULT_ZERO_VALUE_POLICIES, _coerce_bool, _parse_int, _parse_policy_map
from config.validation import validate_and_exit, validate_environment


@pytest.mark.parametrize(
    "value,expected",
    [
        ("1", True),
        ("Yes", True),
        (" on ", True),
        ("false", False),
        ("0", False),
        ("maybe", False),
        (None, False),
        (True, True),
    ],
)
def test_coerce_bool(value, expected):
    assert _coerce_bool(value) is expected


def test_coerce_bool_uses_default_for_unknown_values():
    assert _coerce_bool("maybe", default=True) is True


def test_parse_int():
    assert _parse_int("50", 40) == 50
    assert _parse_int("", 40) == 40
    assert _parse_int("fifty", 40) == 40
    assert _parse_int("0", 40, minimum=1) == 40
    assert _parse_int(None, None) is None


def test_parse_policy_map_skips_malformed_pairs():
    parsed = _parse_policy_map("Grant_Salary=ERROR, net_salary=warn,bogus,gross_salary=ignore,=allow")

    assert parsed == {"grant_salary": "error", "net_salary": "warn"}


def test_default_zero_value_policies():
    assert DEFAULT_ZERO_VALUE_POLICIES["pass_probation_salary"] == "error"
    assert DEFAULT_ZERO_VALUE_POLICIES["grant_salary"] == "warn"
    assert set(DEFAULT_ZERO_VALUE_POLICIES.values()) <= {"allow", "warn", "error"}


def test_testing_app_exposes_importer_defaults(app):
    assert app.config["IMPORTER_SESSION_TTL_SECONDS"] == 3600
    assert app.config["IMPORTER_RESULT_TTL_SECONDS"] == 300
    assert app.config["IMPORTER_CHUNK_SIZE"] is None
    assert app.config["IMPORTER_ZERO_VALUE_POLICIES"]["allocation_base_salary"] == "error"


class TestValidateEnvironment:
    def test_non_production_is_always_valid(self, monkeypatch):
        monkeypatch.delenv("SECRET_KEY", raising=False)

        assert validate_environment("development") == (True, [])

    def test_production_requires_secret_and_database(self, monkeypatch):
        monkeypatch.setenv("SECRET_KEY", "your-secret-key")
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("IMPORTER_ZERO_VALUE_POLICIES", raising=False)
        monkeypatch.delenv("IMPORTER_SESSION_BACKEND", raising=False)
        monkeypatch.delenv("IMPORTER_WORKER_ENABLED", raising=False)

        is_valid, errors = validate_environment("production")

        assert is_valid is False
        assert len(errors) == 2
        assert errors[0].startswith("SECRET_KEY is required in production")
        assert errors[1].startswith("DATABASE_URL is required in production")

    def test_redis_backend_requires_url(self, monkeypatch):
        monkeypatch.setenv("SECRET_KEY", "a" * 64)
        monkeypatch.setenv("DATABASE_URL", "postgresql://hrms@db/hrms")
        monkeypatch.delenv("IMPORTER_ZERO_VALUE_POLICIES", raising=False)
        monkeypatch.setenv("IMPORTER_SESSION_BACKEND", "redis")
        monkeypatch.delenv("IMPORTER_REDIS_URL", raising=False)
        monkeypatch.delenv("IMPORTER_WORKER_ENABLED", raising=False)

        assert validate_environment("production") == (
            False,
            ["IMPORTER_REDIS_URL is required when IMPORTER_SESSION_BACKEND=redis"],
        )

    def test_worker_requires_broker(self, monkeypatch):
        monkeypatch.setenv("SECRET_KEY", "a" * 64)
        monkeypatch.setenv("DATABASE_URL", "postgresql://hrms@db/hrms")
        monkeypatch.delenv("IMPORTER_ZERO_VALUE_POLICIES", raising=False)
        monkeypatch.setenv("IMPORTER_WORKER_ENABLED", "true")
        monkeypatch.delenv("CELERY_BROKER_URL", raising=False)
        monkeypatch.delenv("IMPORTER_SESSION_BACKEND", raising=False)

        assert validate_environment("production") == (
            False,
            ["CELERY_BROKER_URL is required when IMPORTER_WORKER_ENABLED=true"],
        )

    def test_malformed_zero_value_policies_are_reported(self, monkeypatch):
        monkeypatch.setenv("SECRET_KEY", "a" * 64)
        monkeypatch.setenv("DATABASE_URL", "postgresql://hrms@db/hrms")
        monkeypatch.setenv("IMPORTER_ZERO_VALUE_POLICIES", "grant_salary=error,net_salary=ignore")
        monkeypatch.delenv("IMPORTER_SESSION_BACKEND", raising=False)
        monkeypatch.delenv("IMPORTER_WORKER_ENABLED", raising=False)

        assert validate_environment("production") == (
            False,
            ["IMPORTER_ZERO_VALUE_POLICIES entry 'net_salary=ignore' must look like field=allow|warn|error"],
        )

    def test_validate_and_exit_exits_on_errors(self, monkeypatch, capsys):
        monkeypatch.delenv("SECRET_KEY", raising=False)
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("IMPORTER_ZERO_VALUE_POLICIES", raising=False)

        with pytest.raises(SystemExit) as excinfo:
            validate_and_exit("production")

        assert excinfo.value.code == 1
        assert "ENVIRONMENT VALIDATION FAILED" in capsys.readouterr().err
