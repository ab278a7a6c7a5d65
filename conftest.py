# conftest.py

import os
import tempfile
import uuid

import pytest

# Set testing environment BEFORE importing app so app.py picks TestingConfig
os.environ["FLASK_ENV"] = "testing"

from app import create_app  # noqa: E402
from hrms_app.models import User, db  # noqa: E402


@pytest.fixture(scope="function")
def app():
    """Create a Flask application bound to an isolated SQLite file"""
    db_fd, temp_db = tempfile.mkstemp(suffix=f"_{uuid.uuid4().hex[:8]}.db")

    try:
        flask_app = create_app(
            {
                "TESTING": True,
                "SQLALCHEMY_DATABASE_URI": f"sqlite:///{temp_db}",
                "SECRET_KEY": "test-secret-key-for-testing-only",
                "ENABLE_FILE_LOGGING": False,
                "ENABLE_CONSOLE_LOGGING": False,
                "IMPORTER_ENABLED": False,
                "IMPORTER_WORKER_ENABLED": False,
                "IMPORTER_SESSION_BACKEND": "database",
            },
            flask_env="testing",
        )

        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            yield flask_app
            db.session.remove()
            db.drop_all()
            db.engine.dispose()
    finally:
        # Always close and remove the temporary database file, even on error
        try:
            os.close(db_fd)
        except OSError:
            pass
        try:
            if os.path.exists(temp_db):
                os.unlink(temp_db)
        except OSError:
            pass


@pytest.fixture(autouse=True)
def app_context(app):
    """Automatically provide app context for all tests"""
    with app.app_context():
        yield


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask application"""
    return app.test_cli_runner()


@pytest.fixture
def test_user():
    """Persist an operator who owns imports"""
    user = User(name="Import Operator", email="operator@example.com")
    db.session.add(user)
    db.session.commit()
    return user
