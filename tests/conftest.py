"""
Shared pytest fixtures for the PilotGB Control Tower test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - initiative: Pre-created Initiative at INGESTION (via the API)
"""

import pytest

from app import create_app
from app.models import db as _db


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def initiative(client):
    """Create and return a test Initiative via the API (stage INGESTION)."""
    res = client.post(
        "/api/v1/initiatives",
        json={
            "name": "Churn Model Pilot",
            "description": "Predict subscriber churn from usage telemetry.",
            "project_manager": "Morgan Lee",
            "data_architect": "Elena Park",
        },
    )
    assert res.status_code == 201
    return res.get_json()["initiative"]
