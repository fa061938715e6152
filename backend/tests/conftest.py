"""Pytest fixtures wiring the Flask app, database and auth container.

Each test gets a freshly created schema on the in-memory SQLite database
(Flask-SQLAlchemy keeps it on a single static connection), so data written
and committed by the stores never leaks between cases.
"""

from __future__ import annotations

import os

import pytest

from authsvc.core.config import TestingConfig
from authsvc.core.container import get_container
from authsvc.core.extensions import db as _db  # Flask-SQLAlchemy instance
from authsvc.factory import create_app  # application factory under test


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestingConfig` applied and logging
        noise reduced.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestingConfig)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture()
def db(app):
    """Create all tables for one test and drop them afterwards.

    Yields
    ------
    flask_sqlalchemy.SQLAlchemy
        Database extension bound to the testing application.
    """
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def session(db):
    """Return the scoped session used by the stores (``db.session``)."""
    return db.session


@pytest.fixture()
def client(app, db):
    """Flask test client sharing the test's application context."""
    return app.test_client()


@pytest.fixture()
def container(app, db):
    """The application's :class:`~authsvc.core.container.AuthContainer`."""
    return get_container()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


@pytest.fixture()
def registration_payload(faker):
    """A valid camelCase registration body with a unique email."""
    return {
        "email": faker.unique.email(),
        "firstName": "John",
        "lastName": "Doe",
        "password": "Secure123!",
        "confirmPassword": "Secure123!",
    }


# -- Hook up Factory Boy to the test session ---------------------------------
@pytest.fixture(autouse=True)
def _factories_session(request):
    """Wire Factory Boy's session helper when the test uses the database."""
    from tests.factories import SQLAlchemySession

    if "db" not in request.fixturenames:
        yield
        return
    SQLAlchemySession.set(request.getfixturevalue("session"))
    yield
    SQLAlchemySession.set(None)
