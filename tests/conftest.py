"""Pytest configuration and fixtures."""

import itertools

import pytest

from amigo_secreto import create_app
from amigo_secreto.extensions import db
from amigo_secreto.services import participants as participant_service

AUTH_HEADER = "X-Participant-Id"


@pytest.fixture
def app(tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "ASSIGNMENT_ENC_KEY": "",
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'amigosecreto-test.db'}",
            "DRAW_STRATEGY": "cycle",
            "AUTH_HEADER": AUTH_HEADER,
            "API_PREFIX": "",
        }
    )
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """An application context for calling services directly."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def register(app):
    """Register participants by name; returns their ids in order."""
    phones = itertools.count(1)

    def _register(*names, admin=False):
        ids = []
        with app.app_context():
            for name in names:
                phone = f"+52155{next(phones):07d}"
                ids.append(participant_service.register(name, phone, is_admin=admin).id)
        return ids
    return _register


@pytest.fixture
def as_user():
    def _headers(participant_id):
        return {AUTH_HEADER: str(participant_id)}
    return _headers
