import os
import tempfile

# Secrets must exist before settings are loaded anywhere.
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret-0123456789abcdef")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret-fedcba9876543210")
os.environ.setdefault("LOG_FILE", os.path.join(tempfile.gettempdir(), "shortlink-tests.log"))

import pytest
from fastapi.testclient import TestClient

from shortlink import models  # noqa: F401
from shortlink.config import load_settings
from shortlink.core.database import Base, build_engine, build_session_factory
from shortlink.main import build_token_service, create_app
from shortlink.services.auth_service import AuthService
from shortlink.services.user_service import UserService


@pytest.fixture()
def settings():
    return load_settings(
        _env_file=None,
        DATABASE_URL="sqlite:///:memory:",
        BCRYPT_ROUNDS=4,
        DB_INIT_MODE="off",
    )


@pytest.fixture()
def db_engine():
    # Fresh in-memory database per test
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def token_service(settings):
    return build_token_service(settings)


@pytest.fixture()
def auth_service(token_service):
    return AuthService(token_service, UserService(bcrypt_rounds=4))


@pytest.fixture()
def app(settings, session_factory):
    return create_app(settings, session_factory)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def make_client(app):
    """Extra clients with their own, empty cookie jars"""
    clients = []

    def _make():
        c = TestClient(app)
        clients.append(c)
        return c

    yield _make
    for c in clients:
        c.close()


def register(client, username="alice", password="Passw0rd!"):
    res = client.post("/api/v1/auth/register", json={"username": username, "password": password})
    assert res.status_code == 201, res.text
    return res.json()
