import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from shortlink.core.database import Base, build_engine, build_session_factory
from shortlink.core.exceptions import RefreshTokenReuseError
from shortlink.services.session_store import SessionStore

WORKERS = 8


@pytest.fixture()
def file_session_factory(tmp_path):
    # Separate connections per thread need a real database file
    engine = build_engine(f"sqlite:///{tmp_path / 'concurrency.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield build_session_factory(engine)
    finally:
        engine.dispose()


def test_concurrent_refresh_of_one_token_has_a_single_winner(file_session_factory, auth_service):
    db = file_session_factory()
    try:
        user, pair = auth_service.register(db, "alice", "Passw0rd!")
        user_id = user.id
    finally:
        db.close()
    old_jti = auth_service.tokens.verify_refresh_token(pair.refresh_token).claims.jti

    barrier = threading.Barrier(WORKERS)

    def attempt():
        session = file_session_factory()
        try:
            barrier.wait()
            try:
                auth_service.refresh(session, pair.refresh_token)
                return "success"
            except RefreshTokenReuseError:
                return "reuse"
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        outcomes = list(pool.map(lambda _: attempt(), range(WORKERS)))

    assert outcomes.count("success") == 1
    assert outcomes.count("reuse") == WORKERS - 1

    db = file_session_factory()
    try:
        assert SessionStore.get(db, old_jti) is None
    finally:
        db.close()
