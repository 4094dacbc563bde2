import json
from datetime import timedelta, timezone

import pytest

from shortlink.core.exceptions import (
    DuplicateUsernameError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    RefreshTokenReuseError,
)
from shortlink.core.security import utcnow
from shortlink.models.audit import AuditEvent
from shortlink.models.session import RefreshSession
from shortlink.models.user import User
from shortlink.services.session_store import SessionStore


def _jti(auth_service, refresh_token):
    return auth_service.tokens.verify_refresh_token(refresh_token).claims.jti


def _sessions(db, user_id):
    return SessionStore.count_for_user(db, user_id)


def test_register_creates_user_and_first_session(db_session, auth_service):
    user, pair = auth_service.register(db_session, "alice", "Passw0rd!", ip_address="10.0.0.1")

    assert user.id is not None
    assert auth_service.tokens.verify_access_token(pair.access_token).claims.sub == user.id
    assert SessionStore.get(db_session, _jti(auth_service, pair.refresh_token)) is not None
    assert _sessions(db_session, user.id) == 1

    event = db_session.query(AuditEvent).filter_by(action="user_registered").one()
    assert event.user_id == user.id
    assert event.ip_address == "10.0.0.1"


def test_duplicate_registration_leaves_no_partial_state(db_session, auth_service):
    user, _ = auth_service.register(db_session, "alice", "Passw0rd!")

    with pytest.raises(DuplicateUsernameError):
        auth_service.register(db_session, "alice", "Another1!")

    assert db_session.query(User).count() == 1
    assert _sessions(db_session, user.id) == 1


def test_register_rolls_back_user_when_session_issue_fails(db_session, auth_service, monkeypatch):
    def boom(db, user_id):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(auth_service.tokens, "issue_token_pair", boom)

    with pytest.raises(RuntimeError):
        auth_service.register(db_session, "alice", "Passw0rd!")

    assert db_session.query(User).count() == 0
    assert db_session.query(RefreshSession).count() == 0


def test_login_issues_an_additional_session(db_session, auth_service):
    user, _ = auth_service.register(db_session, "alice", "Passw0rd!")

    logged_in, pair = auth_service.login(db_session, "alice", "Passw0rd!")

    assert logged_in.id == user.id
    assert _sessions(db_session, user.id) == 2
    assert auth_service.tokens.verify_refresh_token(pair.refresh_token).is_valid


@pytest.mark.parametrize("username, password", [("alice", "wrong-pass"), ("nobody", "Passw0rd!")])
def test_login_failure_is_generic(db_session, auth_service, username, password):
    auth_service.register(db_session, "alice", "Passw0rd!")

    with pytest.raises(InvalidCredentialsError) as exc_info:
        auth_service.login(db_session, username, password)
    assert exc_info.value.message == "Invalid username or password"
    assert exc_info.value.status_code == 401


def test_refresh_rotates_the_session(db_session, auth_service):
    user, first = auth_service.register(db_session, "alice", "Passw0rd!")
    old_jti = _jti(auth_service, first.refresh_token)

    user_id, second = auth_service.refresh(db_session, first.refresh_token)

    assert user_id == user.id
    new_jti = _jti(auth_service, second.refresh_token)
    assert new_jti != old_jti
    assert SessionStore.get(db_session, old_jti) is None

    record = SessionStore.get(db_session, new_jti)
    assert record is not None
    expires_at = record.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    assert abs(expires_at - (utcnow() + timedelta(days=7))) < timedelta(seconds=5)
    assert _sessions(db_session, user.id) == 1


def test_replayed_refresh_token_revokes_every_session(db_session, auth_service):
    user, laptop = auth_service.register(db_session, "alice", "Passw0rd!")
    _, phone = auth_service.login(db_session, "alice", "Passw0rd!")
    assert _sessions(db_session, user.id) == 2

    _, rotated = auth_service.refresh(db_session, laptop.refresh_token)

    with pytest.raises(RefreshTokenReuseError) as exc_info:
        auth_service.refresh(db_session, laptop.refresh_token, ip_address="203.0.113.9")
    assert exc_info.value.user_id == user.id
    assert exc_info.value.status_code == 403

    assert _sessions(db_session, user.id) == 0
    # Neither the rotated token nor the other device survives
    for token in (rotated.refresh_token, phone.refresh_token):
        with pytest.raises(RefreshTokenReuseError):
            auth_service.refresh(db_session, token)

    event = db_session.query(AuditEvent).filter_by(action="refresh_token_reuse_detected").order_by(AuditEvent.id).first()
    assert event is not None
    assert event.user_id == user.id
    assert event.ip_address == "203.0.113.9"
    assert json.loads(event.metadata_json) == {"revoked_sessions": 2}


def test_reuse_and_invalid_errors_look_the_same(db_session, auth_service):
    _, pair = auth_service.register(db_session, "alice", "Passw0rd!")
    auth_service.refresh(db_session, pair.refresh_token)

    with pytest.raises(RefreshTokenReuseError) as reuse:
        auth_service.refresh(db_session, pair.refresh_token)
    with pytest.raises(InvalidRefreshTokenError) as invalid:
        auth_service.refresh(db_session, "garbage")

    assert reuse.value.message == invalid.value.message == "Invalid refresh token"
    assert reuse.value.status_code == invalid.value.status_code


@pytest.mark.parametrize("token", [None, "", "not.a.jwt"])
def test_refresh_rejects_malformed_tokens(db_session, auth_service, token):
    user, _ = auth_service.register(db_session, "alice", "Passw0rd!")

    with pytest.raises(InvalidRefreshTokenError):
        auth_service.refresh(db_session, token)
    assert _sessions(db_session, user.id) == 1


def test_refresh_rejects_access_token(db_session, auth_service):
    user, pair = auth_service.register(db_session, "alice", "Passw0rd!")

    with pytest.raises(InvalidRefreshTokenError):
        auth_service.refresh(db_session, pair.access_token)
    assert _sessions(db_session, user.id) == 1


def test_expired_refresh_token_is_rejected_without_touching_sessions(db_session, auth_service):
    user, _ = auth_service.register(db_session, "alice", "Passw0rd!")
    tokens = auth_service.tokens
    jti = tokens.new_jti()
    expires_at = (utcnow() - timedelta(minutes=5)).replace(microsecond=0)
    SessionStore.create(db_session, user_id=user.id, jti=jti, expires_at=expires_at)
    db_session.commit()
    expired = tokens.codec.sign_refresh(user.id, jti, expires_at)

    with pytest.raises(InvalidRefreshTokenError):
        auth_service.refresh(db_session, expired)

    assert SessionStore.get(db_session, jti) is not None
    assert _sessions(db_session, user.id) == 2


def test_logout_is_idempotent(db_session, auth_service):
    user, pair = auth_service.register(db_session, "alice", "Passw0rd!")

    assert auth_service.logout(db_session, pair.refresh_token) is True
    assert auth_service.logout(db_session, pair.refresh_token) is False
    assert _sessions(db_session, user.id) == 0


@pytest.mark.parametrize("token", [None, "", "garbage"])
def test_logout_without_usable_token_does_nothing(db_session, auth_service, token):
    user, _ = auth_service.register(db_session, "alice", "Passw0rd!")

    assert auth_service.logout(db_session, token) is False
    assert _sessions(db_session, user.id) == 1


def test_logged_out_token_cannot_refresh(db_session, auth_service):
    _, pair = auth_service.register(db_session, "alice", "Passw0rd!")
    auth_service.logout(db_session, pair.refresh_token)

    with pytest.raises(RefreshTokenReuseError):
        auth_service.refresh(db_session, pair.refresh_token)


def test_logout_everywhere_only_touches_one_user(db_session, auth_service):
    alice, _ = auth_service.register(db_session, "alice", "Passw0rd!")
    auth_service.login(db_session, "alice", "Passw0rd!")
    bob, _ = auth_service.register(db_session, "bob", "Passw0rd!")

    assert auth_service.logout_everywhere(db_session, alice.id) == 2

    assert _sessions(db_session, alice.id) == 0
    assert _sessions(db_session, bob.id) == 1
    assert db_session.query(AuditEvent).filter_by(action="logout_everywhere").count() == 1
