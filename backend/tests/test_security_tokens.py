from datetime import timedelta

import pytest

from shortlink.core.security import TokenCodec, TokenStatus, utcnow

ACCESS_SECRET = "access-secret-for-tests"
REFRESH_SECRET = "refresh-secret-for-tests"


@pytest.fixture()
def codec():
    return TokenCodec(ACCESS_SECRET, REFRESH_SECRET)


def _refresh(codec, sub=9, jti="a" * 64, expires_in=timedelta(days=7)):
    return codec.sign_refresh(sub, jti, (utcnow() + expires_in).replace(microsecond=0))


def test_access_token_round_trip(codec):
    token = codec.sign_access(7)
    result = codec.verify_access(token)
    assert result.is_valid
    assert result.claims.sub == 7
    assert result.claims.jti is None
    remaining = result.claims.exp - utcnow()
    assert timedelta(minutes=14) < remaining <= timedelta(minutes=15)


def test_refresh_token_round_trip_carries_jti_and_exact_expiry(codec):
    expires_at = (utcnow() + timedelta(days=7)).replace(microsecond=0)
    token = codec.sign_refresh(9, "jti-xyz", expires_at)
    result = codec.verify_refresh(token)
    assert result.status is TokenStatus.VALID
    assert result.claims.sub == 9
    assert result.claims.jti == "jti-xyz"
    assert result.claims.exp == expires_at


def test_access_verifier_rejects_refresh_token(codec):
    assert codec.verify_access(_refresh(codec)).status is TokenStatus.INVALID_SIGNATURE


def test_refresh_verifier_rejects_access_token(codec):
    assert codec.verify_refresh(codec.sign_access(1)).status is TokenStatus.INVALID_SIGNATURE


def test_same_type_claim_under_wrong_key_is_rejected(codec):
    other = TokenCodec(REFRESH_SECRET, ACCESS_SECRET)
    assert codec.verify_access(other.sign_access(1)).status is TokenStatus.INVALID_SIGNATURE
    assert codec.verify_refresh(_refresh(other)).status is TokenStatus.INVALID_SIGNATURE


def test_altered_payload_is_rejected(codec):
    header, _, signature = codec.sign_access(1).split(".")
    _, forged_payload, _ = codec.sign_access(2).split(".")
    forged = ".".join([header, forged_payload, signature])
    assert codec.verify_access(forged).status is TokenStatus.INVALID_SIGNATURE


@pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
def test_garbage_is_rejected(codec, token):
    assert codec.verify_access(token).status is TokenStatus.INVALID_SIGNATURE
    assert codec.verify_refresh(token).status is TokenStatus.INVALID_SIGNATURE


def test_expired_access_token():
    codec = TokenCodec(ACCESS_SECRET, REFRESH_SECRET, access_ttl=timedelta(minutes=-5))
    assert codec.verify_access(codec.sign_access(1)).status is TokenStatus.EXPIRED


def test_expiry_within_clock_skew_is_accepted(codec):
    token = _refresh(codec, expires_in=timedelta(seconds=-5))
    assert codec.verify_refresh(token).is_valid


def test_expired_refresh_token_needs_ignore_expiration(codec):
    token = _refresh(codec, expires_in=timedelta(hours=-1))
    assert codec.verify_refresh(token).status is TokenStatus.EXPIRED

    result = codec.verify_refresh(token, ignore_expiration=True)
    assert result.is_valid
    assert result.claims.jti == "a" * 64


def test_ignore_expiration_still_checks_signature(codec):
    other = TokenCodec("x" * 20, "y" * 20)
    token = _refresh(other, expires_in=timedelta(hours=-1))
    assert codec.verify_refresh(token, ignore_expiration=True).status is TokenStatus.INVALID_SIGNATURE


def test_refresh_token_without_jti_is_rejected(codec):
    token = codec.sign_refresh(1, "", (utcnow() + timedelta(days=1)).replace(microsecond=0))
    assert codec.verify_refresh(token).status is TokenStatus.INVALID_SIGNATURE


def test_codec_requires_both_secrets():
    with pytest.raises(ValueError):
        TokenCodec("", REFRESH_SECRET)
    with pytest.raises(ValueError):
        TokenCodec(ACCESS_SECRET, "")
