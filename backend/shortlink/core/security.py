"""Security utilities - password hashing and JWT signing/verification"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password

    Returns:
        bool: True if password matches

    Raises:
        ValueError: If the stored hash is malformed
    """
    return bcrypt.checkpw(
        plain_password.encode('utf-8'),
        hashed_password.encode('utf-8')
    )


def get_password_hash(password: str, rounds: int = 12) -> str:
    """
    Hash a password using bcrypt

    Args:
        password: Plain text password (at most 72 bytes once UTF-8 encoded)
        rounds: bcrypt cost factor

    Returns:
        str: Hashed password
    """
    return bcrypt.hashpw(
        password.encode('utf-8'),
        bcrypt.gensalt(rounds=rounds)
    ).decode('utf-8')


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenStatus(str, Enum):
    VALID = "valid"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TokenClaims:
    sub: int
    exp: datetime
    jti: Optional[str] = None


@dataclass(frozen=True)
class TokenVerification:
    """Outcome of a token check; ``claims`` is only set when valid."""

    status: TokenStatus
    claims: Optional[TokenClaims] = None

    @property
    def is_valid(self) -> bool:
        return self.status is TokenStatus.VALID

    @classmethod
    def invalid(cls) -> "TokenVerification":
        return cls(TokenStatus.INVALID_SIGNATURE)

    @classmethod
    def expired(cls) -> "TokenVerification":
        return cls(TokenStatus.EXPIRED)


class TokenCodec:
    """Sign and verify access/refresh JWTs with separate keys."""

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        *,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        leeway_seconds: int = 15,
    ) -> None:
        if not access_secret or not refresh_secret:
            raise ValueError("Both access and refresh secrets are required")
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self._algorithm = algorithm
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl
        self._leeway = leeway_seconds

    @property
    def access_ttl(self) -> timedelta:
        return self._access_ttl

    @property
    def refresh_ttl(self) -> timedelta:
        return self._refresh_ttl

    def sign_access(self, subject_id: int) -> str:
        now = utcnow()
        payload = {
            "sub": str(subject_id),
            "typ": ACCESS_TOKEN_TYPE,
            "iat": now,
            "exp": now + self._access_ttl,
        }
        return jwt.encode(payload, self._access_secret, algorithm=self._algorithm)

    def sign_refresh(self, subject_id: int, jti: str, expires_at: datetime) -> str:
        payload = {
            "sub": str(subject_id),
            "typ": REFRESH_TOKEN_TYPE,
            "jti": jti,
            "iat": utcnow(),
            "exp": expires_at,
        }
        return jwt.encode(payload, self._refresh_secret, algorithm=self._algorithm)

    def verify_access(self, token: str) -> TokenVerification:
        return self._verify(token, self._access_secret, ACCESS_TOKEN_TYPE)

    def verify_refresh(self, token: str, ignore_expiration: bool = False) -> TokenVerification:
        return self._verify(
            token,
            self._refresh_secret,
            REFRESH_TOKEN_TYPE,
            verify_exp=not ignore_expiration,
        )

    def _verify(
        self,
        token: str,
        secret: str,
        expected_type: str,
        verify_exp: bool = True,
    ) -> TokenVerification:
        if not token:
            return TokenVerification.invalid()
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self._algorithm],
                options={"verify_exp": verify_exp, "leeway": self._leeway},
            )
        except ExpiredSignatureError:
            return TokenVerification.expired()
        except JWTError:
            return TokenVerification.invalid()

        claims = self._parse_claims(payload, expected_type)
        if claims is None:
            return TokenVerification.invalid()
        return TokenVerification(TokenStatus.VALID, claims)

    @staticmethod
    def _parse_claims(payload: Dict[str, Any], expected_type: str) -> Optional[TokenClaims]:
        if payload.get("typ") != expected_type:
            return None
        try:
            sub = int(payload["sub"])
            exp = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (KeyError, TypeError, ValueError):
            return None

        jti = payload.get("jti")
        if expected_type == REFRESH_TOKEN_TYPE and not jti:
            return None
        return TokenClaims(sub=sub, exp=exp, jti=jti)
