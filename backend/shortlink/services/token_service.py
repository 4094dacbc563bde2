"""Refresh token issuance, verification and revocation service."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass

from sqlalchemy.orm import Session

from shortlink.core.security import TokenCodec, TokenVerification, utcnow
from shortlink.services.session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenService:
    """Issue and revoke paired access/refresh credentials.

    Access tokens are stateless. A refresh token is honoured only while the
    session row carrying its ``jti`` exists in the store.
    """

    def __init__(self, codec: TokenCodec, store: SessionStore) -> None:
        self.codec = codec
        self.store = store

    @staticmethod
    def new_jti() -> str:
        return secrets.token_hex(32)

    def create_access_token(self, user_id: int) -> str:
        return self.codec.sign_access(user_id)

    def create_refresh_token(self, db: Session, user_id: int) -> str:
        jti = self.new_jti()
        # One value for both the signed exp claim and the stored column.
        expires_at = (utcnow() + self.codec.refresh_ttl).replace(microsecond=0)
        token = self.codec.sign_refresh(user_id, jti, expires_at)
        self.store.create(db, user_id=user_id, jti=jti, expires_at=expires_at)
        return token

    def issue_token_pair(self, db: Session, user_id: int) -> TokenPair:
        return TokenPair(
            access_token=self.create_access_token(user_id),
            refresh_token=self.create_refresh_token(db, user_id),
        )

    def verify_access_token(self, token: str) -> TokenVerification:
        return self.codec.verify_access(token)

    def verify_refresh_token(self, token: str) -> TokenVerification:
        return self.codec.verify_refresh(token)

    def revoke_specific_refresh_token(self, db: Session, token: str) -> bool:
        """
        Consume the session behind ``token``.

        Expiration is ignored so an expired but authentic token can still be
        revoked; the signature is not.

        Returns:
            bool: True if a live session row was deleted
        """
        result = self.codec.verify_refresh(token, ignore_expiration=True)
        if not result.is_valid:
            return False
        return self.store.delete_by_jti(db, result.claims.jti)

    def revoke_user_refresh_tokens(self, db: Session, user_id: int) -> int:
        count = self.store.delete_all_for_user(db, user_id)
        logger.info("Revoked %d refresh session(s) for user_id=%s", count, user_id)
        return count
