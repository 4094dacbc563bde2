"""Authentication flows: registration, login, logout and token rotation."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from prometheus_client import Counter
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shortlink.core.database import transaction
from shortlink.core.exceptions import (
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    RefreshTokenReuseError,
)
from shortlink.models.user import User
from shortlink.services.audit_service import AuditService
from shortlink.services.token_service import TokenPair, TokenService
from shortlink.services.user_service import UserService

logger = logging.getLogger(__name__)

REFRESH_OUTCOMES = Counter(
    "shortlink_refresh_outcomes_total",
    "Refresh token rotation attempts by outcome",
    ["outcome"],
)


class AuthService:
    """Sequence the auth flows over one transaction per request."""

    def __init__(
        self,
        token_service: TokenService,
        user_service: UserService,
        audit_service: Optional[AuditService] = None,
    ) -> None:
        self.tokens = token_service
        self.users = user_service
        self.audit = audit_service or AuditService()

    def register(
        self,
        db: Session,
        username: str,
        password: str,
        ip_address: Optional[str] = None,
    ) -> Tuple[User, TokenPair]:
        """
        Create the account and its first session atomically.

        Raises:
            DuplicateUsernameError: If the username is taken
        """
        with transaction(db):
            user = self.users.create_user(db, username, password)
            pair = self.tokens.issue_token_pair(db, user.id)
            self.audit.log_event(db, user_id=user.id, action="user_registered", ip_address=ip_address)

        logger.info("Registered user_id=%s", user.id)
        return user, pair

    def login(self, db: Session, username: str, password: str) -> Tuple[User, TokenPair]:
        """
        Raises:
            InvalidCredentialsError: Unknown username or wrong password
        """
        user = self.users.authenticate_user(db, username, password)
        if user is None:
            raise InvalidCredentialsError()

        with transaction(db):
            pair = self.tokens.issue_token_pair(db, user.id)

        logger.info("User authenticated: user_id=%s", user.id)
        return user, pair

    def logout(self, db: Session, refresh_token: Optional[str]) -> bool:
        """
        Best-effort revocation of one session.

        Never raises for bad tokens or storage failures; the caller reports
        success either way.

        Returns:
            bool: True if a live session was deleted
        """
        if not refresh_token:
            return False
        try:
            with transaction(db):
                return self.tokens.revoke_specific_refresh_token(db, refresh_token)
        except SQLAlchemyError:
            logger.exception("Failed to revoke refresh session during logout")
            return False

    def logout_everywhere(self, db: Session, user_id: int, ip_address: Optional[str] = None) -> int:
        with transaction(db):
            count = self.tokens.revoke_user_refresh_tokens(db, user_id)
            self.audit.log_event(
                db,
                user_id=user_id,
                action="logout_everywhere",
                ip_address=ip_address,
                metadata={"revoked_sessions": count},
            )
        return count

    def refresh(
        self,
        db: Session,
        refresh_token: Optional[str],
        ip_address: Optional[str] = None,
    ) -> Tuple[int, TokenPair]:
        """
        Exchange a live refresh token for a new pair, consuming the old one.

        Presenting a well-formed, unexpired token whose session is gone means
        it was already redeemed: every session of that user is revoked.

        Returns:
            (user_id, new token pair)

        Raises:
            InvalidRefreshTokenError: Malformed, forged or expired token
            RefreshTokenReuseError: Token already consumed
        """
        verification = self.tokens.verify_refresh_token(refresh_token or "")
        if not verification.is_valid:
            REFRESH_OUTCOMES.labels("invalid").inc()
            raise InvalidRefreshTokenError()

        user_id = verification.claims.sub
        pair: Optional[TokenPair] = None

        with transaction(db):
            found = self.tokens.revoke_specific_refresh_token(db, refresh_token)
            if found:
                pair = self.tokens.issue_token_pair(db, user_id)
            else:
                revoked = self.tokens.revoke_user_refresh_tokens(db, user_id)
                self.audit.log_event(
                    db,
                    user_id=user_id,
                    action="refresh_token_reuse_detected",
                    ip_address=ip_address,
                    metadata={"revoked_sessions": revoked},
                )

        if pair is None:
            REFRESH_OUTCOMES.labels("reuse_detected").inc()
            logger.warning(
                "SECURITY ALERT: re-used or unknown refresh token for user_id=%s; all sessions revoked",
                user_id,
            )
            raise RefreshTokenReuseError(user_id)

        REFRESH_OUTCOMES.labels("success").inc()
        return user_id, pair
