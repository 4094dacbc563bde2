"""Persistent store of live refresh-token identifiers."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shortlink.core.database import is_unique_violation
from shortlink.core.exceptions import SessionConflictError
from shortlink.models.session import RefreshSession


class SessionStore:
    """Create and delete refresh sessions inside the caller's transaction.

    No method commits. The ``db`` argument is the open unit of work; the
    caller decides when it commits or rolls back.
    """

    @staticmethod
    def create(db: Session, *, user_id: int, jti: str, expires_at: datetime) -> RefreshSession:
        record = RefreshSession(jti=jti, user_id=user_id, expires_at=expires_at)
        db.add(record)
        try:
            db.flush()
        except IntegrityError as exc:
            if not is_unique_violation(exc):
                raise
            raise SessionConflictError() from exc
        return record

    @staticmethod
    def delete_by_jti(db: Session, jti: str) -> bool:
        """Delete the session for ``jti`` and report whether a row was removed.

        A single conditional DELETE: of two concurrent calls for the same
        jti, only one can observe a deleted row.
        """
        result = db.execute(
            delete(RefreshSession)
            .where(RefreshSession.jti == jti)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    @staticmethod
    def delete_all_for_user(db: Session, user_id: int) -> int:
        result = db.execute(
            delete(RefreshSession)
            .where(RefreshSession.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    def get(db: Session, jti: str) -> Optional[RefreshSession]:
        return db.get(RefreshSession, jti)

    @staticmethod
    def count_for_user(db: Session, user_id: int) -> int:
        return db.scalar(
            select(func.count()).select_from(RefreshSession).where(RefreshSession.user_id == user_id)
        ) or 0
