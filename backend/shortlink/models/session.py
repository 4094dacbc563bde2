"""Refresh session persistence model."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from shortlink.core.database import Base


class RefreshSession(Base):
    """One issued, not yet consumed refresh token.

    Rows are never updated: a row exists while its token is live and is
    deleted when the token is redeemed or revoked.
    """

    __tablename__ = "refresh_sessions"

    jti = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="refresh_sessions")
