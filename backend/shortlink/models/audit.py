"""Security audit trail"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from shortlink.core.database import Base


class AuditEvent(Base):
    """Append-only record of account and session events (registration, reuse detection, global logout)"""

    __tablename__ = "audit_events"

    id = Column(Integer, primary_key=True, index=True)
    # Kept after the account is gone
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(64), nullable=False, index=True)
    ip_address = Column(String(45), nullable=True)  # fits IPv6 text form
    metadata_json = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", viewonly=True)

    __table_args__ = (
        Index("idx_audit_events_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<AuditEvent(id={self.id}, action='{self.action}')>"
