"""User model"""

from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from shortlink.core.database import Base


class User(Base):
    """User account; the username is unique at the database level"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    refresh_sessions = relationship("RefreshSession", back_populates="user", passive_deletes=True)
    urls = relationship("Url", back_populates="owner", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("username", name="uq_users_username"),
    )

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"
