"""Short link and click models"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from shortlink.core.database import Base


class Url(Base):
    """Short code pointing at an original URL"""

    __tablename__ = "urls"

    short_url = Column(String(20), primary_key=True)
    original_url = Column(Text, nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    owner = relationship("User", back_populates="urls")
    clicks = relationship("Click", back_populates="url", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Url(short_url='{self.short_url}', owner_id={self.owner_id})>"


class Click(Base):
    """A single redirect through a short link"""

    __tablename__ = "clicks"

    id = Column(Integer, primary_key=True, index=True)
    short_url = Column(String(20), ForeignKey("urls.short_url", ondelete="CASCADE"), nullable=False)
    click_time = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    country_code = Column(String(2), nullable=False, default="UN")

    url = relationship("Url", back_populates="clicks")

    __table_args__ = (
        Index("idx_clicks_short_url_country", "short_url", "country_code"),
    )
