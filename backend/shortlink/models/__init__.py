"""Database models"""

from shortlink.models.user import User
from shortlink.models.session import RefreshSession
from shortlink.models.link import Url, Click
from shortlink.models.audit import AuditEvent

__all__ = ["User", "RefreshSession", "Url", "Click", "AuditEvent"]
