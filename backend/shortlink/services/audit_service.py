"""Audit service for security-sensitive events."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from shortlink.models.audit import AuditEvent


class AuditService:
    """Persist immutable audit trail entries.

    Events are written in the caller's transaction so they commit or roll
    back together with the change they describe.
    """

    @staticmethod
    def log_event(
        db: Session,
        *,
        user_id: Optional[int],
        action: str,
        ip_address: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditEvent:
        event = AuditEvent(
            user_id=user_id,
            action=action,
            ip_address=ip_address,
            metadata_json=json.dumps(metadata or {}, ensure_ascii=False),
        )
        db.add(event)
        db.flush()
        return event
