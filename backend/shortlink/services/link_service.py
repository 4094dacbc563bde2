"""Link service - shortening, ownership-scoped management and redirects"""

from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shortlink.core.database import is_unique_violation, transaction
from shortlink.core.exceptions import ResourceNotFoundError, ShortUrlConflictError
from shortlink.core.security import utcnow
from shortlink.models.link import Click, Url

logger = logging.getLogger(__name__)

SHORT_URL_ALPHABET = string.ascii_letters + string.digits + "_-"


def _as_aware(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns.
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


class LinkService:
    """Service for short links"""

    def __init__(self, short_url_length: int = 7, default_expire_days: int = 365) -> None:
        self.short_url_length = short_url_length
        self.default_expire_days = default_expire_days

    def generate_short_url(self) -> str:
        return "".join(secrets.choice(SHORT_URL_ALPHABET) for _ in range(self.short_url_length))

    def generate_unique_short_url(self, db: Session) -> str:
        while True:
            candidate = self.generate_short_url()
            if db.get(Url, candidate) is None:
                return candidate

    def shorten(
        self,
        db: Session,
        owner_id: int,
        original_url: str,
        short_url: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> Url:
        """
        Create a short link, generating a code when no alias is given

        Raises:
            ShortUrlConflictError: If the code is already taken
        """
        code = short_url or self.generate_unique_short_url(db)
        url = Url(
            short_url=code,
            original_url=original_url,
            owner_id=owner_id,
            expires_at=expires_at or utcnow() + timedelta(days=self.default_expire_days),
        )
        try:
            with transaction(db):
                db.add(url)
        except IntegrityError as exc:
            if not is_unique_violation(exc):
                raise
            # Taken between the availability check and the insert, or a custom alias clash
            raise ShortUrlConflictError() from exc

        logger.info("Created short link %s for user_id=%s", code, owner_id)
        return url

    @staticmethod
    def list_user_links(db: Session, owner_id: int) -> List[Url]:
        return (
            db.query(Url)
            .filter(Url.owner_id == owner_id)
            .order_by(Url.created_at.desc())
            .all()
        )

    @staticmethod
    def get_owned_link(db: Session, owner_id: int, short_url: str) -> Url:
        url = (
            db.query(Url)
            .filter(Url.short_url == short_url, Url.owner_id == owner_id)
            .first()
        )
        if url is None:
            raise ResourceNotFoundError("Short URL")
        return url

    def stats_by_country(self, db: Session, owner_id: int, short_url: str) -> List[Tuple[str, int]]:
        """Click counts per country code, most clicks first"""
        self.get_owned_link(db, owner_id, short_url)
        clicks = func.count(Click.id)
        rows = (
            db.query(Click.country_code, clicks)
            .filter(Click.short_url == short_url)
            .group_by(Click.country_code)
            .order_by(clicks.desc(), Click.country_code)
            .all()
        )
        return [(country_code, count) for country_code, count in rows]

    def update_link(self, db: Session, owner_id: int, short_url: str, original_url: str) -> Url:
        with transaction(db):
            url = self.get_owned_link(db, owner_id, short_url)
            url.original_url = original_url
        return url

    def delete_link(self, db: Session, owner_id: int, short_url: str) -> None:
        with transaction(db):
            url = self.get_owned_link(db, owner_id, short_url)
            db.delete(url)
        logger.info("Deleted short link %s for user_id=%s", short_url, owner_id)

    @staticmethod
    def resolve(db: Session, short_url: str) -> Url:
        """
        Find the live link for a redirect

        Raises:
            ResourceNotFoundError: Unknown or expired code
        """
        url = db.get(Url, short_url)
        if url is None or _as_aware(url.expires_at) <= utcnow():
            raise ResourceNotFoundError("URL")
        return url

    @staticmethod
    def record_click(db: Session, short_url: str, country_code: str) -> None:
        with transaction(db):
            db.add(Click(short_url=short_url, country_code=country_code, click_time=utcnow()))
