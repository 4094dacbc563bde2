"""User service - account creation and credential checks"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional
from shortlink.models.user import User
from shortlink.core.security import get_password_hash, verify_password
from shortlink.core.exceptions import DuplicateUsernameError
import logging

logger = logging.getLogger(__name__)


class UserService:
    """Service for user accounts"""

    def __init__(self, bcrypt_rounds: int = 12) -> None:
        self.bcrypt_rounds = bcrypt_rounds
        self._dummy_hash: Optional[str] = None

    def hash_password(self, password: str) -> str:
        return get_password_hash(password, rounds=self.bcrypt_rounds)

    def create_user(self, db: Session, username: str, password: str) -> User:
        """
        Insert a new user inside the caller's transaction

        Uniqueness is left to the database constraint; a violation surfaces
        as DuplicateUsernameError.

        Args:
            db: Database session (open transaction)
            username: Normalized username
            password: Plain text password

        Returns:
            Flushed user with its id assigned
        """
        user = User(username=username, password_hash=self.hash_password(password))
        db.add(user)
        try:
            db.flush()
        except IntegrityError as exc:
            raise DuplicateUsernameError() from exc
        return user

    def authenticate_user(self, db: Session, username: str, password: str) -> Optional[User]:
        """
        Check credentials

        Unknown usernames still cost one hash verification so timing does
        not reveal whether the account exists.

        Returns:
            The user, or None if the credentials do not match
        """
        user = self.get_user_by_username(db, username)
        if user is None:
            verify_password(password, self._get_dummy_hash())
            return None

        if not verify_password(password, user.password_hash):
            return None
        return user

    def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = self.hash_password("dummy-password-for-timing")
        return self._dummy_hash

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return db.get(User, user_id)

    @staticmethod
    def get_user_by_username(db: Session, username: str) -> Optional[User]:
        """Get user by username"""
        return db.query(User).filter(User.username == username).first()
