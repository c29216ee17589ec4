"""User repository - credential store over SQLAlchemy"""

from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinicaflow.models.user import User
import logging

logger = logging.getLogger(__name__)


class UserRepository:
    """Reads and writes user rows for the session service.

    Every write commits immediately. On a database error the session is
    rolled back and the original exception propagates.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def email_exists(self, email: str) -> bool:
        return self.db.query(User.id).filter(User.email == email).first() is not None

    def create(
        self,
        *,
        name: str,
        email: str,
        password_hash: str,
        clinic_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
        role: str = "visualizador",
    ) -> User:
        user = User(
            name=name,
            email=email,
            password_hash=password_hash,
            clinic_name=clinic_name,
            avatar_url=avatar_url,
            role=role,
        )
        self.db.add(user)
        self._commit()
        self.db.refresh(user)
        return user

    def set_refresh_token_hash(self, user_id: str, token_hash: Optional[str]) -> None:
        self._execute_update(user_id, refresh_token_hash=token_hash)

    def swap_refresh_token_hash(self, user_id: str, expected_hash: str, new_hash: str) -> bool:
        """
        Replace the stored refresh hash only if it still equals ``expected_hash``.

        Returns:
            False when another request rotated or cleared the hash first.
        """
        try:
            result = self.db.execute(
                update(User)
                .where(User.id == user_id, User.refresh_token_hash == expected_hash)
                .values(refresh_token_hash=new_hash)
                .execution_options(synchronize_session=False)
            )
            swapped = result.rowcount == 1
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return swapped

    def set_reset_token(self, user_id: str, token_hash: str, expires_at: datetime) -> None:
        self._execute_update(
            user_id,
            reset_token_hash=token_hash,
            reset_token_expires=expires_at,
        )

    def complete_password_reset(self, user_id: str, password_hash: str) -> None:
        """New password, and every reset and session credential cleared in one statement."""
        self._execute_update(
            user_id,
            password_hash=password_hash,
            reset_token_hash=None,
            reset_token_expires=None,
            refresh_token_hash=None,
        )

    def start_session(self, user_id: str, token_hash: str) -> None:
        """Store the digest of a freshly issued refresh token, replacing any previous one."""
        self._execute_update(user_id, refresh_token_hash=token_hash, last_login=datetime.utcnow())

    def _execute_update(self, user_id: str, **values) -> int:
        try:
            result = self.db.execute(
                update(User)
                .where(User.id == user_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            rowcount = result.rowcount
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return rowcount

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("User write failed")
            raise
