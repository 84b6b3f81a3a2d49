"""
User Service

Account creation, lookup and profile maintenance.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from teamdesk.models.user import User
from teamdesk.core.security import get_password_hash, verify_password
from teamdesk.core.exceptions import InvalidInputError, UserAlreadyExistsError
from teamdesk.utils.logging import get_logger

logger = get_logger(__name__)

# Throwaway inbox providers rejected at signup
DISPOSABLE_EMAIL_DOMAINS = frozenset({
    "10minutemail.com",
    "guerrillamail.com",
    "mailinator.com",
    "maildrop.cc",
    "sharklasers.com",
    "tempmail.com",
    "temp-mail.org",
    "throwawaymail.com",
    "trashmail.com",
    "yopmail.com",
})


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_disposable_email(email: str) -> bool:
    domain = normalize_email(email).rsplit("@", 1)[-1]
    return domain in DISPOSABLE_EMAIL_DOMAINS


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def create_user(self, email: str, password: str, full_name: Optional[str] = None) -> User:
        """
        Create a new account.

        Raises InvalidInputError for disposable email domains and
        UserAlreadyExistsError when the email is taken.
        """
        email = normalize_email(email)

        if is_disposable_email(email):
            raise InvalidInputError("Please use a permanent email address")

        if self.find_by_email(email):
            raise UserAlreadyExistsError()

        user = User(
            email=email,
            hashed_password=get_password_hash(password),
            full_name=full_name,
            is_active=True,
            email_verified=False
        )

        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"User created: {user.id}")
        return user

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(
            User.email == normalize_email(email)
        ).first()

    def find_by_id(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """
        Return the user when the password matches, None otherwise.

        Updates last_login_at on success.
        """
        user = self.find_by_email(email)
        if not user or not verify_password(password, user.hashed_password):
            return None

        user.last_login_at = datetime.utcnow()
        self.db.commit()
        return user

    def update_profile(self, user: User, full_name: Optional[str] = None) -> User:
        if full_name is not None:
            user.full_name = full_name
        self.db.commit()
        self.db.refresh(user)
        return user

    def change_password(self, user: User, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.hashed_password):
            raise InvalidInputError("Current password is incorrect")

        user.hashed_password = get_password_hash(new_password)
        self.db.commit()
        logger.info(f"Password changed for user {user.id}")

    def is_active(self, user_id: str) -> bool:
        user = self.find_by_id(user_id)
        return bool(user and user.is_active)

    def deactivate(self, user_id: str) -> Optional[User]:
        return self._set_active(user_id, False)

    def reactivate(self, user_id: str) -> Optional[User]:
        return self._set_active(user_id, True)

    def _set_active(self, user_id: str, active: bool) -> Optional[User]:
        user = self.find_by_id(user_id)
        if not user:
            return None
        user.is_active = active
        self.db.commit()
        self.db.refresh(user)
        return user
