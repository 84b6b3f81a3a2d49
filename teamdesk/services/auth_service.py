"""
Auth Service

Password resets and email verification through single-use emailed
tokens. Each issue deletes the user's earlier tokens of the same type,
so only the most recent link works. Methods return what the email
needs; sending it is up to the caller.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from urllib.parse import quote

from sqlalchemy.orm import Session

from teamdesk.config import get_settings
from teamdesk.models.user import User
from teamdesk.models.verification import EMAIL_VERIFICATION, PASSWORD_RESET, VerificationToken
from teamdesk.core.security import generate_verification_token, get_password_hash
from teamdesk.core.exceptions import (
    EmailAlreadyVerifiedError,
    InvalidTokenError,
    UserNotFoundError,
)
from teamdesk.services.user_service import UserService, normalize_email
from teamdesk.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)
settings = get_settings()


def _link(path: str, token: str, email: str) -> str:
    return f"{settings.APP_BASE_URL}{path}?token={token}&email={quote(email)}"


class AuthService:
    def __init__(self, db: Session):
        self.db = db
        self.users = UserService(db)

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    def create_password_reset(self, email: str) -> Optional[Dict[str, Any]]:
        """
        Issue a one-hour reset token.

        Returns None for unknown emails; the route answers the same way
        either way so accounts cannot be enumerated.
        """
        user = self.users.find_by_email(email)
        if not user:
            logger.info("Password reset requested for unknown email")
            return None

        token = self._issue(user.email, PASSWORD_RESET, timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES))
        logger.info(f"Password reset token issued for user {user.id}")

        return {
            "email": user.email,
            "reset_url": _link("/reset-password", token.token, user.email),
            "expires_at": token.expires,
        }

    def reset_password(self, token: str, email: str, new_password: str) -> User:
        record = self._find(token, email, PASSWORD_RESET)
        if not record:
            log_security_event("password_reset_refused", {"reason": "invalid_token"}, logger)
            raise InvalidTokenError("Invalid or expired reset token")

        if record.is_expired:
            self._delete(record)
            raise InvalidTokenError("Reset token has expired")

        user = self.users.find_by_email(email)
        if not user:
            raise UserNotFoundError()

        user.hashed_password = get_password_hash(new_password)
        user.updated_at = datetime.utcnow()
        # The used token and any other reset links for this user
        self._delete_tokens(user.email, PASSWORD_RESET)
        self.db.commit()

        log_security_event("password_reset", {"user_id": user.id}, logger)
        return user

    # ------------------------------------------------------------------
    # Email verification
    # ------------------------------------------------------------------

    def create_email_verification(self, email: str) -> Dict[str, Any]:
        email = normalize_email(email)
        token = self._issue(email, EMAIL_VERIFICATION, timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS))

        return {
            "email": email,
            "verification_url": _link("/api/auth/verify-email", token.token, email),
            "expires_at": token.expires,
        }

    def resend_verification(self, email: str) -> Dict[str, Any]:
        user = self.users.find_by_email(email)
        if not user:
            raise UserNotFoundError("No account found with this email address")
        if user.email_verified:
            raise EmailAlreadyVerifiedError()

        return self.create_email_verification(user.email)

    def verify_email(self, token: str, email: str) -> User:
        record = self._find(token, email, EMAIL_VERIFICATION)
        if not record:
            raise InvalidTokenError("Invalid verification token")

        if record.is_expired:
            self._delete(record)
            raise InvalidTokenError("Verification token has expired")

        user = self.users.find_by_email(email)
        if not user:
            raise UserNotFoundError()

        user.email_verified = True
        user.updated_at = datetime.utcnow()
        self.db.delete(record)
        self.db.commit()

        logger.info(f"Email verified for user {user.id}")
        return user

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def cleanup_expired_tokens(self) -> int:
        """Delete every expired token of any type. Returns how many were removed."""
        removed = self.db.query(VerificationToken).filter(
            VerificationToken.expires <= datetime.utcnow()
        ).delete(synchronize_session=False)
        self.db.commit()

        if removed:
            logger.info(f"Removed {removed} expired verification tokens")
        return removed

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _issue(self, email: str, token_type: str, lifetime: timedelta) -> VerificationToken:
        self._delete_tokens(email, token_type)

        token = VerificationToken(
            identifier=email,
            token=generate_verification_token(),
            type=token_type,
            expires=datetime.utcnow() + lifetime
        )
        self.db.add(token)
        self.db.commit()
        self.db.refresh(token)
        return token

    def _find(self, token: str, email: str, token_type: str) -> Optional[VerificationToken]:
        if not token or not email:
            return None
        return self.db.query(VerificationToken).filter(
            VerificationToken.identifier == normalize_email(email),
            VerificationToken.token == token,
            VerificationToken.type == token_type
        ).first()

    def _delete(self, record: VerificationToken) -> None:
        self.db.delete(record)
        self.db.commit()

    def _delete_tokens(self, email: str, token_type: str) -> None:
        self.db.query(VerificationToken).filter(
            VerificationToken.identifier == email,
            VerificationToken.type == token_type
        ).delete(synchronize_session=False)
