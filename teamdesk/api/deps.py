"""
API Dependencies

Reusable FastAPI dependencies for authentication and authorization.
These are used across all API endpoints to ensure consistent security.
"""
from dataclasses import dataclass
from typing import Callable, Optional
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from teamdesk.database import get_db
from teamdesk.models.user import User
from teamdesk.schemas.auth import SessionData
from teamdesk.core.exceptions import AuthenticationError, PermissionDenied, UserNotFoundError
from teamdesk.core.permissions import UserRole, can_perform_action, get_user_role
from teamdesk.email.bento_client import get_bento_client
from teamdesk.services.email_service import EmailService
from teamdesk.services.user_service import normalize_email
from teamdesk.utils.logging import log_security_event
import logging

logger = logging.getLogger(__name__)


def get_current_session(request: Request) -> SessionData:
    """
    Get the session set by SessionMiddleware.

    Raises 401 when the request carries no valid session.
    """
    session = getattr(request.state, "session", None)
    if not session:
        raise AuthenticationError()
    return session


def get_current_user(
    session: SessionData = Depends(get_current_session),
    db: Session = Depends(get_db)
) -> User:
    """
    Load the signed-in user.

    The user is looked up by the session's email, so a deleted account
    yields 404 even while its token is still valid.
    """
    user = db.query(User).filter(User.email == normalize_email(session.email)).first()

    if not user:
        logger.warning(f"Session user not found: {session.user_id}")
        raise UserNotFoundError()

    if not user.is_active:
        raise AuthenticationError("User account is inactive")

    return user


def get_current_user_optional(
    request: Request,
    db: Session = Depends(get_db)
) -> Optional[User]:
    """
    Get current user if signed in, None otherwise.

    Use for endpoints that behave differently for signed-in users
    but don't require a session.
    """
    session = getattr(request.state, "session", None)
    if not session:
        return None

    user = db.query(User).filter(User.email == normalize_email(session.email)).first()
    return user if user and user.is_active else None


@dataclass
class Authorized:
    """A user cleared for an action, with the role that cleared them."""
    user: User
    role: UserRole


def require_action(action: str) -> Callable[..., Authorized]:
    """
    Dependency factory: require the effective role to allow `action`.

    Usage:
        auth: Authorized = Depends(require_action("team:invite"))
    """

    def dependency(
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
    ) -> Authorized:
        role = get_user_role(db, user.id)
        if not can_perform_action(role, action):
            log_security_event(
                "permission_denied",
                {"user_id": user.id, "action": action, "role": role.value if role else None},
                logger
            )
            raise PermissionDenied()
        return Authorized(user=user, role=role)

    return dependency


def get_email_service() -> EmailService:
    """EmailService bound to the shared Bento client (None when unconfigured)."""
    return EmailService(get_bento_client())
