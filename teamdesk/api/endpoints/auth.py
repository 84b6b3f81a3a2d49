"""
Authentication Endpoints

Signup, login and logout, plus the emailed password reset and email
verification links. A successful login returns the session token and
also sets it as an HTTP-only cookie for browser clients.
"""
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from teamdesk.database import get_db
from teamdesk.models.user import User
from teamdesk.schemas.auth import (
    EmailRequest,
    LoginRequest,
    PasswordResetRequest,
    SessionResponse,
    SignupRequest,
    Token,
)
from teamdesk.schemas.user import UserResponse
from teamdesk.services.auth_service import AuthService
from teamdesk.services.user_service import UserService
from teamdesk.services.email_service import EmailService
from teamdesk.core.security import create_session_token
from teamdesk.core.exceptions import AuthenticationError, InvalidTokenError, UserNotFoundError
from teamdesk.api.deps import get_current_user_optional, get_email_service
from teamdesk.config import get_settings
from teamdesk.utils.logging import log_security_event, get_logger

logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    registration: SignupRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    """
    Create an account.

    The welcome and verification emails are sent after the response.
    """
    user = UserService(db).create_user(
        email=registration.email,
        password=registration.password,
        full_name=registration.full_name
    )

    verification = AuthService(db).create_email_verification(user.email)

    background_tasks.add_task(
        email_service.send_welcome_email, user.email, user.id, user.created_at
    )
    background_tasks.add_task(
        email_service.send_email_verification, user.email, verification["verification_url"]
    )

    logger.info(f"New user registered: {user.id}")
    return user


@router.post("/login", response_model=Token)
async def login(
    credentials: LoginRequest,
    response: Response,
    db: Session = Depends(get_db)
):
    """
    Authenticate and start a session.

    SECURITY: Unknown email and wrong password get the same error to
    prevent user enumeration.
    """
    service = UserService(db)
    user = service.authenticate(credentials.email, credentials.password)

    if not user:
        log_security_event(
            "failed_login",
            {"reason": "invalid_credentials", "email": credentials.email},
            logger
        )
        raise AuthenticationError("Invalid credentials")

    if not user.is_active:
        log_security_event(
            "failed_login",
            {"reason": "user_inactive", "user_id": user.id},
            logger
        )
        raise AuthenticationError("User account is inactive")

    expires_delta = timedelta(minutes=settings.SESSION_EXPIRE_MINUTES)
    token = create_session_token(user.id, user.email, expires_delta=expires_delta)

    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=int(expires_delta.total_seconds()),
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="lax"
    )

    logger.info(f"Successful login: user={user.id}")

    return Token(
        access_token=token,
        token_type="bearer",
        expires_at=datetime.utcnow() + expires_delta
    )


@router.post("/logout")
async def logout(response: Response):
    """End the browser session. Bearer tokens simply expire."""
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"success": True}


@router.get("/session", response_model=SessionResponse)
async def get_session(
    request: Request,
    user: Optional[User] = Depends(get_current_user_optional)
):
    """Describe the current session. Sessions of deleted or inactive users do not count."""
    session = getattr(request.state, "session", None)
    if not session or not user:
        return SessionResponse(authenticated=False)

    return SessionResponse(
        authenticated=True,
        user_id=session.user_id,
        email=session.email,
        expires_at=session.expires_at
    )


# ============================================================================
# PASSWORD RESET
# ============================================================================

@router.post("/forgot-password")
async def forgot_password(
    body: EmailRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    """
    Email a password reset link.

    SECURITY: The answer is the same whether or not the account exists.
    """
    service = AuthService(db)
    service.cleanup_expired_tokens()

    reset = service.create_password_reset(body.email)
    if reset:
        background_tasks.add_task(
            email_service.send_password_reset_email,
            reset["email"],
            reset["reset_url"],
            reset["expires_at"]
        )

    return {
        "success": True,
        "message": "If an account exists for this email, a password reset link has been sent."
    }


@router.post("/reset-password")
async def reset_password(
    body: PasswordResetRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    user = AuthService(db).reset_password(body.token, body.email, body.password)
    background_tasks.add_task(email_service.send_password_reset_completed_email, user.email)
    return {"message": "Password reset successfully."}


# ============================================================================
# EMAIL VERIFICATION
# ============================================================================

@router.get("/verify-email")
async def verify_email(
    token: Optional[str] = None,
    email: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    Target of the emailed verification link.

    Redirects the browser to the login page on success and to the auth
    error page otherwise.
    """
    failed = RedirectResponse(f"{settings.APP_BASE_URL}/auth/error?error=Verification")
    if not token or not email:
        return failed

    try:
        AuthService(db).verify_email(token, email)
    except (InvalidTokenError, UserNotFoundError) as e:
        logger.info(f"Email verification failed: {e.detail}")
        return failed

    return RedirectResponse(f"{settings.APP_BASE_URL}/login?verified=true")


@router.post("/resend-verification")
async def resend_verification(
    body: EmailRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    verification = AuthService(db).resend_verification(body.email)
    background_tasks.add_task(
        email_service.send_email_verification,
        verification["email"],
        verification["verification_url"]
    )
    return {"message": "Verification email sent successfully"}
