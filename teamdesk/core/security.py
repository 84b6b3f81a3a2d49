"""
Security Module

Handles password hashing, session token generation/validation and
invitation tokens. Uses passlib with bcrypt and python-jose.

A session token is a signed JWT carrying the user id and email. It is
sent either as a bearer token or in the session cookie.
"""
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
import secrets
from jose import JWTError, jwt
from passlib.context import CryptContext
from teamdesk.config import get_settings

settings = get_settings()

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS
)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Verify a password against its hash.

    Accounts without a password (created by an external provider)
    never match.
    """
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def create_session_token(
    user_id: str,
    email: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a signed session token.

    Payload:
    - sub: user id
    - email: user email (routes look users up by it)
    - iat / exp: issue and expiry timestamps
    """
    now = datetime.utcnow()
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.SESSION_EXPIRE_MINUTES)

    to_encode = {
        "sub": user_id,
        "email": email,
        "exp": expire,
        "iat": now,
    }

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


def decode_session_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a session token.

    Returns the payload if valid, None if invalid/expired.
    Signature and expiry are checked by jose.
    """
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None


def generate_invitation_token() -> str:
    """Random 64-character hex token for invitation links."""
    return secrets.token_hex(32)


def generate_verification_token() -> str:
    """Random 64-character hex token for password reset and email verification links."""
    return secrets.token_hex(32)
