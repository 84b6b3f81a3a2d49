"""
Session Middleware

Resolves the signed-in user for every request and makes it available
as request.state.session.

The session is a signed JWT carried either in the Authorization header
(API clients) or in the session cookie (browsers). The middleware only
decodes it: it never touches the database and never rejects a request.
Routes that need a user depend on get_current_session, which turns a
missing session into a 401.
"""
from datetime import datetime
from typing import Optional
import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from teamdesk.config import get_settings
from teamdesk.core.security import decode_session_token
from teamdesk.schemas.auth import SessionData

logger = logging.getLogger(__name__)
settings = get_settings()


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Decode the session token into request.state.session.

    A missing, malformed or expired token leaves the session as None.
    """

    def __init__(self, app):
        super().__init__(app)
        self.excluded_paths = [
            "/docs",
            "/redoc",
            "/openapi.json",
            "/health",
        ]

    async def dispatch(self, request: Request, call_next):
        request.state.session = None

        if any(request.url.path.startswith(path) for path in self.excluded_paths):
            return await call_next(request)

        token = self._extract_token(request)
        if token:
            request.state.session = self._load_session(token)
            if request.state.session is None:
                logger.debug(f"Ignoring invalid session token on {request.url.path}")

        return await call_next(request)

    def _extract_token(self, request: Request) -> Optional[str]:
        """
        Extract the session token.

        Priority:
        1. Authorization: Bearer header
        2. Session cookie
        """
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            return auth_header[len("Bearer "):].strip() or None

        return request.cookies.get(settings.SESSION_COOKIE_NAME)

    def _load_session(self, token: str) -> Optional[SessionData]:
        payload = decode_session_token(token)
        if not payload:
            return None

        user_id = payload.get("sub")
        email = payload.get("email")
        if not user_id or not email:
            return None

        exp = payload.get("exp")
        return SessionData(
            user_id=user_id,
            email=email,
            expires_at=datetime.utcfromtimestamp(exp) if exp else None
        )
