"""
Main FastAPI Application

Entry point for the TeamDesk API: accounts, the onboarding wizard,
organizations, workspaces and team invitations.

Request pipeline:
    CORS -> timing -> SessionMiddleware -> RateLimitMiddleware -> routes
"""
from contextlib import asynccontextmanager
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from teamdesk import __version__
from teamdesk.config import get_settings
from teamdesk.database import engine, init_db
from teamdesk.middleware.session import SessionMiddleware
from teamdesk.middleware.rate_limit import RateLimitMiddleware
from teamdesk.utils.logging import setup_logging, get_logger
from teamdesk.core.exceptions import AuthenticationError, PermissionDenied
from teamdesk.api.endpoints import auth, invite, onboarding, organization, team, user, workspaces

settings = get_settings()

setup_logging(
    log_level=settings.LOG_LEVEL,
    json_format=(settings.ENVIRONMENT == "production")
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"TeamDesk API {__version__} starting ({settings.ENVIRONMENT})")

    # Tables are created from the models in development only
    if settings.ENVIRONMENT == "development":
        init_db()

    if not settings.bento_configured:
        logger.warning("Bento is not configured; notification emails will be skipped")

    yield

    engine.dispose()
    logger.info("TeamDesk API stopped")


app = FastAPI(
    title="TeamDesk API",
    description="Accounts, onboarding, organizations and team management",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


# ============================================================================
# MIDDLEWARE
# ============================================================================

# Added innermost first: the rate limiter reads request.state.session,
# so SessionMiddleware has to wrap it.
app.add_middleware(RateLimitMiddleware)
app.add_middleware(SessionMiddleware)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    started = time.time()
    response = await call_next(request)
    response.headers["X-Process-Time"] = f"{time.time() - started:.4f}"
    return response


# Credentialed CORS for the session cookie; "*" is not allowed with credentials
allowed_origins = [settings.APP_BASE_URL]
if settings.ENVIRONMENT == "development":
    allowed_origins.append("http://localhost:8000")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "type": "authentication_error"},
        headers=exc.headers or {}
    )


@app.exception_handler(PermissionDenied)
async def permission_denied_handler(request: Request, exc: PermissionDenied):
    session = getattr(request.state, "session", None)
    logger.warning(
        f"Permission denied: {request.method} {request.url.path}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "user_id": session.user_id if session else None,
        }
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "type": "permission_denied"}
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Last-resort 500.

    Routes that touch the database report their own 500 message through
    ServiceError; anything reaching this handler is a bug. The exception
    text is only returned when DEBUG is on.
    """
    session = getattr(request.state, "session", None)
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
            "user_id": session.user_id if session else None
        }
    )

    content = {"detail": "Internal server error", "type": "internal_error"}
    if settings.DEBUG:
        content = {"detail": str(exc), "type": type(exc).__name__}
    return JSONResponse(status_code=500, content=content)


# ============================================================================
# ROUTES
# ============================================================================

@app.get("/health", tags=["health"])
async def health_check():
    """Liveness check."""
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": __version__,
        "email_enabled": settings.bento_configured,
    }


@app.get("/", tags=["root"])
async def root():
    return {
        "message": "TeamDesk API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


for router in (
    auth.router,
    onboarding.router,
    organization.router,
    team.router,
    invite.router,
    user.router,
    workspaces.router,
):
    app.include_router(router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "teamdesk.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
