"""
Database Configuration and Session Management

SQLAlchemy setup with a single connection pool shared by the whole
process. Every request gets its own session through get_db().
"""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import QueuePool
from teamdesk.config import get_settings
import logging

logger = logging.getLogger(__name__)

settings = get_settings()


def _engine_options(database_url: str) -> dict:
    """Pool options for the configured backend."""
    if database_url.startswith("sqlite"):
        # SQLite connections are shared across the threadpool in dev/test
        return {"connect_args": {"check_same_thread": False}}

    return {
        "poolclass": QueuePool,
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_pre_ping": True,  # Drop stale connections before use
        "connect_args": {"connect_timeout": settings.DATABASE_CONNECT_TIMEOUT},
    }


engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,  # Log SQL in debug mode
    **_engine_options(settings.DATABASE_URL),
)

# expire_on_commit=False lets routes read attributes of committed objects
# when building responses without another round trip.
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False
)

# Base class for all models
Base = declarative_base()


@event.listens_for(engine, "connect")
def set_connection_timezone(dbapi_connection, connection_record):
    """Set connection-level configuration on new connections."""
    # SQLite doesn't support SET TIME ZONE, so only PostgreSQL gets it
    if settings.DATABASE_URL.startswith("postgresql"):
        cursor = dbapi_connection.cursor()
        cursor.execute("SET TIME ZONE 'UTC'")
        cursor.close()
    logger.debug("New database connection established")


def get_db() -> Session:
    """
    Dependency function that provides a database session.

    The session is closed after the request completes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """
    Create all tables from model metadata.

    Development convenience only; production schemas are managed
    with migrations.
    """
    # Import models so they register on Base.metadata
    import teamdesk.models  # noqa: F401

    logger.warning("init_db() called - use migrations in production!")
    Base.metadata.create_all(bind=engine)
