"""
Application Configuration

Centralized configuration management using Pydantic settings.
Loads from environment variables with fallback to .env file.
"""
from typing import Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    get_settings() is cached, so tests that change the environment
    must call get_settings.cache_clear() afterwards.
    """

    # Database settings
    DATABASE_URL: str = "postgresql://localhost/teamdesk_dev"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_CONNECT_TIMEOUT: int = 60

    # Session settings
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    SESSION_EXPIRE_MINUTES: int = 60 * 24 * 30
    SESSION_COOKIE_NAME: str = "session_token"
    BCRYPT_ROUNDS: int = 12

    # Redis for rate limiting
    REDIS_URL: str = "redis://localhost:6379/0"

    # Application settings
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    APP_BASE_URL: str = "http://localhost:3000"

    # Rate limiting (default bucket, per signed-in user or client IP)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_BURST: int = 10

    # Team invitations
    INVITATION_EXPIRE_DAYS: int = 7

    # Emailed account links
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60
    EMAIL_VERIFICATION_EXPIRE_HOURS: int = 24

    # Bento transactional email. Email is disabled unless all four are set.
    BENTO_PUBLISHABLE_KEY: Optional[str] = None
    BENTO_SECRET_KEY: Optional[str] = None
    BENTO_SITE_UUID: Optional[str] = None
    BENTO_FROM_EMAIL: Optional[str] = None
    BENTO_API_URL: str = "https://app.bentonow.com/api/v1"

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def bento_configured(self) -> bool:
        return all([
            self.BENTO_PUBLISHABLE_KEY,
            self.BENTO_SECRET_KEY,
            self.BENTO_SITE_UUID,
            self.BENTO_FROM_EMAIL,
        ])


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures we only instantiate settings once.
    """
    return Settings()
