"""
Rate Limiting Middleware

Per-user rate limiting using Redis.

ARCHITECTURE: token bucket algorithm with Redis. Each signed-in user
has their own buckets; anonymous requests are bucketed by client IP.
Sensitive endpoints (login, signup, invitations and the emailed account
links) get their own stricter buckets on top of the default one.

When Redis is unreachable requests are let through.
"""
from dataclasses import dataclass
from typing import Optional, Tuple
import time
import logging

import redis
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from teamdesk.config import get_settings
from teamdesk.core.exceptions import RateLimitExceeded
from teamdesk.utils.logging import log_security_event

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass(frozen=True)
class RateLimitPolicy:
    """Allow `requests` per `period` seconds, with at most `burst` at once."""
    name: str
    requests: int
    period: int
    burst: int

    @property
    def refill_per_second(self) -> float:
        return self.requests / float(self.period)


# (method, path) -> policy; anything not listed uses the default policy
ENDPOINT_POLICIES = {
    ("POST", "/api/auth/login"): RateLimitPolicy("login", requests=5, period=15 * 60, burst=5),
    ("POST", "/api/auth/signup"): RateLimitPolicy("signup", requests=5, period=60 * 60, burst=5),
    ("POST", "/api/team/invitations"): RateLimitPolicy("invite", requests=10, period=60 * 60, burst=10),
    ("POST", "/api/auth/forgot-password"): RateLimitPolicy("password_reset", requests=5, period=60 * 60, burst=5),
    ("POST", "/api/auth/resend-verification"): RateLimitPolicy("resend_verification", requests=3, period=10 * 60, burst=3),
}


def default_policy() -> RateLimitPolicy:
    return RateLimitPolicy(
        "default",
        requests=settings.RATE_LIMIT_PER_MINUTE,
        period=60,
        burst=settings.RATE_LIMIT_BURST
    )


def policy_for(method: str, path: str) -> RateLimitPolicy:
    return ENDPOINT_POLICIES.get((method.upper(), path.rstrip("/")), default_policy())


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Token bucket rate limiter per user.

    Must run after SessionMiddleware so request.state.session is set.
    """

    def __init__(self, app, redis_client: Optional[redis.Redis] = None):
        super().__init__(app)

        self.enabled = settings.RATE_LIMIT_ENABLED
        self.redis_client = redis_client
        self.redis_available = redis_client is not None

        if self.enabled and redis_client is None:
            try:
                self.redis_client = redis.from_url(
                    settings.REDIS_URL,
                    decode_responses=True,
                    socket_connect_timeout=5
                )
                self.redis_client.ping()
                self.redis_available = True
                logger.info("Redis connection established for rate limiting")
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.error(f"Redis connection failed: {e}")
                self.redis_available = False

        self.excluded_paths = [
            "/docs",
            "/redoc",
            "/openapi.json",
            "/health",
        ]

    async def dispatch(self, request: Request, call_next):
        """Apply rate limiting per user or client IP."""

        if not self.enabled:
            return await call_next(request)

        if any(request.url.path.startswith(path) for path in self.excluded_paths):
            return await call_next(request)

        if not self.redis_available:
            logger.warning("Rate limiting disabled - Redis unavailable")
            return await call_next(request)

        identifier = self._get_client_identifier(request)
        policy = policy_for(request.method, request.url.path)

        allowed, retry_after = self._check_rate_limit(identifier, policy)

        if not allowed:
            log_security_event(
                "rate_limit_exceeded",
                {"identifier": identifier, "policy": policy.name, "path": request.url.path},
                logger
            )
            exc = RateLimitExceeded(retry_after=retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "detail": exc.detail,
                    "type": "rate_limit_exceeded",
                    "retry_after": retry_after
                },
                headers=exc.headers
            )

        return await call_next(request)

    def _check_rate_limit(self, identifier: str, policy: RateLimitPolicy) -> Tuple[bool, int]:
        """
        Check if request is allowed under rate limit.

        Returns: (allowed: bool, retry_after: int)

        Uses token bucket algorithm:
        - Bucket holds max tokens (burst capacity)
        - Tokens added at the policy's refill rate
        - Each request consumes one token
        """
        key = f"rate_limit:{policy.name}:{identifier}"
        key_timestamp = f"{key}:timestamp"

        try:
            current_tokens = self.redis_client.get(key)
            last_update = self.redis_client.get(key_timestamp)

            now = time.time()

            if current_tokens is None:
                # First request - initialize bucket
                current_tokens = policy.burst - 1
                self.redis_client.setex(key, policy.period, current_tokens)
                self.redis_client.setex(key_timestamp, policy.period, now)
                return True, 0

            current_tokens = float(current_tokens)
            last_update = float(last_update) if last_update else now

            elapsed = now - last_update
            new_tokens = min(policy.burst, current_tokens + elapsed * policy.refill_per_second)

            if new_tokens >= 1:
                new_tokens -= 1
                self.redis_client.setex(key, policy.period, new_tokens)
                self.redis_client.setex(key_timestamp, policy.period, now)
                return True, 0

            tokens_needed = 1 - new_tokens
            retry_after = int((tokens_needed / policy.refill_per_second) + 1)
            return False, retry_after

        except redis.RedisError as e:
            logger.error(f"Redis error in rate limiting: {e}")
            return True, 0

    def _get_client_identifier(self, request: Request) -> str:
        """
        Get identifier for rate limiting.

        Session user id when signed in, client IP otherwise.
        """
        session = getattr(request.state, "session", None)
        if session:
            return f"user:{session.user_id}"

        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return f"ip:{forwarded.split(',')[0].strip()}"

        client = request.client
        return f"ip:{client.host if client else 'unknown'}"
