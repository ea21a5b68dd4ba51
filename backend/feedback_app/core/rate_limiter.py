"""
Rate Limiting for the Student Feedback System
=============================================
Implements rate limiting using slowapi.

Storage defaults to in-process memory; point RATE_LIMIT_STORAGE_URI at
redis:// to share counters between workers.

Endpoint limits:
- /auth/login: LOGIN_RATE_LIMIT (brute force protection)
- /auth/register: REGISTER_RATE_LIMIT
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from feedback_app.core.config import settings
from feedback_app.core.logging_config import logger


def get_client_identifier(request: Request) -> str:
    """Rate limit key: authenticated user if known, otherwise client address"""
    user_id = getattr(request.state, 'user_id', None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """JSON 429 with a Retry-After hint"""
    logger.warning(
        f"[RateLimit] Exceeded for {get_client_identifier(request)}: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "detail": "Too many requests. Please slow down.",
            "code": "RATE_LIMITED",
            "limit": str(exc.detail),
        },
        headers={"Retry-After": "60"}
    )


def auth_rate_limit(limit: str):
    """
    Per-address limit for unauthenticated auth endpoints.

    Usage:
        @router.post("/login")
        @auth_rate_limit(settings.LOGIN_RATE_LIMIT)
        async def login(request: Request, ...):
            ...
    """
    return limiter.limit(limit, key_func=get_remote_address)
