"""Rate limiting configuration using slowapi.

SCALABILITY NOTES:
- Production with several workers MUST use Redis:
  set RATELIMIT_STORAGE_URI="redis://host:port/db"
- memory:// keeps separate counters per process
"""

import logging

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

if not settings.debug and settings.ratelimit_storage_uri == "memory://":
    logger.warning(
        "ratelimit.storage.in_memory",
        extra={"hint": "Set RATELIMIT_STORAGE_URI to a Redis URL for multi-worker"},
    )


def _get_request_identifier(request: Request) -> str:
    """Authenticated user id if resolved, otherwise client IP.

    The user id is only set once the auth dependency has run, so login and
    registration are always limited per IP.
    """
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"
    return get_remote_address(request)


_using_redis = settings.ratelimit_storage_uri.startswith("redis://")

limiter = Limiter(
    key_func=_get_request_identifier,
    default_limits=["100/minute"],
    storage_uri=settings.ratelimit_storage_uri,
    in_memory_fallback_enabled=_using_redis,
    key_prefix="twende:",
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    logger.warning(
        "ratelimit.exceeded",
        extra={
            "identifier": _get_request_identifier(request),
            "limit": str(exc.detail),
        },
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded. Please slow down.",
            "retry_after": exc.detail,
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


AUTH_LIMIT = "20/minute"

READ_LIMIT = "60/minute"

WRITE_LIMIT = "30/minute"

REPORT_LIMIT = "10/minute"
