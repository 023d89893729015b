"""
Rate limiting for the Frogsy API.

Limits are "number/period" strings (e.g. "10/minute", "100/hour") read from
the environment so deployments can tune them without a code change.
"""
import os
import logging
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("frogsy-api.rate_limiter")

DEFAULT_RATE_LIMIT = os.getenv("RATE_LIMIT_DEFAULT", "60/minute")
DATA_ACCESS_RATE_LIMIT = os.getenv("RATE_LIMIT_DATA_ACCESS", "30/minute")
WRITE_RATE_LIMIT = os.getenv("RATE_LIMIT_WRITE", "20/minute")

logger.info(
    "Rate limiting configured - Default: %s, Data: %s, Write: %s",
    DEFAULT_RATE_LIMIT, DATA_ACCESS_RATE_LIMIT, WRITE_RATE_LIMIT
)


def get_user_id_from_request(request: Request) -> str:
    """
    Rate-limit key: the user UUID in the path when there is one, otherwise
    the client IP.
    """
    for part in request.url.path.split('/'):
        if len(part) == 36 and part.count('-') == 4:
            return f"user:{part}"
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_user_id_from_request,
    default_limits=[DEFAULT_RATE_LIMIT],
    storage_uri=os.getenv("RATE_LIMIT_STORAGE_URI", "memory://"),
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 response with a Retry-After hint."""
    logger.warning(
        "Rate limit exceeded for %s on path %s",
        get_user_id_from_request(request), request.url.path
    )
    retry_after = getattr(exc, 'retry_after', 60)

    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": "Too many requests. Please slow down and try again later.",
            "detail": str(exc.detail) if hasattr(exc, 'detail') else "Rate limit exceeded",
            "retry_after": retry_after
        },
        headers={"Retry-After": str(retry_after)}
    )
