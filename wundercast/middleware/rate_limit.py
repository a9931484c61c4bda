"""Rate limiting for the lookup trigger endpoints."""

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

# Each trigger costs an upstream weather call
TRIGGER_RATE_LIMIT = "60/minute"

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Return a JSON 429 instead of slowapi's plain-text default."""
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "detail": f"Too many lookups. Limit: {exc.detail}",
        },
    )
