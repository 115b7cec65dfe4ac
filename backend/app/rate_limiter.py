"""
Rate limiting for the design review API (slowapi).

Reviewers and designers often share an office IP, so authenticated calls
are limited per user; anonymous calls fall back to the client IP.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.utils.auth import decode_access_token

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    """Get client IP, considering X-Forwarded-For header for proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


def get_rate_limit_key(request: Request) -> str:
    """user:<id> for a valid bearer token, ip:<address> otherwise."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        payload = decode_access_token(token)
        if payload and payload.get("sub"):
            return f"user:{payload['sub']}"
    return f"ip:{get_client_ip(request)}"


limiter = Limiter(
    key_func=get_rate_limit_key,
    headers_enabled=False,
    strategy="fixed-window"
)


class RateLimits:
    """Per-endpoint presets."""
    API_WRITE = "50/minute"      # comments

    # Approve/reject, freeze toggles, bulk review
    REVIEW_ACTION = "60/minute"

    # Single registration and batch uploads (a batch counts once)
    FILE_UPLOAD = "20/minute"


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Render a 429 in the same shape as design workflow errors."""
    logger.warning(
        f"Rate limit exceeded: {exc.detail} for {get_rate_limit_key(request)} on {request.url.path}"
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Too many requests ({exc.detail}). Please slow down.",
            "error": "rate_limit_exceeded",
        },
        headers={"Retry-After": "60"}
    )
