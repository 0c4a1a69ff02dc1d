"""
Rate Limiting

This module implements API rate limiting with slowapi.

Features:
- Per-token limiting for authenticated requests
- Per-IP limiting otherwise
- Configurable limits per endpoint type
- Redis-backed storage, in-memory storage for local runs and tests
"""

import hashlib
import os
from typing import Callable

from fastapi import Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
RATE_LIMIT_STORAGE_URI = os.getenv(
    "RATE_LIMIT_STORAGE_URI",
    f"redis://{os.getenv('REDIS_HOST', 'localhost')}:{os.getenv('REDIS_PORT', 6379)}/0"
)

RATE_LIMITS = {
    "auth": "10/minute",      # signup/signin
    "read": "100/minute",     # GET endpoints
    "write": "30/minute",     # POST/PUT endpoints
    "delete": "10/minute",    # DELETE endpoints
    "default": "60/minute"
}


def get_user_identifier(request: Request) -> str:
    """
    Get unique identifier for rate limiting.

    Uses a digest of the bearer token if present, otherwise the
    client IP address.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer ") and len(auth_header) > len("Bearer "):
        token = auth_header[len("Bearer "):]
        return f"user_{hashlib.sha256(token.encode()).hexdigest()[:16]}"

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_user_identifier,
    storage_uri=RATE_LIMIT_STORAGE_URI,
    enabled=RATE_LIMIT_ENABLED,
)


def get_rate_limit(endpoint_type: str = "default") -> str:
    """
    Get rate limit string for endpoint type.

    Example:
        >>> get_rate_limit("auth")
        '10/minute'
    """
    return RATE_LIMITS.get(endpoint_type, RATE_LIMITS["default"])


def rate_limit_decorator(limit_type: str = "default"):
    """
    Decorator factory for applying rate limits to endpoints.

    The decorated endpoint must accept a `request: Request` argument.

    Example:
        @app.post("/auth/signin")
        @rate_limit_decorator("auth")
        def signin(request: Request, ...):
            ...
    """
    def decorator(func: Callable):
        return limiter.limit(get_rate_limit(limit_type))(func)
    return decorator


def setup_rate_limiting(app):
    """
    Set up rate limiting for FastAPI application.

    Example:
        app = FastAPI()
        setup_rate_limiting(app)
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
