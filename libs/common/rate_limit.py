"""Request throttling for the Verum API.

Backed by slowapi. Counters live in RATE_LIMIT_STORAGE_URI, which is
process memory unless a shared store such as Redis is configured. Two tiers
exist on top of the global default: ``auth_limit`` for credential endpoints
(keyed by client IP) and ``upload_limit`` for media uploads and comments
(keyed by the signed-in athlete).
"""

from functools import lru_cache
from typing import Callable

from fastapi import Request, Response
from jose import JWTError
from pydantic import ValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from libs.auth.dependencies import decode_access_token
from libs.common.config import get_settings


def client_ip(request: Request) -> str:
    # Behind the load balancer the first X-Forwarded-For hop is the caller.
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


def athlete_or_ip(request: Request) -> str:
    """Key by the bearer token's subject, falling back to the client IP."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        try:
            return f"user:{decode_access_token(token).user_id}"
        except (JWTError, ValidationError):
            # The route rejects the token itself; throttle the caller by IP.
            return f"ip:{client_ip(request)}"
    return f"ip:{client_ip(request)}"


@lru_cache
def get_limiter() -> Limiter:
    settings = get_settings()
    return Limiter(
        key_func=client_ip,
        default_limits=[settings.RATE_LIMIT_DEFAULT],
        storage_uri=settings.RATE_LIMIT_STORAGE_URI,
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )


limiter = get_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Too many requests: limit is {exc.detail}",
            "code": "RATE_LIMIT_EXCEEDED",
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


def auth_limit(func: Callable) -> Callable:
    """Sign-up / sign-in tier, per client IP."""
    return limiter.limit(get_settings().RATE_LIMIT_AUTH)(func)


def upload_limit(func: Callable) -> Callable:
    """Media upload and comment tier, per athlete."""
    return limiter.limit(get_settings().RATE_LIMIT_UPLOADS, key_func=athlete_or_ip)(func)
