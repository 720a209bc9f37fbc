"""Per-IP request limits on the verification endpoints.

The lockout caps guesses against one identity. These limits cap the
request volume a single client address can send across all identities.
"""

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
from starlette.responses import JSONResponse

from otpguard.config import settings


def _storage_uri() -> str:
    """Counters live in Redis so every instance shares them; memory in tests."""
    if settings.testing or not settings.redis_url:
        return "memory://"
    return settings.redis_url


def _get_real_client_ip(request: Request) -> str:
    """Client address as seen by the first proxy hop, else the socket peer."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client is None:
        return "unknown"
    return request.client.host


limiter = Limiter(
    key_func=_get_real_client_ip,
    storage_uri=_storage_uri(),
    enabled=not settings.testing,
)


def verification_rate_limit() -> str:
    """Limit string shared by all verification endpoints, read per request."""
    return settings.rate_limit_verification


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """429 with a JSON ``detail``, matching HTTPException bodies."""
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}"},
    )
