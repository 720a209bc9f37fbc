"""Correlation ID middleware.

Pure ASGI middleware that tags each request with a correlation ID, exposes
it in the response headers and in every log line emitted while handling
the request.
"""

import re
import time
import uuid

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from otpguard.logging_config import correlation_id_ctx, get_logger

logger = get_logger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Client-supplied IDs end up in logs; anything else is replaced.
_VALID_CORRELATION_ID = re.compile(r"^[A-Za-z0-9._\-]{1,64}$")

# Probes are polled constantly; keep them out of INFO logs.
_QUIET_PATHS = frozenset({"/health", "/health/live", "/health/ready"})


def _resolve_correlation_id(scope: Scope) -> str:
    headers = dict(scope.get("headers", []))
    supplied = headers.get(b"x-correlation-id", b"").decode("latin-1")
    if supplied and _VALID_CORRELATION_ID.match(supplied):
        return supplied
    return str(uuid.uuid4())


class CorrelationIdMiddleware:
    """Reuses a well-formed X-Correlation-ID header or generates a UUID."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        correlation_id = _resolve_correlation_id(scope)
        token = correlation_id_ctx.set(correlation_id)

        start_time = time.perf_counter()
        status_code: int | None = None
        method = scope.get("method", "")
        path = scope.get("path", "")
        log = logger.debug if path in _QUIET_PATHS else logger.info

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code

            if message["type"] == "http.response.start":
                status_code = message.get("status")
                headers = list(message.get("headers", []))
                headers.append(
                    (CORRELATION_ID_HEADER.lower().encode(), correlation_id.encode())
                )
                message = {**message, "headers": headers}

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
            log(
                "Request completed",
                method=method,
                path=path,
                status_code=status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
        except Exception:
            logger.exception(
                "Request failed",
                method=method,
                path=path,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise
        finally:
            correlation_id_ctx.reset(token)
