"""otpguard FastAPI Application."""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded

from otpguard.config import settings, validate_settings
from otpguard.core.verification import (
    SqlVerificationStore,
    VerificationOrchestrator,
    VerificationPolicy,
)
from otpguard.database import close_database, get_session_maker
from otpguard.logging_config import get_logger, setup_logging
from otpguard.middleware import CorrelationIdMiddleware
from otpguard.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from otpguard.routers import health, verification
from otpguard.services.delivery import LogOnlyDelivery
from otpguard.services.scheduler import start_scheduler, stop_scheduler

setup_logging(
    log_format=settings.log_format,
    log_level=settings.log_level,
    service_name=settings.service_name,
)
validate_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    # Note: Migrations are run by `alembic upgrade head` before uvicorn starts
    policy = VerificationPolicy.from_settings(settings)
    store = SqlVerificationStore(get_session_maker())
    app.state.orchestrator = VerificationOrchestrator(store, policy)
    app.state.delivery = LogOnlyDelivery(expose_codes=settings.expose_dev_codes)
    logger.info(
        "otpguard API started",
        code_ttl_minutes=policy.code_ttl_minutes,
        max_code_attempts=policy.max_code_attempts,
        max_account_attempts=policy.max_account_attempts,
        lock_minutes=policy.lock_minutes,
    )

    start_scheduler(store)

    yield

    # Shutdown
    logger.info("Shutting down otpguard API...")
    stop_scheduler()
    await close_database()
    logger.info("otpguard API shutdown complete")


app = FastAPI(
    title="otpguard API",
    description="Verification code issuance and brute-force lockout",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Add correlation ID middleware for request tracing
app.add_middleware(CorrelationIdMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(verification.router)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint."""
    return {
        "name": "otpguard API",
        "version": "0.1.0",
        "docs": "/docs",
    }
