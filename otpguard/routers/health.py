"""Health check endpoints for container orchestration."""

from typing import Any

from fastapi import APIRouter, Response, status
from fastapi.responses import JSONResponse

from otpguard.database import check_database_connection

router = APIRouter(tags=["health"])


def _database_status(ok_status: str, failed_status: str, connected: bool) -> JSONResponse:
    if connected:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"status": ok_status, "database": "connected"},
        )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": failed_status, "database": "disconnected"},
    )


@router.get("/health", response_model=None)
async def health_check() -> Response:
    """
    Health check endpoint with database status.

    Returns:
        {"status": "healthy", "database": "connected"} when the code store is reachable
        {"status": "degraded", "database": "disconnected"} otherwise
    """
    return _database_status("healthy", "degraded", await check_database_connection())


@router.get("/health/live")
async def liveness_probe() -> dict[str, Any]:
    """
    Liveness probe.

    Succeeds while the process is running. Does not touch the database.
    """
    return {"status": "alive"}


@router.get("/health/ready", response_model=None)
async def readiness_probe() -> Response:
    """
    Readiness probe.

    Verification cannot be served without the store, so readiness follows
    database connectivity.
    """
    return _database_status("ready", "not_ready", await check_database_connection())
