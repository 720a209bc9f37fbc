"""Verification code endpoints.

Thin HTTP layer over VerificationOrchestrator. Code delivery runs as a
background task after the response is sent.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.requests import Request

from otpguard.config import settings
from otpguard.core.verification import (
    InvalidIdentityError,
    VerificationOrchestrator,
    VerificationReason,
    VerificationStoreError,
)
from otpguard.middleware.rate_limit import limiter, verification_rate_limit
from otpguard.schemas.verification import (
    CodeRequest,
    CodeRequestResponse,
    CodeVerifyRequest,
    CodeVerifyResponse,
    LockStatusResponse,
)
from otpguard.services.delivery import CodeDelivery, deliver_code

router = APIRouter(
    prefix="/api/verification",
    tags=["verification"],
)

_UNAVAILABLE_DETAIL = "Verification service is temporarily unavailable"


def get_orchestrator(request: Request) -> VerificationOrchestrator:
    """Orchestrator built in the application lifespan."""
    return request.app.state.orchestrator


def get_delivery(request: Request) -> CodeDelivery:
    return request.app.state.delivery


def _error_response(status_code: int, body: BaseModel, minutes: int | None = None) -> JSONResponse:
    headers = {"Retry-After": str(minutes * 60)} if minutes else None
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


@router.post(
    "/codes",
    response_model=CodeRequestResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={
        429: {"model": CodeRequestResponse, "description": "Identity is locked"},
        503: {"description": "Store unavailable"},
    },
)
@limiter.limit(verification_rate_limit)
async def request_code(
    request: Request,
    body: CodeRequest,
    background_tasks: BackgroundTasks,
    orchestrator: VerificationOrchestrator = Depends(get_orchestrator),
    delivery: CodeDelivery = Depends(get_delivery),
):
    """Issue a verification code for an identity.

    Refused with 429 while the identity is locked. The code itself is
    handed to the delivery channel, never returned, unless development
    code exposure is enabled.
    """
    try:
        result = await orchestrator.request_code(body.identity, body.purpose)
    except VerificationStoreError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=_UNAVAILABLE_DETAIL,
        )

    if not result.issued:
        return _error_response(
            status.HTTP_429_TOO_MANY_REQUESTS,
            CodeRequestResponse(
                issued=False,
                reason=result.reason,
                minutes_remaining=result.minutes_remaining,
            ),
            minutes=result.minutes_remaining,
        )

    background_tasks.add_task(
        deliver_code, delivery, body.identity, body.purpose, result.code
    )

    return CodeRequestResponse(
        issued=True,
        expires_at=result.expires_at,
        dev_code=result.code if settings.expose_dev_codes else None,
    )


@router.post(
    "/verify",
    response_model=CodeVerifyResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": CodeVerifyResponse, "description": "Code rejected"},
        429: {"model": CodeVerifyResponse, "description": "Identity is locked"},
        503: {"description": "Store unavailable"},
    },
)
@limiter.limit(verification_rate_limit)
async def verify_code(
    request: Request,
    body: CodeVerifyRequest,
    orchestrator: VerificationOrchestrator = Depends(get_orchestrator),
):
    """Verify a code. Every failure counts toward the identity's lockout."""
    try:
        result = await orchestrator.verify(body.identity, body.purpose, body.code)
    except VerificationStoreError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=_UNAVAILABLE_DETAIL,
        )

    response_body = CodeVerifyResponse(**result.model_dump())
    if result.ok:
        return response_body
    if result.reason == VerificationReason.ACCOUNT_LOCKED:
        return _error_response(
            status.HTTP_429_TOO_MANY_REQUESTS,
            response_body,
            minutes=result.minutes_remaining,
        )
    return _error_response(status.HTTP_400_BAD_REQUEST, response_body)


@router.get(
    "/lock-status",
    response_model=LockStatusResponse,
)
@limiter.limit(verification_rate_limit)
async def get_lock_status(
    request: Request,
    identity: str = Query(min_length=3, max_length=320),
    orchestrator: VerificationOrchestrator = Depends(get_orchestrator),
) -> LockStatusResponse:
    """Report whether an identity is currently locked out."""
    try:
        lock = await orchestrator.lock_status(identity)
    except InvalidIdentityError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )
    except VerificationStoreError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=_UNAVAILABLE_DETAIL,
        )

    return LockStatusResponse(
        locked=lock.locked,
        minutes_remaining=lock.minutes_remaining,
    )
