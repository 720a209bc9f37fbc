"""Verification API schemas."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from otpguard.core.verification.enums import CodePurpose, VerificationReason
from otpguard.core.verification.identity import normalize_identity


class IdentityMixin(BaseModel):
    identity: str = Field(
        min_length=3,
        max_length=320,
        description="Phone number (E.164 or local formatting) or email address.",
    )

    @field_validator("identity")
    @classmethod
    def _normalize(cls, value: str) -> str:
        # InvalidIdentityError is a ValueError, so pydantic reports a 422
        return normalize_identity(value)


class CodeRequest(IdentityMixin):
    """Request body for POST /api/verification/codes."""

    purpose: CodePurpose


class CodeRequestResponse(BaseModel):
    """Response for POST /api/verification/codes."""

    issued: bool
    expires_at: datetime | None = None
    reason: VerificationReason | None = None
    minutes_remaining: int | None = None
    dev_code: str | None = Field(
        default=None,
        description="Only present when development code exposure is enabled.",
    )


class CodeVerifyRequest(IdentityMixin):
    """Request body for POST /api/verification/verify."""

    purpose: CodePurpose
    code: str = Field(pattern=r"^\d{6}$")


class CodeVerifyResponse(BaseModel):
    """Response for POST /api/verification/verify."""

    ok: bool
    reason: VerificationReason | None = None
    minutes_remaining: int | None = None
    attempts_remaining: int | None = None


class LockStatusResponse(BaseModel):
    """Response for GET /api/verification/lock-status."""

    locked: bool
    minutes_remaining: int
