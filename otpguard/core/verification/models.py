"""Verification Pydantic models.

Pure data models passed between the ledger, guard and orchestrator.
No database dependencies.
"""

from datetime import datetime
from typing import Self

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator

from otpguard.core.verification.constants import (
    DEFAULT_CODE_TTL_MINUTES,
    DEFAULT_LOCK_MINUTES,
    DEFAULT_MAX_ACCOUNT_ATTEMPTS,
    DEFAULT_MAX_CODE_ATTEMPTS,
)
from otpguard.core.verification.enums import CodePurpose, VerificationReason


class VerificationPolicy(BaseModel):
    """Process-wide verification limits, immutable once built."""

    model_config = ConfigDict(frozen=True)

    code_ttl_minutes: int = Field(default=DEFAULT_CODE_TTL_MINUTES, gt=0)
    max_code_attempts: int = Field(default=DEFAULT_MAX_CODE_ATTEMPTS, gt=0)
    max_account_attempts: int = Field(default=DEFAULT_MAX_ACCOUNT_ATTEMPTS, gt=0)
    lock_minutes: int = Field(default=DEFAULT_LOCK_MINUTES, gt=0)

    @classmethod
    def from_settings(cls, settings) -> Self:
        return cls(
            code_ttl_minutes=settings.verification_code_ttl_minutes,
            max_code_attempts=settings.verification_max_code_attempts,
            max_account_attempts=settings.verification_max_account_attempts,
            lock_minutes=settings.verification_lock_minutes,
        )


class IssuedCode(BaseModel):
    """A freshly persisted code, ready to hand to a delivery channel."""

    model_config = ConfigDict(frozen=True)

    identity: str
    purpose: CodePurpose
    code: str = Field(pattern=r"^\d{6}$")
    expires_at: AwareDatetime


class CodeCheck(BaseModel):
    """Outcome of comparing a candidate against the live code."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    reason: VerificationReason | None = None
    attempts_remaining: int | None = None

    @model_validator(mode="after")
    def _reason_matches_outcome(self) -> Self:
        if self.ok == (self.reason is not None):
            raise ValueError("reason must be set exactly when ok is False")
        return self


class LockStatus(BaseModel):
    """Point-in-time lock state of one identity."""

    model_config = ConfigDict(frozen=True)

    locked: bool
    minutes_remaining: int = Field(default=0, ge=0)


class FailureRecord(BaseModel):
    """Counter state right after a failure was recorded."""

    model_config = ConfigDict(frozen=True)

    failed_attempts: int
    locked_now: bool
    locked_until: datetime | None = None


class IssueResult(BaseModel):
    """Verdict of a code request."""

    model_config = ConfigDict(frozen=True)

    issued: bool
    code: str | None = None
    expires_at: datetime | None = None
    reason: VerificationReason | None = None
    minutes_remaining: int | None = None


class VerificationResult(BaseModel):
    """Verdict of a verify call, the single answer callers act on."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    reason: VerificationReason | None = None
    minutes_remaining: int | None = None
    attempts_remaining: int | None = None
