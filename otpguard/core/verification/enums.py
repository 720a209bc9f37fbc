"""Verification enums."""

from enum import StrEnum


class CodePurpose(StrEnum):
    """Flow a code was issued for. Codes never cross purposes."""

    SIGNUP = "signup"
    RECOVERY = "recovery"
    EMAIL_VERIFY = "email_verify"


class VerificationReason(StrEnum):
    """Why an issuance or verification was refused.

    All of these are expected outcomes the caller can recover from.
    Infrastructure failures are never reported through this enum.
    """

    ACCOUNT_LOCKED = "account_locked"
    NOT_FOUND_OR_EXPIRED = "not_found_or_expired"
    TOO_MANY_ATTEMPTS = "too_many_attempts"
    CODE_MISMATCH = "code_mismatch"
