"""Verification code issuance and brute-force lockout.

Two budgets throttle guessing:

1. Per code: a code dies after ``max_code_attempts`` wrong guesses.
2. Per identity: ``max_account_attempts`` failed verifications, across
   any code and any purpose, lock the identity for ``lock_minutes``.

External callers go through VerificationOrchestrator only. State lives
in a VerificationStore shared by every service instance.
"""

from otpguard.core.verification.enums import CodePurpose, VerificationReason
from otpguard.core.verification.exceptions import (
    InvalidIdentityError,
    VerificationStoreError,
)
from otpguard.core.verification.guard import LockoutGuard
from otpguard.core.verification.identity import mask_identity, normalize_identity
from otpguard.core.verification.ledger import CodeLedger
from otpguard.core.verification.models import (
    CodeCheck,
    FailureRecord,
    IssuedCode,
    IssueResult,
    LockStatus,
    VerificationPolicy,
    VerificationResult,
)
from otpguard.core.verification.orchestrator import VerificationOrchestrator
from otpguard.core.verification.store import SqlVerificationStore, VerificationStore

__all__ = [
    "CodeCheck",
    "CodeLedger",
    "CodePurpose",
    "FailureRecord",
    "InvalidIdentityError",
    "IssueResult",
    "IssuedCode",
    "LockStatus",
    "LockoutGuard",
    "SqlVerificationStore",
    "VerificationOrchestrator",
    "VerificationPolicy",
    "VerificationReason",
    "VerificationResult",
    "VerificationStore",
    "VerificationStoreError",
    "mask_identity",
    "normalize_identity",
]
