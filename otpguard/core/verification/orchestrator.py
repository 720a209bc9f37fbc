"""Verification orchestrator: the only entry point external callers use.

Sequences the guard and the ledger so lockout cannot be bypassed:

1. Refuse outright while the identity is locked (no ledger lookup, so a
   locked caller learns nothing about whether a code is live).
2. Validate the candidate against the live code.
3. Record the outcome on the identity's account-wide counter.

There are no retries here; every failure is final for the call.
"""

from otpguard.core.verification.clock import Clock, utcnow
from otpguard.core.verification.enums import CodePurpose, VerificationReason
from otpguard.core.verification.guard import LockoutGuard, minutes_until
from otpguard.core.verification.identity import mask_identity, normalize_identity
from otpguard.core.verification.ledger import CodeLedger
from otpguard.core.verification.models import (
    IssueResult,
    LockStatus,
    VerificationPolicy,
    VerificationResult,
)
from otpguard.core.verification.store import VerificationStore
from otpguard.logging_config import get_logger

logger = get_logger(__name__)


class VerificationOrchestrator:
    """Issues and verifies codes under both attempt budgets.

    Built once at process startup around an explicit store handle.
    """

    def __init__(
        self,
        store: VerificationStore,
        policy: VerificationPolicy | None = None,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self.policy = policy or VerificationPolicy()
        self._clock = clock
        self._ledger = CodeLedger(
            store,
            max_attempts=self.policy.max_code_attempts,
            clock=clock,
        )
        self._guard = LockoutGuard(
            store,
            max_attempts=self.policy.max_account_attempts,
            lock_minutes=self.policy.lock_minutes,
            clock=clock,
        )

    async def lock_status(self, identity: str) -> LockStatus:
        return await self._guard.check(normalize_identity(identity))

    async def request_code(self, identity: str, purpose: CodePurpose) -> IssueResult:
        """Issue a new code unless the identity is locked.

        The caller is responsible for delivering ``IssueResult.code``.
        """
        identity = normalize_identity(identity)
        purpose = CodePurpose(purpose)

        status = await self._guard.check(identity)
        if status.locked:
            logger.info(
                "Code request refused, identity locked",
                identity=mask_identity(identity),
                purpose=purpose.value,
                minutes_remaining=status.minutes_remaining,
            )
            return IssueResult(
                issued=False,
                reason=VerificationReason.ACCOUNT_LOCKED,
                minutes_remaining=status.minutes_remaining,
            )

        issued = await self._ledger.issue(
            identity, purpose, self.policy.code_ttl_minutes
        )
        logger.info(
            "Verification code issued",
            identity=mask_identity(identity),
            purpose=purpose.value,
            expires_at=issued.expires_at.isoformat(),
        )
        return IssueResult(
            issued=True,
            code=issued.code,
            expires_at=issued.expires_at,
        )

    async def verify(
        self,
        identity: str,
        purpose: CodePurpose,
        candidate: str,
    ) -> VerificationResult:
        """Validate ``candidate`` and return a single verdict.

        Store failures propagate as VerificationStoreError and are never
        counted against the identity.
        """
        identity = normalize_identity(identity)
        purpose = CodePurpose(purpose)

        status = await self._guard.check(identity)
        if status.locked:
            return VerificationResult(
                ok=False,
                reason=VerificationReason.ACCOUNT_LOCKED,
                minutes_remaining=status.minutes_remaining,
            )

        check = await self._ledger.validate(identity, purpose, candidate)

        if check.ok:
            await self._guard.record_success(identity)
            logger.info(
                "Verification succeeded",
                identity=mask_identity(identity),
                purpose=purpose.value,
            )
            return VerificationResult(ok=True)

        failure = await self._guard.record_failure(identity)
        logger.info(
            "Verification failed",
            identity=mask_identity(identity),
            purpose=purpose.value,
            reason=check.reason.value,
            failed_attempts=failure.failed_attempts,
        )

        if failure.locked_now:
            return VerificationResult(
                ok=False,
                reason=VerificationReason.ACCOUNT_LOCKED,
                minutes_remaining=minutes_until(failure.locked_until, self._clock()),
            )

        return VerificationResult(
            ok=False,
            reason=check.reason,
            attempts_remaining=check.attempts_remaining,
        )
