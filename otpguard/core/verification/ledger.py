"""Code ledger: issue, validate and single-use-consume verification codes."""

import secrets
from datetime import timedelta

from otpguard.core.verification.clock import Clock, utcnow
from otpguard.core.verification.constants import CODE_LENGTH, CODE_SPACE
from otpguard.core.verification.enums import CodePurpose, VerificationReason
from otpguard.core.verification.models import CodeCheck, IssuedCode
from otpguard.core.verification.store import VerificationStore
from otpguard.logging_config import get_logger

logger = get_logger(__name__)


def generate_code() -> str:
    """Uniformly random 6-digit string, leading zeros preserved."""
    return f"{secrets.randbelow(CODE_SPACE):0{CODE_LENGTH}d}"


class CodeLedger:
    """Owns the lifecycle of verification codes per (identity, purpose).

    Knows nothing about account lockout. Only the live row for a pair is
    considered: the most recent one that is unconsumed and unexpired.
    """

    def __init__(
        self,
        store: VerificationStore,
        *,
        max_attempts: int,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._max_attempts = max_attempts
        self._clock = clock

    async def issue(
        self,
        identity: str,
        purpose: CodePurpose,
        ttl_minutes: int,
    ) -> IssuedCode:
        """Persist a new code. Earlier codes for the pair are left in place."""
        now = self._clock()
        expires_at = now + timedelta(minutes=ttl_minutes)
        code = generate_code()

        row = await self._store.insert_code(
            identity=identity,
            purpose=purpose.value,
            code=code,
            created_at=now,
            expires_at=expires_at,
        )
        logger.debug("Verification code stored", code_id=row.id, purpose=purpose.value)

        return IssuedCode(
            identity=identity,
            purpose=purpose,
            code=code,
            expires_at=expires_at,
        )

    async def validate(
        self,
        identity: str,
        purpose: CodePurpose,
        candidate: str,
    ) -> CodeCheck:
        """Compare ``candidate`` against the live code for the pair."""
        now = self._clock()
        row = await self._store.live_code(identity, purpose.value, now=now)

        if row is None:
            return CodeCheck(ok=False, reason=VerificationReason.NOT_FOUND_OR_EXPIRED)

        # A spent row stays dead even if the candidate is right.
        if row.attempts >= self._max_attempts:
            return CodeCheck(
                ok=False,
                reason=VerificationReason.TOO_MANY_ATTEMPTS,
                attempts_remaining=0,
            )

        if row.code != candidate:
            attempts = await self._store.increment_code_attempts(
                row.id, max_attempts=self._max_attempts
            )
            if attempts is None:
                return await self._lost_race(row.id)
            return CodeCheck(
                ok=False,
                reason=VerificationReason.CODE_MISMATCH,
                attempts_remaining=max(self._max_attempts - attempts, 0),
            )

        if not await self._store.consume_code(
            row.id, max_attempts=self._max_attempts, now=now
        ):
            return await self._lost_race(row.id)

        return CodeCheck(ok=True)

    async def _lost_race(self, code_id: int) -> CodeCheck:
        """Classify a conditional update that matched no row.

        Another request consumed the row or spent its last attempt
        between our read and our write.
        """
        current = await self._store.get_code(code_id)
        if current is None or current.consumed:
            return CodeCheck(ok=False, reason=VerificationReason.NOT_FOUND_OR_EXPIRED)
        if current.attempts >= self._max_attempts:
            return CodeCheck(
                ok=False,
                reason=VerificationReason.TOO_MANY_ATTEMPTS,
                attempts_remaining=0,
            )
        return CodeCheck(ok=False, reason=VerificationReason.NOT_FOUND_OR_EXPIRED)
