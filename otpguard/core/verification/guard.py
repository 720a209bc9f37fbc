"""Lockout guard: account-wide brute-force throttling per identity."""

import math
from datetime import datetime, timedelta

from otpguard.core.verification.clock import Clock, utcnow
from otpguard.core.verification.identity import mask_identity
from otpguard.core.verification.models import FailureRecord, LockStatus
from otpguard.core.verification.store import VerificationStore
from otpguard.logging_config import get_logger

logger = get_logger(__name__)


def minutes_until(locked_until: datetime | None, now: datetime) -> int:
    """Whole minutes left in a lock window, rounded up; 0 when not locked."""
    if locked_until is None or locked_until <= now:
        return 0
    return math.ceil((locked_until - now).total_seconds() / 60)


class LockoutGuard:
    """Counts failed verifications per identity and locks at a threshold.

    Independent of any single code's own attempt budget. An expired
    ``locked_until`` is treated as unlocked without a write.
    """

    def __init__(
        self,
        store: VerificationStore,
        *,
        max_attempts: int,
        lock_minutes: int,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._max_attempts = max_attempts
        self._lock_duration = timedelta(minutes=lock_minutes)
        self._clock = clock

    async def check(self, identity: str) -> LockStatus:
        """Read the lock state once and derive both answers from it."""
        state = await self._store.get_lockout(identity)
        if state is None:
            return LockStatus(locked=False)
        remaining = minutes_until(state.locked_until, self._clock())
        return LockStatus(locked=remaining > 0, minutes_remaining=remaining)

    async def is_locked(self, identity: str) -> bool:
        return (await self.check(identity)).locked

    async def minutes_remaining(self, identity: str) -> int:
        return (await self.check(identity)).minutes_remaining

    async def record_failure(self, identity: str) -> FailureRecord:
        """Add one failure; lock the identity when the threshold is reached."""
        now = self._clock()
        state = await self._store.record_lockout_failure(
            identity,
            now=now,
            threshold=self._max_attempts,
            lock_until=now + self._lock_duration,
        )
        locked_now = state.failed_attempts >= self._max_attempts
        if locked_now:
            logger.warning(
                "Identity locked after repeated verification failures",
                identity=mask_identity(identity),
                failed_attempts=state.failed_attempts,
                lock_minutes=int(self._lock_duration.total_seconds() // 60),
            )
        return FailureRecord(
            failed_attempts=state.failed_attempts,
            locked_now=locked_now,
            locked_until=state.locked_until,
        )

    async def record_success(self, identity: str) -> None:
        """Reset the counter and clear any lock, even one still running."""
        await self._store.reset_lockout(identity, now=self._clock())
