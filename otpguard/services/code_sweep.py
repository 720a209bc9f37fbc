"""Stale verification code sweep.

Deletes code rows that can never validate again. Correctness never
depends on this job; it only bounds table growth.
"""

from datetime import timedelta

from otpguard.core.verification.clock import Clock, utcnow
from otpguard.core.verification.exceptions import VerificationStoreError
from otpguard.core.verification.store import VerificationStore
from otpguard.logging_config import get_logger

logger = get_logger(__name__)


async def sweep_stale_codes(
    store: VerificationStore,
    *,
    retention_hours: int,
    clock: Clock = utcnow,
) -> int:
    """Delete codes that expired or were consumed over ``retention_hours`` ago.

    Failures are logged and reported as 0 deleted rows so the scheduler
    keeps running; the next run retries.

    Returns:
        Number of rows deleted.
    """
    cutoff = clock() - timedelta(hours=retention_hours)
    try:
        deleted = await store.delete_stale_codes(cutoff=cutoff)
    except VerificationStoreError:
        logger.exception(
            "Stale code sweep failed",
            cutoff=cutoff.isoformat(),
        )
        return 0

    logger.info(
        "Stale code sweep completed",
        deleted=deleted,
        cutoff=cutoff.isoformat(),
    )
    return deleted
