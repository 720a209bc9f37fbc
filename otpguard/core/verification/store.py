"""Durable store for verification codes and lockout state.

Every mutation is a single conditional statement, so concurrent requests
from separate service instances cannot lose increments or double-consume
a code. Nothing is cached in process memory.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Protocol

from sqlalchemy import and_, case, delete, literal, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from otpguard.core.verification.exceptions import VerificationStoreError
from otpguard.logging_config import get_logger
from otpguard.models.base import UTCDateTime
from otpguard.models.lockout_state import LockoutState
from otpguard.models.verification_code import VerificationCode

logger = get_logger(__name__)

_UPSERT_BY_DIALECT = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class VerificationStore(Protocol):
    """Storage operations the ledger, guard and sweep rely on.

    Conditional operations return ``None``/``False`` when their guard
    condition no longer holds (another request got there first).
    Infrastructure failures raise VerificationStoreError.
    """

    async def insert_code(
        self,
        *,
        identity: str,
        purpose: str,
        code: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> VerificationCode: ...

    async def live_code(
        self, identity: str, purpose: str, *, now: datetime
    ) -> VerificationCode | None: ...

    async def get_code(self, code_id: int) -> VerificationCode | None: ...

    async def increment_code_attempts(
        self, code_id: int, *, max_attempts: int
    ) -> int | None: ...

    async def consume_code(
        self, code_id: int, *, max_attempts: int, now: datetime
    ) -> bool: ...

    async def get_lockout(self, identity: str) -> LockoutState | None: ...

    async def record_lockout_failure(
        self,
        identity: str,
        *,
        now: datetime,
        threshold: int,
        lock_until: datetime,
    ) -> LockoutState: ...

    async def reset_lockout(self, identity: str, *, now: datetime) -> None: ...

    async def delete_stale_codes(self, *, cutoff: datetime) -> int: ...


class SqlVerificationStore:
    """VerificationStore backed by SQLAlchemy (PostgreSQL or SQLite).

    Each call runs in its own short transaction from the injected
    session maker, which must be configured with expire_on_commit=False.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_maker() as db:
                yield db
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "Verification store operation failed",
                operation=operation,
                error=str(e),
            )
            raise VerificationStoreError(f"Store operation '{operation}' failed") from e

    @staticmethod
    def _upsert(db: AsyncSession):
        dialect = db.get_bind().dialect.name
        try:
            return _UPSERT_BY_DIALECT[dialect]
        except KeyError:
            raise NotImplementedError(
                f"Lockout upserts are not supported on dialect '{dialect}'"
            ) from None

    # ── Verification codes ──

    async def insert_code(
        self,
        *,
        identity: str,
        purpose: str,
        code: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> VerificationCode:
        async with self._session("insert_code") as db:
            row = VerificationCode(
                identity=identity,
                purpose=purpose,
                code=code,
                attempts=0,
                consumed=False,
                created_at=created_at,
                expires_at=expires_at,
            )
            db.add(row)
            await db.commit()
            return row

    async def live_code(
        self, identity: str, purpose: str, *, now: datetime
    ) -> VerificationCode | None:
        """Return the most recent unconsumed, unexpired row for the pair.

        Rows whose attempt budget is spent are still returned; the ledger
        rejects them. Consumed or expired rows never shadow older live ones.
        """
        async with self._session("live_code") as db:
            result = await db.execute(
                select(VerificationCode)
                .where(
                    VerificationCode.identity == identity,
                    VerificationCode.purpose == purpose,
                    VerificationCode.consumed.is_(False),
                    VerificationCode.expires_at >= now,
                )
                .order_by(VerificationCode.created_at.desc(), VerificationCode.id.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def get_code(self, code_id: int) -> VerificationCode | None:
        async with self._session("get_code") as db:
            return await db.get(VerificationCode, code_id)

    async def increment_code_attempts(
        self, code_id: int, *, max_attempts: int
    ) -> int | None:
        """Count one failed comparison; returns the new total.

        Returns None if the row is consumed or its budget is already spent.
        """
        async with self._session("increment_code_attempts") as db:
            result = await db.execute(
                update(VerificationCode)
                .where(
                    VerificationCode.id == code_id,
                    VerificationCode.consumed.is_(False),
                    VerificationCode.attempts < max_attempts,
                )
                .values(attempts=VerificationCode.attempts + 1)
                .returning(VerificationCode.attempts)
                .execution_options(synchronize_session=False)
            )
            attempts = result.scalar_one_or_none()
            await db.commit()
            return attempts

    async def consume_code(
        self, code_id: int, *, max_attempts: int, now: datetime
    ) -> bool:
        """Mark the row consumed if it is still unconsumed, unexpired and in budget."""
        async with self._session("consume_code") as db:
            result = await db.execute(
                update(VerificationCode)
                .where(
                    VerificationCode.id == code_id,
                    VerificationCode.consumed.is_(False),
                    VerificationCode.attempts < max_attempts,
                    VerificationCode.expires_at >= now,
                )
                .values(consumed=True, consumed_at=now)
                .returning(VerificationCode.id)
                .execution_options(synchronize_session=False)
            )
            consumed_id = result.scalar_one_or_none()
            await db.commit()
            return consumed_id is not None

    async def delete_stale_codes(self, *, cutoff: datetime) -> int:
        """Delete rows expired, or consumed, before ``cutoff``."""
        async with self._session("delete_stale_codes") as db:
            result = await db.execute(
                delete(VerificationCode)
                .where(
                    or_(
                        VerificationCode.expires_at < cutoff,
                        and_(
                            VerificationCode.consumed.is_(True),
                            VerificationCode.consumed_at < cutoff,
                        ),
                    )
                )
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            return result.rowcount or 0

    # ── Lockout state ──

    async def get_lockout(self, identity: str) -> LockoutState | None:
        async with self._session("get_lockout") as db:
            return await db.get(LockoutState, identity)

    async def record_lockout_failure(
        self,
        identity: str,
        *,
        now: datetime,
        threshold: int,
        lock_until: datetime,
    ) -> LockoutState:
        """Atomically add one failure and lock once ``threshold`` is reached.

        The increment and the lock decision happen in one upsert, so two
        concurrent failures always produce two increments.
        """
        async with self._session("record_lockout_failure") as db:
            insert = self._upsert(db)
            next_count = LockoutState.failed_attempts + 1
            stmt = (
                insert(LockoutState)
                .values(
                    identity=identity,
                    failed_attempts=1,
                    locked_until=lock_until if threshold <= 1 else None,
                    last_failure_at=now,
                )
                .on_conflict_do_update(
                    index_elements=[LockoutState.identity],
                    set_={
                        "failed_attempts": next_count,
                        "locked_until": case(
                            (next_count >= threshold, literal(lock_until, UTCDateTime())),
                            else_=LockoutState.locked_until,
                        ),
                        "last_failure_at": literal(now, UTCDateTime()),
                    },
                )
                .returning(LockoutState.failed_attempts, LockoutState.locked_until)
            )
            row = (await db.execute(stmt)).one()
            await db.commit()
            return LockoutState(
                identity=identity,
                failed_attempts=row.failed_attempts,
                locked_until=row.locked_until,
                last_failure_at=now,
            )

    async def reset_lockout(self, identity: str, *, now: datetime) -> None:
        """Zero the counter and clear any lock, creating the row if needed."""
        async with self._session("reset_lockout") as db:
            insert = self._upsert(db)
            stmt = (
                insert(LockoutState)
                .values(
                    identity=identity,
                    failed_attempts=0,
                    locked_until=None,
                    last_success_at=now,
                )
                .on_conflict_do_update(
                    index_elements=[LockoutState.identity],
                    set_={
                        "failed_attempts": 0,
                        "locked_until": None,
                        "last_success_at": literal(now, UTCDateTime()),
                    },
                )
            )
            await db.execute(stmt)
            await db.commit()
