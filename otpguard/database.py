"""Async engine and session factory for the verification store.

The engine is created lazily, inside the running event loop, because
asyncpg connections are bound to the loop that opened them.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from otpguard.config import settings
from otpguard.logging_config import get_logger

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def build_engine(database_url: str, *, pooled: bool = True) -> AsyncEngine:
    """Create an engine for ``database_url``.

    SQLite never gets a pool: each aiosqlite connection owns a thread, and
    a file database must not be shared across event loops in tests.
    """
    if not pooled or database_url.startswith("sqlite"):
        return create_async_engine(database_url, poolclass=NullPool)
    return create_async_engine(
        database_url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory for SqlVerificationStore.

    Rows are read after commit, so attributes must not expire.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def get_engine() -> AsyncEngine:
    """Get or create the process-wide engine."""
    global _engine
    if _engine is None:
        _engine = build_engine(settings.database_url, pooled=not settings.testing)
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get or create the process-wide session maker."""
    global _session_maker
    if _session_maker is None:
        _session_maker = build_session_maker(get_engine())
    return _session_maker


async def check_database_connection() -> bool:
    """Return True if a trivial query succeeds."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
            return True
    except Exception as e:
        logger.warning("Database connectivity check failed", error=str(e))
        return False


async def close_database() -> None:
    """Dispose of the engine; the next get_engine() call builds a new one."""
    global _engine, _session_maker
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_maker = None
