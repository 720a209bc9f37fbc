"""Pytest configuration and shared fixtures.

Each test gets its own SQLite database file built from the model
metadata, and a clock it can move forward by hand.
"""

import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Set testing mode BEFORE importing the app: NullPool, in-memory rate
# limiter storage, startup validation skipped
os.environ["TESTING"] = "true"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from otpguard.config import settings  # noqa: E402

settings.testing = True

from otpguard.core.verification import (  # noqa: E402
    SqlVerificationStore,
    VerificationOrchestrator,
    VerificationPolicy,
)
from otpguard.database import build_engine, build_session_maker  # noqa: E402
from otpguard.main import app  # noqa: E402
from otpguard.models import Base  # noqa: E402
from otpguard.services.delivery import LogOnlyDelivery  # noqa: E402


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def session_maker(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh SQLite database with all tables created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'otpguard.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_session_maker(engine)

    await engine.dispose()


@pytest.fixture
def store(session_maker) -> SqlVerificationStore:
    return SqlVerificationStore(session_maker)


@pytest.fixture
def orchestrator(store, clock) -> VerificationOrchestrator:
    return VerificationOrchestrator(store, VerificationPolicy(), clock=clock)


@pytest_asyncio.fixture
async def client(orchestrator) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app wired to the per-test orchestrator.

    ASGITransport does not run the lifespan, so app state is set here.
    """
    app.state.orchestrator = orchestrator
    app.state.delivery = LogOnlyDelivery()
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
