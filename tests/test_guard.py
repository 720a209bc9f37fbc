"""Tests for the per-identity lockout guard."""

from datetime import timedelta

import pytest

from otpguard.core.verification import LockoutGuard
from otpguard.core.verification.guard import minutes_until

IDENTITY = "jane@example.com"


@pytest.fixture
def guard(store, clock) -> LockoutGuard:
    return LockoutGuard(store, max_attempts=5, lock_minutes=30, clock=clock)


class TestMinutesUntil:
    def test_not_locked(self, clock):
        assert minutes_until(None, clock()) == 0

    def test_rounds_partial_minutes_up(self, clock):
        assert minutes_until(clock() + timedelta(minutes=29, seconds=1), clock()) == 30
        assert minutes_until(clock() + timedelta(seconds=1), clock()) == 1

    def test_lock_ending_now_is_over(self, clock):
        assert minutes_until(clock(), clock()) == 0


class TestLockoutGuard:
    async def test_unknown_identity_is_unlocked(self, guard):
        status = await guard.check(IDENTITY)

        assert status.locked is False
        assert status.minutes_remaining == 0

    async def test_four_failures_do_not_lock(self, guard):
        for _ in range(4):
            record = await guard.record_failure(IDENTITY)

        assert record.failed_attempts == 4
        assert record.locked_now is False
        assert await guard.is_locked(IDENTITY) is False

    async def test_fifth_failure_locks_for_thirty_minutes(self, guard, clock):
        for _ in range(4):
            await guard.record_failure(IDENTITY)

        record = await guard.record_failure(IDENTITY)

        assert record.locked_now is True
        assert await guard.is_locked(IDENTITY) is True
        assert await guard.minutes_remaining(IDENTITY) == 30

    async def test_lock_holds_until_thirty_minutes_elapse(self, guard, clock):
        for _ in range(5):
            await guard.record_failure(IDENTITY)

        clock.advance(minutes=29, seconds=59)
        assert await guard.is_locked(IDENTITY) is True
        assert await guard.minutes_remaining(IDENTITY) == 1

        clock.advance(seconds=1)
        assert await guard.is_locked(IDENTITY) is False
        assert await guard.minutes_remaining(IDENTITY) == 0

    async def test_failure_after_expired_lock_relocks(self, guard, clock):
        for _ in range(5):
            await guard.record_failure(IDENTITY)
        clock.advance(minutes=31)

        record = await guard.record_failure(IDENTITY)

        assert record.failed_attempts == 6
        assert record.locked_now is True
        assert await guard.minutes_remaining(IDENTITY) == 30

    async def test_success_resets_counter(self, guard):
        for _ in range(4):
            await guard.record_failure(IDENTITY)

        await guard.record_success(IDENTITY)
        record = await guard.record_failure(IDENTITY)

        assert record.failed_attempts == 1
        assert record.locked_now is False

    async def test_success_clears_running_lock(self, guard, store):
        for _ in range(5):
            await guard.record_failure(IDENTITY)

        await guard.record_success(IDENTITY)

        assert await guard.is_locked(IDENTITY) is False
        state = await store.get_lockout(IDENTITY)
        assert state.failed_attempts == 0
        assert state.locked_until is None
        assert state.last_success_at is not None
