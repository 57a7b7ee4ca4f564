"""
Tests for retry_transaction.

Uses a fake session factory; the unit of work decides what to raise.
"""

from decimal import Decimal

import pytest

from tradeledger_kernel.exceptions import (
    OverAllocationError,
    PaymentWriteError,
    PaymentWriteTimeoutError,
)
from tradeledger_kernel.services.retry import retry_transaction


class FakeSession:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class FakeSessionFactory:
    def __init__(self):
        self.sessions: list[FakeSession] = []

    def __call__(self):
        session = FakeSession()
        self.sessions.append(session)
        return session


@pytest.fixture
def factory():
    return FakeSessionFactory()


@pytest.fixture
def sleeps():
    return []


class TestRetryTransaction:
    def test_success_first_attempt(self, factory, sleeps):
        result = retry_transaction(factory, lambda s: "ok", sleep=sleeps.append)
        assert result == "ok"
        assert len(factory.sessions) == 1
        assert factory.sessions[0].closed
        assert sleeps == []

    def test_retries_timeout_then_succeeds(self, factory, sleeps):
        calls = {"n": 0}

        def work(session):
            calls["n"] += 1
            if calls["n"] < 3:
                raise PaymentWriteTimeoutError("statement timeout")
            return "written"

        result = retry_transaction(
            factory, work, max_attempts=3, backoff_seconds=0.5, sleep=sleeps.append
        )
        assert result == "written"
        assert calls["n"] == 3
        assert sleeps == [0.5, 1.0]
        assert all(s.closed for s in factory.sessions)

    def test_gives_up_after_max_attempts(self, factory, sleeps):
        def work(session):
            raise PaymentWriteTimeoutError("database is locked")

        with pytest.raises(PaymentWriteTimeoutError):
            retry_transaction(factory, work, max_attempts=2, sleep=sleeps.append)
        assert len(factory.sessions) == 2
        assert len(sleeps) == 1

    def test_non_retryable_write_error_not_retried(self, factory, sleeps):
        def work(session):
            raise PaymentWriteError("check constraint", retryable=False)

        with pytest.raises(PaymentWriteError):
            retry_transaction(factory, work, max_attempts=5, sleep=sleeps.append)
        assert len(factory.sessions) == 1

    def test_validation_errors_propagate_immediately(self, factory, sleeps):
        def work(session):
            raise OverAllocationError("inv-1", Decimal("10"), Decimal("5"), "USD")

        with pytest.raises(OverAllocationError):
            retry_transaction(factory, work, max_attempts=5, sleep=sleeps.append)
        assert len(factory.sessions) == 1
        assert factory.sessions[0].closed

    def test_max_attempts_must_be_positive(self, factory):
        with pytest.raises(ValueError):
            retry_transaction(factory, lambda s: None, max_attempts=0)
