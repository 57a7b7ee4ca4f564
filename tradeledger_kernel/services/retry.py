"""
retry_transaction -- re-run a unit of work on retryable write failures.

Responsibility:
    Timeouts, deadlocks and serialization failures on the payment write are
    transient; the whole unit of work (lock, validate, insert) is safe to run
    again in a fresh session because nothing survived the rollback.

Invariants enforced:
    - Only PaymentWriteError with ``retryable=True`` is retried.  Validation,
      over-allocation and non-retryable write errors propagate on the first
      attempt.
    - Each attempt gets its own session, closed afterwards.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.orm import Session, sessionmaker

from tradeledger_kernel.exceptions import PaymentWriteError
from tradeledger_kernel.logging_config import get_logger

logger = get_logger("services.retry")

T = TypeVar("T")


def retry_transaction(
    session_factory: sessionmaker[Session],
    work: Callable[[Session], T],
    *,
    max_attempts: int = 3,
    backoff_seconds: float = 0.2,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run ``work(session)`` until it succeeds or a non-retryable error occurs.

    Raises:
        PaymentWriteError: the last retryable failure once attempts run out.
        Any non-retryable exception raised by ``work``.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 0
    while True:
        attempt += 1
        session = session_factory()
        try:
            return work(session)
        except PaymentWriteError as exc:
            if not exc.retryable or attempt >= max_attempts:
                logger.error(
                    "transaction_retry_exhausted",
                    extra={"attempt": attempt, "max_attempts": max_attempts},
                    exc_info=True,
                )
                raise
            logger.warning(
                "transaction_retry_scheduled",
                extra={
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "reason": exc.reason,
                },
            )
            sleep(backoff_seconds * attempt)
        finally:
            session.close()
