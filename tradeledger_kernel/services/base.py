"""
BaseService -- abstract base for kernel services.

Responsibility:
    Common constructor for kernel services.  Kernel services persist with
    ``session.flush()`` inside the caller's transaction and never commit or
    roll back; the module service that invoked them owns the boundary.
"""

from abc import ABC

from sqlalchemy.orm import Session

from tradeledger_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """
    Abstract base class for flush-only kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
