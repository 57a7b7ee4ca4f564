"""
Module: tradeledger_kernel.models.outbox
Responsibility: Transactional outbox.  Side effects of a payment write
    (activity log entries, counterpart notifications) are stored here in the
    same transaction as the payment and delivered later by the dispatcher.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - An event is PENDING until delivered or dead-lettered.
    - attempts only grows; available_at schedules the next delivery try.

Failure modes:
    - Events stuck in PENDING past max attempts are moved to FAILED by the
      dispatcher and stay there for manual replay.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tradeledger_kernel.db.base import TrackedBase


class OutboxEventType(str, Enum):
    ACTIVITY_LOG = "activity_log"
    NOTIFICATION = "notification"


class OutboxStatus(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"


class OutboxEvent(TrackedBase):
    """
    One queued side effect.

    Contract:
        payload is the full argument set of the handler for event_type; the
        dispatcher needs nothing else to deliver it.
    """

    __tablename__ = "outbox_events"

    __table_args__ = (
        Index("idx_outbox_pending", "status", "available_at"),
    )

    event_type: Mapped[str] = mapped_column(String(50), nullable=False)

    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OutboxStatus.PENDING.value
    )

    attempts: Mapped[int] = mapped_column(nullable=False, default=0)

    available_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    delivered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<OutboxEvent {self.event_type} {self.status} attempts={self.attempts}>"
