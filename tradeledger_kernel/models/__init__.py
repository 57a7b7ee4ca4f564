"""Kernel ORM models shared by every ledger module."""

from tradeledger_kernel.models.activity_log import ActivityLog
from tradeledger_kernel.models.outbox import OutboxEvent, OutboxEventType, OutboxStatus
from tradeledger_kernel.models.party import Party, PartyType

__all__ = [
    "ActivityLog",
    "OutboxEvent",
    "OutboxEventType",
    "OutboxStatus",
    "Party",
    "PartyType",
]
