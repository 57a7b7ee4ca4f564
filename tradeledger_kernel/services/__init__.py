"""Flush-only kernel services."""

from tradeledger_kernel.services.base import BaseService
from tradeledger_kernel.services.outbox_service import OutboxWriter
from tradeledger_kernel.services.retry import retry_transaction

__all__ = ["BaseService", "OutboxWriter", "retry_transaction"]
