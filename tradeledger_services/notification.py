"""
Notifier port -- how counterparts hear about payments.

Responsibility:
    Defines the interface the outbox dispatcher calls for NOTIFICATION
    events, plus the default implementation that only logs.  Real channels
    (chat, email) implement ``Notifier`` outside this package.

Architecture position:
    Services -- port definition.  No database access.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any
from uuid import UUID

from tradeledger_kernel.logging_config import get_logger

logger = get_logger("services.notification")


class Notifier(ABC):
    """
    Delivers one message to a counterpart.

    Contract:
        ``notify`` either returns (delivered) or raises (not delivered).  It
        may block; the dispatcher bounds it with a timeout.
    """

    @abstractmethod
    def notify(self, counterpart_id: UUID, message_type: str, payload: dict[str, Any]) -> None:
        ...


class LoggingNotifier(Notifier):
    """Default notifier: records the message in the structured log."""

    def notify(self, counterpart_id: UUID, message_type: str, payload: dict[str, Any]) -> None:
        logger.info(
            "counterpart_notified",
            extra={
                "counterpart_id": str(counterpart_id),
                "message_type": message_type,
                "payload": payload,
            },
        )
