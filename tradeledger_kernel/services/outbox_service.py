"""
OutboxWriter -- enqueue side-effect events inside the caller's transaction.

Responsibility:
    Turns "write an activity log entry" and "notify the counterpart" into
    OutboxEvent rows.  Because the rows are flushed in the same transaction
    as the payment, a committed payment always has its events and a rolled
    back one never does.

Architecture position:
    Kernel > Services -- flush-only.  Delivery lives in
    ``tradeledger_services.outbox_dispatcher``.

Invariants enforced:
    - Payloads are JSON-safe: UUIDs, Decimals and datetimes are stringified
      here so the JSON column never sees them.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from tradeledger_kernel.logging_config import get_logger
from tradeledger_kernel.models.outbox import OutboxEvent, OutboxEventType, OutboxStatus
from tradeledger_kernel.services.base import BaseService

logger = get_logger("services.outbox")


def _json_safe(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


class OutboxWriter(BaseService):
    """
    Flush-only writer for outbox events.

    Guarantees:
        - Every enqueued event starts PENDING with zero attempts and is
          available immediately.
    """

    def enqueue(
        self,
        event_type: OutboxEventType,
        payload: dict[str, Any],
        actor_id: UUID,
    ) -> OutboxEvent:
        event = OutboxEvent(
            event_type=event_type.value,
            payload=_json_safe(payload),
            status=OutboxStatus.PENDING.value,
            attempts=0,
            available_at=self.clock.now(),
            created_by_id=actor_id,
        )
        self.session.add(event)
        self.session.flush()
        logger.debug(
            "outbox_event_enqueued",
            extra={"event_id": str(event.id), "event_type": event_type.value},
        )
        return event

    def enqueue_activity(
        self,
        *,
        action: str,
        collection: str,
        document_id: UUID,
        performed_by: UUID,
        changes: dict[str, Any],
        metadata: dict[str, Any],
    ) -> OutboxEvent:
        return self.enqueue(
            OutboxEventType.ACTIVITY_LOG,
            {
                "action": action,
                "collection": collection,
                "document_id": document_id,
                "performed_by": performed_by,
                "changes": changes,
                "metadata": metadata,
            },
            actor_id=performed_by,
        )

    def enqueue_notification(
        self,
        *,
        counterpart_id: UUID,
        message_type: str,
        payload: dict[str, Any],
        actor_id: UUID,
    ) -> OutboxEvent:
        return self.enqueue(
            OutboxEventType.NOTIFICATION,
            {
                "counterpart_id": counterpart_id,
                "message_type": message_type,
                "payload": payload,
            },
            actor_id=actor_id,
        )
