"""
tradeledger_services.outbox_dispatcher -- deliver queued side effects.

Responsibility:
    Reads PENDING outbox events whose ``available_at`` has passed, hands each
    to the handler registered for its type, and records the outcome:
    delivered, rescheduled with backoff, or dead-lettered as FAILED.

Architecture position:
    Services -- stateful, owns its own transaction boundary.  Called inline
    by the payment writer after commit and by ``scripts/dispatch_outbox.py``.

Invariants enforced:
    - Each event is delivered inside its own SAVEPOINT; a failing handler
      never undoes another event's delivery.
    - attempts grows by one per try; once it reaches ``max_attempts`` the
      event moves to FAILED and is never picked up again.
    - Notifications run with a bounded timeout; a hung notifier call never
      holds up the notifications after it.

Failure modes:
    - Handler exception: recorded in ``last_error``, event rescheduled with
      exponential backoff or dead-lettered.
    - Unknown event type: dead-lettered immediately
      (``UnknownOutboxEventError`` recorded in ``last_error``).
    - Notifier timeout: ``NotificationTimeoutError``, treated like any
      handler failure.

Audit relevance:
    - Activity events become ``activity_logs`` rows here; nothing else
      writes that table.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tradeledger_config.schema import OutboxPolicy
from tradeledger_kernel.domain.clock import Clock, SystemClock
from tradeledger_kernel.exceptions import NotificationTimeoutError, UnknownOutboxEventError
from tradeledger_kernel.logging_config import get_logger
from tradeledger_kernel.models.activity_log import ActivityLog
from tradeledger_kernel.models.outbox import OutboxEvent, OutboxEventType, OutboxStatus
from tradeledger_services.notification import LoggingNotifier, Notifier

logger = get_logger("services.outbox_dispatcher")

EventHandler = Callable[[OutboxEvent], None]


@dataclass(frozen=True)
class DispatchReport:
    """Outcome of one dispatch pass, by event id."""

    delivered: tuple[UUID, ...] = ()
    retried: tuple[UUID, ...] = ()
    dead_lettered: tuple[UUID, ...] = ()

    @property
    def attempted(self) -> int:
        return len(self.delivered) + len(self.retried) + len(self.dead_lettered)


def _optional_uuid(value: str | None) -> UUID | None:
    return UUID(value) if value else None


class OutboxDispatcher:
    """
    Delivers outbox events through registered handlers.

    Contract:
        ``dispatch_pending`` processes at most ``limit`` (default
        ``policy.batch_size``) due events, commits, and returns a
        ``DispatchReport``.  It never raises for a handler failure.

    Usage:
        dispatcher = OutboxDispatcher(session, LoggingNotifier(), config.outbox)
        report = dispatcher.dispatch_pending()
        dispatcher.close()
    """

    def __init__(
        self,
        session: Session,
        notifier: Notifier | None = None,
        policy: OutboxPolicy | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._notifier = notifier or LoggingNotifier()
        self._policy = policy or OutboxPolicy()
        self._clock = clock or SystemClock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tl-notify")
        self._handlers: dict[str, EventHandler] = {
            OutboxEventType.ACTIVITY_LOG.value: self._deliver_activity,
            OutboxEventType.NOTIFICATION.value: self._deliver_notification,
        }

    def register(self, event_type: str, handler: EventHandler) -> None:
        """Add or replace the handler for ``event_type``."""
        self._handlers[event_type] = handler

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _deliver_activity(self, event: OutboxEvent) -> None:
        payload = event.payload
        self._session.add(
            ActivityLog(
                action=payload["action"],
                collection=payload["collection"],
                document_id=UUID(payload["document_id"]),
                performed_by=_optional_uuid(payload.get("performed_by")),
                changes=payload.get("changes") or {},
                metadata_=payload.get("metadata") or {},
                created_by_id=event.created_by_id,
            )
        )
        self._session.flush()

    def _deliver_notification(self, event: OutboxEvent) -> None:
        payload = event.payload
        counterpart_id = UUID(payload["counterpart_id"])
        timeout = self._policy.notification_timeout_seconds
        future = self._executor.submit(
            self._notifier.notify,
            counterpart_id,
            payload["message_type"],
            payload.get("payload") or {},
        )
        try:
            future.result(timeout=timeout)
        except FutureTimeoutError as e:
            future.cancel()
            self._abandon_executor()
            raise NotificationTimeoutError(str(counterpart_id), timeout) from e

    def _abandon_executor(self) -> None:
        """
        Swap in a fresh notifier worker after a timeout.

        A running ``notify`` call cannot be cancelled, so the old worker is
        left to finish on its own and later notifications get a new one.
        """
        self._executor.shutdown(wait=False)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tl-notify")
        logger.warning("notifier_worker_replaced")

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _due_events(self, limit: int, event_ids: Sequence[UUID] | None) -> list[OutboxEvent]:
        stmt = select(OutboxEvent).where(
            OutboxEvent.status == OutboxStatus.PENDING.value,
            OutboxEvent.available_at <= self._clock.now(),
        )
        if event_ids is not None:
            stmt = stmt.where(OutboxEvent.id.in_(list(event_ids)))
        stmt = (
            stmt.order_by(OutboxEvent.available_at, OutboxEvent.created_at)
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        return list(self._session.scalars(stmt))

    def _dispatch_one(self, event: OutboxEvent) -> OutboxStatus:
        now = self._clock.now()
        event.attempts += 1
        handler = self._handlers.get(event.event_type)
        try:
            if handler is None:
                raise UnknownOutboxEventError(event.event_type)
            with self._session.begin_nested():
                handler(event)
        except Exception as exc:
            event.last_error = f"{type(exc).__name__}: {exc}"
            final = isinstance(exc, UnknownOutboxEventError) or event.attempts >= self._policy.max_attempts
            if final:
                event.status = OutboxStatus.FAILED.value
                logger.error(
                    "outbox_event_dead_lettered",
                    extra={
                        "event_id": str(event.id),
                        "event_type": event.event_type,
                        "attempts": event.attempts,
                    },
                    exc_info=True,
                )
                return OutboxStatus.FAILED

            delay = self._policy.retry_backoff_seconds * (2 ** (event.attempts - 1))
            event.available_at = now + timedelta(seconds=delay)
            logger.warning(
                "outbox_delivery_retry_scheduled",
                extra={
                    "event_id": str(event.id),
                    "event_type": event.event_type,
                    "attempts": event.attempts,
                    "delay_seconds": delay,
                },
                exc_info=True,
            )
            return OutboxStatus.PENDING

        event.status = OutboxStatus.DELIVERED.value
        event.delivered_at = now
        event.last_error = None
        logger.debug(
            "outbox_event_delivered",
            extra={"event_id": str(event.id), "event_type": event.event_type},
        )
        return OutboxStatus.DELIVERED

    def dispatch_pending(
        self,
        limit: int | None = None,
        event_ids: Sequence[UUID] | None = None,
    ) -> DispatchReport:
        """Deliver due events, optionally only those in ``event_ids``."""
        delivered: list[UUID] = []
        retried: list[UUID] = []
        dead: list[UUID] = []
        try:
            for event in self._due_events(limit or self._policy.batch_size, event_ids):
                outcome = self._dispatch_one(event)
                match outcome:
                    case OutboxStatus.DELIVERED:
                        delivered.append(event.id)
                    case OutboxStatus.PENDING:
                        retried.append(event.id)
                    case OutboxStatus.FAILED:
                        dead.append(event.id)
            self._session.commit()
        except Exception:
            self._session.rollback()
            logger.error("outbox_dispatch_rolled_back", exc_info=True)
            raise

        report = DispatchReport(tuple(delivered), tuple(retried), tuple(dead))
        if report.attempted:
            logger.info(
                "outbox_dispatch_completed",
                extra={
                    "delivered": len(delivered),
                    "retried": len(retried),
                    "dead_lettered": len(dead),
                },
            )
        return report
