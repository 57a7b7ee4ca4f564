"""
Payment Service (``tradeledger_modules.payments.service``).

Responsibility
--------------
Records payments against one or more invoices, voids them, and keeps the
supplier tracking fields (factory deposit / balance paid) in step with the
allocation ledger.  Pure computation is delegated to
``tradeledger_engines``; side effects (activity log, counterpart
notification) are written to the outbox in the same transaction.

Architecture position
---------------------
**Modules layer** -- ``PaymentService`` is the sole public entry point for
payment writes.  It composes the invoice and payment selectors, the
``BalanceCalculator`` engine and the kernel ``OutboxWriter``.

Invariants enforced
-------------------
* Each public method owns the transaction boundary (``commit`` on success,
  ``rollback`` on failure or exception).
* The allocations of a payment sum to the payment amount.
* Every allocation targets an invoice of the kind the direction calls for,
  owned by the paying/paid account.
* Invoice rows are locked (``FOR UPDATE``, id order) before balances are
  re-validated, so two writers on the same invoice serialize.
* Tracking fields are rebuilt from the ledger and written with a version
  compare-and-swap; they are never incremented in place.

Failure modes
-------------
* Validation errors raise before any write.
* ``OverAllocationError`` after the locked re-validation; session rolled back.
* ``OperationalError`` -> ``PaymentWriteTimeoutError`` for statement or lock
  timeouts, ``PaymentWriteError(retryable=True)`` otherwise.
* Tracking refresh and outbox delivery failures are logged and never
  escalate.

Audit relevance
---------------
Structured log events at operation start and commit/rollback carrying
payment id, account id, amounts and allocation counts.  One activity-log
outbox event per allocation.

Usage::

    service = PaymentService(session, config, clock=clock)
    result = service.record_payment(
        direction=PaymentDirection.OUTGOING,
        account_id=supplier_id,
        currency="USD",
        allocations=[AllocationRequest(po_id, Decimal("1000.00"))],
        metadata=PaymentMetadata(exchange_rate=Decimal("7.2")),
        actor_id=actor_id,
    )
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from tradeledger_config.schema import SettlementConfig
from tradeledger_engines.balance import AllocationFact, BalanceCalculator, InvoiceFact
from tradeledger_kernel.db.types import ensure_utc, round_money, validate_currency
from tradeledger_kernel.domain.clock import Clock, SystemClock
from tradeledger_kernel.domain.currency import CurrencyRegistry
from tradeledger_kernel.exceptions import (
    AccountNotSelectedError,
    DuplicateAllocationError,
    InvalidAllocationAmountError,
    InvalidExchangeRateError,
    InvoiceAccountMismatchError,
    InvoiceKindMismatchError,
    InvoiceNotFoundError,
    InvoiceNotPayableError,
    NegativeAllocationError,
    NoAllocationError,
    OptimisticLockError,
    OverAllocationError,
    PaymentAlreadyVoidError,
    PaymentNotFoundError,
    PaymentWriteError,
    PaymentWriteTimeoutError,
)
from tradeledger_kernel.logging_config import LogContext, get_logger
from tradeledger_kernel.services.outbox_service import OutboxWriter
from tradeledger_modules.invoices.models import Invoice, InvoiceKind, SupplierInvoice
from tradeledger_modules.invoices.orm import SupplierInvoiceModel, invoice_model_for
from tradeledger_modules.invoices.selectors import InvoiceSelector
from tradeledger_modules.payments.advisory import check_currency_mismatch
from tradeledger_modules.payments.models import (
    Allocation,
    AllocationRequest,
    PaymentDirection,
    PaymentMetadata,
    PaymentMethod,
    PaymentRecorded,
    PaymentStatus,
    PaymentType,
    PaymentVoided,
)
from tradeledger_modules.payments.orm import AllocationModel, PaymentModel
from tradeledger_modules.payments.selectors import PaymentSelector

if TYPE_CHECKING:
    from tradeledger_services.outbox_dispatcher import OutboxDispatcher

logger = get_logger("modules.payments.service")

_ONE = Decimal("1")
_TIMEOUT_MARKERS = ("statement timeout", "lock timeout", "canceling statement", "database is locked")


def _write_error(exc: OperationalError) -> PaymentWriteError:
    """Map a driver-level failure onto the payment write error taxonomy."""
    reason = str(exc.orig) if exc.orig is not None else str(exc)
    if any(marker in reason.lower() for marker in _TIMEOUT_MARKERS):
        return PaymentWriteTimeoutError(reason)
    return PaymentWriteError(reason, retryable=True)


def _validate_rate(rate: Decimal | None) -> Decimal | None:
    if rate is None:
        return None
    try:
        value = rate if isinstance(rate, Decimal) else Decimal(str(rate))
    except (InvalidOperation, ValueError) as e:
        raise InvalidExchangeRateError(str(rate), "not a number") from e
    if not value.is_finite() or value <= 0:
        raise InvalidExchangeRateError(str(rate), "rate must be positive")
    return value


def _parse_amount(request: AllocationRequest) -> Decimal:
    try:
        amount = request.amount if isinstance(request.amount, Decimal) else Decimal(str(request.amount))
    except (InvalidOperation, ValueError) as e:
        raise InvalidAllocationAmountError(str(request.invoice_id), request.amount) from e
    if not amount.is_finite():
        raise InvalidAllocationAmountError(str(request.invoice_id), request.amount)
    return amount


def _select_allocations(
    allocations: Sequence[AllocationRequest],
    currency: str,
) -> list[AllocationRequest]:
    """
    Drop zero lines; reject negative, non-finite and duplicate ones.

    Amounts are rounded to the payment currency's precision line by line, so
    the payment total is exactly the sum of the stored allocations.
    """
    seen: set[UUID] = set()
    selected = []
    for request in allocations:
        amount = _parse_amount(request)
        if amount < 0:
            raise NegativeAllocationError(str(request.invoice_id), amount)
        if request.invoice_id in seen:
            raise DuplicateAllocationError(str(request.invoice_id))
        seen.add(request.invoice_id)
        try:
            amount = round_money(amount, currency)
        except InvalidOperation as e:
            # too many digits for the currency precision
            raise InvalidAllocationAmountError(str(request.invoice_id), request.amount) from e
        if amount > 0:
            selected.append(AllocationRequest(request.invoice_id, amount))
    if not selected:
        raise NoAllocationError(len(allocations))
    return selected


class PaymentService:
    """
    Records and voids payments and maintains supplier tracking fields.

    Contract
    --------
    * ``record_payment`` returns ``PaymentRecorded`` after commit; every
      failure before commit rolls back and propagates.
    * ``void_payment`` returns ``PaymentVoided`` after commit.
    * When a dispatcher is supplied and ``outbox.dispatch_inline`` is on,
      freshly enqueued events are delivered after commit.

    Non-goals
    ---------
    * Does NOT create or edit invoices (owned by the order workflow).
    * Does NOT retry on its own; wrap calls in ``retry_transaction``.
    """

    def __init__(
        self,
        session: Session,
        config: SettlementConfig | None = None,
        clock: Clock | None = None,
        dispatcher: OutboxDispatcher | None = None,
    ):
        self._session = session
        self._config = config or SettlementConfig.with_defaults()
        self._clock = clock or SystemClock()
        self._dispatcher = dispatcher
        self._invoices = InvoiceSelector(session)
        self._payments = PaymentSelector(session)
        self._outbox = OutboxWriter(session, self._clock)
        self._calculator = BalanceCalculator()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _converts(self, kind: InvoiceKind) -> bool:
        return kind is InvoiceKind.SUPPLIER or self._config.convert_customer_allocations

    def _excluded(self, kind: InvoiceKind) -> tuple[str, ...]:
        if kind is InvoiceKind.CUSTOMER:
            return self._config.statuses.customer_excluded
        return self._config.statuses.supplier_excluded

    def _lock_invoices(
        self,
        direction: PaymentDirection,
        account_id: UUID,
        invoice_ids: Sequence[UUID],
    ) -> dict[UUID, Invoice]:
        """
        Lock the target invoice rows in id order.

        Besides kind and ownership, the status must not be one the balance
        resolver excludes: only invoices it reports as owed can be paid.
        """
        kind = direction.invoice_kind
        model = invoice_model_for(kind)
        ordered = sorted(set(invoice_ids), key=str)
        rows = self._session.scalars(
            select(model).where(model.id.in_(ordered)).order_by(model.id).with_for_update()
        ).all()
        invoices = {row.id: row.to_dto() for row in rows}
        excluded = self._excluded(kind)

        for invoice_id in invoice_ids:
            invoice = invoices.get(invoice_id)
            if invoice is None:
                actual = self._invoices.kind_of(invoice_id)
                if actual is not None:
                    raise InvoiceKindMismatchError(direction.value, kind.value, actual.value)
                raise InvoiceNotFoundError(str(invoice_id), kind.value)
            if invoice.account_id != account_id:
                raise InvoiceAccountMismatchError(
                    str(invoice_id), str(account_id), str(invoice.account_id)
                )
            if invoice.status.lower() in excluded:
                raise InvoiceNotPayableError(str(invoice_id), invoice.status)
        return invoices

    def _check_balances(
        self,
        kind: InvoiceKind,
        invoices: dict[UUID, Invoice],
        selected: Sequence[AllocationRequest],
        currency: str,
        exchange_rate: Decimal | None,
    ) -> None:
        """Reject any allocation larger than the invoice's locked balance due."""
        facts = [InvoiceFact(i.id, i.total_value, i.currency) for i in invoices.values()]
        existing = self._payments.allocation_facts(list(invoices), kind)
        convert = self._converts(kind)
        lines = {
            line.invoice_id: line
            for line in self._calculator.compute(invoices=facts, allocations=existing, convert=convert)
        }
        for request in selected:
            invoice = invoices[request.invoice_id]
            requested = self._calculator.value_allocation(
                InvoiceFact(invoice.id, invoice.total_value, invoice.currency),
                AllocationFact(
                    invoice_id=invoice.id,
                    amount=request.amount,
                    currency=currency,
                    exchange_rate=exchange_rate,
                    payment_status=PaymentStatus.COMPLETED.value,
                ),
                convert,
            )
            balance_due = lines[invoice.id].balance_due
            tolerance = CurrencyRegistry.get_rounding_tolerance(invoice.currency)
            if requested > balance_due + tolerance:
                logger.warning(
                    "payment_over_allocation_rejected",
                    extra={
                        "invoice_id": str(invoice.id),
                        "requested": str(requested),
                        "balance_due": str(balance_due),
                        "currency": invoice.currency,
                    },
                )
                raise OverAllocationError(str(invoice.id), requested, balance_due, invoice.currency)

    def _rebuild_tracking(self, invoice_id: UUID, actor_id: UUID) -> SupplierInvoice:
        """
        Recompute one purchase order's tracking fields and write them with CAS.

        Raises:
            InvoiceNotFoundError: no purchase order with this id.
            OptimisticLockError: the version kept moving for every attempt.
        """
        attempts = self._config.database.tracking_refresh_attempts
        for attempt in range(1, attempts + 1):
            row = self._session.execute(
                select(
                    SupplierInvoiceModel.version,
                    SupplierInvoiceModel.total_value,
                    SupplierInvoiceModel.currency,
                    SupplierInvoiceModel.factory_deposit_paid_at,
                    SupplierInvoiceModel.factory_balance_paid_at,
                ).where(SupplierInvoiceModel.id == invoice_id)
            ).one_or_none()
            if row is None:
                raise InvoiceNotFoundError(str(invoice_id), InvoiceKind.SUPPLIER.value)
            version, total_value, currency, deposit_paid_at, balance_paid_at = row

            facts = self._payments.allocation_facts([invoice_id], InvoiceKind.SUPPLIER)
            by_type = self._calculator.paid_by_type(InvoiceFact(invoice_id, total_value, currency), facts)
            deposit = by_type.get(PaymentType.DEPOSIT.value, Decimal("0"))
            balance = by_type.get(PaymentType.BALANCE.value, Decimal("0"))
            now = self._clock.now()

            result = self._session.execute(
                update(SupplierInvoiceModel)
                .where(
                    SupplierInvoiceModel.id == invoice_id,
                    SupplierInvoiceModel.version == version,
                )
                .values(
                    factory_deposit_amount=deposit,
                    factory_balance_amount=balance,
                    factory_deposit_paid_at=_stamp(deposit, deposit_paid_at, now),
                    factory_balance_paid_at=_stamp(balance, balance_paid_at, now),
                    version=version + 1,
                    updated_by_id=actor_id,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                logger.info(
                    "tracking_fields_rebuilt",
                    extra={
                        "invoice_id": str(invoice_id),
                        "factory_deposit_amount": str(deposit),
                        "factory_balance_amount": str(balance),
                        "version": version + 1,
                    },
                )
                refreshed = self._session.get(SupplierInvoiceModel, invoice_id)
                self._session.refresh(refreshed)
                return refreshed.to_dto()

            logger.warning(
                "tracking_fields_version_conflict",
                extra={"invoice_id": str(invoice_id), "attempt": attempt, "seen_version": version},
            )
        raise OptimisticLockError("purchase_order", str(invoice_id), attempts)

    def _refresh_tracking_best_effort(self, invoice_ids: Sequence[UUID], actor_id: UUID) -> bool:
        """Rebuild tracking fields inside a SAVEPOINT; a failure leaves the payment intact."""
        try:
            with self._session.begin_nested():
                for invoice_id in invoice_ids:
                    self._rebuild_tracking(invoice_id, actor_id)
            return True
        except Exception:
            # Savepoint already rolled back; the payment rows are untouched.
            logger.warning(
                "tracking_refresh_failed",
                extra={"invoice_ids": [str(i) for i in invoice_ids]},
                exc_info=True,
            )
            return False

    def _dispatch_inline(self, event_ids: Sequence[UUID]) -> None:
        if self._dispatcher is None or not self._config.outbox.dispatch_inline or not event_ids:
            return
        try:
            self._dispatcher.dispatch_pending(event_ids=event_ids)
        except Exception:
            logger.warning(
                "inline_dispatch_failed",
                extra={"event_count": len(event_ids)},
                exc_info=True,
            )

    # ------------------------------------------------------------------
    # Record payment
    # ------------------------------------------------------------------

    def record_payment(
        self,
        direction: PaymentDirection | str,
        account_id: UUID | None,
        currency: str,
        allocations: Sequence[AllocationRequest],
        metadata: PaymentMetadata | None = None,
        *,
        actor_id: UUID,
    ) -> PaymentRecorded:
        """
        Record one payment split across one or more invoices.

        Preconditions:
            - ``account_id`` names the customer (incoming) or supplier
              (outgoing).
            - At least one allocation with a positive amount; none negative;
              no invoice twice.

        Postconditions:
            - One financial record with ``amount`` = sum of the positive
              allocations and status ``completed``.
            - One allocation row per positive line, in submission order.
            - One activity event per allocation, one notification per
              supplier allocation.

        Raises:
            ValidationError, InvoiceError, CurrencyError: before any write.
            OverAllocationError: after the locked re-validation.
            PaymentWriteError: database failure while writing.
        """
        direction = PaymentDirection(direction)
        metadata = metadata or PaymentMetadata()
        kind = direction.invoice_kind

        if account_id is None:
            raise AccountNotSelectedError(direction.value)
        currency = validate_currency(currency)
        exchange_rate = _validate_rate(metadata.exchange_rate)
        selected = _select_allocations(allocations, currency)

        total = sum((r.amount for r in selected), Decimal("0"))
        payment_date = ensure_utc(metadata.payment_date) or self._clock.now()
        stored_rate = exchange_rate if exchange_rate is not None and exchange_rate != _ONE else None

        with LogContext.bind(account_id=account_id, actor_id=actor_id):
            logger.info(
                "payment_record_started",
                extra={
                    "direction": direction.value,
                    "currency": currency,
                    "amount": str(total),
                    "allocation_count": len(selected),
                },
            )
            try:
                invoices = self._lock_invoices(direction, account_id, [r.invoice_id for r in selected])
                if self._config.enforce_balance_check:
                    self._check_balances(kind, invoices, selected, currency, exchange_rate)

                single = selected[0].invoice_id if len(selected) == 1 else None
                payment = PaymentModel(
                    direction=direction.value,
                    customer_id=account_id if kind is InvoiceKind.CUSTOMER else None,
                    supplier_id=account_id if kind is InvoiceKind.SUPPLIER else None,
                    order_id=single if kind is InvoiceKind.CUSTOMER else None,
                    purchase_order_id=single if kind is InvoiceKind.SUPPLIER else None,
                    amount=total,
                    currency=currency,
                    exchange_rate=stored_rate,
                    payment_method=PaymentMethod(metadata.payment_method).value,
                    reference_number=metadata.reference_number,
                    payment_date=payment_date,
                    status=PaymentStatus.COMPLETED.value,
                    payment_type=PaymentType(metadata.payment_type).value,
                    receipt_url=metadata.receipt_url,
                    notes=metadata.notes,
                    created_by_id=actor_id,
                )
                self._session.add(payment)
                self._session.flush()

                rows = []
                for line_number, request in enumerate(selected, start=1):
                    row = AllocationModel(
                        financial_record_id=payment.id,
                        line_number=line_number,
                        order_id=request.invoice_id if kind is InvoiceKind.CUSTOMER else None,
                        purchase_order_id=request.invoice_id if kind is InvoiceKind.SUPPLIER else None,
                        allocated_amount=request.amount,
                        currency=currency,
                        created_by_id=actor_id,
                    )
                    self._session.add(row)
                    rows.append(row)
                self._session.flush()
                allocation_dtos = tuple(row.to_dto() for row in rows)

                tracking_refreshed = None
                if kind is InvoiceKind.SUPPLIER:
                    tracking_refreshed = self._refresh_tracking_best_effort(
                        [r.invoice_id for r in selected], actor_id
                    )

                event_ids = self._enqueue_recorded_events(
                    payment, allocation_dtos, invoices, metadata, actor_id
                )
                warnings = check_currency_mismatch(
                    currency,
                    [invoices[r.invoice_id] for r in selected],
                    self._config.unusual_currency_pairs,
                )
                payment_dto = payment.to_dto()

                self._session.commit()
            except OperationalError as exc:
                self._session.rollback()
                logger.error("payment_record_rolled_back", extra={"reason": "operational_error"}, exc_info=True)
                raise _write_error(exc) from exc
            except IntegrityError as exc:
                self._session.rollback()
                logger.error("payment_record_rolled_back", extra={"reason": "integrity_error"}, exc_info=True)
                raise PaymentWriteError(str(exc.orig), retryable=False) from exc
            except Exception:
                self._session.rollback()
                logger.warning("payment_record_rolled_back", exc_info=True)
                raise

            with LogContext.bind(payment_id=payment_dto.id):
                logger.info(
                    "payment_record_committed",
                    extra={
                        "direction": direction.value,
                        "amount": str(total),
                        "currency": currency,
                        "allocation_count": len(allocation_dtos),
                        "event_count": len(event_ids),
                        "warning_count": len(warnings),
                    },
                )

        self._dispatch_inline(event_ids)
        return PaymentRecorded(
            payment=payment_dto,
            allocations=allocation_dtos,
            warnings=warnings,
            event_ids=tuple(event_ids),
            tracking_refreshed=tracking_refreshed,
        )

    def _enqueue_recorded_events(
        self,
        payment: PaymentModel,
        allocations: Sequence[Allocation],
        invoices: dict[UUID, Invoice],
        metadata: PaymentMetadata,
        actor_id: UUID,
    ) -> list[UUID]:
        event_ids = []
        for alloc in allocations:
            invoice = invoices[alloc.invoice_id]
            supplier = alloc.invoice_kind is InvoiceKind.SUPPLIER
            number_key = "po_number" if supplier else "order_number"
            activity = self._outbox.enqueue_activity(
                action="payment_allocated" if supplier else "payment_received",
                collection=alloc.invoice_kind.activity_collection,
                document_id=invoice.id,
                performed_by=actor_id,
                changes={
                    "allocated_amount": alloc.allocated_amount,
                    "currency": alloc.currency,
                    "payment_method": payment.payment_method,
                    "reference_number": payment.reference_number,
                },
                metadata={"financial_record_id": payment.id, number_key: invoice.number},
            )
            event_ids.append(activity.id)

            if supplier:
                notification = self._outbox.enqueue_notification(
                    counterpart_id=payment.supplier_id,
                    message_type="payment_sent",
                    payload={
                        "amount": alloc.allocated_amount,
                        "currency": alloc.currency,
                        "payment_type": payment.payment_type,
                        "invoice_number": invoice.number,
                        "receipt_url": metadata.receipt_url,
                    },
                    actor_id=actor_id,
                )
                event_ids.append(notification.id)
        return event_ids

    # ------------------------------------------------------------------
    # Void payment
    # ------------------------------------------------------------------

    def void_payment(self, payment_id: UUID, actor_id: UUID, reason: str | None = None) -> PaymentVoided:
        """
        Void a payment; its allocations stop counting everywhere.

        Allocation rows are kept for the audit trail and excluded by the
        void filter in every reader.

        Raises:
            PaymentNotFoundError: no payment with this id.
            PaymentAlreadyVoidError: payment already void.
        """
        with LogContext.bind(payment_id=payment_id, actor_id=actor_id):
            logger.info("payment_void_started", extra={"reason": reason})
            try:
                payment = self._session.scalars(
                    select(PaymentModel).where(PaymentModel.id == payment_id).with_for_update()
                ).one_or_none()
                if payment is None:
                    raise PaymentNotFoundError(str(payment_id))
                if payment.status == PaymentStatus.VOID.value:
                    raise PaymentAlreadyVoidError(str(payment_id))

                allocations = tuple(self._payments.allocations_for_payment(payment_id))
                stamp = f"Cancelled on {self._clock.now().strftime('%Y-%m-%d %H:%M')}"
                if reason:
                    stamp = f"{stamp}: {reason}"
                payment.status = PaymentStatus.VOID.value
                payment.notes = f"{payment.notes}\n{stamp}" if payment.notes else stamp
                payment.updated_by_id = actor_id
                self._session.flush()

                supplier_ids = [
                    a.invoice_id for a in allocations if a.invoice_kind is InvoiceKind.SUPPLIER
                ]
                tracking_refreshed = None
                if supplier_ids:
                    tracking_refreshed = self._refresh_tracking_best_effort(supplier_ids, actor_id)

                event_ids = self._enqueue_void_events(payment, allocations, actor_id)
                payment_dto = payment.to_dto()
                self._session.commit()
            except OperationalError as exc:
                self._session.rollback()
                logger.error("payment_void_rolled_back", exc_info=True)
                raise _write_error(exc) from exc
            except Exception:
                self._session.rollback()
                logger.warning("payment_void_rolled_back", exc_info=True)
                raise

            logger.info(
                "payment_void_committed",
                extra={
                    "amount": str(payment_dto.amount),
                    "currency": payment_dto.currency,
                    "allocation_count": len(allocations),
                },
            )

        self._dispatch_inline(event_ids)
        return PaymentVoided(
            payment=payment_dto,
            reversed_allocations=allocations,
            event_ids=tuple(event_ids),
            tracking_refreshed=tracking_refreshed,
        )

    def _enqueue_void_events(
        self,
        payment: PaymentModel,
        allocations: Sequence[Allocation],
        actor_id: UUID,
    ) -> list[UUID]:
        numbers = {
            kind: self._invoices.numbers_by_id(
                [a.invoice_id for a in allocations if a.invoice_kind is kind], kind
            )
            for kind in InvoiceKind
        }
        event_ids = []
        for alloc in allocations:
            metadata = {"financial_record_id": payment.id}
            if alloc.invoice_kind is InvoiceKind.SUPPLIER:
                collection = "purchase_order"
                metadata["po_number"] = numbers[InvoiceKind.SUPPLIER].get(alloc.invoice_id)
            else:
                collection = "order"
            event = self._outbox.enqueue_activity(
                action="payment_cancelled",
                collection=collection,
                document_id=alloc.invoice_id,
                performed_by=actor_id,
                changes={"cancelled_amount": alloc.allocated_amount, "currency": alloc.currency},
                metadata=metadata,
            )
            event_ids.append(event.id)
        return event_ids

    # ------------------------------------------------------------------
    # Re-aggregation
    # ------------------------------------------------------------------

    def rebuild_tracking_fields(self, invoice_id: UUID, actor_id: UUID) -> SupplierInvoice:
        """
        Repair a purchase order's cached deposit / balance paid fields.

        Unlike the best-effort refresh inside ``record_payment``, failures
        here propagate to the caller.
        """
        with LogContext.bind(actor_id=actor_id):
            try:
                invoice = self._rebuild_tracking(invoice_id, actor_id)
                self._session.commit()
            except Exception:
                self._session.rollback()
                logger.warning(
                    "tracking_rebuild_rolled_back",
                    extra={"invoice_id": str(invoice_id)},
                    exc_info=True,
                )
                raise
        return invoice


def _stamp(amount: Decimal, current: datetime | None, now: datetime) -> datetime | None:
    """Paid-at stamp: set when a field first turns positive, cleared at zero."""
    if amount <= 0:
        return None
    return current if current is not None else now
