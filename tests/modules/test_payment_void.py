"""
Tests for PaymentService.void_payment.

A voided payment keeps its allocation rows for the audit trail; every
reader (balances, tracking fields, ledger) stops counting them.
"""

from decimal import Decimal
from uuid import UUID

import pytest
from sqlalchemy import func, select

from tradeledger_kernel.exceptions import PaymentAlreadyVoidError, PaymentNotFoundError
from tradeledger_kernel.models.outbox import OutboxEvent
from tradeledger_modules.invoices.models import InvoiceKind
from tradeledger_modules.payments.models import (
    AllocationRequest,
    PaymentDirection,
    PaymentMetadata,
    PaymentStatus,
)
from tradeledger_modules.payments.orm import AllocationModel, PaymentModel


@pytest.fixture
def supplier_payment(payment_service, supplier, make_invoice, test_actor_id):
    po = make_invoice(InvoiceKind.SUPPLIER, supplier.id, "PO-1", "10000", "CNY")
    recorded = payment_service.record_payment(
        PaymentDirection.OUTGOING,
        supplier.id,
        "USD",
        [AllocationRequest(po.id, Decimal("1000"))],
        PaymentMetadata(exchange_rate=Decimal("7.2"), notes="Deposit via HSBC"),
        actor_id=test_actor_id,
    )
    return po, recorded


class TestVoidPayment:
    def test_void_restores_balance_and_tracking(
        self, payment_service, balance_resolver, supplier_payment, test_actor_id
    ):
        po, recorded = supplier_payment

        voided = payment_service.void_payment(recorded.payment.id, test_actor_id, reason="Wrong PO")

        assert voided.payment.status is PaymentStatus.VOID
        assert voided.payment.is_void
        assert voided.tracking_refreshed is True
        assert len(voided.reversed_allocations) == 1

        balance = balance_resolver.invoice_balance(po.id, InvoiceKind.SUPPLIER)
        assert balance.total_paid == Decimal("0")
        assert balance.balance_due == Decimal("10000")
        assert balance.invoice.factory_deposit_amount == Decimal("0")
        assert balance.invoice.factory_deposit_paid_at is None

    def test_allocation_rows_kept(self, session, payment_service, supplier_payment, test_actor_id):
        _, recorded = supplier_payment
        payment_service.void_payment(recorded.payment.id, test_actor_id)

        count = session.scalar(
            select(func.count())
            .select_from(AllocationModel)
            .where(AllocationModel.financial_record_id == recorded.payment.id)
        )
        assert count == 1

    def test_notes_stamped(self, session, payment_service, supplier_payment, test_actor_id):
        _, recorded = supplier_payment
        payment_service.void_payment(recorded.payment.id, test_actor_id, reason="Duplicate entry")

        row = session.get(PaymentModel, recorded.payment.id)
        assert row.notes == "Deposit via HSBC\nCancelled on 2024-03-01 12:00: Duplicate entry"

    def test_notes_stamped_without_prior_notes(
        self, session, payment_service, customer, make_invoice, test_actor_id
    ):
        order = make_invoice(InvoiceKind.CUSTOMER, customer.id, "SO-1001", "1000")
        recorded = payment_service.record_payment(
            PaymentDirection.INCOMING, customer.id, "USD",
            [AllocationRequest(order.id, Decimal("100"))],
            actor_id=test_actor_id,
        )
        voided = payment_service.void_payment(recorded.payment.id, test_actor_id)

        assert voided.payment.notes == "Cancelled on 2024-03-01 12:00"
        assert voided.tracking_refreshed is None

    def test_cancel_events_queued(self, session, payment_service, supplier_payment, test_actor_id):
        po, recorded = supplier_payment
        voided = payment_service.void_payment(recorded.payment.id, test_actor_id)

        (event_id,) = voided.event_ids
        event = session.get(OutboxEvent, event_id)
        assert event.payload["action"] == "payment_cancelled"
        assert event.payload["collection"] == "purchase_order"
        assert event.payload["document_id"] == str(po.id)
        assert Decimal(event.payload["changes"]["cancelled_amount"]) == Decimal("1000")
        assert event.payload["changes"]["currency"] == "USD"
        assert event.payload["metadata"]["po_number"] == "PO-1"

    def test_history_shows_void_line(
        self, payment_service, balance_resolver, supplier_payment, test_actor_id
    ):
        po, recorded = supplier_payment
        payment_service.void_payment(recorded.payment.id, test_actor_id)

        (item,) = balance_resolver.invoice_payment_history(po.id, InvoiceKind.SUPPLIER)
        assert item.payment_status is PaymentStatus.VOID
        assert item.allocation.allocated_amount == Decimal("1000")

    def test_already_void(self, payment_service, supplier_payment, test_actor_id):
        _, recorded = supplier_payment
        payment_service.void_payment(recorded.payment.id, test_actor_id)

        with pytest.raises(PaymentAlreadyVoidError):
            payment_service.void_payment(recorded.payment.id, test_actor_id)

    def test_unknown_payment(self, payment_service, test_actor_id):
        with pytest.raises(PaymentNotFoundError):
            payment_service.void_payment(UUID(int=0xF00D), test_actor_id)

    def test_void_logged(self, payment_service, supplier_payment, test_actor_id, captured_logs):
        _, recorded = supplier_payment
        payment_service.void_payment(recorded.payment.id, test_actor_id)

        committed = next(r for r in captured_logs() if r["message"] == "payment_void_committed")
        assert committed["payment_id"] == str(recorded.payment.id)
        assert committed["allocation_count"] == 1
