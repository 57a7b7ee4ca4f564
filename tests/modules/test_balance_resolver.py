"""
Tests for BalanceResolver.

Verifies:
- Unpaid invoices: positive balance only, excluded statuses skipped
- Repeated resolution without writes returns the same rows
- Supplier allocations converted, customer ones passed through by default
- Payment history and per-payment allocations
"""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

import pytest

from tradeledger_config.schema import SettlementConfig
from tradeledger_kernel.exceptions import InvoiceNotFoundError
from tradeledger_modules.balances import BalanceResolver
from tradeledger_modules.invoices.models import InvoiceKind
from tradeledger_modules.payments.models import (
    AllocationRequest,
    PaymentDirection,
    PaymentMetadata,
    PaymentStatus,
)


def _pay(service, direction, account_id, currency, lines, actor_id, **metadata):
    return service.record_payment(
        direction,
        account_id,
        currency,
        [AllocationRequest(invoice_id, Decimal(amount)) for invoice_id, amount in lines],
        PaymentMetadata(**metadata),
        actor_id=actor_id,
    )


class TestUnpaidInvoices:
    def test_lists_outstanding_oldest_first(
        self, payment_service, balance_resolver, customer, make_invoice, test_actor_id
    ):
        paid = make_invoice(InvoiceKind.CUSTOMER, customer.id, "SO-1001", "100")
        partial = make_invoice(InvoiceKind.CUSTOMER, customer.id, "SO-1002", "500")
        untouched = make_invoice(InvoiceKind.CUSTOMER, customer.id, "SO-1003", "250")
        _pay(
            payment_service, PaymentDirection.INCOMING, customer.id, "USD",
            [(paid.id, "100"), (partial.id, "200")], test_actor_id,
        )

        unpaid = balance_resolver.unpaid_invoices(customer.id, InvoiceKind.CUSTOMER)

        assert [row.invoice.number for row in unpaid] == ["SO-1002", "SO-1003"]
        assert unpaid[0].total_paid == Decimal("200")
        assert unpaid[0].balance_due == Decimal("300")
        assert unpaid[1].balance_due == Decimal("250")
        assert all(row.is_outstanding for row in unpaid)
        assert untouched.id in {row.invoice.id for row in unpaid}

    def test_customer_excludes_cancelled_and_draft(
        self, balance_resolver, customer, make_invoice
    ):
        make_invoice(InvoiceKind.CUSTOMER, customer.id, "SO-1001", "100", status="cancelled")
        make_invoice(InvoiceKind.CUSTOMER, customer.id, "SO-1002", "100", status="draft")
        kept = make_invoice(InvoiceKind.CUSTOMER, customer.id, "SO-1003", "100", status="shipped")

        unpaid = balance_resolver.unpaid_invoices(customer.id, "customer")

        assert [row.invoice.id for row in unpaid] == [kept.id]

    def test_supplier_excludes_only_cancelled(self, balance_resolver, supplier, make_invoice):
        make_invoice(InvoiceKind.SUPPLIER, supplier.id, "PO-1", "100", status="cancelled")
        draft = make_invoice(InvoiceKind.SUPPLIER, supplier.id, "PO-2", "100", status="draft")

        unpaid = balance_resolver.unpaid_invoices(supplier.id, InvoiceKind.SUPPLIER)

        assert [row.invoice.id for row in unpaid] == [draft.id]

    def test_other_accounts_not_listed(
        self, balance_resolver, customer, other_customer, make_invoice
    ):
        make_invoice(InvoiceKind.CUSTOMER, other_customer.id, "SO-2001", "100")
        assert balance_resolver.unpaid_invoices(customer.id, InvoiceKind.CUSTOMER) == []

    def test_void_payment_reopens_invoice(
        self, payment_service, balance_resolver, customer, make_invoice, test_actor_id
    ):
        order = make_invoice(InvoiceKind.CUSTOMER, customer.id, "SO-1001", "100")
        recorded = _pay(
            payment_service, PaymentDirection.INCOMING, customer.id, "USD",
            [(order.id, "100")], test_actor_id,
        )
        assert balance_resolver.unpaid_invoices(customer.id, InvoiceKind.CUSTOMER) == []

        payment_service.void_payment(recorded.payment.id, test_actor_id)

        (row,) = balance_resolver.unpaid_invoices(customer.id, InvoiceKind.CUSTOMER)
        assert row.balance_due == Decimal("100")

    def test_resolution_is_idempotent(
        self, session, payment_service, balance_resolver, supplier, make_invoice, test_actor_id
    ):
        converted = make_invoice(InvoiceKind.SUPPLIER, supplier.id, "PO-1", "10000", "CNY")
        plain = make_invoice(InvoiceKind.SUPPLIER, supplier.id, "PO-2", "2500", "USD")
        _pay(
            payment_service, PaymentDirection.OUTGOING, supplier.id, "USD",
            [(converted.id, "1000"), (plain.id, "500")], test_actor_id,
            exchange_rate=Decimal("7.2"),
        )

        first = balance_resolver.unpaid_invoices(supplier.id, InvoiceKind.SUPPLIER)
        second = balance_resolver.unpaid_invoices(supplier.id, InvoiceKind.SUPPLIER)

        assert first == second
        assert [(row.invoice.number, row.balance_due) for row in second] == [
            ("PO-1", Decimal("9861.11")),
            ("PO-2", Decimal("2000")),
        ]
        assert not session.new
        assert not session.dirty


class TestCurrencyHandling:
    def test_supplier_allocation_converted(
        self, payment_service, balance_resolver, supplier, make_invoice, test_actor_id
    ):
        po = make_invoice(InvoiceKind.SUPPLIER, supplier.id, "PO-1", "10000", "CNY")
        _pay(
            payment_service, PaymentDirection.OUTGOING, supplier.id, "USD",
            [(po.id, "1000")], test_actor_id, exchange_rate=Decimal("7.2"),
        )

        (row,) = balance_resolver.unpaid_invoices(supplier.id, InvoiceKind.SUPPLIER)
        assert row.currency == "CNY"
        assert row.total_paid == Decimal("138.89")
        assert row.balance_due == Decimal("9861.11")

    def test_customer_allocation_passes_through_by_default(
        self, payment_service, balance_resolver, customer, make_invoice, test_actor_id
    ):
        order = make_invoice(InvoiceKind.CUSTOMER, customer.id, "SO-1001", "10000", "CNY")
        _pay(
            payment_service, PaymentDirection.INCOMING, customer.id, "USD",
            [(order.id, "1000")], test_actor_id, exchange_rate=Decimal("7.2"),
        )

        balance = balance_resolver.invoice_balance(order.id, InvoiceKind.CUSTOMER)
        assert balance.total_paid == Decimal("1000")
        assert balance.balance_due == Decimal("9000")

    def test_customer_conversion_when_enabled(
        self, session, payment_service, customer, make_invoice, test_actor_id
    ):
        order = make_invoice(InvoiceKind.CUSTOMER, customer.id, "SO-1001", "10000", "CNY")
        _pay(
            payment_service, PaymentDirection.INCOMING, customer.id, "USD",
            [(order.id, "1000")], test_actor_id, exchange_rate=Decimal("7.2"),
        )

        resolver = BalanceResolver(session, SettlementConfig(convert_customer_allocations=True))
        balance = resolver.invoice_balance(order.id, InvoiceKind.CUSTOMER)
        assert balance.total_paid == Decimal("138.89")


class TestInvoiceBalance:
    def test_fully_paid_invoice_still_answers(
        self, payment_service, balance_resolver, customer, make_invoice, test_actor_id
    ):
        order = make_invoice(InvoiceKind.CUSTOMER, customer.id, "SO-1001", "100")
        _pay(
            payment_service, PaymentDirection.INCOMING, customer.id, "USD",
            [(order.id, "100")], test_actor_id,
        )
        balance = balance_resolver.invoice_balance(order.id, InvoiceKind.CUSTOMER)
        assert balance.balance_due == Decimal("0")
        assert not balance.is_outstanding

    def test_unknown_invoice(self, balance_resolver):
        with pytest.raises(InvoiceNotFoundError):
            balance_resolver.invoice_balance(UUID(int=0xABC), InvoiceKind.CUSTOMER)

    def test_wrong_kind_not_found(self, balance_resolver, supplier, make_invoice):
        po = make_invoice(InvoiceKind.SUPPLIER, supplier.id, "PO-1", "100")
        with pytest.raises(InvoiceNotFoundError):
            balance_resolver.invoice_balance(po.id, InvoiceKind.CUSTOMER)


class TestHistory:
    def test_history_oldest_first(
        self, payment_service, balance_resolver, customer, make_invoice, test_actor_id
    ):
        order = make_invoice(InvoiceKind.CUSTOMER, customer.id, "SO-1001", "1000")
        _pay(
            payment_service, PaymentDirection.INCOMING, customer.id, "USD",
            [(order.id, "100")], test_actor_id,
            payment_date=datetime(2024, 1, 10, tzinfo=UTC), reference_number="TT-1",
        )
        _pay(
            payment_service, PaymentDirection.INCOMING, customer.id, "USD",
            [(order.id, "200")], test_actor_id,
            payment_date=datetime(2024, 1, 20, tzinfo=UTC), reference_number="TT-2",
            payment_method="check",
        )

        history = balance_resolver.invoice_payment_history(order.id, InvoiceKind.CUSTOMER)

        assert [item.reference_number for item in history] == ["TT-1", "TT-2"]
        assert history[1].payment_method == "check"
        assert history[0].payment_status is PaymentStatus.COMPLETED
        assert history[0].payment_date == datetime(2024, 1, 10, tzinfo=UTC)

    def test_payment_allocations_in_line_order(
        self, payment_service, balance_resolver, customer, make_invoice, test_actor_id
    ):
        first = make_invoice(InvoiceKind.CUSTOMER, customer.id, "SO-1001", "1000")
        second = make_invoice(InvoiceKind.CUSTOMER, customer.id, "SO-1002", "1000")
        recorded = _pay(
            payment_service, PaymentDirection.INCOMING, customer.id, "USD",
            [(second.id, "20"), (first.id, "10")], test_actor_id,
        )

        allocations = balance_resolver.payment_allocations(recorded.payment.id)

        assert [a.invoice_id for a in allocations] == [second.id, first.id]
        assert [a.line_number for a in allocations] == [1, 2]
        assert all(a.invoice_kind is InvoiceKind.CUSTOMER for a in allocations)
