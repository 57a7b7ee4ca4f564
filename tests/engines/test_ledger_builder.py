"""
Tests for LedgerBuilder.

Verifies:
- Stable date ordering with invoices ahead of same-date payments
- Running balance and serial numbering over the full stream
- Filters select rendered rows; totals ignore filters
- Payment references list the invoices paid
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID

import pytest

from tradeledger_engines.ledger import (
    EntryType,
    LedgerBuilder,
    LedgerInvoice,
    LedgerPayment,
    StatusFilter,
)


def at(day: int, hour: int = 9) -> datetime:
    return datetime(2024, 1, day, hour, 0, tzinfo=UTC)


def invoice(n: int, day: int, amount: str, status: str = "confirmed", currency: str = "USD"):
    return LedgerInvoice(
        invoice_id=UUID(int=n),
        number=f"SO-{1000 + n}",
        date=at(day),
        amount=Decimal(amount),
        currency=currency,
        status=status,
    )


def payment(n: int, day: int, amount: str, numbers=(), reference=None, hour: int = 9):
    return LedgerPayment(
        payment_id=UUID(int=100 + n),
        date=at(day, hour),
        amount=Decimal(amount),
        currency="USD",
        payment_method="wire",
        reference_number=reference,
        invoice_numbers=tuple(numbers),
    )


@pytest.fixture
def builder():
    return LedgerBuilder(
        closed_statuses=("delivered",),
        payment_description="Payment Received",
        settled_statuses=("delivered", "completed"),
    )


class TestStream:
    def test_invoice_then_partial_payment(self, builder):
        ledger = builder.build(
            invoices=[invoice(1, 1, "1000")],
            payments=[payment(1, 5, "300", numbers=["SO-1001"])],
        )
        first, second = ledger.entries
        assert first.entry_type is EntryType.INVOICE
        assert first.debit == Decimal("1000")
        assert first.running_balance == Decimal("1000")
        assert first.description == "Invoice Created"
        assert first.remark == "Open"
        assert second.entry_type is EntryType.PAYMENT
        assert second.credit == Decimal("300")
        assert second.running_balance == Decimal("700")
        assert second.reference == "SO-1001"
        assert second.remark == "wire"
        assert ledger.totals.balance == Decimal("700")

    def test_chronological_merge(self, builder):
        ledger = builder.build(
            invoices=[invoice(1, 1, "100"), invoice(2, 10, "200")],
            payments=[payment(1, 5, "50")],
        )
        assert [e.serial for e in ledger.entries] == [1, 2, 3]
        assert [e.entry_type for e in ledger.entries] == [
            EntryType.INVOICE,
            EntryType.PAYMENT,
            EntryType.INVOICE,
        ]
        assert [e.running_balance for e in ledger.entries] == [
            Decimal("100"),
            Decimal("50"),
            Decimal("250"),
        ]

    def test_same_timestamp_invoice_first(self, builder):
        ledger = builder.build(
            invoices=[invoice(1, 3, "100")],
            payments=[payment(1, 3, "100")],
        )
        assert ledger.entries[0].entry_type is EntryType.INVOICE
        assert ledger.final_running_balance == Decimal("0")

    def test_payment_reference_fallbacks(self, builder):
        ledger = builder.build(
            invoices=[],
            payments=[
                payment(1, 1, "10", numbers=["SO-1", "SO-2"]),
                payment(2, 2, "10", reference="TT-778"),
                payment(3, 3, "10"),
            ],
        )
        assert [e.reference for e in ledger.entries] == ["SO-1/SO-2", "TT-778", "General"]

    def test_supplier_description(self):
        builder = LedgerBuilder(payment_description="Payment Sent")
        ledger = builder.build(invoices=[], payments=[payment(1, 1, "10")])
        assert ledger.entries[0].description == "Payment Sent"

    def test_closed_status_case_insensitive(self, builder):
        ledger = builder.build(invoices=[invoice(1, 1, "10", status="Delivered")], payments=[])
        assert ledger.entries[0].remark == "Closed"
        assert ledger.totals.open_invoice_count == 0

    def test_completed_counts_as_settled_but_reads_open(self, builder):
        ledger = builder.build(
            invoices=[invoice(1, 1, "10", status="completed"), invoice(2, 2, "20", status="shipped")],
            payments=[],
        )
        assert [e.remark for e in ledger.entries] == ["Open", "Open"]
        assert ledger.totals.open_invoice_count == 1
        open_view = builder.build(
            invoices=[invoice(1, 1, "10", status="completed")], payments=[], status_filter="open"
        )
        assert [e.serial for e in open_view.entries] == [1]

    def test_empty_ledger(self, builder):
        ledger = builder.build(invoices=[], payments=[])
        assert ledger.entries == ()
        assert ledger.totals.balance == Decimal("0")
        assert ledger.final_running_balance == Decimal("0")


class TestFilters:
    @pytest.fixture
    def sources(self):
        return dict(
            invoices=[
                invoice(1, 1, "100", status="delivered"),
                invoice(2, 10, "200"),
                invoice(3, 20, "300"),
            ],
            payments=[payment(1, 15, "150", hour=23)],
        )

    def test_date_range_keeps_serials_and_totals(self, builder, sources):
        ledger = builder.build(**sources, date_from=date(2024, 1, 10), date_to=date(2024, 1, 15))
        assert [e.serial for e in ledger.entries] == [2, 3]
        # date_to includes the whole day
        assert ledger.entries[-1].entry_type is EntryType.PAYMENT
        assert ledger.totals.total_debit == Decimal("600")
        assert ledger.totals.total_credit == Decimal("150")
        assert ledger.totals.balance == Decimal("450")
        assert len(ledger.all_entries) == 4

    def test_open_filter_hides_closed_invoices_keeps_payments(self, builder, sources):
        ledger = builder.build(**sources, status_filter=StatusFilter.OPEN)
        assert [e.serial for e in ledger.entries] == [2, 3, 4]
        assert ledger.totals.open_invoice_count == 2

    def test_closed_filter_only_closed_invoices(self, builder, sources):
        ledger = builder.build(**sources, status_filter="closed")
        assert [e.serial for e in ledger.entries] == [1]
        assert ledger.totals.balance == Decimal("450")

    def test_inverted_range_rejected(self, builder, sources):
        with pytest.raises(ValueError, match="after"):
            builder.build(**sources, date_from=date(2024, 2, 1), date_to=date(2024, 1, 1))

    def test_unknown_filter_rejected(self, builder, sources):
        with pytest.raises(ValueError):
            builder.build(**sources, status_filter="pending")


class TestMixedCurrencies:
    def test_currencies_reported(self, builder, captured_logs):
        ledger = builder.build(
            invoices=[invoice(1, 1, "100", currency="CNY")],
            payments=[payment(1, 2, "10")],
        )
        assert ledger.currencies == frozenset({"USD", "CNY"})
        assert any(r["message"] == "ledger_mixed_currencies" for r in captured_logs())
