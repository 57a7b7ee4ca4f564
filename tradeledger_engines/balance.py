"""
Balance calculator -- outstanding balance per invoice from its allocations.

Responsibility:
    Given invoices and the allocations made against them, compute total paid
    and balance due per invoice in the invoice's currency.  Also splits the
    paid total by payment type so the supplier tracking fields (deposit and
    balance paid) can be rebuilt from the allocation ledger.

Architecture position:
    Engines -- pure calculation, zero I/O.  Callers (selectors, the payment
    service) load facts from the database and pass them in.

Invariants enforced:
    - balance_due = total_value - sum(converted allocations), over
      allocations whose payment is not void.
    - ``outstanding()`` never returns a line with balance_due <= 0.
    - Customer-side allocations are converted only when the caller asks for
      it; otherwise they pass through and a mismatch warning is logged.

Failure modes:
    - Allocations that reference an invoice not in the input are ignored and
      logged (they belong to another account's view).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from tradeledger_engines.conversion import convert_allocation
from tradeledger_engines.tracer import traced_engine
from tradeledger_kernel.logging_config import get_logger

logger = get_logger("engines.balance")

VOID_STATUS = "void"


@dataclass(frozen=True)
class InvoiceFact:
    """Invoice total and currency, as the calculator sees it."""

    invoice_id: UUID
    total_value: Decimal
    currency: str


@dataclass(frozen=True)
class AllocationFact:
    """
    One allocation with the payment attributes needed to value it.

    ``amount`` is in ``currency`` (the payment's currency).
    """

    invoice_id: UUID
    amount: Decimal
    currency: str
    exchange_rate: Decimal | None
    payment_status: str
    payment_type: str = "deposit"
    payment_date: date | None = None


@dataclass(frozen=True)
class BalanceLine:
    """Computed position of one invoice."""

    invoice_id: UUID
    currency: str
    total_value: Decimal
    total_paid: Decimal
    balance_due: Decimal

    @property
    def is_outstanding(self) -> bool:
        return self.balance_due > 0


class BalanceCalculator:
    """
    Aggregates allocations into per-invoice balances.

    Contract:
        ``convert`` selects whether mismatched currencies go through
        ``convert_allocation`` (supplier side always, customer side by
        configuration) or pass through unchanged.
    """

    def value_allocation(
        self,
        invoice: InvoiceFact,
        allocation: AllocationFact,
        convert: bool = True,
    ) -> Decimal:
        """Amount of one allocation in the invoice currency."""
        if allocation.currency == invoice.currency:
            return allocation.amount
        if not convert:
            logger.warning(
                "customer_allocation_currency_mismatch",
                extra={
                    "invoice_id": str(invoice.invoice_id),
                    "invoice_currency": invoice.currency,
                    "allocation_currency": allocation.currency,
                    "amount": str(allocation.amount),
                },
            )
            return allocation.amount
        return convert_allocation(
            allocation.amount,
            allocation.currency,
            invoice.currency,
            allocation.exchange_rate,
            allocation.payment_date,
        )

    @traced_engine("balance", "1.0", fingerprint_fields=("invoices", "allocations"))
    def compute(
        self,
        *,
        invoices: Sequence[InvoiceFact],
        allocations: Sequence[AllocationFact],
        convert: bool = True,
    ) -> list[BalanceLine]:
        """
        Balance of every invoice, in input order.

        Postconditions:
            - One BalanceLine per invoice, fully paid ones included.
            - Void allocations contribute nothing.
        """
        by_id = {inv.invoice_id: inv for inv in invoices}
        paid: dict[UUID, Decimal] = {inv.invoice_id: Decimal("0") for inv in invoices}

        for alloc in allocations:
            if alloc.payment_status == VOID_STATUS:
                continue
            invoice = by_id.get(alloc.invoice_id)
            if invoice is None:
                logger.debug(
                    "allocation_without_invoice_skipped",
                    extra={"invoice_id": str(alloc.invoice_id)},
                )
                continue
            paid[invoice.invoice_id] += self.value_allocation(invoice, alloc, convert)

        return [
            BalanceLine(
                invoice_id=inv.invoice_id,
                currency=inv.currency,
                total_value=inv.total_value,
                total_paid=paid[inv.invoice_id],
                balance_due=inv.total_value - paid[inv.invoice_id],
            )
            for inv in invoices
        ]

    def outstanding(
        self,
        *,
        invoices: Sequence[InvoiceFact],
        allocations: Sequence[AllocationFact],
        convert: bool = True,
    ) -> list[BalanceLine]:
        """Only the invoices that still have a positive balance due."""
        lines = self.compute(invoices=invoices, allocations=allocations, convert=convert)
        return [line for line in lines if line.is_outstanding]

    def paid_by_type(
        self,
        invoice: InvoiceFact,
        allocations: Sequence[AllocationFact],
    ) -> dict[str, Decimal]:
        """
        Converted paid totals of one invoice keyed by payment type.

        Used to rebuild supplier tracking fields; always converts.
        """
        totals: dict[str, Decimal] = {}
        for alloc in allocations:
            if alloc.payment_status == VOID_STATUS or alloc.invoice_id != invoice.invoice_id:
                continue
            amount = self.value_allocation(invoice, alloc, convert=True)
            totals[alloc.payment_type] = totals.get(alloc.payment_type, Decimal("0")) + amount
        return totals
