"""
Balance Resolver (``tradeledger_modules.balances.resolver``).

Responsibility
--------------
Answers "what is still owed on this account's invoices" by loading invoices
and non-void allocations through the selectors and aggregating them with
the ``BalanceCalculator`` engine.

Architecture position
---------------------
**Modules layer** -- read-only.  Never writes, never commits; safe to call
any number of times with the same answer.

Invariants enforced
-------------------
* Invoices whose status is excluded for their kind are skipped (customer:
  cancelled and draft; supplier: cancelled; configurable).
* Void payments contribute nothing.
* ``unpaid_invoices`` never returns a row with ``balance_due <= 0``.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from tradeledger_config.schema import SettlementConfig
from tradeledger_engines.balance import BalanceCalculator, InvoiceFact
from tradeledger_kernel.exceptions import InvoiceNotFoundError
from tradeledger_kernel.logging_config import get_logger
from tradeledger_modules.balances.models import InvoiceBalance
from tradeledger_modules.invoices.models import Invoice, InvoiceKind
from tradeledger_modules.invoices.selectors import InvoiceSelector
from tradeledger_modules.payments.models import Allocation, AllocationHistoryItem
from tradeledger_modules.payments.selectors import PaymentSelector

logger = get_logger("modules.balances.resolver")


class BalanceResolver:
    """
    Read-side balance queries for customer orders and purchase orders.

    Contract
    --------
    * Amounts are returned in the invoice currency.  Supplier allocations in
      another currency are converted with the payment's exchange rate;
      customer allocations only when ``convert_customer_allocations`` is on.
    """

    def __init__(self, session: Session, config: SettlementConfig | None = None):
        self._config = config or SettlementConfig.with_defaults()
        self._invoices = InvoiceSelector(session)
        self._payments = PaymentSelector(session)
        self._calculator = BalanceCalculator()

    def _excluded(self, kind: InvoiceKind) -> tuple[str, ...]:
        if kind is InvoiceKind.CUSTOMER:
            return self._config.statuses.customer_excluded
        return self._config.statuses.supplier_excluded

    def _converts(self, kind: InvoiceKind) -> bool:
        return kind is InvoiceKind.SUPPLIER or self._config.convert_customer_allocations

    def _balances(self, invoices: list[Invoice], kind: InvoiceKind) -> list[InvoiceBalance]:
        allocations = self._payments.allocation_facts([i.id for i in invoices], kind)
        lines = self._calculator.compute(
            invoices=[InvoiceFact(i.id, i.total_value, i.currency) for i in invoices],
            allocations=allocations,
            convert=self._converts(kind),
        )
        return [
            InvoiceBalance(invoice=invoice, total_paid=line.total_paid, balance_due=line.balance_due)
            for invoice, line in zip(invoices, lines)
        ]

    def unpaid_invoices(self, account_id: UUID, kind: InvoiceKind | str) -> list[InvoiceBalance]:
        """Invoices of the account with a positive balance due, oldest first."""
        kind = InvoiceKind(kind)
        invoices = self._invoices.list_for_account(account_id, kind, self._excluded(kind))
        unpaid = [row for row in self._balances(invoices, kind) if row.is_outstanding]
        logger.debug(
            "unpaid_invoices_resolved",
            extra={
                "account_id": str(account_id),
                "kind": kind.value,
                "invoice_count": len(invoices),
                "unpaid_count": len(unpaid),
            },
        )
        return unpaid

    def invoice_balance(self, invoice_id: UUID, kind: InvoiceKind | str) -> InvoiceBalance:
        """
        Balance of a single invoice, fully paid ones included.

        Raises:
            InvoiceNotFoundError: no invoice of ``kind`` with this id.
        """
        kind = InvoiceKind(kind)
        invoice = self._invoices.get(invoice_id, kind)
        if invoice is None:
            raise InvoiceNotFoundError(str(invoice_id), kind.value)
        return self._balances([invoice], kind)[0]

    def invoice_payment_history(
        self, invoice_id: UUID, kind: InvoiceKind | str
    ) -> list[AllocationHistoryItem]:
        """Every allocation against one invoice (void ones flagged), oldest first."""
        return self._payments.history_for_invoice(invoice_id, InvoiceKind(kind))

    def payment_allocations(self, payment_id: UUID) -> list[Allocation]:
        return self._payments.allocations_for_payment(payment_id)
