"""
PaymentSelector -- read-only queries over payments and allocations.

Every query that feeds a balance or a ledger filters out void payments
unless the caller explicitly asks for them (payment history shows voided
lines with their status).
"""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select

from tradeledger_engines.balance import AllocationFact
from tradeledger_kernel.db.types import ensure_utc
from tradeledger_kernel.selectors.base import BaseSelector
from tradeledger_modules.invoices.models import InvoiceKind
from tradeledger_modules.invoices.orm import invoice_model_for
from tradeledger_modules.invoices.selectors import number_column
from tradeledger_modules.payments.models import (
    Allocation,
    AllocationHistoryItem,
    Payment,
    PaymentStatus,
)
from tradeledger_modules.payments.orm import (
    AllocationModel,
    PaymentModel,
    allocation_invoice_column,
    payment_account_column,
)

_VOID = PaymentStatus.VOID.value


class PaymentSelector(BaseSelector):
    """Payment and allocation lookups returning frozen DTOs."""

    def get(self, payment_id: UUID) -> Payment | None:
        model = self.session.get(PaymentModel, payment_id)
        return model.to_dto() if model is not None else None

    def allocations_for_payment(self, payment_id: UUID) -> list[Allocation]:
        stmt = (
            select(AllocationModel)
            .where(AllocationModel.financial_record_id == payment_id)
            .order_by(AllocationModel.line_number)
        )
        return [row.to_dto() for row in self.session.scalars(stmt)]

    def allocation_facts(
        self,
        invoice_ids: Sequence[UUID],
        kind: InvoiceKind,
        include_void: bool = False,
    ) -> list[AllocationFact]:
        """Allocations against ``invoice_ids`` with the payment fields needed to value them."""
        if not invoice_ids:
            return []
        invoice_col = allocation_invoice_column(kind)
        stmt = (
            select(
                invoice_col,
                AllocationModel.allocated_amount,
                AllocationModel.currency,
                PaymentModel.exchange_rate,
                PaymentModel.status,
                PaymentModel.payment_type,
                PaymentModel.payment_date,
            )
            .join(PaymentModel, AllocationModel.financial_record_id == PaymentModel.id)
            .where(invoice_col.in_(list(invoice_ids)))
            .order_by(PaymentModel.payment_date, AllocationModel.created_at, AllocationModel.line_number)
        )
        if not include_void:
            stmt = stmt.where(PaymentModel.status != _VOID)

        facts = []
        for invoice_id, amount, currency, rate, status, payment_type, paid_on in self.session.execute(stmt):
            paid_on = ensure_utc(paid_on)
            facts.append(
                AllocationFact(
                    invoice_id=invoice_id,
                    amount=amount,
                    currency=currency,
                    exchange_rate=rate,
                    payment_status=status,
                    payment_type=payment_type,
                    payment_date=paid_on.date() if paid_on is not None else None,
                )
            )
        return facts

    def history_for_invoice(self, invoice_id: UUID, kind: InvoiceKind) -> list[AllocationHistoryItem]:
        """Every allocation against one invoice, void ones included, oldest first."""
        stmt = (
            select(AllocationModel, PaymentModel)
            .join(PaymentModel, AllocationModel.financial_record_id == PaymentModel.id)
            .where(allocation_invoice_column(kind) == invoice_id)
            .order_by(AllocationModel.created_at, PaymentModel.payment_date, AllocationModel.line_number)
        )
        return [
            AllocationHistoryItem(
                allocation=alloc.to_dto(),
                payment_date=ensure_utc(payment.payment_date),
                payment_method=payment.payment_method,
                reference_number=payment.reference_number,
                payment_status=PaymentStatus(payment.status),
                receipt_url=payment.receipt_url,
                recorded_at=ensure_utc(alloc.created_at),
            )
            for alloc, payment in self.session.execute(stmt)
        ]

    def payments_for_account(
        self,
        account_id: UUID,
        kind: InvoiceKind,
        include_void: bool = False,
    ) -> list[Payment]:
        """Account's payments ordered by payment date."""
        stmt = select(PaymentModel).where(payment_account_column(kind) == account_id)
        if not include_void:
            stmt = stmt.where(PaymentModel.status != _VOID)
        stmt = stmt.order_by(PaymentModel.payment_date, PaymentModel.created_at)
        return [row.to_dto() for row in self.session.scalars(stmt)]

    def invoice_numbers_by_payment(
        self,
        payment_ids: Sequence[UUID],
        kind: InvoiceKind,
    ) -> dict[UUID, tuple[str, ...]]:
        """Numbers of the invoices each payment was allocated to, in line order."""
        if not payment_ids:
            return {}
        invoice_model = invoice_model_for(kind)
        stmt = (
            select(AllocationModel.financial_record_id, number_column(kind))
            .join(invoice_model, allocation_invoice_column(kind) == invoice_model.id)
            .where(AllocationModel.financial_record_id.in_(list(payment_ids)))
            .order_by(AllocationModel.financial_record_id, AllocationModel.line_number)
        )
        numbers: dict[UUID, list[str]] = {}
        for payment_id, number in self.session.execute(stmt):
            numbers.setdefault(payment_id, []).append(number)
        return {pid: tuple(values) for pid, values in numbers.items()}
