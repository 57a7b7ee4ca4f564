"""
InvoiceSelector -- read-only access to customer orders and purchase orders.

Both invoice tables are read through one interface keyed by InvoiceKind, so
the balance resolver, ledger projector and payment writer never branch on
table or column names themselves.
"""

from collections.abc import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select

from tradeledger_kernel.selectors.base import BaseSelector
from tradeledger_modules.invoices.models import Invoice, InvoiceKind
from tradeledger_modules.invoices.orm import (
    CustomerInvoiceModel,
    SupplierInvoiceModel,
    invoice_model_for,
)


def account_column(kind: InvoiceKind):
    if InvoiceKind(kind) is InvoiceKind.CUSTOMER:
        return CustomerInvoiceModel.customer_id
    return SupplierInvoiceModel.supplier_id


def number_column(kind: InvoiceKind):
    if InvoiceKind(kind) is InvoiceKind.CUSTOMER:
        return CustomerInvoiceModel.order_number
    return SupplierInvoiceModel.po_number


class InvoiceSelector(BaseSelector):
    """Invoice lookups returning frozen DTOs."""

    def get(self, invoice_id: UUID, kind: InvoiceKind) -> Invoice | None:
        model = self.session.get(invoice_model_for(kind), invoice_id)
        return model.to_dto() if model is not None else None

    def kind_of(self, invoice_id: UUID) -> InvoiceKind | None:
        """Which table holds ``invoice_id``, if any."""
        for kind in InvoiceKind:
            model = invoice_model_for(kind)
            found = self.session.execute(
                select(model.id).where(model.id == invoice_id)
            ).scalar_one_or_none()
            if found is not None:
                return kind
        return None

    def list_for_account(
        self,
        account_id: UUID,
        kind: InvoiceKind,
        excluded_statuses: Iterable[str] = (),
    ) -> list[Invoice]:
        """Account's invoices in creation order, minus excluded statuses."""
        model = invoice_model_for(kind)
        stmt = select(model).where(account_column(kind) == account_id)
        excluded = [s.lower() for s in excluded_statuses]
        if excluded:
            stmt = stmt.where(model.status.not_in(excluded))
        stmt = stmt.order_by(model.created_at, number_column(kind))
        return [row.to_dto() for row in self.session.scalars(stmt)]

    def list_for_kind(
        self,
        kind: InvoiceKind,
        excluded_statuses: Iterable[str] = (),
    ) -> list[Invoice]:
        """Every invoice of ``kind`` across accounts, in creation order."""
        model = invoice_model_for(kind)
        stmt = select(model)
        excluded = [s.lower() for s in excluded_statuses]
        if excluded:
            stmt = stmt.where(model.status.not_in(excluded))
        stmt = stmt.order_by(model.created_at, number_column(kind))
        return [row.to_dto() for row in self.session.scalars(stmt)]

    def numbers_by_id(self, invoice_ids: Sequence[UUID], kind: InvoiceKind) -> dict[UUID, str]:
        if not invoice_ids:
            return {}
        model = invoice_model_for(kind)
        rows = self.session.execute(
            select(model.id, number_column(kind)).where(model.id.in_(list(invoice_ids)))
        )
        return {row[0]: row[1] for row in rows}
