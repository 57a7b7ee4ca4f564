"""
Invoice ORM models (``tradeledger_modules.invoices.orm``).

Responsibility
--------------
SQLAlchemy persistence for customer orders (``orders``) and supplier
purchase orders (``purchase_orders``).  The invoice store is owned by the
wider application; this core reads it and rewrites only the supplier
tracking fields.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports ``tradeledger_kernel.db`` and
sibling ``models.py``.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tradeledger_kernel.db.base import TrackedBase
from tradeledger_kernel.db.types import ensure_utc

# ---------------------------------------------------------------------------
# 1. CustomerInvoiceModel
# ---------------------------------------------------------------------------


class CustomerInvoiceModel(TrackedBase):
    """ORM model for customer orders."""

    __tablename__ = "orders"

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_order_number"),
        Index("idx_order_customer", "customer_id"),
        CheckConstraint("total_value >= 0", name="ck_order_total_non_negative"),
    )

    customer_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    order_number: Mapped[str] = mapped_column(String(50), nullable=False)
    total_value: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="confirmed")

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from tradeledger_modules.invoices.models import CustomerInvoice

        return CustomerInvoice(
            id=self.id,
            account_id=self.customer_id,
            number=self.order_number,
            total_value=self.total_value,
            currency=self.currency,
            status=self.status,
            created_at=ensure_utc(self.created_at),
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "CustomerInvoiceModel":
        """Create ORM model from frozen dataclass."""
        return cls(
            id=dto.id,
            customer_id=dto.account_id,
            order_number=dto.number,
            total_value=dto.total_value,
            currency=dto.currency,
            status=dto.status,
            created_at=dto.created_at,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<CustomerInvoiceModel {self.order_number}: {self.total_value} {self.currency}>"


# ---------------------------------------------------------------------------
# 2. SupplierInvoiceModel
# ---------------------------------------------------------------------------


class SupplierInvoiceModel(TrackedBase):
    """
    ORM model for factory purchase orders.

    ``version`` guards the tracking fields: every rewrite is an
    ``UPDATE ... WHERE version = :seen`` that bumps it.
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("po_number", name="uq_po_number"),
        Index("idx_po_supplier", "supplier_id"),
        CheckConstraint("total_value >= 0", name="ck_po_total_non_negative"),
        CheckConstraint("factory_deposit_amount >= 0", name="ck_po_deposit_non_negative"),
        CheckConstraint("factory_balance_amount >= 0", name="ck_po_balance_non_negative"),
    )

    supplier_id: Mapped[UUID] = mapped_column(ForeignKey("parties.id"), nullable=False)
    po_number: Mapped[str] = mapped_column(String(50), nullable=False)
    total_value: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="confirmed")

    factory_deposit_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    factory_balance_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    factory_deposit_paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    factory_balance_paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    version: Mapped[int] = mapped_column(nullable=False, default=1)

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from tradeledger_modules.invoices.models import SupplierInvoice

        return SupplierInvoice(
            id=self.id,
            account_id=self.supplier_id,
            number=self.po_number,
            total_value=self.total_value,
            currency=self.currency,
            status=self.status,
            created_at=ensure_utc(self.created_at),
            factory_deposit_amount=self.factory_deposit_amount,
            factory_balance_amount=self.factory_balance_amount,
            factory_deposit_paid_at=ensure_utc(self.factory_deposit_paid_at),
            factory_balance_paid_at=ensure_utc(self.factory_balance_paid_at),
            version=self.version,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "SupplierInvoiceModel":
        """Create ORM model from frozen dataclass."""
        return cls(
            id=dto.id,
            supplier_id=dto.account_id,
            po_number=dto.number,
            total_value=dto.total_value,
            currency=dto.currency,
            status=dto.status,
            created_at=dto.created_at,
            factory_deposit_amount=dto.factory_deposit_amount,
            factory_balance_amount=dto.factory_balance_amount,
            factory_deposit_paid_at=dto.factory_deposit_paid_at,
            factory_balance_paid_at=dto.factory_balance_paid_at,
            version=dto.version,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<SupplierInvoiceModel {self.po_number}: {self.total_value} {self.currency}>"


def invoice_model_for(kind) -> type[CustomerInvoiceModel] | type[SupplierInvoiceModel]:
    """ORM class holding invoices of ``kind`` (an InvoiceKind)."""
    from tradeledger_modules.invoices.models import InvoiceKind

    match InvoiceKind(kind):
        case InvoiceKind.CUSTOMER:
            return CustomerInvoiceModel
        case InvoiceKind.SUPPLIER:
            return SupplierInvoiceModel
