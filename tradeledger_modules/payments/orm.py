"""
Payment ORM models (``tradeledger_modules.payments.orm``).

Responsibility
--------------
SQLAlchemy persistence for payments (``financial_records``) and their
allocations (``payment_allocations``).

Architecture position
---------------------
**Modules layer** -- persistence.  Imports ``tradeledger_kernel.db`` and
sibling ``models.py``.

Invariants enforced
-------------------
* A payment names exactly the counterpart its direction calls for
  (customer for incoming, supplier for outgoing).
* An allocation references exactly one of ``order_id`` / ``purchase_order_id``.
* Allocation amounts are strictly positive; line numbers are unique per
  payment and record submission order.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tradeledger_kernel.db.base import TrackedBase
from tradeledger_kernel.db.types import ensure_utc

# ---------------------------------------------------------------------------
# 1. PaymentModel
# ---------------------------------------------------------------------------


class PaymentModel(TrackedBase):
    """ORM model for payments (financial records)."""

    __tablename__ = "financial_records"

    __table_args__ = (
        CheckConstraint("direction IN ('incoming', 'outgoing')", name="ck_payment_direction"),
        CheckConstraint(
            "status IN ('pending', 'completed', 'void')", name="ck_payment_status"
        ),
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
        CheckConstraint(
            "(direction = 'incoming' AND customer_id IS NOT NULL AND supplier_id IS NULL)"
            " OR (direction = 'outgoing' AND supplier_id IS NOT NULL AND customer_id IS NULL)",
            name="ck_payment_counterpart",
        ),
        Index("idx_payment_customer", "customer_id", "status"),
        Index("idx_payment_supplier", "supplier_id", "status"),
    )

    direction: Mapped[str] = mapped_column(String(10), nullable=False)
    customer_id: Mapped[UUID | None] = mapped_column(ForeignKey("parties.id"), nullable=True)
    supplier_id: Mapped[UUID | None] = mapped_column(ForeignKey("parties.id"), nullable=True)

    # Single-invoice convenience link, set only for one-allocation payments
    order_id: Mapped[UUID | None] = mapped_column(ForeignKey("orders.id"), nullable=True)
    purchase_order_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=True
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    exchange_rate: Mapped[Decimal | None] = mapped_column(Numeric(38, 18), nullable=True)
    payment_method: Mapped[str] = mapped_column(String(30), nullable=False)
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    payment_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="completed")
    payment_type: Mapped[str] = mapped_column(String(20), nullable=False, default="deposit")
    receipt_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    allocations: Mapped[list["AllocationModel"]] = relationship(
        back_populates="payment",
        order_by="AllocationModel.line_number",
    )

    @property
    def account_id(self) -> UUID:
        return self.customer_id if self.direction == "incoming" else self.supplier_id

    @property
    def single_invoice_id(self) -> UUID | None:
        return self.order_id if self.direction == "incoming" else self.purchase_order_id

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from tradeledger_modules.payments.models import (
            Payment,
            PaymentDirection,
            PaymentStatus,
            PaymentType,
        )

        return Payment(
            id=self.id,
            direction=PaymentDirection(self.direction),
            account_id=self.account_id,
            amount=self.amount,
            currency=self.currency,
            exchange_rate=self.exchange_rate,
            payment_method=self.payment_method,
            reference_number=self.reference_number,
            payment_date=ensure_utc(self.payment_date),
            status=PaymentStatus(self.status),
            payment_type=PaymentType(self.payment_type),
            receipt_url=self.receipt_url,
            notes=self.notes,
            single_invoice_id=self.single_invoice_id,
        )

    def __repr__(self) -> str:
        return f"<PaymentModel {self.direction} {self.amount} {self.currency} [{self.status}]>"


# ---------------------------------------------------------------------------
# 2. AllocationModel
# ---------------------------------------------------------------------------


class AllocationModel(TrackedBase):
    """ORM model for payment allocations."""

    __tablename__ = "payment_allocations"

    __table_args__ = (
        CheckConstraint(
            "(order_id IS NOT NULL AND purchase_order_id IS NULL)"
            " OR (order_id IS NULL AND purchase_order_id IS NOT NULL)",
            name="ck_allocation_single_invoice",
        ),
        CheckConstraint("allocated_amount > 0", name="ck_allocation_amount_positive"),
        UniqueConstraint("financial_record_id", "line_number", name="uq_allocation_line"),
        Index("idx_allocation_order", "order_id"),
        Index("idx_allocation_po", "purchase_order_id"),
    )

    financial_record_id: Mapped[UUID] = mapped_column(
        ForeignKey("financial_records.id"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(nullable=False)
    order_id: Mapped[UUID | None] = mapped_column(ForeignKey("orders.id"), nullable=True)
    purchase_order_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=True
    )
    allocated_amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    payment: Mapped[PaymentModel] = relationship(back_populates="allocations")

    @property
    def invoice_id(self) -> UUID:
        return self.order_id if self.order_id is not None else self.purchase_order_id

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from tradeledger_modules.invoices.models import InvoiceKind
        from tradeledger_modules.payments.models import Allocation

        return Allocation(
            id=self.id,
            payment_id=self.financial_record_id,
            line_number=self.line_number,
            invoice_id=self.invoice_id,
            invoice_kind=InvoiceKind.CUSTOMER if self.order_id is not None else InvoiceKind.SUPPLIER,
            allocated_amount=self.allocated_amount,
            currency=self.currency,
        )

    def __repr__(self) -> str:
        return f"<AllocationModel #{self.line_number} {self.allocated_amount} {self.currency}>"


def allocation_invoice_column(kind):
    """Allocation FK column pointing at invoices of ``kind``."""
    from tradeledger_modules.invoices.models import InvoiceKind

    if InvoiceKind(kind) is InvoiceKind.CUSTOMER:
        return AllocationModel.order_id
    return AllocationModel.purchase_order_id


def payment_account_column(kind):
    """Payment FK column naming the account for invoices of ``kind``."""
    from tradeledger_modules.invoices.models import InvoiceKind

    if InvoiceKind(kind) is InvoiceKind.CUSTOMER:
        return PaymentModel.customer_id
    return PaymentModel.supplier_id
