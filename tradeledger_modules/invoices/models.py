"""
Invoice domain models (``tradeledger_modules.invoices.models``).

Responsibility
--------------
Frozen views of the two invoice variants the ledger settles: customer
orders (receivables) and supplier purchase orders (payables).

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* Money fields are ``Decimal``.
* ``created_at`` is timezone-aware (UTC).
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar
from uuid import UUID


class InvoiceKind(str, Enum):
    """Which table an invoice lives in."""

    CUSTOMER = "customer"
    SUPPLIER = "supplier"

    @property
    def activity_collection(self) -> str:
        return "orders" if self is InvoiceKind.CUSTOMER else "purchase_order"

    @property
    def ledger_title(self) -> str:
        return "Customer Ledger" if self is InvoiceKind.CUSTOMER else "Supplier Ledger"


class InvoiceStatus(str, Enum):
    """Statuses the ledger gives meaning to; other strings pass through."""

    DRAFT = "draft"
    CONFIRMED = "confirmed"
    IN_PRODUCTION = "in_production"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Invoice:
    """Common shape of customer and supplier invoices."""

    kind: ClassVar[InvoiceKind]

    id: UUID
    account_id: UUID
    number: str
    total_value: Decimal
    currency: str
    status: str
    created_at: datetime


@dataclass(frozen=True)
class CustomerInvoice(Invoice):
    """A customer order viewed as a receivable."""

    kind: ClassVar[InvoiceKind] = InvoiceKind.CUSTOMER


@dataclass(frozen=True)
class SupplierInvoice(Invoice):
    """
    A factory purchase order viewed as a payable.

    The factory_* fields are a cache rebuilt from the allocation ledger.
    """

    kind: ClassVar[InvoiceKind] = InvoiceKind.SUPPLIER

    factory_deposit_amount: Decimal = Decimal("0")
    factory_balance_amount: Decimal = Decimal("0")
    factory_deposit_paid_at: datetime | None = None
    factory_balance_paid_at: datetime | None = None
    version: int = 1
