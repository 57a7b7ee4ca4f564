"""
Payment domain models (``tradeledger_modules.payments.models``).

Responsibility
--------------
Frozen value objects for payments (financial records), their allocations
against invoices, the request shapes the payment writer accepts, and the
results it returns.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``; money is ``Decimal``.
* ``PaymentDirection`` fixes which invoice kind a payment may allocate to.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from tradeledger_modules.invoices.models import InvoiceKind


class PaymentDirection(str, Enum):
    """Money in from a customer or out to a supplier."""

    INCOMING = "incoming"
    OUTGOING = "outgoing"

    @property
    def invoice_kind(self) -> InvoiceKind:
        if self is PaymentDirection.INCOMING:
            return InvoiceKind.CUSTOMER
        return InvoiceKind.SUPPLIER

    @property
    def ledger_description(self) -> str:
        if self is PaymentDirection.INCOMING:
            return "Payment Received"
        return "Payment Sent"

    @classmethod
    def for_kind(cls, kind: InvoiceKind) -> "PaymentDirection":
        if InvoiceKind(kind) is InvoiceKind.CUSTOMER:
            return cls.INCOMING
        return cls.OUTGOING


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    VOID = "void"


class PaymentType(str, Enum):
    """Which supplier tracking field a payment feeds."""

    DEPOSIT = "deposit"
    BALANCE = "balance"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    WIRE = "wire"
    CHECK = "check"
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"
    ALIPAY = "alipay"
    WECHAT_PAY = "wechat_pay"


@dataclass(frozen=True)
class AllocationRequest:
    """One line of a payment request: pay ``amount`` towards ``invoice_id``."""

    invoice_id: UUID
    amount: Decimal


@dataclass(frozen=True)
class PaymentMetadata:
    """Descriptive fields of a payment request."""

    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    reference_number: str | None = None
    payment_date: datetime | None = None
    exchange_rate: Decimal | None = None
    payment_type: PaymentType = PaymentType.DEPOSIT
    receipt_url: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class Payment:
    """A recorded financial record."""

    id: UUID
    direction: PaymentDirection
    account_id: UUID
    amount: Decimal
    currency: str
    exchange_rate: Decimal | None
    payment_method: str
    reference_number: str | None
    payment_date: datetime
    status: PaymentStatus
    payment_type: PaymentType
    receipt_url: str | None = None
    notes: str | None = None
    single_invoice_id: UUID | None = None

    @property
    def is_void(self) -> bool:
        return self.status is PaymentStatus.VOID


@dataclass(frozen=True)
class Allocation:
    """The part of one payment assigned to one invoice, in the payment's currency."""

    id: UUID
    payment_id: UUID
    line_number: int
    invoice_id: UUID
    invoice_kind: InvoiceKind
    allocated_amount: Decimal
    currency: str


@dataclass(frozen=True)
class AllocationHistoryItem:
    """An allocation as shown in an invoice's payment history."""

    allocation: Allocation
    payment_date: datetime
    payment_method: str
    reference_number: str | None
    payment_status: PaymentStatus
    receipt_url: str | None
    recorded_at: datetime


@dataclass(frozen=True)
class CurrencyMismatchWarning:
    """Advisory: the payment currency differs from an allocated invoice's."""

    invoice_id: UUID
    invoice_number: str
    payment_currency: str
    invoice_currency: str
    unusual: bool
    message: str


@dataclass(frozen=True)
class PaymentRecorded:
    """Outcome of a successful record_payment call."""

    payment: Payment
    allocations: tuple[Allocation, ...]
    warnings: tuple[CurrencyMismatchWarning, ...] = ()
    event_ids: tuple[UUID, ...] = ()
    tracking_refreshed: bool | None = None  # None: not a supplier payment

    @property
    def total_allocated(self) -> Decimal:
        return sum((a.allocated_amount for a in self.allocations), Decimal("0"))


@dataclass(frozen=True)
class PaymentVoided:
    """Outcome of a successful void_payment call."""

    payment: Payment
    reversed_allocations: tuple[Allocation, ...] = field(default_factory=tuple)
    event_ids: tuple[UUID, ...] = ()
    tracking_refreshed: bool | None = None
