"""
Typed exception hierarchy for the payment ledger.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers branch on the error class and read structured attributes; they never
parse message strings. Every exception carries:
  1. A TYPED class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (exported as exc_* fields by the log formatter)

Example:
    try:
        service.record_payment(...)
    except OverAllocationError as e:
        api_response(code=e.code, invoice=e.invoice_id, balance=e.balance_due)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TradeLedgerError (base)
    |
    +-- ValidationError
    |   +-- AccountNotSelectedError
    |   +-- NoAllocationError
    |   +-- NegativeAllocationError
    |   +-- InvalidAllocationAmountError
    |   +-- DuplicateAllocationError
    |
    +-- InvoiceError
    |   +-- InvoiceNotFoundError
    |   +-- InvoiceKindMismatchError
    |   +-- InvoiceAccountMismatchError
    |   +-- InvoiceNotPayableError
    |
    +-- AllocationError
    |   +-- OverAllocationError
    |
    +-- CurrencyError
    |   +-- InvalidCurrencyError
    |   +-- InvalidExchangeRateError
    |
    +-- PaymentError
    |   +-- PaymentNotFoundError
    |   +-- PaymentAlreadyVoidError
    |   +-- PaymentWriteError
    |       +-- PaymentWriteTimeoutError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- DeliveryError
        +-- NotificationTimeoutError
        +-- UnknownOutboxEventError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                         | When Raised
--------------|------------------------------|---------------------------------------
Validation    | ACCOUNT_NOT_SELECTED         | No customer/supplier on the payment
              | NO_ALLOCATION                | Nothing allocated with amount > 0
              | NEGATIVE_ALLOCATION          | Allocation amount below zero
              | INVALID_ALLOCATION_AMOUNT    | Allocation amount not a finite number
              | DUPLICATE_ALLOCATION         | Same invoice twice in one payment
--------------|------------------------------|---------------------------------------
Invoice       | INVOICE_NOT_FOUND            | Invoice id unknown for its kind
              | INVOICE_KIND_MISMATCH        | Invoice kind does not match direction
              | INVOICE_ACCOUNT_MISMATCH     | Invoice belongs to another account
              | INVOICE_NOT_PAYABLE          | Invoice status excluded from payment
--------------|------------------------------|---------------------------------------
Allocation    | OVER_ALLOCATION              | Allocation exceeds balance due
--------------|------------------------------|---------------------------------------
Currency      | INVALID_CURRENCY             | Not a valid ISO 4217 code
              | INVALID_EXCHANGE_RATE        | Rate is zero/negative/invalid
--------------|------------------------------|---------------------------------------
Payment       | PAYMENT_NOT_FOUND            | Payment id unknown
              | PAYMENT_ALREADY_VOID         | Voiding a void payment
              | PAYMENT_WRITE_FAILED         | Payment + allocation insert failed
              | PAYMENT_WRITE_TIMEOUT        | Write exceeded the statement timeout
--------------|------------------------------|---------------------------------------
Concurrency   | OPTIMISTIC_LOCK_CONFLICT     | Version compare-and-swap lost
--------------|------------------------------|---------------------------------------
Delivery      | NOTIFICATION_TIMEOUT         | Notifier exceeded its time budget
              | UNKNOWN_OUTBOX_EVENT         | No handler for an outbox event type

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation, invoice, allocation and currency errors are raised before any
   write and surface to the caller unchanged.

2. PaymentWriteError carries ``retryable``; ``retry_transaction`` re-runs the
   unit of work only for retryable failures.

3. ConcurrencyError and DeliveryError are raised inside best-effort blocks
   (tracking refresh, outbox delivery) and are logged there, never escalated.
"""

from decimal import Decimal


class TradeLedgerError(Exception):
    """
    Base exception for all payment ledger errors.

    All subclasses must define a ``code`` class attribute.
    """

    code: str = "TRADELEDGER_ERROR"


# Validation


class ValidationError(TradeLedgerError):
    """Base exception for request validation errors."""

    code: str = "VALIDATION_ERROR"


class AccountNotSelectedError(ValidationError):
    """Payment request names no customer or supplier."""

    code: str = "ACCOUNT_NOT_SELECTED"

    def __init__(self, direction: str):
        self.direction = direction
        super().__init__(f"No account selected for {direction} payment")


class NoAllocationError(ValidationError):
    """No allocation with a positive amount was submitted."""

    code: str = "NO_ALLOCATION"

    def __init__(self, submitted: int):
        self.submitted = submitted
        super().__init__(
            f"Total allocated must be greater than zero ({submitted} lines submitted)"
        )


class NegativeAllocationError(ValidationError):
    """An allocation amount is below zero."""

    code: str = "NEGATIVE_ALLOCATION"

    def __init__(self, invoice_id: str, amount: Decimal):
        self.invoice_id = invoice_id
        self.amount = str(amount)
        super().__init__(f"Negative allocation {amount} against invoice {invoice_id}")


class InvalidAllocationAmountError(ValidationError):
    """An allocation amount is not a finite number."""

    code: str = "INVALID_ALLOCATION_AMOUNT"

    def __init__(self, invoice_id: str, amount: object):
        self.invoice_id = invoice_id
        self.amount = str(amount)
        super().__init__(
            f"Allocation amount {amount!s} against invoice {invoice_id} is not a finite number"
        )


class DuplicateAllocationError(ValidationError):
    """The same invoice appears more than once in a payment."""

    code: str = "DUPLICATE_ALLOCATION"

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice {invoice_id} allocated more than once")


# Invoice


class InvoiceError(TradeLedgerError):
    """Base exception for invoice lookups."""

    code: str = "INVOICE_ERROR"


class InvoiceNotFoundError(InvoiceError):
    """Invoice with given ID was not found."""

    code: str = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_id: str, kind: str):
        self.invoice_id = invoice_id
        self.kind = kind
        super().__init__(f"{kind} invoice not found: {invoice_id}")


class InvoiceKindMismatchError(InvoiceError):
    """Invoice kind does not match the payment direction."""

    code: str = "INVOICE_KIND_MISMATCH"

    def __init__(self, direction: str, expected_kind: str, actual_kind: str):
        self.direction = direction
        self.expected_kind = expected_kind
        self.actual_kind = actual_kind
        super().__init__(
            f"{direction} payments allocate to {expected_kind} invoices, "
            f"got {actual_kind}"
        )


class InvoiceAccountMismatchError(InvoiceError):
    """Invoice belongs to a different account than the payment."""

    code: str = "INVOICE_ACCOUNT_MISMATCH"

    def __init__(self, invoice_id: str, account_id: str, owner_id: str):
        self.invoice_id = invoice_id
        self.account_id = account_id
        self.owner_id = owner_id
        super().__init__(
            f"Invoice {invoice_id} belongs to {owner_id}, not {account_id}"
        )


class InvoiceNotPayableError(InvoiceError):
    """Invoice status does not accept payments (cancelled, draft)."""

    code: str = "INVOICE_NOT_PAYABLE"

    def __init__(self, invoice_id: str, status: str):
        self.invoice_id = invoice_id
        self.status = status
        super().__init__(f"Invoice {invoice_id} is {status} and cannot take payments")


# Allocation


class AllocationError(TradeLedgerError):
    """Base exception for allocation errors."""

    code: str = "ALLOCATION_ERROR"


class OverAllocationError(AllocationError):
    """Allocation exceeds the invoice's current balance due."""

    code: str = "OVER_ALLOCATION"

    def __init__(
        self,
        invoice_id: str,
        requested: Decimal,
        balance_due: Decimal,
        currency: str,
    ):
        self.invoice_id = invoice_id
        self.requested = str(requested)
        self.balance_due = str(balance_due)
        self.currency = currency
        super().__init__(
            f"Allocation of {requested} {currency} exceeds balance due "
            f"{balance_due} {currency} on invoice {invoice_id}"
        )


# Currency


class CurrencyError(TradeLedgerError):
    """Base exception for currency-related errors."""

    code: str = "CURRENCY_ERROR"


class InvalidCurrencyError(CurrencyError):
    """Invalid ISO 4217 currency code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid currency code: {currency}")


class InvalidExchangeRateError(CurrencyError):
    """Exchange rate value is zero, negative or not a number."""

    code: str = "INVALID_EXCHANGE_RATE"

    def __init__(self, rate: str, reason: str):
        self.rate = rate
        self.reason = reason
        super().__init__(f"Invalid exchange rate {rate}: {reason}")


# Payment


class PaymentError(TradeLedgerError):
    """Base exception for payment record errors."""

    code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """Payment with given ID was not found."""

    code: str = "PAYMENT_NOT_FOUND"

    def __init__(self, payment_id: str):
        self.payment_id = payment_id
        super().__init__(f"Payment not found: {payment_id}")


class PaymentAlreadyVoidError(PaymentError):
    """Payment has already been voided."""

    code: str = "PAYMENT_ALREADY_VOID"

    def __init__(self, payment_id: str):
        self.payment_id = payment_id
        super().__init__(f"Payment {payment_id} is already void")


class PaymentWriteError(PaymentError):
    """Payment and allocation rows could not be written."""

    code: str = "PAYMENT_WRITE_FAILED"

    def __init__(self, reason: str, retryable: bool = False):
        self.reason = reason
        self.retryable = retryable
        super().__init__(f"Payment write failed: {reason}")


class PaymentWriteTimeoutError(PaymentWriteError):
    """Payment write exceeded the database time budget."""

    code: str = "PAYMENT_WRITE_TIMEOUT"

    def __init__(self, reason: str):
        super().__init__(reason, retryable=True)


# Concurrency


class ConcurrencyError(TradeLedgerError):
    """Base exception for concurrency errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str, attempts: int):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.attempts = attempts
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id} "
            f"after {attempts} attempts"
        )


# Delivery


class DeliveryError(TradeLedgerError):
    """Base exception for outbox delivery errors."""

    code: str = "DELIVERY_ERROR"


class NotificationTimeoutError(DeliveryError):
    """Notifier did not answer within its time budget."""

    code: str = "NOTIFICATION_TIMEOUT"

    def __init__(self, counterpart_id: str, timeout_seconds: float):
        self.counterpart_id = counterpart_id
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Notification to {counterpart_id} timed out after {timeout_seconds}s"
        )


class UnknownOutboxEventError(DeliveryError):
    """Outbox event has a type with no registered handler."""

    code: str = "UNKNOWN_OUTBOX_EVENT"

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"No handler for outbox event type: {event_type}")
