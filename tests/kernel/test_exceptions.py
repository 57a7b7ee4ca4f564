"""
Tests for the typed exception hierarchy.

Every error carries a machine-readable code and structured attributes;
callers never parse messages.
"""

from decimal import Decimal

import pytest

from tradeledger_kernel.exceptions import (
    AllocationError,
    ConcurrencyError,
    DeliveryError,
    DuplicateAllocationError,
    InvoiceAccountMismatchError,
    InvalidAllocationAmountError,
    InvoiceError,
    InvoiceKindMismatchError,
    InvoiceNotPayableError,
    NoAllocationError,
    NotificationTimeoutError,
    OptimisticLockError,
    OverAllocationError,
    PaymentError,
    PaymentWriteError,
    PaymentWriteTimeoutError,
    TradeLedgerError,
    ValidationError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "exc, base",
        [
            (NoAllocationError(2), ValidationError),
            (DuplicateAllocationError("inv-1"), ValidationError),
            (InvoiceKindMismatchError("incoming", "customer", "supplier"), InvoiceError),
            (InvoiceAccountMismatchError("inv-1", "a", "b"), InvoiceError),
            (InvoiceNotPayableError("inv-1", "cancelled"), InvoiceError),
            (InvalidAllocationAmountError("inv-1", "NaN"), ValidationError),
            (OverAllocationError("inv-1", Decimal("2"), Decimal("1"), "USD"), AllocationError),
            (PaymentWriteTimeoutError("statement timeout"), PaymentError),
            (OptimisticLockError("purchase_order", "po-1", 3), ConcurrencyError),
            (NotificationTimeoutError("sup-1", 10.0), DeliveryError),
        ],
    )
    def test_subclass_of_category_and_root(self, exc, base):
        assert isinstance(exc, base)
        assert isinstance(exc, TradeLedgerError)

    def test_codes_are_unique(self):
        seen = {}

        def walk(cls):
            for sub in cls.__subclasses__():
                assert sub.code not in seen, f"{sub.__name__} reuses {sub.code}"
                seen[sub.code] = sub
                walk(sub)

        walk(TradeLedgerError)
        assert "OVER_ALLOCATION" in seen


class TestStructuredAttributes:
    def test_over_allocation(self):
        exc = OverAllocationError("inv-9", Decimal("500.00"), Decimal("300.00"), "USD")
        assert exc.code == "OVER_ALLOCATION"
        assert exc.requested == "500.00"
        assert exc.balance_due == "300.00"
        assert "exceeds balance due" in str(exc)

    def test_write_timeout_is_retryable(self):
        exc = PaymentWriteTimeoutError("canceling statement due to statement timeout")
        assert exc.retryable is True
        assert isinstance(exc, PaymentWriteError)

    def test_write_error_not_retryable_by_default(self):
        assert PaymentWriteError("constraint violated").retryable is False

    def test_optimistic_lock(self):
        exc = OptimisticLockError("purchase_order", "po-1", 3)
        assert exc.attempts == 3
        assert "after 3 attempts" in str(exc)

    def test_invoice_not_payable(self):
        exc = InvoiceNotPayableError("inv-3", "draft")
        assert exc.code == "INVOICE_NOT_PAYABLE"
        assert exc.status == "draft"
        assert "cannot take payments" in str(exc)
