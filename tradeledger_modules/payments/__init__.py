"""Payments: financial records, allocations and the payment writer."""

from tradeledger_modules.payments.advisory import check_currency_mismatch
from tradeledger_modules.payments.models import (
    Allocation,
    AllocationHistoryItem,
    AllocationRequest,
    CurrencyMismatchWarning,
    Payment,
    PaymentDirection,
    PaymentMetadata,
    PaymentMethod,
    PaymentRecorded,
    PaymentStatus,
    PaymentType,
    PaymentVoided,
)
from tradeledger_modules.payments.orm import AllocationModel, PaymentModel
from tradeledger_modules.payments.selectors import PaymentSelector
from tradeledger_modules.payments.service import PaymentService

__all__ = [
    "Allocation",
    "AllocationHistoryItem",
    "AllocationModel",
    "AllocationRequest",
    "CurrencyMismatchWarning",
    "Payment",
    "PaymentDirection",
    "PaymentMetadata",
    "PaymentMethod",
    "PaymentModel",
    "PaymentRecorded",
    "PaymentSelector",
    "PaymentService",
    "PaymentStatus",
    "PaymentType",
    "PaymentVoided",
    "check_currency_mismatch",
]
