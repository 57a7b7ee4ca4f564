"""Balance resolver result types."""

from dataclasses import dataclass
from decimal import Decimal

from tradeledger_modules.invoices.models import Invoice


@dataclass(frozen=True)
class InvoiceBalance:
    """An invoice with what has been paid against it, in its own currency."""

    invoice: Invoice
    total_paid: Decimal
    balance_due: Decimal

    @property
    def is_outstanding(self) -> bool:
        return self.balance_due > 0

    @property
    def currency(self) -> str:
        return self.invoice.currency
