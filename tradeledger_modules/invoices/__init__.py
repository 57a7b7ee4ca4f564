"""Invoice store: customer orders and supplier purchase orders."""

from tradeledger_modules.invoices.models import (
    CustomerInvoice,
    Invoice,
    InvoiceKind,
    InvoiceStatus,
    SupplierInvoice,
)
from tradeledger_modules.invoices.orm import (
    CustomerInvoiceModel,
    SupplierInvoiceModel,
    invoice_model_for,
)
from tradeledger_modules.invoices.selectors import InvoiceSelector

__all__ = [
    "CustomerInvoice",
    "CustomerInvoiceModel",
    "Invoice",
    "InvoiceKind",
    "InvoiceSelector",
    "InvoiceStatus",
    "SupplierInvoice",
    "SupplierInvoiceModel",
    "invoice_model_for",
]
