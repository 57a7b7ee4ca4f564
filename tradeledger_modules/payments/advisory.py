"""
Currency-mismatch advisory for payment requests.

Pure function, no I/O.  A mismatch never blocks a payment; it is reported
back to the caller alongside the recorded payment.
"""

from collections.abc import Iterable, Sequence

from tradeledger_kernel.logging_config import get_logger
from tradeledger_modules.invoices.models import Invoice
from tradeledger_modules.payments.models import CurrencyMismatchWarning

logger = get_logger("modules.payments.advisory")


def check_currency_mismatch(
    payment_currency: str,
    invoices: Sequence[Invoice],
    unusual_pairs: Iterable[tuple[str, str]] = (("USD", "CNY"),),
) -> tuple[CurrencyMismatchWarning, ...]:
    """One warning per invoice whose currency differs from ``payment_currency``."""
    unusual = {(p.upper(), i.upper()) for p, i in unusual_pairs}
    payment_currency = payment_currency.upper()

    warnings = []
    for invoice in invoices:
        if invoice.currency == payment_currency:
            continue
        is_unusual = (payment_currency, invoice.currency) in unusual
        message = (
            f"Paying in {payment_currency} but invoice {invoice.number} "
            f"is in {invoice.currency}"
        )
        if is_unusual:
            message += (
                f"; paying {payment_currency} against a {invoice.currency} invoice is "
                "unusual and may cause exchange rate discrepancies"
            )
        warnings.append(
            CurrencyMismatchWarning(
                invoice_id=invoice.id,
                invoice_number=invoice.number,
                payment_currency=payment_currency,
                invoice_currency=invoice.currency,
                unusual=is_unusual,
                message=message,
            )
        )

    if warnings:
        logger.info(
            "payment_currency_mismatch",
            extra={
                "payment_currency": payment_currency,
                "invoice_count": len(warnings),
                "unusual_count": sum(1 for w in warnings if w.unusual),
            },
        )
    return tuple(warnings)
