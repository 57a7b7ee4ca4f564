"""
Currency conversion for allocations.

Responsibility:
    The single path by which an allocation amount (always in its payment's
    currency) becomes an amount in the invoice's currency.  The balance
    resolver, the supplier tracking refresh, the server-side over-allocation
    check and the void reversal all call ``convert_allocation``.

Convention:
    A payment's ``exchange_rate`` divides.  When the allocation and invoice
    currencies differ and the payment carries a rate other than 1, the
    converted amount is ``amount / exchange_rate``, rounded to the invoice
    currency's precision.  Otherwise the amount passes through unchanged.

        1000 USD against a CNY invoice, rate 7.2  ->  138.89 CNY
        7200 CNY against a USD invoice, rate 7.2  ->  1000.00 USD

    The division is expressed as an ExchangeRate of ``1 / exchange_rate``
    from the allocation currency to the invoice currency, quoted as of the
    payment date.

Architecture position:
    Engines -- pure.  Imports only kernel domain values.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from tradeledger_kernel.domain.values import ExchangeRate, Money

_ONE = Decimal("1")


def payment_rate(
    allocation_currency: str,
    invoice_currency: str,
    exchange_rate: Decimal | None,
    as_of: date | None = None,
) -> ExchangeRate | None:
    """
    ExchangeRate applied to an allocation, or None for pass-through.

    Pass-through when the currencies match, when the payment has no rate,
    or when the rate is exactly 1.
    """
    if allocation_currency == invoice_currency:
        return None
    if exchange_rate is None or Decimal(exchange_rate) == _ONE:
        return None
    return ExchangeRate.of(
        allocation_currency,
        invoice_currency,
        _ONE / Decimal(exchange_rate),
        as_of=as_of,
    )


def convert_allocation(
    amount: Decimal,
    allocation_currency: str,
    invoice_currency: str,
    exchange_rate: Decimal | None,
    as_of: date | None = None,
) -> Decimal:
    """Allocation amount expressed in the invoice currency."""
    rate = payment_rate(allocation_currency, invoice_currency, exchange_rate, as_of)
    if rate is None:
        return Decimal(amount)
    return rate.convert(Money.of(amount, allocation_currency)).round().amount
