"""
Pure domain layer.

Value objects and the clock abstraction, with no dependency on the ORM,
the database or I/O.
"""

from tradeledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from tradeledger_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from tradeledger_kernel.domain.values import Currency, ExchangeRate, Money

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "CurrencyInfo",
    "CurrencyRegistry",
    "Currency",
    "ExchangeRate",
    "Money",
]
