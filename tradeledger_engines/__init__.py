"""
Module: tradeledger_engines
Responsibility:
    Re-exports the pure calculation engines: currency conversion, balance
    aggregation, ledger projection and ledger export.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import tradeledger_kernel (domain values, logging).
    MUST NOT import tradeledger_modules or tradeledger_services.

Invariants enforced:
    - Engines never read the clock; dates and timestamps are parameters.
    - Decimal-only arithmetic for money.
"""

from tradeledger_engines.balance import (
    AllocationFact,
    BalanceCalculator,
    BalanceLine,
    InvoiceFact,
)
from tradeledger_engines.conversion import convert_allocation, payment_rate
from tradeledger_engines.export import EXPORT_COLUMNS, export_filename, export_ledger
from tradeledger_engines.ledger import (
    EntryType,
    Ledger,
    LedgerBuilder,
    LedgerEntry,
    LedgerInvoice,
    LedgerPayment,
    LedgerTotals,
    StatusFilter,
)

__all__ = [
    "AllocationFact",
    "BalanceCalculator",
    "BalanceLine",
    "EXPORT_COLUMNS",
    "EntryType",
    "InvoiceFact",
    "Ledger",
    "LedgerBuilder",
    "LedgerEntry",
    "LedgerInvoice",
    "LedgerPayment",
    "LedgerTotals",
    "StatusFilter",
    "convert_allocation",
    "export_filename",
    "export_ledger",
    "payment_rate",
]
