"""Ledger projector result types."""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from tradeledger_engines.ledger import Ledger


@dataclass(frozen=True)
class AccountSummary:
    """One row of the customer or supplier ledger overview."""

    account_id: UUID
    account_name: str
    total_invoiced: Decimal
    total_paid: Decimal
    balance_due: Decimal
    open_invoices: int


@dataclass(frozen=True)
class LedgerExport:
    """A rendered ledger ready to be saved or downloaded."""

    filename: str
    content: str
    ledger: Ledger
