"""Account ledgers: running-balance statements, CSV export, overviews."""

from tradeledger_modules.ledger.models import AccountSummary, LedgerExport
from tradeledger_modules.ledger.projector import LedgerProjector

__all__ = ["AccountSummary", "LedgerExport", "LedgerProjector"]
