"""Balance resolution over customer orders and purchase orders."""

from tradeledger_modules.balances.models import InvoiceBalance
from tradeledger_modules.balances.resolver import BalanceResolver

__all__ = ["BalanceResolver", "InvoiceBalance"]
