"""Read-only selectors."""

from tradeledger_kernel.selectors.base import BaseSelector

__all__ = ["BaseSelector"]
