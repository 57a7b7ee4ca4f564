"""
Trade Ledger Kernel

Shared infrastructure for payment allocation and ledger reconciliation:
- Structured logging and typed errors
- SQLAlchemy persistence (parties, activity log, outbox)
- Money, currency and exchange-rate value objects
"""

__version__ = "0.1.0"
