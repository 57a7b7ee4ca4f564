"""
Trade Ledger Modules.

Orchestration over the kernel and engines:
- invoices: customer orders and supplier purchase orders (read side)
- payments: financial records, allocations, the payment writer
- balances: outstanding balance per invoice
- ledger: running-balance statements, CSV export, account overviews
"""
