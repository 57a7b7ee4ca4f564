#!/usr/bin/env python3
"""
Export a customer or supplier ledger to CSV.

Builds the running-balance statement for one account and writes it next to
the current directory (or to --output), named {Account}_Ledger_YYYYMMDD.csv.

Usage:
    python3 scripts/export_ledger.py --account <uuid> [--kind supplier]
        [--from 2024-01-01] [--to 2024-03-31] [--status open]
        [--db-url sqlite:///ledger.db] [--config settings.yaml] [--output out.csv]
"""

from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path
from uuid import UUID

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _date(value: str) -> date:
    return date.fromisoformat(value)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export an account ledger to CSV")
    parser.add_argument("--account", required=True, type=UUID, help="Customer or supplier id")
    parser.add_argument("--kind", choices=("customer", "supplier"), default="customer")
    parser.add_argument("--from", dest="date_from", type=_date, default=None)
    parser.add_argument("--to", dest="date_to", type=_date, default=None)
    parser.add_argument("--status", choices=("all", "open", "closed"), default="all")
    parser.add_argument("--db-url", default=None, help="Overrides database.url from config")
    parser.add_argument("--config", default=None, help="Settings YAML (default: packaged)")
    parser.add_argument("--output", type=Path, default=None)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    from tradeledger_config import get_active_config
    from tradeledger_kernel.db.engine import get_session, init_engine_from_url
    from tradeledger_modules.ledger import LedgerProjector

    config = get_active_config(args.config)
    try:
        init_engine_from_url(
            args.db_url or config.database.url,
            statement_timeout_ms=config.database.statement_timeout_ms,
        )
    except Exception as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    session = get_session()
    try:
        export = LedgerProjector(session, config).export_ledger(
            args.account,
            args.kind,
            date_from=args.date_from,
            date_to=args.date_to,
            status_filter=args.status,
        )
    except ValueError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 2
    finally:
        session.close()

    target = args.output or Path.cwd() / export.filename
    target.write_text(export.content, encoding="utf-8")

    totals = export.ledger.totals
    print(f"  Wrote {len(export.ledger.entries)} entries to {target}")
    print(f"  Total debit {totals.total_debit:,.2f}  credit {totals.total_credit:,.2f}  "
          f"balance due {totals.balance:,.2f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
