#!/usr/bin/env python3
"""
Deliver pending outbox events (activity log entries, notifications).

Runs one dispatch pass, or keeps polling with --loop.  Events that keep
failing are dead-lettered after outbox.max_attempts tries.

Usage:
    python3 scripts/dispatch_outbox.py [--limit 100] [--loop --interval 30]
        [--db-url postgresql://...] [--config settings.yaml]
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Deliver pending outbox events")
    parser.add_argument("--limit", type=int, default=None, help="Events per pass (default: batch_size)")
    parser.add_argument("--loop", action="store_true", help="Keep polling until interrupted")
    parser.add_argument("--interval", type=float, default=30.0, help="Seconds between passes")
    parser.add_argument("--db-url", default=None, help="Overrides database.url from config")
    parser.add_argument("--config", default=None, help="Settings YAML (default: packaged)")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    from tradeledger_config import get_active_config
    from tradeledger_kernel.db.engine import get_session, init_engine_from_url
    from tradeledger_services import LoggingNotifier, OutboxDispatcher

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
    dispatcher = OutboxDispatcher(session, LoggingNotifier(), config.outbox)
    try:
        while True:
            report = dispatcher.dispatch_pending(limit=args.limit)
            print(
                f"  delivered={len(report.delivered)} retried={len(report.retried)} "
                f"dead_lettered={len(report.dead_lettered)}"
            )
            if not args.loop:
                break
            time.sleep(args.interval)
    except KeyboardInterrupt:
        pass
    finally:
        dispatcher.close()
        session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
