"""Command-line interface for the Personal Finance Tracker.

Usage:
  python -m finance_tracker.cli serve --port 3000
  python -m finance_tracker.cli summary --json out/summary.json
  python -m finance_tracker.cli export --range month --type expense -o expenses.csv

Every command works against the database named by ``--database``, then
``DATABASE_URL``, then the JSON config, in that order of precedence.
"""

from __future__ import annotations

import argparse
import datetime as dt
import logging
import os
import sys
from typing import Dict, List, Optional

from .analytics import compute_summary
from .config import AppConfig, normalize_database_url
from .db import get_storage
from .filters import filter_transactions
from .reports import export_filename, export_transactions_csv, format_text_report, save_json
from .validation import ValidationError, parse_filter_spec
from .webapp import create_app


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Personal Finance Tracker")
    p.add_argument("--config", "-c", help="Path to JSON config")
    p.add_argument("--database", "-d", help="Database URL or SQLite file path")
    sub = p.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the JSON API server")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=int(os.environ.get("PORT", "3000")))
    serve.add_argument("--debug", action="store_true")

    sub.add_parser("init-db", help="Create tables and seed default categories")

    summary = sub.add_parser("summary", help="Print balance and current-month totals")
    summary.add_argument("--json", dest="json_out", help="Write summary JSON to path")

    export = sub.add_parser("export", help="Export transactions to CSV")
    export.add_argument("--output", "-o", help="CSV path (default: transactions_<today>.csv)")
    export.add_argument("--search")
    export.add_argument("--category")
    export.add_argument("--type", dest="kind", choices=["all", "income", "expense"])
    export.add_argument("--range", dest="date_range",
                        choices=["all", "today", "week", "month", "year", "custom"])
    export.add_argument("--from", dest="date_from", help="Start date (YYYY-MM-DD)")
    export.add_argument("--to", dest="date_to", help="End date (YYYY-MM-DD)")
    export.add_argument("--min-amount")
    export.add_argument("--max-amount")
    return p.parse_args(argv)


def _filter_args(args: argparse.Namespace) -> Dict[str, str]:
    pairs = {
        "search": args.search,
        "category": args.category,
        "type": args.kind,
        "dateRange": args.date_range,
        "startDate": args.date_from,
        "endDate": args.date_to,
        "minAmount": args.min_amount,
        "maxAmount": args.max_amount,
    }
    return {k: v for k, v in pairs.items() if v}


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    cfg = AppConfig.load(args.config)
    if args.database:
        cfg.database_url = normalize_database_url(args.database)
    logging.basicConfig(level=cfg.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    app = create_app(cfg)

    if args.command == "serve":
        app.run(host=args.host, port=args.port, debug=args.debug)
        return 0

    with app.app_context():
        storage = get_storage()
        if args.command == "init-db":
            print(f"Database ready: {cfg.database_url}")
            return 0

        now = dt.datetime.now()
        if args.command == "summary":
            summary = compute_summary(storage.list_transactions(), now)
            print(format_text_report(summary, now))
            if args.json_out:
                save_json(summary.to_dict(), args.json_out)
                print(f"\nSaved JSON summary to: {args.json_out}")
            return 0

        try:
            spec = parse_filter_spec(_filter_args(args), cfg.default_date_range)
        except ValidationError as exc:
            for err in exc.errors:
                print(f"{err['field']}: {err['message']}", file=sys.stderr)
            return 2
        txns = filter_transactions(storage.list_transactions(), spec, now=now)
        output = args.output or export_filename(now.date())
        count = export_transactions_csv(txns, output)
        print(f"Exported {count} transactions to: {output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
