#!/usr/bin/env python3
"""Command line access to the ledger: summaries, trends, export and import."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pocket_finance import analytics, subscriptions, trends
from pocket_finance.backup import import_file, write_export
from pocket_finance.formatting import format_currency, format_percentage, month_label
from pocket_finance.ledger import LedgerStore
from pocket_finance.storage import open_store


def show_summary(ledger: LedgerStore, period: str) -> int:
    snapshot = ledger.snapshot()
    summary = analytics.summarize(analytics.filter_by_period(snapshot.transactions, period))
    currency = snapshot.currency

    print(f"Period: {period}")
    print(f"  Income:   {format_currency(summary.total_income, currency)}")
    print(f"  Expenses: {format_currency(summary.total_expenses, currency)}")
    print(f"  Balance:  {format_currency(summary.balance, currency)}")
    cost = subscriptions.monthly_subscription_cost(snapshot.subscriptions)
    print(f"  Subscriptions per month: {format_currency(cost, currency)}")

    if summary.expenses_by_category:
        print("\nExpenses by category:")
        for category, total in summary.expenses_by_category.items():
            print(f"  {category}: {format_currency(total, currency)}")

    print("\nPockets:")
    for pocket in snapshot.pockets:
        print(f"  {pocket.name}: {format_currency(pocket.balance, currency)}")
    return 0


def show_trend(ledger: LedgerStore, months: int) -> int:
    snapshot = ledger.snapshot()
    buckets = trends.monthly_trend(snapshot.transactions, months)
    analysis = trends.analyze_trend(buckets)
    currency = snapshot.currency

    for bucket in buckets:
        print(
            f"{month_label(bucket.month)}: income {format_currency(bucket.income, currency)}, "
            f"expenses {format_currency(bucket.expenses, currency)}"
        )
    print(f"\nSavings rate: {format_percentage(analysis.savings_rate)}")
    print(f"Income growth: {format_percentage(analysis.income_growth_rate)}")
    print(f"Expense growth: {format_percentage(analysis.expense_growth_rate)}")
    print(f"Next month income: {format_currency(analysis.prediction.next_month_income, currency)}")
    print(f"Next month expenses: {format_currency(analysis.prediction.next_month_expenses, currency)}")
    print(trends.savings_insight(analysis.savings_rate).message)

    top = trends.top_expense_categories(buckets)
    if top:
        print("\nTop expense categories:")
        for category, total in top:
            print(f"  {category}: {format_currency(total, currency)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Inspect and back up the pocket finance ledger.')
    parser.add_argument('--backend', choices=['json', 'sqlite', 'memory'], help='Storage backend override')
    parser.add_argument('--state', type=Path, help='Path of the ledger state file')
    sub = parser.add_subparsers(dest='command', required=True)

    summary = sub.add_parser('summary', help='Totals for a rolling period')
    summary.add_argument('--period', default='month', choices=['week', 'month', 'quarter', 'year'])

    trend = sub.add_parser('trend', help='Monthly trend and next-month forecast')
    trend.add_argument('--months', type=int, default=trends.DEFAULT_MONTH_COUNT)

    export = sub.add_parser('export', help='Write the ledger to a JSON export file')
    export.add_argument('--dir', type=Path, help='Directory for the export file')

    load = sub.add_parser('import', help='Replace the ledger with an export file')
    load.add_argument('path', type=Path)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    ledger = LedgerStore(open_store(args.backend, args.state))

    if args.command == 'summary':
        return show_summary(ledger, args.period)
    if args.command == 'trend':
        return show_trend(ledger, args.months)
    if args.command == 'export':
        target = write_export(ledger, args.dir)
        print(f"Exported ledger to {target}")
        return 0
    if args.command == 'import':
        try:
            import_file(ledger, args.path)
        except (OSError, ValueError) as exc:
            print(f"Import failed: {exc}")
            return 1
        print(f"Imported ledger from {args.path}")
        return 0
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
