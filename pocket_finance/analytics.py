"""Aggregations over a list of ledger transactions.

All functions are pure: they take a sequence of :class:`Transaction`
records, never modify it, and return new lists, dicts or DataFrames.
Amounts go through :func:`parse_amount`, so a malformed amount turns the
affected totals into NaN instead of being dropped.  Dates that do not parse
as ``YYYY-MM-DD`` never match a period or range.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .models import EXPENSE, INCOME, TRANSFER_LEG, Transaction, parse_amount

DateLike = Union[date, datetime, str, pd.Timestamp]

PERIOD_OFFSETS: Dict[str, pd.DateOffset] = {
    'week': pd.DateOffset(days=7),
    'month': pd.DateOffset(months=1),
    'quarter': pd.DateOffset(months=3),
    'year': pd.DateOffset(years=1),
}
DEFAULT_PERIOD = 'month'

FRAME_COLUMNS = [
    'id', 'type', 'amount', 'category', 'date', 'pocket_id',
    'kind', 'transfer_id', 'transfer_to_pocket_id', 'transfer_from_pocket_id',
]


@dataclass
class Summary:
    total_income: float = 0.0
    total_expenses: float = 0.0
    balance: float = 0.0
    income_by_category: Dict[str, float] = field(default_factory=dict)
    expenses_by_category: Dict[str, float] = field(default_factory=dict)


@dataclass
class DailyTotals:
    """Transactions booked on one calendar day and their totals."""

    date: str
    transactions: List[Transaction] = field(default_factory=list)
    income: float = 0.0
    expense: float = 0.0
    balance: float = 0.0
    count: int = 0


def to_frame(transactions: Sequence[Transaction]) -> pd.DataFrame:
    """Build a DataFrame with one row per transaction.

    ``amount`` is parsed to float (NaN when malformed) and ``parsed_date``
    holds the day as a timestamp (NaT when the date string is invalid).
    """
    rows = [
        {
            'id': t.id,
            'type': t.type,
            'amount': parse_amount(t.amount),
            'category': t.category,
            'date': t.date,
            'pocket_id': t.pocket_id,
            'kind': t.kind,
            'transfer_id': t.transfer_id,
            'transfer_to_pocket_id': t.transfer_to_pocket_id,
            'transfer_from_pocket_id': t.transfer_from_pocket_id,
        }
        for t in transactions
    ]
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    df['amount'] = df['amount'].astype(float)
    df['parsed_date'] = parse_dates(df['date'])
    return df


def parse_dates(values: pd.Series) -> pd.Series:
    return pd.to_datetime(values.astype(str), format='%Y-%m-%d', errors='coerce')


def as_day(value: Optional[DateLike]) -> pd.Timestamp:
    if value is None:
        return pd.Timestamp.now().normalize()
    return pd.Timestamp(value).normalize()


def _select(transactions: Sequence[Transaction], mask) -> List[Transaction]:
    return [t for t, keep in zip(transactions, mask) if keep]


def filter_by_period(
    transactions: Sequence[Transaction],
    period: str = DEFAULT_PERIOD,
    now: Optional[DateLike] = None,
) -> List[Transaction]:
    """Return transactions dated within the rolling ``period`` ending at ``now``.

    ``period`` is one of week, month, quarter or year; anything else means
    month.  Both ends of ``[now - period, now]`` are inclusive at day
    granularity.
    """
    if not transactions:
        return []
    end = as_day(now)
    start = end - PERIOD_OFFSETS.get(period, PERIOD_OFFSETS[DEFAULT_PERIOD])
    dates = parse_dates(pd.Series([t.date for t in transactions]))
    mask = (dates >= start) & (dates <= end)
    return _select(transactions, mask.tolist())


def _sum_by_category(df: pd.DataFrame) -> Dict[str, float]:
    if df.empty:
        return {}
    grouped = df.groupby('category', sort=False, dropna=False)['amount'].agg(
        lambda values: values.sum(skipna=False)
    )
    return {category: float(total) for category, total in grouped.items()}


def summarize(transactions: Sequence[Transaction]) -> Summary:
    """Income and expense totals, overall and per category.

    Only categories that occur in ``transactions`` appear in the breakdowns.
    """
    df = to_frame(transactions)
    income = df[df['type'] == INCOME]
    expenses = df[df['type'] == EXPENSE]

    total_income = float(income['amount'].sum(skipna=False))
    total_expenses = float(expenses['amount'].sum(skipna=False))
    return Summary(
        total_income=total_income,
        total_expenses=total_expenses,
        balance=total_income - total_expenses,
        income_by_category=_sum_by_category(income),
        expenses_by_category=_sum_by_category(expenses),
    )


def daily_transactions(transactions: Sequence[Transaction], day: DateLike) -> DailyTotals:
    """Transactions whose date string equals ``day`` exactly."""
    key = day if isinstance(day, str) else pd.Timestamp(day).strftime('%Y-%m-%d')
    matches = [t for t in transactions if t.date == key]
    summary = summarize(matches)
    return DailyTotals(
        date=key,
        transactions=matches,
        income=summary.total_income,
        expense=summary.total_expenses,
        balance=summary.balance,
        count=len(matches),
    )


def filter_transactions(
    transactions: Sequence[Transaction],
    transaction_type: Optional[str] = None,
    category: Optional[str] = None,
    date_from: Optional[DateLike] = None,
    date_to: Optional[DateLike] = None,
    today: Optional[DateLike] = None,
) -> List[Transaction]:
    """Filter the transaction list the way the transactions view does.

    ``None`` or ``"all"`` disables the type and category filters.  The date
    range runs from ``date_from`` (default: no lower bound) through the whole
    of ``date_to`` (default: ``today``), so future-dated records and records
    with unparseable dates are left out.
    """
    if not transactions:
        return []
    df = to_frame(transactions)
    mask = pd.Series(True, index=df.index)
    if transaction_type and transaction_type != 'all':
        mask &= df['type'] == transaction_type
    if category and category != 'all':
        mask &= df['category'] == category

    upper = as_day(date_to if date_to else today)
    mask &= df['parsed_date'] <= upper
    if date_from:
        mask &= df['parsed_date'] >= as_day(date_from)
    else:
        mask &= df['parsed_date'].notna()
    return _select(transactions, mask.tolist())


def sort_by_date(transactions: Sequence[Transaction]) -> List[Transaction]:
    """Newest first; records with unparseable dates go last."""
    if not transactions:
        return []
    dates = parse_dates(pd.Series([t.date for t in transactions]))
    order = dates.sort_values(ascending=False, kind='mergesort', na_position='last').index
    return [transactions[i] for i in order]


def pocket_net_flows(transactions: Sequence[Transaction]) -> Dict[str, float]:
    """Balance effect of the transaction history on each referenced pocket."""
    df = to_frame(transactions)
    df = df[df['pocket_id'].notna() & (df['pocket_id'] != '')]
    if df.empty:
        return {}
    signs = np.select([df['type'] == INCOME, df['type'] == EXPENSE], [1.0, -1.0], default=0.0)
    df = df.assign(signed=df['amount'] * signs)
    grouped = df.groupby('pocket_id', sort=False)['signed'].agg(lambda values: values.sum(skipna=False))
    return {pocket_id: float(total) for pocket_id, total in grouped.items()}


def transfer_pairs(transactions: Sequence[Transaction]) -> pd.DataFrame:
    """Pair the expense and income legs of each transfer by ``transfer_id``.

    Returns one row per matched transfer with columns ``transfer_id``,
    ``date``, ``amount``, ``from_pocket_id``, ``to_pocket_id``,
    ``expense_id`` and ``income_id``.  Unmatched legs are left out.
    """
    columns = ['transfer_id', 'date', 'amount', 'from_pocket_id', 'to_pocket_id', 'expense_id', 'income_id']
    df = to_frame(transactions)
    legs = df[(df['kind'] == TRANSFER_LEG) & df['transfer_id'].notna()]
    if legs.empty:
        return pd.DataFrame(columns=columns)

    out_legs = legs[legs['type'] == EXPENSE][['transfer_id', 'id', 'date', 'amount', 'pocket_id']]
    in_legs = legs[legs['type'] == INCOME][['transfer_id', 'id', 'pocket_id']]
    pairs = out_legs.merge(in_legs, on='transfer_id', suffixes=('_out', '_in'))
    if pairs.empty:
        return pd.DataFrame(columns=columns)

    pairs = pairs.rename(
        columns={
            'pocket_id_out': 'from_pocket_id',
            'pocket_id_in': 'to_pocket_id',
            'id_out': 'expense_id',
            'id_in': 'income_id',
        }
    )
    return pairs[columns].reset_index(drop=True)
