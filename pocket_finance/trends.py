"""Month-over-month trend analysis and next-month forecast.

Transactions are bucketed into the last ``month_count`` calendar months.
A single least-squares slope per series drives the growth rates and the
one-step forecast.  With fewer than three months that contain transactions
the analysis is all zeros.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .analytics import DateLike, as_day, to_frame
from .models import EXPENSE, INCOME, Transaction

DEFAULT_MONTH_COUNT = 6
MIN_POPULATED_MONTHS = 3
DEFAULT_TOP_CATEGORIES = 5


@dataclass
class TrendBucket:
    month: str
    income: float = 0.0
    expenses: float = 0.0
    balance: float = 0.0
    expenses_by_category: Dict[str, float] = field(default_factory=dict)
    transaction_count: int = 0


@dataclass
class Prediction:
    next_month_income: float = 0.0
    next_month_expenses: float = 0.0


@dataclass
class TrendAnalysis:
    average_income: float = 0.0
    average_expenses: float = 0.0
    income_growth_rate: float = 0.0
    expense_growth_rate: float = 0.0
    savings_rate: float = 0.0
    prediction: Prediction = field(default_factory=Prediction)


@dataclass
class Insight:
    level: str
    message: str


def monthly_trend(
    transactions: Sequence[Transaction],
    month_count: int = DEFAULT_MONTH_COUNT,
    now: Optional[DateLike] = None,
) -> List[TrendBucket]:
    """Bucket transactions by calendar month, oldest first.

    The window ends with the month containing ``now`` and includes months
    without transactions as zero buckets.  Transactions outside the window
    or with unparseable dates are ignored.
    """
    current = as_day(now).to_period('M')
    months = [str(current - offset) for offset in range(month_count - 1, -1, -1)]
    buckets = {month: TrendBucket(month=month) for month in months}

    df = to_frame(transactions)
    df = df[df['parsed_date'].notna()]
    if df.empty:
        return list(buckets.values())
    df = df.assign(month=df['parsed_date'].dt.to_period('M').astype(str))
    df = df[df['month'].isin(months)]

    for month, rows in df.groupby('month', sort=False):
        bucket = buckets[month]
        income = rows[rows['type'] == INCOME]['amount']
        expenses = rows[rows['type'] == EXPENSE]
        bucket.income = float(income.sum(skipna=False))
        bucket.expenses = float(expenses['amount'].sum(skipna=False))
        bucket.balance = bucket.income - bucket.expenses
        bucket.transaction_count = len(rows)
        if not expenses.empty:
            by_category = expenses.groupby('category', sort=False, dropna=False)['amount'].agg(
                lambda values: values.sum(skipna=False)
            )
            bucket.expenses_by_category = {name: float(total) for name, total in by_category.items()}

    return list(buckets.values())


def linear_regression_slope(points: Sequence[Tuple[float, float]]) -> float:
    """Ordinary least squares slope of ``(x, y)`` points.

    Returns 0 for an empty input or when every x is the same.
    """
    data = np.asarray(points, dtype=float).reshape(-1, 2)
    n = len(data)
    if n == 0:
        return 0.0
    x, y = data[:, 0], data[:, 1]
    mean_x = x.sum() / n
    mean_y = y.sum() / n
    numerator = (x * y).sum() - n * mean_x * mean_y
    denominator = (x * x).sum() - n * mean_x * mean_x
    if denominator == 0:
        return 0.0
    return float(numerator / denominator)


def analyze_trend(buckets: Sequence[TrendBucket]) -> TrendAnalysis:
    """Averages, savings rate, growth rates and the next-month forecast.

    The forecast is the most recent bucket's value plus the fitted slope,
    floored at zero.
    """
    populated = sum(1 for bucket in buckets if bucket.transaction_count > 0)
    if populated < MIN_POPULATED_MONTHS:
        return TrendAnalysis()

    income = np.array([bucket.income for bucket in buckets], dtype=float)
    expenses = np.array([bucket.expenses for bucket in buckets], dtype=float)
    index = np.arange(len(buckets), dtype=float)

    average_income = float(income.mean())
    average_expenses = float(expenses.mean())
    savings_rate = (
        (average_income - average_expenses) / average_income * 100 if average_income > 0 else 0.0
    )

    income_slope = linear_regression_slope(np.column_stack([index, income]))
    expense_slope = linear_regression_slope(np.column_stack([index, expenses]))
    income_growth = income_slope / average_income * 100 if average_income > 0 else 0.0
    expense_growth = expense_slope / average_expenses * 100 if average_expenses > 0 else 0.0

    return TrendAnalysis(
        average_income=average_income,
        average_expenses=average_expenses,
        income_growth_rate=float(income_growth),
        expense_growth_rate=float(expense_growth),
        savings_rate=float(savings_rate),
        prediction=Prediction(
            next_month_income=float(np.maximum(0.0, income[-1] + income_slope)),
            next_month_expenses=float(np.maximum(0.0, expenses[-1] + expense_slope)),
        ),
    )


def top_expense_categories(
    buckets: Sequence[TrendBucket], n: int = DEFAULT_TOP_CATEGORIES
) -> List[Tuple[str, float]]:
    """The ``n`` largest expense categories over the window.

    Equal totals keep the order in which the categories were first seen.
    """
    totals: Dict[str, float] = {}
    for bucket in buckets:
        for category, amount in bucket.expenses_by_category.items():
            totals[category] = totals.get(category, 0.0) + amount
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return ranked[:n]


def savings_insight(savings_rate: float) -> Insight:
    if savings_rate < 0:
        return Insight('danger', "You're spending more than you earn. Consider reducing expenses.")
    if savings_rate < 10:
        return Insight('warning', "Your savings rate is low. Try to increase income or reduce expenses.")
    if savings_rate > 20:
        return Insight('success', "Great job! You have a healthy savings rate.")
    return Insight('info', "You have a good savings rate, but there's room for improvement.")


def trend_frame(buckets: Sequence[TrendBucket]) -> pd.DataFrame:
    """Buckets as a DataFrame indexed by month, for charting."""
    frame = pd.DataFrame(
        [
            {'Month': b.month, 'Income': b.income, 'Expenses': b.expenses, 'Balance': b.balance}
            for b in buckets
        ],
        columns=['Month', 'Income', 'Expenses', 'Balance'],
    )
    return frame.set_index('Month')
