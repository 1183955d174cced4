"""Recurring subscription cost projection."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .analytics import DateLike, as_day
from .models import Subscription, parse_amount

# Multipliers converting one charge into its monthly equivalent
MONTHLY_MULTIPLIERS: Dict[str, float] = {
    'weekly': 4.33,
    'monthly': 1.0,
    'quarterly': 1 / 3,
    'annually': 1 / 12,
}

BILLING_OFFSETS: Dict[str, pd.DateOffset] = {
    'weekly': pd.DateOffset(days=7),
    'monthly': pd.DateOffset(months=1),
    'quarterly': pd.DateOffset(months=3),
    'annually': pd.DateOffset(years=1),
    'yearly': pd.DateOffset(years=1),
}


def monthly_equivalent(subscription: Subscription) -> float:
    """Monthly cost of one subscription; unknown cycles count as monthly."""
    amount = parse_amount(subscription.amount)
    return amount * MONTHLY_MULTIPLIERS.get(subscription.billing_cycle, 1.0)


def monthly_subscription_cost(subscriptions: Sequence[Subscription]) -> float:
    """Sum of the monthly equivalents of ``subscriptions``."""
    total = 0.0
    for subscription in subscriptions:
        total += monthly_equivalent(subscription)
    return total


def next_billing_date(current: DateLike, cycle: str) -> str:
    """Advance ``current`` by one billing cycle.

    Unknown cycles return the date unchanged.  Month arithmetic clamps to the
    last day of the target month (Jan 31 + 1 month is Feb 28/29).
    """
    day = pd.Timestamp(current)
    offset = BILLING_OFFSETS.get(cycle)
    if offset is not None:
        day = day + offset
    return day.strftime('%Y-%m-%d')


def upcoming_billings(
    subscriptions: Sequence[Subscription],
    today: Optional[DateLike] = None,
    within_days: int = 30,
) -> List[Tuple[Subscription, str]]:
    """Subscriptions billed within ``within_days`` of ``today``, soonest first.

    A billing date already in the past is rolled forward by its cycle until
    it reaches ``today``.  Subscriptions with an unparseable date, or a past
    date and an unknown cycle, are skipped.
    """
    start = as_day(today)
    end = start + pd.Timedelta(days=within_days)
    upcoming: List[Tuple[Subscription, pd.Timestamp]] = []

    for subscription in subscriptions:
        due = pd.to_datetime(subscription.next_billing_date, format='%Y-%m-%d', errors='coerce')
        if pd.isna(due):
            continue
        offset = BILLING_OFFSETS.get(subscription.billing_cycle)
        while due < start and offset is not None:
            due = due + offset
        if start <= due <= end:
            upcoming.append((subscription, due))

    upcoming.sort(key=lambda item: item[1])
    return [(subscription, due.strftime('%Y-%m-%d')) for subscription, due in upcoming]
