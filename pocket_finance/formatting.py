"""Display helpers shared by the dashboard and the command line."""

from __future__ import annotations

import math
from typing import Dict, Optional

BILLING_CYCLE_LABELS: Dict[str, str] = {
    'weekly': 'Weekly',
    'monthly': 'Monthly',
    'quarterly': 'Quarterly (Every 3 Months)',
    'annually': 'Annually (Yearly)',
}

CATEGORY_ICONS: Dict[str, str] = {
    # Income
    'Salary': '💰',
    'Bonus': '🎁',
    'Investment': '📈',
    'Gift': '🎀',
    'Other Income': '💸',
    # Expense
    'Food': '🍔',
    'Groceries': '🛒',
    'Dining': '🍽️',
    'Housing': '🏠',
    'Rent': '🏢',
    'Mortgage': '🏘️',
    'Utilities': '💡',
    'Transportation': '🚗',
    'Health': '⚕️',
    'Education': '🎓',
    'Entertainment': '🎬',
    'Shopping': '🛍️',
    'Travel': '✈️',
    'Subscriptions': '📱',
    'Personal': '👤',
    'Bills': '📄',
    'Insurance': '🔒',
    'Taxes': '📊',
    'Business': '💼',
    'Charity': '❤️',
    'Transfer': '↔️',
}

MONTH_ABBREVIATIONS = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')


def format_number(value: float) -> str:
    """Two decimals with thousands separators; NaN renders as ``nan``."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return 'nan'
    return f"{float(value):,.2f}"


def format_currency(amount: float, symbol: Optional[str] = None) -> str:
    text = format_number(amount)
    return f"{symbol} {text}" if symbol else text


def format_billing_cycle(cycle: str) -> str:
    return BILLING_CYCLE_LABELS.get(cycle, cycle)


def category_icon(category: str) -> str:
    """Emoji for a known category, else its first letter upper-cased."""
    if category in CATEGORY_ICONS:
        return CATEGORY_ICONS[category]
    return category[:1].upper()


def month_label(month_key: str) -> str:
    """``YYYY-MM`` to ``Mon YYYY``."""
    year, month = month_key.split('-')[:2]
    return f"{MONTH_ABBREVIATIONS[int(month) - 1]} {year}"


def format_percentage(value: float, digits: int = 1) -> str:
    return f"{value:.{digits}f}%"
