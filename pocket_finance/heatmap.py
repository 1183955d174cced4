"""Calendar heatmap intensities for one month of transactions."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from .analytics import to_frame
from .models import EXPENSE, INCOME, Transaction

HEATMAP_LEVELS = 5
LEVEL_THRESHOLDS = (0.25, 0.5, 0.75)


@dataclass
class HeatmapCell:
    date: str
    day: int
    income: float = 0.0
    expense: float = 0.0
    count: int = 0
    dominant: Optional[str] = None
    level: int = 0


def heatmap_level(amount: float, max_amount: float) -> int:
    """Map ``amount`` relative to the month's maximum onto levels 0-4.

    Level 0 means no activity.  The ratio is capped at 1 and bucketed at
    25%, 50% and 75%.
    """
    if not amount > 0 or not max_amount > 0:
        return 0
    ratio = min(amount / max_amount, 1.0)
    for level, threshold in enumerate(LEVEL_THRESHOLDS, start=1):
        if ratio < threshold:
            return level
    return HEATMAP_LEVELS - 1


def _dominant_flow(income: float, expense: float) -> Optional[str]:
    if income > expense:
        return INCOME
    if expense > 0:
        return EXPENSE
    return None


def month_heatmap(transactions: Sequence[Transaction], year: int, month: int) -> List[HeatmapCell]:
    """One cell per day of ``year``/``month`` with its totals and intensity.

    The dominant flow of a day is whichever of income or expense has the
    larger total; its total is compared against the largest dominant total
    of the month to pick the level.
    """
    days_in_month = calendar.monthrange(year, month)[1]
    prefix = f"{year:04d}-{month:02d}-"

    df = to_frame(transactions)
    df = df[df['date'].astype(str).str.startswith(prefix)]
    totals = pd.DataFrame(columns=[INCOME, EXPENSE])
    counts = df.groupby('date').size() if not df.empty else pd.Series(dtype=int)
    flows = df[df['type'].isin([INCOME, EXPENSE])]
    if not flows.empty:
        totals = (
            flows.groupby(['date', 'type'])['amount']
            .agg(lambda values: values.sum(skipna=False))
            .unstack(fill_value=0.0)
            .reindex(columns=[INCOME, EXPENSE], fill_value=0.0)
        )

    cells: List[HeatmapCell] = []
    for day in range(1, days_in_month + 1):
        key = f"{prefix}{day:02d}"
        income = float(totals.at[key, INCOME]) if key in totals.index else 0.0
        expense = float(totals.at[key, EXPENSE]) if key in totals.index else 0.0
        cells.append(
            HeatmapCell(
                date=key,
                day=day,
                income=income,
                expense=expense,
                count=int(counts.get(key, 0)),
                dominant=_dominant_flow(income, expense),
            )
        )

    dominant_totals = np.array(
        [max(cell.income, cell.expense) if cell.dominant else 0.0 for cell in cells]
    )
    max_amount = float(np.nanmax(dominant_totals)) if np.isfinite(dominant_totals).any() else 0.0
    for cell, amount in zip(cells, dominant_totals):
        cell.level = heatmap_level(float(amount), max_amount)
    return cells
