"""Plotly figures built from the analytics view models.

Each function accepts the output of one analytics function (trend buckets,
a category breakdown, heatmap cells, pockets) and returns a
``plotly.graph_objects.Figure`` that Streamlit renders through
``st.plotly_chart``.  Empty input gives an empty figure titled
"No data to display".
"""

from __future__ import annotations

import calendar
from typing import Dict, Sequence

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .formatting import month_label
from .heatmap import HEATMAP_LEVELS, HeatmapCell
from .models import EXPENSE, INCOME, Pocket
from .trends import TrendBucket, top_expense_categories, trend_frame

INCOME_SCALE = ['#ebedf0', '#c6e48b', '#7bc96f', '#239a3b', '#196127']
EXPENSE_SCALE = ['#ebedf0', '#ffcdd2', '#ef9a9a', '#e57373', '#c62828']


def _empty_figure(title: str = "No data to display") -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title=title)
    return fig


def create_trend_chart(buckets: Sequence[TrendBucket], title: str | None = None) -> go.Figure:
    """Income, expenses and balance per month as three lines.

    Parameters
    ----------
    buckets : sequence of TrendBucket
        Output of :func:`pocket_finance.trends.monthly_trend`, oldest first.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Multi-line chart with one trace per series.
    """
    if not buckets:
        return _empty_figure()
    frame = trend_frame(buckets).reset_index()
    frame['Month'] = frame['Month'].map(month_label)
    long_df = frame.melt(id_vars='Month', var_name='Series', value_name='Amount')
    fig = px.line(long_df, x='Month', y='Amount', color='Series', markers=True)
    fig.update_layout(
        title=title or "Income and expenses over time",
        xaxis_title="Month",
        yaxis_title="Amount",
    )
    return fig


def create_category_trend_chart(
    buckets: Sequence[TrendBucket], top_n: int = 5, title: str | None = None
) -> go.Figure:
    """Monthly totals of the largest expense categories."""
    categories = [name for name, _ in top_expense_categories(buckets, top_n)]
    if not buckets or not categories:
        return _empty_figure()
    rows = [
        {
            'Month': month_label(bucket.month),
            'Category': category,
            'Amount': bucket.expenses_by_category.get(category, 0.0),
        }
        for bucket in buckets
        for category in categories
    ]
    fig = px.line(pd.DataFrame(rows), x='Month', y='Amount', color='Category', markers=True)
    fig.update_layout(
        title=title or "Top expense categories",
        xaxis_title="Month",
        yaxis_title="Amount",
    )
    return fig


def create_category_pie_chart(by_category: Dict[str, float], title: str | None = None) -> go.Figure:
    """Pie chart of a category breakdown from :func:`summarize`."""
    if not by_category:
        return _empty_figure()
    df = pd.DataFrame(list(by_category.items()), columns=["Category", "Value"])
    fig = px.pie(df, names="Category", values="Value")
    fig.update_layout(title=title or "Category breakdown")
    return fig


def create_pocket_bar_chart(pockets: Sequence[Pocket], title: str | None = None) -> go.Figure:
    """Bar per pocket, coloured with the pocket's own colour."""
    if not pockets:
        return _empty_figure()
    fig = go.Figure(
        go.Bar(
            x=[p.name for p in pockets],
            y=[p.balance for p in pockets],
            marker_color=[p.color for p in pockets],
        )
    )
    fig.update_layout(
        title=title or "Pocket balances",
        xaxis_title="Pocket",
        yaxis_title="Balance",
    )
    return fig


def _scale(colors: Sequence[str]) -> list:
    steps = np.linspace(0, 1, len(colors))
    return [[float(step), color] for step, color in zip(steps, colors)]


def create_month_heatmap(cells: Sequence[HeatmapCell], year: int, month: int, title: str | None = None) -> go.Figure:
    """Calendar grid (weeks x weekdays) for :func:`month_heatmap` cells.

    Income-dominated and expense-dominated days are drawn as two traces so
    each keeps its own five-step colour scale.
    """
    if not cells:
        return _empty_figure()

    weeks = calendar.Calendar().monthdayscalendar(year, month)
    by_day = {cell.day: cell for cell in cells}
    shape = (len(weeks), 7)
    income_z = np.full(shape, np.nan)
    expense_z = np.full(shape, np.nan)
    text = np.full(shape, '', dtype=object)

    for row, week in enumerate(weeks):
        for col, day in enumerate(week):
            cell = by_day.get(day)
            if not day or cell is None:
                continue
            text[row, col] = str(day)
            if cell.dominant == INCOME:
                income_z[row, col] = cell.level
            elif cell.dominant == EXPENSE:
                expense_z[row, col] = cell.level
            else:
                income_z[row, col] = 0

    weekdays = list(calendar.day_abbr)
    week_labels = [f"Week {i + 1}" for i in range(len(weeks))]
    max_level = HEATMAP_LEVELS - 1
    fig = go.Figure()
    fig.add_trace(
        go.Heatmap(
            z=income_z, x=weekdays, y=week_labels, text=text, texttemplate="%{text}",
            colorscale=_scale(INCOME_SCALE), zmin=0, zmax=max_level, showscale=False, name="Income",
        )
    )
    fig.add_trace(
        go.Heatmap(
            z=expense_z, x=weekdays, y=week_labels, text=text, texttemplate="%{text}",
            colorscale=_scale(EXPENSE_SCALE), zmin=0, zmax=max_level, showscale=False, name="Expense",
        )
    )
    fig.update_yaxes(autorange="reversed")
    fig.update_layout(title=title or f"{calendar.month_name[month]} {year}")
    return fig
