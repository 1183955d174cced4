import plotly.graph_objects as go

from pocket_finance import visualization as viz
from pocket_finance.heatmap import month_heatmap
from pocket_finance.models import Pocket, Transaction
from pocket_finance.trends import TrendBucket


def _buckets():
    return [
        TrendBucket('2024-05', 100, 40, 60, {'Food': 40}, 2),
        TrendBucket('2024-06', 120, 70, 50, {'Food': 50, 'Fun': 20}, 3),
    ]


def test_empty_inputs_give_placeholder_figures():
    for fig in (
        viz.create_trend_chart([]),
        viz.create_category_trend_chart([]),
        viz.create_category_pie_chart({}),
        viz.create_pocket_bar_chart([]),
        viz.create_month_heatmap([], 2024, 6),
    ):
        assert isinstance(fig, go.Figure)
        assert fig.layout.title.text == "No data to display"


def test_trend_chart_has_three_series():
    fig = viz.create_trend_chart(_buckets())
    assert {trace.name for trace in fig.data} == {'Income', 'Expenses', 'Balance'}
    assert list(fig.data[0].x) == ['May 2024', 'Jun 2024']


def test_category_trend_chart_uses_top_categories():
    fig = viz.create_category_trend_chart(_buckets(), top_n=1)
    assert [trace.name for trace in fig.data] == ['Food']


def test_pocket_bar_chart_uses_pocket_colours():
    fig = viz.create_pocket_bar_chart([Pocket('1', 'Cash', 5, '#4caf50'), Pocket('2', 'Bank', 8, '#2196f3')])
    assert list(fig.data[0].marker.color) == ['#4caf50', '#2196f3']


def test_month_heatmap_figure_has_income_and_expense_layers():
    cells = month_heatmap([Transaction('1', 'expense', 10, 'Food', '2024-06-03')], 2024, 6)
    fig = viz.create_month_heatmap(cells, 2024, 6)

    assert [trace.name for trace in fig.data] == ['Income', 'Expense']
    assert fig.layout.title.text == 'June 2024'
