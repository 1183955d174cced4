"""Streamlit app for the pocket finance tracker.

The app owns one :class:`LedgerStore` (cached as a Streamlit resource) and
renders the analytics view models: the period summary, the transaction
list, pockets and transfers, subscriptions, the calendar heatmap, the
trend analysis and the settings (currency, categories, import and reset).
All mutations go through the ledger; every chart is built from a fresh
snapshot.

To run the dashboard from the command line::

    streamlit run pocket_finance/dashboard.py
"""

from __future__ import annotations

import json
import os
import sys
from datetime import date
from typing import Dict, List, Sequence

import pandas as pd
import streamlit as st

# Support both ``streamlit run pocket_finance/dashboard.py`` and package use.
if __package__:
    from . import analytics, heatmap, subscriptions, trends
    from . import visualization as viz
    from .backup import export_filename, import_file, write_export
    from .formatting import category_icon, format_billing_cycle, format_currency, format_percentage
    from .ledger import LedgerStatus, LedgerStore
    from .models import BILLING_CYCLES, EXPENSE, INCOME, CustomCurrency, Pocket, Transaction
    from .storage import open_store
else:
    CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
    PARENT_DIR = os.path.dirname(CURRENT_DIR)
    if PARENT_DIR not in sys.path:
        sys.path.insert(0, PARENT_DIR)
    from pocket_finance import analytics, heatmap, subscriptions, trends  # type: ignore
    from pocket_finance import visualization as viz  # type: ignore
    from pocket_finance.backup import export_filename, import_file, write_export  # type: ignore
    from pocket_finance.formatting import (  # type: ignore
        category_icon,
        format_billing_cycle,
        format_currency,
        format_percentage,
    )
    from pocket_finance.ledger import LedgerStatus, LedgerStore  # type: ignore
    from pocket_finance.models import (  # type: ignore
        BILLING_CYCLES,
        EXPENSE,
        INCOME,
        CustomCurrency,
        Pocket,
        Transaction,
    )
    from pocket_finance.storage import open_store  # type: ignore

STANDARD_CURRENCIES = ['Rp', '$', '€', '£', '¥']

PERIOD_LABELS = {'Week': 'week', 'Month': 'month', 'Quarter': 'quarter', 'Year': 'year'}

STATUS_MESSAGES: Dict[LedgerStatus, str] = {
    LedgerStatus.OK: "Saved.",
    LedgerStatus.DUPLICATE_CATEGORY: "That category already exists.",
    LedgerStatus.CATEGORY_IN_USE: "Cannot delete a category that is used by transactions.",
    LedgerStatus.POCKET_IN_USE: "Cannot delete a pocket that has transactions.",
    LedgerStatus.LAST_POCKET: "You need at least one pocket.",
    LedgerStatus.POCKET_NOT_FOUND: "Pocket not found.",
    LedgerStatus.SAME_POCKET: "Choose two different pockets.",
    LedgerStatus.INSUFFICIENT_BALANCE: "Insufficient balance in the source pocket.",
    LedgerStatus.DUPLICATE_CURRENCY: "That currency symbol already exists.",
}


def status_message(status: LedgerStatus) -> str:
    return STATUS_MESSAGES.get(status, str(status.value))


def transactions_table(
    transactions: Sequence[Transaction], pockets: Sequence[Pocket], currency: str
) -> pd.DataFrame:
    """Rows for the transaction list, newest first."""
    names = {p.id: p.name for p in pockets}
    rows = []
    for t in analytics.sort_by_date(transactions):
        sign = '+' if t.type == INCOME else '-'
        rows.append(
            {
                'Date': t.date,
                'Category': f"{category_icon(t.category)} {t.category}",
                'Description': t.description or '',
                'Pocket': names.get(t.pocket_id, ''),
                'Amount': f"{sign} {format_currency(t.amount, currency)}",
                'id': t.id,
            }
        )
    return pd.DataFrame(rows, columns=['Date', 'Category', 'Description', 'Pocket', 'Amount', 'id'])


def transaction_labels(transactions: Sequence[Transaction], currency: str) -> Dict[str, str]:
    """Picker labels keyed by transaction id, newest first.

    Repeated labels get a ``(2)``, ``(3)``... suffix so every entry stays
    distinguishable.
    """
    labels: Dict[str, str] = {}
    seen: Dict[str, int] = {}
    for t in analytics.sort_by_date(transactions):
        label = f"{t.date} {t.category} {format_currency(t.amount, currency)}"
        seen[label] = seen.get(label, 0) + 1
        if seen[label] > 1:
            label = f"{label} ({seen[label]})"
        labels[t.id] = label
    return labels


def currency_options(current: str, custom_currencies: Sequence[CustomCurrency]) -> List[str]:
    """Built-in symbols, then custom ones, then ``current`` if it is neither."""
    options = list(STANDARD_CURRENCIES)
    for currency in custom_currencies:
        if currency.symbol not in options:
            options.append(currency.symbol)
    if current not in options:
        options.append(current)
    return options


@st.cache_resource
def get_ledger() -> LedgerStore:
    return LedgerStore(open_store())


def _report(status: LedgerStatus) -> None:
    if status:
        st.success(status_message(status))
    else:
        st.error(status_message(status))


def render_summary(ledger: LedgerStore, period: str) -> None:
    snapshot = ledger.snapshot()
    selected = analytics.filter_by_period(snapshot.transactions, period)
    summary = analytics.summarize(selected)
    cost = subscriptions.monthly_subscription_cost(snapshot.subscriptions)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Balance", format_currency(summary.balance, snapshot.currency))
    col2.metric("Income", format_currency(summary.total_income, snapshot.currency))
    col3.metric("Expenses", format_currency(summary.total_expenses, snapshot.currency))
    col4.metric("Subscriptions / month", format_currency(cost, snapshot.currency))

    left, right = st.columns(2)
    left.plotly_chart(
        viz.create_category_pie_chart(summary.income_by_category, "Income by category"), key="income-pie"
    )
    right.plotly_chart(
        viz.create_category_pie_chart(summary.expenses_by_category, "Expenses by category"), key="expense-pie"
    )


def render_transactions(ledger: LedgerStore) -> None:
    snapshot = ledger.snapshot()
    pocket_names = {p.id: p.name for p in snapshot.pockets}

    # Outside the form so the category list follows the chosen type.
    tx_type = st.selectbox("Type", [EXPENSE, INCOME], key="transaction-type")
    with st.form("add-transaction", clear_on_submit=True):
        category = st.selectbox(
            "Category", snapshot.categories.names(tx_type), key=f"transaction-category-{tx_type}"
        )
        amount = st.number_input("Amount", min_value=0.0, step=1.0, key="transaction-amount")
        tx_date = st.date_input("Date", value=date.today(), key="transaction-date")
        pocket_id = st.selectbox(
            "Pocket", list(pocket_names), format_func=pocket_names.get, key="transaction-pocket"
        )
        description = st.text_input("Description", key="transaction-description")
        if st.form_submit_button("Add transaction"):
            ledger.add_transaction(
                {
                    'type': tx_type,
                    'amount': amount,
                    'category': category,
                    'date': tx_date.isoformat(),
                    'pocket_id': pocket_id,
                    'description': description or None,
                }
            )
            st.success("Transaction added.")

    snapshot = ledger.snapshot()
    type_filter = st.selectbox("Show", ['all', INCOME, EXPENSE], key="transaction-filter")
    visible = analytics.filter_transactions(snapshot.transactions, transaction_type=type_filter)
    table = transactions_table(visible, snapshot.pockets, snapshot.currency)
    st.dataframe(table.drop(columns=['id']), use_container_width=True)

    labels = transaction_labels([t for t in visible if ledger.is_deletable(t)], snapshot.currency)
    if labels:
        choice = st.selectbox(
            "Delete transaction", list(labels), format_func=labels.get, key="delete-transaction"
        )
        if st.button("Delete", key="delete-transaction-button"):
            _report(ledger.delete_transaction(choice))


def render_pockets(ledger: LedgerStore) -> None:
    snapshot = ledger.snapshot()
    st.plotly_chart(viz.create_pocket_bar_chart(snapshot.pockets), key="pocket-balances")

    names = {p.name: p.id for p in snapshot.pockets}
    with st.form("transfer"):
        source = st.selectbox("From", list(names))
        destination = st.selectbox("To", list(names), index=min(1, len(names) - 1))
        amount = st.number_input("Amount", min_value=0.0, step=1.0, key="transfer-amount")
        if st.form_submit_button("Transfer"):
            _report(ledger.transfer_between_pockets(names[source], names[destination], amount))

    with st.form("add-pocket", clear_on_submit=True):
        name = st.text_input("Pocket name")
        color = st.color_picker("Colour", value="#9e9e9e")
        initial = st.number_input("Initial balance", min_value=0.0, step=1.0)
        if st.form_submit_button("Add pocket") and name:
            ledger.add_pocket({'name': name, 'color': color, 'icon': 'wallet'}, initial)
            st.success("Pocket added.")

    st.subheader("Edit pocket")
    snapshot = ledger.snapshot()
    pocket_names = {p.id: p.name for p in snapshot.pockets}
    pocket_id = st.selectbox("Pocket", list(pocket_names), format_func=pocket_names.get, key="edit-pocket")
    new_name = st.text_input("New name", key="edit-pocket-name")
    col1, col2 = st.columns(2)
    if col1.button("Rename", key="rename-pocket"):
        _report(ledger.update_pocket(pocket_id, name=new_name.strip() or None))
    if col2.button("Delete pocket", key="delete-pocket"):
        _report(ledger.delete_pocket(pocket_id))

    pairs = analytics.transfer_pairs(snapshot.transactions)
    if not pairs.empty:
        st.subheader("Transfers")
        st.dataframe(pairs, use_container_width=True)


def render_subscriptions(ledger: LedgerStore) -> None:
    snapshot = ledger.snapshot()
    pocket_names = {p.id: p.name for p in snapshot.pockets}
    with st.form("add-subscription", clear_on_submit=True):
        name = st.text_input("Name", key="subscription-name")
        amount = st.number_input("Amount", min_value=0.0, step=1.0, key="subscription-amount")
        category = st.selectbox(
            "Category", snapshot.categories.names(EXPENSE), key="subscription-category"
        )
        cycle = st.selectbox(
            "Billing cycle",
            list(BILLING_CYCLES),
            index=1,
            format_func=format_billing_cycle,
            key="subscription-cycle",
        )
        next_date = st.date_input("Next billing date", value=date.today(), key="subscription-next-billing")
        pocket_id = st.selectbox(
            "Pocket", list(pocket_names), format_func=pocket_names.get, key="subscription-pocket"
        )
        if st.form_submit_button("Add subscription"):
            if name.strip():
                ledger.add_subscription(
                    {
                        'name': name.strip(),
                        'amount': amount,
                        'category': category,
                        'billing_cycle': cycle,
                        'next_billing_date': next_date.isoformat(),
                        'pocket_id': pocket_id,
                    }
                )
                st.success("Subscription added.")
            else:
                st.error("Enter a subscription name.")

    snapshot = ledger.snapshot()
    rows = [
        {
            'Name': s.name,
            'Cycle': format_billing_cycle(s.billing_cycle),
            'Amount': format_currency(s.amount, snapshot.currency),
            'Monthly': format_currency(subscriptions.monthly_equivalent(s), snapshot.currency),
            'Next billing': s.next_billing_date,
        }
        for s in snapshot.subscriptions
    ]
    st.dataframe(pd.DataFrame(rows), use_container_width=True)
    upcoming = subscriptions.upcoming_billings(snapshot.subscriptions)
    for subscription, due in upcoming:
        st.write(f"{due}: {subscription.name}")

    if snapshot.subscriptions:
        labels = {
            s.id: f"{s.name} ({format_currency(s.amount, snapshot.currency)})" for s in snapshot.subscriptions
        }
        choice = st.selectbox(
            "Delete subscription", list(labels), format_func=labels.get, key="delete-subscription"
        )
        if st.button("Delete", key="delete-subscription-button"):
            _report(ledger.delete_subscription(choice))


def render_calendar(ledger: LedgerStore) -> None:
    today = date.today()
    col1, col2 = st.columns(2)
    year = int(col1.number_input("Year", value=today.year, step=1))
    month = int(col2.selectbox("Month", list(range(1, 13)), index=today.month - 1))
    cells = heatmap.month_heatmap(ledger.snapshot().transactions, year, month)
    st.plotly_chart(viz.create_month_heatmap(cells, year, month), key="month-heatmap")


def render_trends(ledger: LedgerStore) -> None:
    snapshot = ledger.snapshot()
    buckets = trends.monthly_trend(snapshot.transactions)
    analysis = trends.analyze_trend(buckets)
    insight = trends.savings_insight(analysis.savings_rate)

    col1, col2, col3 = st.columns(3)
    col1.metric("Average savings rate", format_percentage(analysis.savings_rate))
    col2.metric("Next month income", format_currency(analysis.prediction.next_month_income, snapshot.currency))
    col3.metric("Next month expenses", format_currency(analysis.prediction.next_month_expenses, snapshot.currency))
    show = {'danger': st.error, 'warning': st.warning, 'success': st.success}.get(insight.level, st.info)
    show(insight.message)
    st.plotly_chart(viz.create_trend_chart(buckets), key="trend-chart")
    st.plotly_chart(viz.create_category_trend_chart(buckets), key="category-trend-chart")


def render_settings(ledger: LedgerStore) -> None:
    snapshot = ledger.snapshot()

    st.subheader("Currency")
    options = currency_options(snapshot.currency, snapshot.custom_currencies)
    symbol = st.selectbox("Currency", options, index=options.index(snapshot.currency), key="currency")
    if st.button("Use currency", key="set-currency"):
        _report(ledger.set_currency(symbol))

    with st.form("add-currency", clear_on_submit=True):
        custom_symbol = st.text_input("Symbol", key="custom-currency-symbol")
        custom_name = st.text_input("Name", key="custom-currency-name")
        if st.form_submit_button("Add currency"):
            if custom_symbol.strip() and custom_name.strip():
                _report(ledger.add_custom_currency(custom_symbol.strip(), custom_name.strip()))
            else:
                st.error("Enter both a currency symbol and a name.")

    if snapshot.custom_currencies:
        custom = {c.symbol: f"{c.symbol} - {c.name}" for c in snapshot.custom_currencies}
        removed = st.selectbox(
            "Custom currency", list(custom), format_func=custom.get, key="remove-currency"
        )
        if st.button("Remove currency", key="remove-currency-button"):
            _report(ledger.remove_custom_currency(removed))

    st.subheader("Categories")
    category_type = st.selectbox("Category type", [EXPENSE, INCOME], key="settings-category-type")
    with st.form("add-category", clear_on_submit=True):
        new_category = st.text_input("Category name", key="new-category")
        if st.form_submit_button("Add category") and new_category.strip():
            _report(ledger.add_category(category_type, new_category.strip()))
    names = ledger.snapshot().categories.names(category_type)
    if names:
        doomed = st.selectbox("Category", names, key=f"delete-category-{category_type}")
        if st.button("Delete category", key="delete-category-button"):
            _report(ledger.delete_category(category_type, doomed))

    st.subheader("Data")
    st.download_button(
        "Download export",
        json.dumps(ledger.export_data(), indent=2, ensure_ascii=False),
        file_name=export_filename(),
        mime="application/json",
        key="download-export",
    )
    uploaded = st.file_uploader("Import data", type=["json"], key="import-file")
    if uploaded is not None and st.button("Import", key="import-button"):
        try:
            _report(import_file(ledger, uploaded))
        except ValueError as exc:
            st.error(f"Import failed: {exc}")

    confirm = st.checkbox("I understand this removes every transaction, subscription and pocket", key="confirm-clear")
    if st.button("Clear all data", disabled=not confirm, key="clear-data"):
        _report(ledger.clear_all_data())


def main() -> None:
    """Entry point for the Streamlit app."""
    st.set_page_config(page_title="Pocket Finance", layout="wide", initial_sidebar_state="expanded")
    st.title("Pocket Finance")
    ledger = get_ledger()

    period_label = st.sidebar.selectbox("Period", list(PERIOD_LABELS), index=1)
    if st.sidebar.button("Export data"):
        st.sidebar.success(f"Exported to {write_export(ledger)}")

    tabs = st.tabs(["Dashboard", "Transactions", "Pockets", "Subscriptions", "Calendar", "Trends", "Settings"])
    with tabs[0]:
        render_summary(ledger, PERIOD_LABELS[period_label])
    with tabs[1]:
        render_transactions(ledger)
    with tabs[2]:
        render_pockets(ledger)
    with tabs[3]:
        render_subscriptions(ledger)
    with tabs[4]:
        render_calendar(ledger)
    with tabs[5]:
        render_trends(ledger)
    with tabs[6]:
        render_settings(ledger)


if __name__ == "__main__":  # pragma: no cover
    main()
