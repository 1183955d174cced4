from pathlib import Path

import pytest
import streamlit as st
from streamlit.testing.v1 import AppTest

from pocket_finance.dashboard import currency_options, status_message, transaction_labels, transactions_table
from pocket_finance.ledger import LedgerStatus
from pocket_finance.models import CustomCurrency, Pocket, Transaction

DASHBOARD_PATH = Path(__file__).resolve().parents[1] / 'pocket_finance' / 'dashboard.py'


@pytest.fixture
def app(monkeypatch):
    monkeypatch.setenv('POCKET_FINANCE_STORE_BACKEND', 'memory')
    monkeypatch.setattr('pocket_finance.storage.STORE_BACKEND', 'memory')
    st.cache_resource.clear()
    at = AppTest.from_file(str(DASHBOARD_PATH), default_timeout=30)
    yield at.run()
    st.cache_resource.clear()


def _button(at, label):
    return next(b for b in at.button if b.label == label)


def test_every_status_has_its_own_message():
    messages = [status_message(status) for status in LedgerStatus]
    assert len(set(messages)) == len(messages)
    assert status_message(LedgerStatus.INSUFFICIENT_BALANCE) == "Insufficient balance in the source pocket."


def test_transactions_table_rows_are_newest_first():
    txns = [
        Transaction('a', 'expense', 12.5, 'Food', '2024-01-02', pocket_id='1'),
        Transaction('b', 'income', 1000, 'Salary', '2024-02-01', pocket_id='2', description='Pay'),
    ]
    table = transactions_table(txns, [Pocket('1', 'Cash'), Pocket('2', 'Bank')], 'Rp')

    assert list(table['id']) == ['b', 'a']
    assert table.iloc[0]['Amount'] == '+ Rp 1,000.00'
    assert table.iloc[1]['Amount'] == '- Rp 12.50'
    assert table.iloc[1]['Category'] == '🍔 Food'
    assert table.iloc[0]['Pocket'] == 'Bank'


def test_identical_transactions_keep_separate_labels():
    txns = [
        Transaction('a', 'expense', 5, 'Food', '2024-03-01', pocket_id='1'),
        Transaction('b', 'expense', 5, 'Food', '2024-03-01', pocket_id='1'),
    ]
    labels = transaction_labels(txns, 'Rp')

    assert set(labels) == {'a', 'b'}
    assert sorted(labels.values()) == ['2024-03-01 Food Rp 5.00', '2024-03-01 Food Rp 5.00 (2)']


def test_currency_options_include_custom_and_current_symbols():
    options = currency_options('CHF', [CustomCurrency('₿', 'Bitcoin'), CustomCurrency('$', 'Dollar')])

    assert options[:5] == ['Rp', '$', '€', '£', '¥']
    assert options[5:] == ['₿', 'CHF']


def test_dashboard_renders_on_an_empty_ledger(app):
    assert not app.exception
    assert [tab.label for tab in app.tabs] == [
        'Dashboard', 'Transactions', 'Pockets', 'Subscriptions', 'Calendar', 'Trends', 'Settings',
    ]


def test_category_choices_follow_the_transaction_type(app):
    app.selectbox(key='transaction-type').set_value('income').run()

    assert not app.exception
    options = app.selectbox(key='transaction-category-income').options
    assert 'Salary' in options
    assert 'Food' not in options


def test_added_income_keeps_the_chosen_category(app):
    app.selectbox(key='transaction-type').set_value('income').run()
    app.selectbox(key='transaction-category-income').set_value('Freelance')
    app.number_input(key='transaction-amount').set_value(250.0)
    _button(app, 'Add transaction').click().run()

    assert not app.exception
    categories = list(app.dataframe[0].value['Category'])
    assert len(categories) == 1
    assert categories[0].endswith('Freelance')


def test_settings_adds_a_category(app):
    app.text_input(key='new-category').set_value('Pets')
    _button(app, 'Add category').click().run()

    assert not app.exception
    assert 'Saved.' in [message.value for message in app.success]
    assert 'Pets' in app.selectbox(key='delete-category-expense').options
