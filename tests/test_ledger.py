import itertools
import json
import math
from datetime import date

import pytest

from pocket_finance.analytics import pocket_net_flows
from pocket_finance.ledger import LedgerStatus, LedgerStore
from pocket_finance.models import DEFAULT_CURRENCY, TRANSFER_CATEGORY, TRANSFER_LEG
from pocket_finance.storage import JsonFileStore, MemoryStore


def _build_ledger(store=None, today=date(2024, 5, 10)):
    counter = itertools.count(1)
    return LedgerStore(
        store if store is not None else MemoryStore(),
        id_factory=lambda: f"id-{next(counter)}",
        today=lambda: today,
    )


def _with_balances(ledger, cash, bank):
    ledger.update_pocket('1', balance=cash)
    ledger.update_pocket('2', balance=bank)
    return ledger


def _balances(ledger):
    return {p.id: p.balance for p in ledger.pockets}


def test_starts_with_defaults():
    ledger = _build_ledger()

    assert [p.name for p in ledger.pockets] == ['Cash', 'Bank Account']
    assert ledger.currency == DEFAULT_CURRENCY
    assert ledger.transactions == []
    assert 'Salary' in ledger.categories.income


def test_add_transaction_adjusts_pocket_balance():
    ledger = _build_ledger()
    ledger.add_transaction({'type': 'income', 'amount': 1000, 'category': 'Salary', 'date': '2024-05-01', 'pocket_id': '1'})
    expense = ledger.add_transaction({'type': 'expense', 'amount': 250, 'category': 'Food', 'date': '2024-05-02', 'pocketId': '1'})

    assert expense.id == 'id-2'
    assert ledger.get_pocket('1').balance == 750
    assert ledger.get_pocket('2').balance == 0


def test_add_then_delete_restores_balance():
    ledger = _with_balances(_build_ledger(), 123.5, 0)
    for tx_type, amount in [('income', 19.75), ('expense', 0.25), ('expense', 500)]:
        before = _balances(ledger)
        added = ledger.add_transaction({'type': tx_type, 'amount': amount, 'category': 'Food', 'date': '2024-05-01', 'pocket_id': '1'})
        assert ledger.delete_transaction(added.id) is LedgerStatus.OK
        assert _balances(ledger) == before
        assert ledger.get_transaction(added.id) is None


def test_unknown_pocket_reference_is_ignored():
    ledger = _build_ledger()
    ledger.add_transaction({'type': 'income', 'amount': 10, 'category': 'Gifts', 'date': '2024-05-01', 'pocket_id': 'nope'})

    assert _balances(ledger) == {'1': 0, '2': 0}
    assert len(ledger.transactions) == 1


def test_delete_unknown_transaction_is_a_successful_noop():
    ledger = _build_ledger()
    assert ledger.delete_transaction('missing') is LedgerStatus.OK


def test_malformed_amount_flows_into_balance_as_nan():
    ledger = _build_ledger()
    ledger.add_transaction({'type': 'expense', 'amount': 'abc', 'category': 'Food', 'date': '2024-05-01', 'pocket_id': '1'})

    assert math.isnan(ledger.get_pocket('1').balance)


def test_status_truthiness():
    assert LedgerStatus.OK
    rejections = [status for status in LedgerStatus if status is not LedgerStatus.OK]
    assert rejections
    assert not any(rejections)
    assert len(set(rejections)) == len(rejections)


def test_transfer_example_cash_to_bank():
    ledger = _with_balances(_build_ledger(), 100, 50)

    assert ledger.transfer_between_pockets('1', '2', 30) is LedgerStatus.OK

    assert ledger.get_pocket('1').balance == 70
    assert ledger.get_pocket('2').balance == 80
    out_leg, in_leg = ledger.transactions[-2:]
    assert (out_leg.type, out_leg.pocket_id, out_leg.amount) == ('expense', '1', 30)
    assert (in_leg.type, in_leg.pocket_id, in_leg.amount) == ('income', '2', 30)
    assert out_leg.category == in_leg.category == TRANSFER_CATEGORY
    assert out_leg.kind == in_leg.kind == TRANSFER_LEG
    assert out_leg.transfer_id == in_leg.transfer_id
    assert out_leg.transfer_to_pocket_id == '2'
    assert in_leg.transfer_from_pocket_id == '1'
    assert out_leg.date == in_leg.date == '2024-05-10'
    assert out_leg.description == 'Transfer to Bank Account'
    assert in_leg.description == 'Transfer from Cash'


def test_transfer_conserves_total_balance():
    ledger = _with_balances(_build_ledger(), 80.5, 19.25)
    before = sum(_balances(ledger).values())

    ledger.transfer_between_pockets('2', '1', 19.25)

    assert sum(_balances(ledger).values()) == pytest.approx(before)
    assert len(ledger.transactions) == 2


@pytest.mark.parametrize(
    'from_id, to_id, amount, expected',
    [
        ('1', '2', 101, LedgerStatus.INSUFFICIENT_BALANCE),
        ('1', '1', 10, LedgerStatus.SAME_POCKET),
        ('1', 'ghost', 10, LedgerStatus.POCKET_NOT_FOUND),
        ('ghost', '2', 10, LedgerStatus.POCKET_NOT_FOUND),
    ],
)
def test_rejected_transfer_changes_nothing(from_id, to_id, amount, expected):
    ledger = _with_balances(_build_ledger(), 100, 50)
    before = ledger.export_data()

    status = ledger.transfer_between_pockets(from_id, to_id, amount)

    assert status is expected
    assert not status
    assert ledger.export_data() == before


def test_transfer_legs_are_not_deletable():
    ledger = _with_balances(_build_ledger(), 100, 0)
    ledger.transfer_between_pockets('1', '2', 10)
    ordinary = ledger.add_transaction({'type': 'expense', 'amount': 1, 'category': 'Food', 'date': '2024-05-01'})

    assert not any(ledger.is_deletable(t) for t in ledger.transactions if t.is_transfer_leg)
    assert ledger.is_deletable(ordinary)


def test_cached_balances_match_recomputed_flows():
    ledger = _build_ledger()
    ledger.add_transaction({'type': 'income', 'amount': 500, 'category': 'Salary', 'date': '2024-05-01', 'pocket_id': '1'})
    ledger.add_transaction({'type': 'expense', 'amount': 75, 'category': 'Food', 'date': '2024-05-02', 'pocket_id': '1'})
    ledger.transfer_between_pockets('1', '2', 200)
    removed = ledger.add_transaction({'type': 'expense', 'amount': 20, 'category': 'Food', 'date': '2024-05-03', 'pocket_id': '2'})
    ledger.delete_transaction(removed.id)

    flows = pocket_net_flows(ledger.transactions)
    assert flows == {'1': 225.0, '2': 200.0}
    assert _balances(ledger) == flows


def test_category_lifecycle():
    ledger = _build_ledger()

    assert ledger.add_category('expense', 'Pets') is LedgerStatus.OK
    assert ledger.add_category('expense', 'Pets') is LedgerStatus.DUPLICATE_CATEGORY
    ledger.add_transaction({'type': 'expense', 'amount': 5, 'category': 'Pets', 'date': '2024-05-01'})

    assert ledger.delete_category('expense', 'Pets') is LedgerStatus.CATEGORY_IN_USE
    # the same name under the other type is not in use
    assert ledger.delete_category('income', 'Pets') is LedgerStatus.OK
    assert 'Pets' in ledger.categories.expense


def test_add_pocket_returns_id_with_initial_balance():
    ledger = _build_ledger()
    pocket_id = ledger.add_pocket({'name': 'Savings', 'color': '#000000', 'icon': 'piggy'}, 250)

    pocket = ledger.get_pocket(pocket_id)
    assert pocket.name == 'Savings'
    assert pocket.balance == 250
    assert len(ledger.pockets) == 3


def test_update_pocket_keeps_balance_unless_given():
    ledger = _with_balances(_build_ledger(), 40, 0)

    assert ledger.update_pocket('1', name='Wallet', color='#ffffff') is LedgerStatus.OK
    assert ledger.get_pocket('1').balance == 40
    assert ledger.get_pocket('1').name == 'Wallet'
    assert ledger.update_pocket('missing', name='x') is LedgerStatus.POCKET_NOT_FOUND


def test_delete_pocket_rules():
    ledger = _build_ledger()
    ledger.add_transaction({'type': 'income', 'amount': 1, 'category': 'Gifts', 'date': '2024-05-01', 'pocket_id': '2'})

    assert ledger.delete_pocket('2') is LedgerStatus.POCKET_IN_USE
    assert ledger.delete_pocket('missing') is LedgerStatus.OK
    assert ledger.delete_pocket('1') is LedgerStatus.OK
    assert [p.id for p in ledger.pockets] == ['2']


def test_last_pocket_cannot_be_deleted():
    ledger = _build_ledger()
    ledger.delete_pocket('2')
    before = ledger.export_data()

    assert ledger.delete_pocket('1') is LedgerStatus.LAST_POCKET
    assert ledger.export_data() == before


def test_subscriptions_have_no_balance_effect():
    ledger = _build_ledger()
    sub = ledger.add_subscription({'name': 'Netflix', 'amount': 15, 'category': 'Entertainment',
                                   'billing_cycle': 'monthly', 'next_billing_date': '2024-06-01', 'pocket_id': '1'})

    assert sub.billing_cycle == 'monthly'
    assert _balances(ledger) == {'1': 0, '2': 0}
    assert ledger.delete_subscription(sub.id) is LedgerStatus.OK
    assert ledger.subscriptions == []


def test_custom_currency_selection():
    ledger = _build_ledger()

    assert ledger.add_custom_currency('₿', 'Bitcoin') is LedgerStatus.OK
    assert ledger.currency == '₿'
    assert ledger.add_custom_currency('₿', 'Again') is LedgerStatus.DUPLICATE_CURRENCY
    ledger.remove_custom_currency('₿')
    assert ledger.currency == DEFAULT_CURRENCY
    assert ledger.set_currency('$') is LedgerStatus.OK
    assert ledger.currency == '$'


def test_import_without_pockets_falls_back_to_defaults():
    ledger = _build_ledger()
    ledger.add_pocket({'name': 'Savings'}, 10)
    ledger.add_transaction({'type': 'income', 'amount': 5, 'category': 'Gifts', 'date': '2024-05-01'})

    ledger.import_data({'currency': '€'})

    assert [p.name for p in ledger.pockets] == ['Cash', 'Bank Account']
    assert ledger.currency == '€'
    # absent keys keep the current value
    assert len(ledger.transactions) == 1


def test_export_import_round_trip():
    source = _with_balances(_build_ledger(), 100, 0)
    source.add_transaction({'type': 'expense', 'amount': 10, 'category': 'Food', 'date': '2024-05-01', 'pocket_id': '1'})
    source.transfer_between_pockets('1', '2', 20)
    exported = json.loads(json.dumps(source.export_data()))

    target = _build_ledger()
    target.import_data(exported)

    assert target.export_data() == source.export_data()
    assert set(exported) == {'transactions', 'subscriptions', 'categories', 'currency', 'customCurrencies', 'pockets'}


def test_clear_all_data_keeps_currency():
    ledger = _build_ledger()
    ledger.set_currency('$')
    ledger.add_category('income', 'Lottery')
    ledger.add_transaction({'type': 'income', 'amount': 5, 'category': 'Lottery', 'date': '2024-05-01', 'pocket_id': '1'})

    ledger.clear_all_data()

    assert ledger.transactions == []
    assert 'Lottery' not in ledger.categories.income
    assert _balances(ledger) == {'1': 0, '2': 0}
    assert ledger.currency == '$'


def test_every_mutation_is_persisted(tmp_path):
    path = tmp_path / 'ledger.json'
    ledger = _build_ledger(JsonFileStore(path))
    ledger.add_transaction({'type': 'income', 'amount': 42, 'category': 'Salary', 'date': '2024-05-01', 'pocket_id': '1'})
    ledger.set_currency('$')

    reloaded = _build_ledger(JsonFileStore(path))
    assert reloaded.currency == '$'
    assert reloaded.get_pocket('1').balance == 42
    assert [t.category for t in reloaded.transactions] == ['Salary']

    raw = json.loads(path.read_text(encoding='utf-8'))
    assert raw['currency'] == '$'
    assert isinstance(json.loads(raw['transactions']), list)


def test_missing_keys_fall_back_to_defaults():
    store = MemoryStore({'currency': '¥', 'transactions': '[]'})
    ledger = _build_ledger(store)

    assert ledger.currency == '¥'
    assert [p.name for p in ledger.pockets] == ['Cash', 'Bank Account']
    assert 'Food' in ledger.categories.expense


def test_write_failures_propagate():
    class FailingStore(MemoryStore):
        def set(self, key, value):
            raise OSError('quota exceeded')

    ledger = _build_ledger(FailingStore())
    with pytest.raises(OSError):
        ledger.add_category('income', 'Bonus')


def test_snapshot_is_detached_from_ledger():
    ledger = _with_balances(_build_ledger(), 10, 0)
    snapshot = ledger.snapshot()

    ledger.transfer_between_pockets('1', '2', 5)

    assert snapshot.transactions == ()
    assert snapshot.pockets[0].balance == 10
