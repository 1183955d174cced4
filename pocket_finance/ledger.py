"""Ledger state container: transactions, subscriptions, pockets and categories.

``LedgerStore`` is the single owner of the mutable ledger.  Every mutation
keeps the cached pocket balances consistent with the transaction history and
writes the full state through the injected key-value store before returning.
Rejections are reported as falsy :class:`LedgerStatus` members instead of
exceptions so callers can show a precise message for each case.

Pocket balances are cached and updated on the add/delete/transfer paths
only.  ``analytics.pocket_net_flows`` recomputes the same figures from the
transaction history and is used by the tests to check the cache.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .log import get_logger
from .models import (
    DEFAULT_CURRENCY,
    EXPENSE,
    INCOME,
    TRANSFER_CATEGORY,
    TRANSFER_LEG,
    CategorySet,
    CustomCurrency,
    Pocket,
    Subscription,
    Transaction,
    default_pockets,
    parse_amount,
)
from .storage import KeyValueStore

logger = get_logger(__name__)

TRANSACTIONS_KEY = 'transactions'
SUBSCRIPTIONS_KEY = 'subscriptions'
CATEGORIES_KEY = 'categories'
CURRENCY_KEY = 'currency'
CUSTOM_CURRENCIES_KEY = 'customCurrencies'
POCKETS_KEY = 'pockets'

STATE_KEYS = (
    TRANSACTIONS_KEY,
    SUBSCRIPTIONS_KEY,
    CATEGORIES_KEY,
    CURRENCY_KEY,
    CUSTOM_CURRENCIES_KEY,
    POCKETS_KEY,
)

# Draft keys accepted in snake_case and mapped onto the wire names
_DRAFT_ALIASES = {
    'pocket_id': 'pocketId',
    'billing_cycle': 'billingCycle',
    'next_billing_date': 'nextBillingDate',
}

_POCKET_FIELDS = ('name', 'balance', 'color', 'icon')


class LedgerStatus(Enum):
    """Outcome of a ledger mutation.  Only ``OK`` is truthy."""

    OK = 'ok'
    DUPLICATE_CATEGORY = 'duplicate_category'
    CATEGORY_IN_USE = 'category_in_use'
    POCKET_IN_USE = 'pocket_in_use'
    LAST_POCKET = 'last_pocket'
    POCKET_NOT_FOUND = 'pocket_not_found'
    SAME_POCKET = 'same_pocket'
    INSUFFICIENT_BALANCE = 'insufficient_balance'
    DUPLICATE_CURRENCY = 'duplicate_currency'

    def __bool__(self) -> bool:
        return self is LedgerStatus.OK


@dataclass(frozen=True)
class LedgerSnapshot:
    """Read-only copy of the ledger handed to the analytics functions."""

    transactions: Tuple[Transaction, ...]
    subscriptions: Tuple[Subscription, ...]
    categories: CategorySet
    currency: str
    custom_currencies: Tuple[CustomCurrency, ...]
    pockets: Tuple[Pocket, ...]


def _new_id() -> str:
    return uuid.uuid4().hex


def _normalise_draft(draft: Mapping[str, Any]) -> Dict[str, Any]:
    return {_DRAFT_ALIASES.get(key, key): value for key, value in dict(draft).items()}


class LedgerStore:
    """Owns the ledger collections and persists them after every mutation.

    Args:
        store: Durable key-value store the state is read from and written to.
        id_factory: Callable returning a fresh unique id string.
        today: Callable returning the current date; used to date transfer legs.
    """

    def __init__(
        self,
        store: KeyValueStore,
        id_factory: Callable[[], str] = _new_id,
        today: Callable[[], date] = date.today,
    ):
        self._store = store
        self._new_id = id_factory
        self._today = today

        self.transactions: List[Transaction] = []
        self.subscriptions: List[Subscription] = []
        self.categories: CategorySet = CategorySet.defaults()
        self.currency: str = DEFAULT_CURRENCY
        self.custom_currencies: List[CustomCurrency] = []
        self.pockets: List[Pocket] = default_pockets()

        self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def _read_json(self, key: str) -> Any:
        raw = self._store.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def _load(self) -> None:
        """Rehydrate each key from the store; missing keys keep their defaults."""
        transactions = self._read_json(TRANSACTIONS_KEY)
        if isinstance(transactions, list):
            self.transactions = [Transaction.from_dict(row) for row in transactions]

        subscriptions = self._read_json(SUBSCRIPTIONS_KEY)
        if isinstance(subscriptions, list):
            self.subscriptions = [Subscription.from_dict(row) for row in subscriptions]

        categories = self._read_json(CATEGORIES_KEY)
        if isinstance(categories, dict):
            self.categories = CategorySet.from_dict(categories)

        currency = self._store.get(CURRENCY_KEY)
        if currency:
            self.currency = currency

        custom = self._read_json(CUSTOM_CURRENCIES_KEY)
        if isinstance(custom, list):
            self.custom_currencies = [CustomCurrency.from_dict(row) for row in custom]

        pockets = self._read_json(POCKETS_KEY)
        if isinstance(pockets, list) and pockets:
            self.pockets = [Pocket.from_dict(row) for row in pockets]

        logger.debug(
            "Loaded ledger with %d transactions, %d subscriptions and %d pockets",
            len(self.transactions), len(self.subscriptions), len(self.pockets),
        )

    def _save(self) -> None:
        payload = {
            TRANSACTIONS_KEY: json.dumps([t.to_dict() for t in self.transactions]),
            SUBSCRIPTIONS_KEY: json.dumps([s.to_dict() for s in self.subscriptions]),
            CATEGORIES_KEY: json.dumps(self.categories.to_dict()),
            CURRENCY_KEY: self.currency,
            CUSTOM_CURRENCIES_KEY: json.dumps([c.to_dict() for c in self.custom_currencies]),
            POCKETS_KEY: json.dumps([p.to_dict() for p in self.pockets]),
        }
        self._store.set_many(payload)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def get_pocket(self, pocket_id: Optional[str]) -> Optional[Pocket]:
        for pocket in self.pockets:
            if pocket.id == pocket_id:
                return pocket
        return None

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            transactions=tuple(self.transactions),
            subscriptions=tuple(self.subscriptions),
            categories=CategorySet.from_dict(self.categories.to_dict()),
            currency=self.currency,
            custom_currencies=tuple(self.custom_currencies),
            pockets=tuple(replace(p) for p in self.pockets),
        )

    @staticmethod
    def is_deletable(transaction: Transaction) -> bool:
        """Transfer legs are removed only together with the transfer itself."""
        return not transaction.is_transfer_leg

    def _apply_balance(self, transaction: Transaction, direction: int) -> None:
        pocket = self.get_pocket(transaction.pocket_id) if transaction.pocket_id else None
        if pocket is None:
            return
        pocket.balance = parse_amount(pocket.balance) + direction * transaction.signed_amount

    # ------------------------------------------------------------------
    # Transactions and subscriptions
    # ------------------------------------------------------------------
    def add_transaction(self, draft: Mapping[str, Any]) -> Transaction:
        """Record a transaction and move its amount into the referenced pocket.

        Category and date are stored as given.  The amount is parsed with
        :func:`parse_amount`, so a malformed amount is kept as NaN and flows
        into the pocket balance.
        """
        fields = _normalise_draft(draft)
        fields['id'] = self._new_id()
        fields['amount'] = parse_amount(fields.get('amount'))
        transaction = Transaction.from_dict(fields)

        self.transactions.append(transaction)
        self._apply_balance(transaction, 1)
        self._save()
        logger.debug("Added %s transaction %s (%s)", transaction.type, transaction.id, transaction.category)
        return transaction

    def delete_transaction(self, transaction_id: str) -> LedgerStatus:
        transaction = self.get_transaction(transaction_id)
        if transaction is not None:
            self._apply_balance(transaction, -1)
        self.transactions = [t for t in self.transactions if t.id != transaction_id]
        self._save()
        logger.debug("Deleted transaction %s", transaction_id)
        return LedgerStatus.OK

    def add_subscription(self, draft: Mapping[str, Any]) -> Subscription:
        fields = _normalise_draft(draft)
        fields['id'] = self._new_id()
        fields['amount'] = parse_amount(fields.get('amount'))
        subscription = Subscription.from_dict(fields)
        self.subscriptions.append(subscription)
        self._save()
        logger.debug("Added subscription %s (%s)", subscription.id, subscription.name)
        return subscription

    def delete_subscription(self, subscription_id: str) -> LedgerStatus:
        self.subscriptions = [s for s in self.subscriptions if s.id != subscription_id]
        self._save()
        logger.debug("Deleted subscription %s", subscription_id)
        return LedgerStatus.OK

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    def add_category(self, category_type: str, name: str) -> LedgerStatus:
        names = self.categories.names(category_type)
        if name in names:
            logger.info("Category '%s' already exists for %s", name, category_type)
            return LedgerStatus.DUPLICATE_CATEGORY
        names.append(name)
        self._save()
        logger.debug("Added %s category '%s'", category_type, name)
        return LedgerStatus.OK

    def delete_category(self, category_type: str, name: str) -> LedgerStatus:
        in_use = any(t.type == category_type and t.category == name for t in self.transactions)
        if in_use:
            logger.info("Category '%s' is still used by %s transactions", name, category_type)
            return LedgerStatus.CATEGORY_IN_USE
        names = self.categories.names(category_type)
        names[:] = [n for n in names if n != name]
        self._save()
        logger.debug("Deleted %s category '%s'", category_type, name)
        return LedgerStatus.OK

    # ------------------------------------------------------------------
    # Pockets
    # ------------------------------------------------------------------
    def add_pocket(self, draft: Mapping[str, Any], initial_balance: Any = 0) -> str:
        """Create a pocket holding ``initial_balance`` and return its id."""
        fields = dict(draft)
        pocket = Pocket(
            id=self._new_id(),
            name=fields.get('name', ''),
            balance=parse_amount(initial_balance or 0),
            color=fields.get('color', '#9e9e9e'),
            icon=fields.get('icon', 'wallet'),
        )
        self.pockets.append(pocket)
        self._save()
        logger.debug("Added pocket %s (%s)", pocket.id, pocket.name)
        return pocket.id

    def update_pocket(self, pocket_id: str, **fields: Any) -> LedgerStatus:
        """Merge ``fields`` into the pocket.  An omitted balance is left as is."""
        pocket = self.get_pocket(pocket_id)
        if pocket is None:
            logger.info("Cannot update unknown pocket %s", pocket_id)
            return LedgerStatus.POCKET_NOT_FOUND
        for name in _POCKET_FIELDS:
            if name in fields and fields[name] is not None:
                setattr(pocket, name, fields[name])
        self._save()
        logger.debug("Updated pocket %s", pocket_id)
        return LedgerStatus.OK

    def delete_pocket(self, pocket_id: str) -> LedgerStatus:
        if len(self.pockets) <= 1:
            logger.info("Refusing to delete the last remaining pocket")
            return LedgerStatus.LAST_POCKET
        if any(t.pocket_id == pocket_id for t in self.transactions):
            logger.info("Pocket %s is referenced by transactions", pocket_id)
            return LedgerStatus.POCKET_IN_USE
        self.pockets = [p for p in self.pockets if p.id != pocket_id]
        self._save()
        logger.debug("Deleted pocket %s", pocket_id)
        return LedgerStatus.OK

    def transfer_between_pockets(self, from_id: str, to_id: str, amount: Any) -> LedgerStatus:
        """Move ``amount`` between two pockets and record the pair of legs.

        The source leg is an expense and the destination leg an income, both
        dated today in the ``Transfer`` category and sharing one transfer id.
        """
        if from_id == to_id:
            logger.info("Transfer rejected: source and destination are the same pocket")
            return LedgerStatus.SAME_POCKET
        source = self.get_pocket(from_id)
        destination = self.get_pocket(to_id)
        if source is None or destination is None:
            logger.info("Transfer rejected: unknown pocket (%s -> %s)", from_id, to_id)
            return LedgerStatus.POCKET_NOT_FOUND
        value = parse_amount(amount)
        if parse_amount(source.balance) < value:
            logger.info("Transfer rejected: pocket %s holds less than %s", from_id, value)
            return LedgerStatus.INSUFFICIENT_BALANCE

        source.balance = parse_amount(source.balance) - value
        destination.balance = parse_amount(destination.balance) + value

        transfer_id = self._new_id()
        transfer_date = self._today().isoformat()
        self.transactions.append(
            Transaction(
                id=self._new_id(),
                type=EXPENSE,
                amount=value,
                category=TRANSFER_CATEGORY,
                date=transfer_date,
                pocket_id=from_id,
                description=f"Transfer to {destination.name}",
                kind=TRANSFER_LEG,
                transfer_id=transfer_id,
                transfer_to_pocket_id=to_id,
            )
        )
        self.transactions.append(
            Transaction(
                id=self._new_id(),
                type=INCOME,
                amount=value,
                category=TRANSFER_CATEGORY,
                date=transfer_date,
                pocket_id=to_id,
                description=f"Transfer from {source.name}",
                kind=TRANSFER_LEG,
                transfer_id=transfer_id,
                transfer_from_pocket_id=from_id,
            )
        )
        self._save()
        logger.debug("Transferred %s from %s to %s (%s)", value, from_id, to_id, transfer_id)
        return LedgerStatus.OK

    # ------------------------------------------------------------------
    # Currency
    # ------------------------------------------------------------------
    def set_currency(self, symbol: str) -> LedgerStatus:
        self.currency = symbol
        self._save()
        return LedgerStatus.OK

    def add_custom_currency(self, symbol: str, name: str) -> LedgerStatus:
        """Register a custom currency and make it the current one."""
        if any(c.symbol == symbol for c in self.custom_currencies):
            logger.info("Custom currency '%s' already exists", symbol)
            return LedgerStatus.DUPLICATE_CURRENCY
        self.custom_currencies.append(CustomCurrency(symbol=symbol, name=name))
        self.currency = symbol
        self._save()
        return LedgerStatus.OK

    def remove_custom_currency(self, symbol: str) -> LedgerStatus:
        self.custom_currencies = [c for c in self.custom_currencies if c.symbol != symbol]
        if self.currency == symbol:
            self.currency = DEFAULT_CURRENCY
        self._save()
        return LedgerStatus.OK

    # ------------------------------------------------------------------
    # Whole-state operations
    # ------------------------------------------------------------------
    def export_data(self) -> Dict[str, Any]:
        return {
            TRANSACTIONS_KEY: [t.to_dict() for t in self.transactions],
            SUBSCRIPTIONS_KEY: [s.to_dict() for s in self.subscriptions],
            CATEGORIES_KEY: self.categories.to_dict(),
            CURRENCY_KEY: self.currency,
            CUSTOM_CURRENCIES_KEY: [c.to_dict() for c in self.custom_currencies],
            POCKETS_KEY: [p.to_dict() for p in self.pockets],
        }

    def import_data(self, data: Mapping[str, Any]) -> LedgerStatus:
        """Replace the ledger with ``data``.

        Keys that are absent (or of the wrong shape) leave the current value
        untouched, except ``pockets``, which falls back to the built-in
        Cash and Bank Account pockets.
        """
        transactions = data.get(TRANSACTIONS_KEY)
        if isinstance(transactions, list):
            self.transactions = [Transaction.from_dict(row) for row in transactions]

        subscriptions = data.get(SUBSCRIPTIONS_KEY)
        if isinstance(subscriptions, list):
            self.subscriptions = [Subscription.from_dict(row) for row in subscriptions]

        categories = data.get(CATEGORIES_KEY)
        if isinstance(categories, dict):
            self.categories = CategorySet.from_dict(categories)

        currency = data.get(CURRENCY_KEY)
        if currency:
            self.currency = str(currency)

        custom = data.get(CUSTOM_CURRENCIES_KEY)
        if isinstance(custom, list):
            self.custom_currencies = [CustomCurrency.from_dict(row) for row in custom]

        pockets = data.get(POCKETS_KEY)
        if isinstance(pockets, list) and pockets:
            self.pockets = [Pocket.from_dict(row) for row in pockets]
        else:
            self.pockets = default_pockets()

        self._save()
        logger.info(
            "Imported ledger: %d transactions, %d subscriptions, %d pockets",
            len(self.transactions), len(self.subscriptions), len(self.pockets),
        )
        return LedgerStatus.OK

    def clear_all_data(self) -> LedgerStatus:
        """Reset everything except the currency selection to defaults."""
        self.transactions = []
        self.subscriptions = []
        self.categories = CategorySet.defaults()
        self.pockets = default_pockets()
        self._save()
        logger.info("Cleared ledger data; currency '%s' kept", self.currency)
        return LedgerStatus.OK
