"""Domain records for the ledger and their JSON wire format.

Records are plain dataclasses. ``to_dict`` / ``from_dict`` translate to the
camelCase keys used by the persisted state and the export document, so a
snapshot written by the application can be re-imported unchanged.
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

INCOME = 'income'
EXPENSE = 'expense'
TRANSACTION_TYPES = (INCOME, EXPENSE)

ORDINARY = 'ordinary'
TRANSFER_LEG = 'transfer_leg'

TRANSFER_CATEGORY = 'Transfer'

BILLING_CYCLES = ('weekly', 'monthly', 'quarterly', 'annually')

DEFAULT_CURRENCY = 'Rp'

DEFAULT_CATEGORIES: Dict[str, List[str]] = {
    INCOME: ['Salary', 'Freelance', 'Investments', 'Gifts', 'Other Income'],
    EXPENSE: [
        'Food', 'Housing', 'Transportation', 'Entertainment', 'Utilities', 'Healthcare',
        'Education', 'Shopping', 'Personal', 'Debt', 'Savings', 'Other Expenses',
    ],
}

_DEFAULT_POCKET_ROWS = (
    {'id': '1', 'name': 'Cash', 'balance': 0, 'color': '#4caf50', 'icon': 'cash'},
    {'id': '2', 'name': 'Bank Account', 'balance': 0, 'color': '#2196f3', 'icon': 'bank'},
)


def parse_amount(value: Any) -> float:
    """Convert an amount to float; anything unparseable becomes NaN."""
    if isinstance(value, numbers.Real):
        return float(value)
    if isinstance(value, str):
        parsed = pd.to_numeric(pd.Series([value.strip()]), errors='coerce').iloc[0]
        return float(parsed)
    return float('nan')


def _optional(data: Dict[str, Any], key: str) -> Any:
    value = data.get(key)
    return None if value == '' else value


@dataclass(frozen=True)
class Transaction:
    id: str
    type: str
    amount: float
    category: str
    date: str
    pocket_id: Optional[str] = None
    description: Optional[str] = None
    kind: str = ORDINARY
    transfer_id: Optional[str] = None
    transfer_to_pocket_id: Optional[str] = None
    transfer_from_pocket_id: Optional[str] = None

    @property
    def is_transfer_leg(self) -> bool:
        return self.kind == TRANSFER_LEG

    @property
    def signed_amount(self) -> float:
        """Balance effect of this transaction on its pocket."""
        amount = parse_amount(self.amount)
        if self.type == INCOME:
            return amount
        if self.type == EXPENSE:
            return -amount
        return 0.0

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            'id': self.id,
            'type': self.type,
            'amount': self.amount,
            'category': self.category,
            'date': self.date,
            'pocketId': self.pocket_id,
            'kind': self.kind,
        }
        if self.description is not None:
            payload['description'] = self.description
        if self.transfer_id is not None:
            payload['transferId'] = self.transfer_id
        if self.transfer_to_pocket_id is not None:
            payload['transferToPocketId'] = self.transfer_to_pocket_id
        if self.transfer_from_pocket_id is not None:
            payload['transferFromPocketId'] = self.transfer_from_pocket_id
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        transfer_id = _optional(data, 'transferId')
        kind = data.get('kind') or (TRANSFER_LEG if transfer_id else ORDINARY)
        return cls(
            id=str(data.get('id', '')),
            type=data.get('type', ''),
            amount=data.get('amount', 0),
            category=data.get('category', ''),
            date=data.get('date', ''),
            pocket_id=_optional(data, 'pocketId'),
            description=data.get('description'),
            kind=kind,
            transfer_id=transfer_id,
            transfer_to_pocket_id=_optional(data, 'transferToPocketId'),
            transfer_from_pocket_id=_optional(data, 'transferFromPocketId'),
        )


@dataclass(frozen=True)
class Subscription:
    id: str
    name: str
    amount: float
    category: str
    billing_cycle: str
    next_billing_date: str
    pocket_id: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            'id': self.id,
            'name': self.name,
            'amount': self.amount,
            'category': self.category,
            'billingCycle': self.billing_cycle,
            'nextBillingDate': self.next_billing_date,
            'pocketId': self.pocket_id,
        }
        if self.description is not None:
            payload['description'] = self.description
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Subscription':
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name', ''),
            amount=data.get('amount', 0),
            category=data.get('category', ''),
            billing_cycle=data.get('billingCycle', 'monthly'),
            next_billing_date=data.get('nextBillingDate', ''),
            pocket_id=_optional(data, 'pocketId'),
            description=data.get('description'),
        )


@dataclass
class Pocket:
    id: str
    name: str
    balance: float = 0.0
    color: str = '#9e9e9e'
    icon: str = 'wallet'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'balance': self.balance,
            'color': self.color,
            'icon': self.icon,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Pocket':
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name', ''),
            balance=data.get('balance', 0),
            color=data.get('color', '#9e9e9e'),
            icon=data.get('icon', 'wallet'),
        )


@dataclass
class CategorySet:
    income: List[str] = field(default_factory=list)
    expense: List[str] = field(default_factory=list)

    def names(self, category_type: str) -> List[str]:
        if category_type == INCOME:
            return self.income
        if category_type == EXPENSE:
            return self.expense
        raise KeyError(category_type)

    def to_dict(self) -> Dict[str, List[str]]:
        return {INCOME: list(self.income), EXPENSE: list(self.expense)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CategorySet':
        return cls(
            income=list(data.get(INCOME) or []),
            expense=list(data.get(EXPENSE) or []),
        )

    @classmethod
    def defaults(cls) -> 'CategorySet':
        return cls.from_dict(DEFAULT_CATEGORIES)


@dataclass(frozen=True)
class CustomCurrency:
    symbol: str
    name: str

    def to_dict(self) -> Dict[str, str]:
        return {'symbol': self.symbol, 'name': self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CustomCurrency':
        return cls(symbol=data.get('symbol', ''), name=data.get('name', ''))


def default_pockets() -> List[Pocket]:
    """Fresh copies of the two built-in pockets (Cash, Bank Account)."""
    return [Pocket.from_dict(row) for row in _DEFAULT_POCKET_ROWS]
