"""Shared fixtures for FinanceFlow tests."""

from datetime import date
from decimal import Decimal

import pytest

from financeflow.ledger import LedgerState
from financeflow.models import (
    BUILTIN_CATEGORIES,
    BUILTIN_PAYMENT_METHODS,
    Account,
    Transaction,
    TransactionType,
    default_account,
)


def _make_transaction(**overrides) -> Transaction:
    fields = dict(
        amount=Decimal("10.00"),
        type=TransactionType.EXPENSE,
        category="food",
        date=date(2024, 3, 1),
        account_id="default",
    )
    fields.update(overrides)
    return Transaction(**fields)


@pytest.fixture
def make_transaction():
    """Factory for transactions with sensible defaults; override any field."""
    return _make_transaction


@pytest.fixture
def accounts() -> list[Account]:
    return [
        default_account(),
        Account(id="savings", name="Savings", initial_balance=Decimal("1000.00")),
    ]


@pytest.fixture
def state(accounts) -> LedgerState:
    return LedgerState(
        accounts=accounts,
        categories=list(BUILTIN_CATEGORIES),
        payment_methods=list(BUILTIN_PAYMENT_METHODS),
    )
