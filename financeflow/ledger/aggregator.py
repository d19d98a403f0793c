"""
Ledger Aggregator

DESIGN DECISION: Aggregation is PURE and DETERMINISTIC.
Every function here takes in-memory collections and returns new values.
No storage access, no hidden state, no floats.

Two kinds of totals exist and must not be mixed:
- Account balances always use the FULL transaction history.
- Income/expense summary totals use the FILTERED set the user is looking at.

Transfers need no special handling. A transfer is an expense leg on one
account and an income leg on another, so it moves money between balances
and nets to zero in the overall balance.
"""

from decimal import Decimal
from typing import Any, Iterable, Sequence, Union

from financeflow.ledger.errors import MalformedRecordError, UnknownAccountError
from financeflow.models.ledger import (
    ALL,
    ZERO,
    Account,
    Category,
    CategoryTotal,
    LedgerFilter,
    LedgerSummary,
    Transaction,
    TransactionType,
)


def _require(record: Any, field: str) -> Any:
    """Read a required field, failing loudly when it is absent."""
    value = getattr(record, field, None)
    if value is None:
        raise MalformedRecordError(getattr(record, "id", None), field)
    return value


def filtered_transactions(
    transactions: Iterable[Transaction],
    ledger_filter: LedgerFilter,
) -> list[Transaction]:
    """
    Select the transactions matching the active filter.

    Input order is preserved.
    """
    result = []
    for t in transactions:
        if ledger_filter.account_id != ALL and _require(t, "account_id") != ledger_filter.account_id:
            continue
        if ledger_filter.type != ALL and _require(t, "type") != ledger_filter.type:
            continue
        result.append(t)
    return result


def total_by_type(
    transactions: Iterable[Transaction],
    transaction_type: Union[TransactionType, str],
) -> Decimal:
    """Sum of amounts of one type. Zero for an empty collection."""
    wanted = TransactionType(transaction_type)
    total = ZERO
    for t in transactions:
        if _require(t, "type") == wanted:
            total += _require(t, "amount")
    return total


def account_balance(
    account: Account,
    all_transactions: Iterable[Transaction],
) -> Decimal:
    """
    Opening balance plus income minus expenses for one account.

    Always pass the full history here, never a filtered view.
    """
    account_id = _require(account, "id")
    own = [t for t in all_transactions if _require(t, "account_id") == account_id]
    return (
        _require(account, "initial_balance")
        + total_by_type(own, TransactionType.INCOME)
        - total_by_type(own, TransactionType.EXPENSE)
    )


def balance_for_account_id(
    account_id: str,
    accounts: Iterable[Account],
    all_transactions: Iterable[Transaction],
) -> Decimal:
    """Balance of the account with this id; UnknownAccountError if none."""
    for account in accounts:
        if _require(account, "id") == account_id:
            return account_balance(account, all_transactions)
    raise UnknownAccountError(account_id)


def account_balances(
    accounts: Iterable[Account],
    all_transactions: Sequence[Transaction],
) -> dict[str, Decimal]:
    """Balance per account id, in account order."""
    return {
        account.id: account_balance(account, all_transactions)
        for account in accounts
    }


def _require_known_accounts(
    accounts: Sequence[Account],
    all_transactions: Iterable[Transaction],
) -> None:
    """Every transaction must belong to one of the accounts."""
    known = {_require(account, "id") for account in accounts}
    for t in all_transactions:
        account_id = _require(t, "account_id")
        if account_id not in known:
            raise UnknownAccountError(account_id)


def overall_balance(
    accounts: Sequence[Account],
    all_transactions: Sequence[Transaction],
) -> Decimal:
    """
    Sum of all account balances.

    Equal to sum(initial balances) + total income - total expenses.
    A transaction on an account not in the list raises UnknownAccountError.
    """
    _require_known_accounts(accounts, all_transactions)
    return sum(account_balances(accounts, all_transactions).values(), ZERO)


def category_breakdown(
    transactions: Iterable[Transaction],
    categories: Iterable[Category],
) -> list[CategoryTotal]:
    """
    Expense totals per category, in category order.

    Categories with nothing spent are left out. Expenses pointing at a
    category that is not in the list are not counted anywhere.
    """
    sums: dict[str, Decimal] = {}
    for t in transactions:
        if _require(t, "type") != TransactionType.EXPENSE:
            continue
        category_id = _require(t, "category")
        sums[category_id] = sums.get(category_id, ZERO) + _require(t, "amount")

    return [
        CategoryTotal(category=category, total=sums[category.id])
        for category in categories
        if sums.get(category.id, ZERO) != 0
    ]


def sort_for_display(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Newest date first. Same-date transactions keep their input order."""
    return sorted(transactions, key=lambda t: _require(t, "date"), reverse=True)


def summarize(
    transactions: Sequence[Transaction],
    accounts: Sequence[Account],
    categories: Sequence[Category],
    ledger_filter: LedgerFilter,
) -> LedgerSummary:
    """Build the dashboard numbers for the current filter."""
    _require_known_accounts(accounts, transactions)
    visible = filtered_transactions(transactions, ledger_filter)
    balances = account_balances(accounts, transactions)
    return LedgerSummary(
        total_income=total_by_type(visible, TransactionType.INCOME),
        total_expenses=total_by_type(visible, TransactionType.EXPENSE),
        account_balances=balances,
        overall_balance=sum(balances.values(), ZERO),
        category_breakdown=category_breakdown(visible, categories),
    )
