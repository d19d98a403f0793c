"""
Transfer Builder

A transfer moves money between two of the user's own accounts. It is
recorded as two ordinary transactions:

    expense leg   on the source account       "Transfer to <dest>"
    income leg    on the destination account  "Transfer from <source>"

Both legs share one transfer_id, amount and date, and use the reserved
"transfer" category. Building is pure; persisting both legs together is the
orchestrator's job.
"""

import datetime as dt
from typing import Callable, Iterable, Sequence

from pydantic import BaseModel

from financeflow.ledger.errors import InvalidTransferError, UnknownAccountError
from financeflow.ledger.money import Number, require_positive_amount
from financeflow.models.ledger import (
    TRANSFER_CATEGORY_ID,
    TRANSFER_PAYMENT_METHOD_ID,
    Account,
    Transaction,
    TransactionType,
    new_id,
)


class TransferPair(BaseModel):
    """The two legs of one transfer."""

    transfer_id: str
    expense_leg: Transaction
    income_leg: Transaction

    @property
    def legs(self) -> list[Transaction]:
        """Legs in write order: expense first."""
        return [self.expense_leg, self.income_leg]


def _fresh_id(taken: set[str], id_factory: Callable[[], str]) -> str:
    candidate = id_factory()
    while candidate in taken:
        candidate = id_factory()
    taken.add(candidate)
    return candidate


def build_transfer(
    from_account_id: str,
    to_account_id: str,
    amount: Number,
    transfer_date: dt.date,
    accounts: Sequence[Account],
    existing_transactions: Iterable[Transaction] = (),
    id_factory: Callable[[], str] = new_id,
) -> TransferPair:
    """
    Build both legs of a transfer.

    Raises:
        InvalidTransferError: source and destination are the same
        InvalidAmountError: amount is not a positive 2-place decimal
        UnknownAccountError: either account does not exist
    """
    if from_account_id == to_account_id:
        raise InvalidTransferError(
            "Source and destination accounts must be different"
        )
    value = require_positive_amount(amount)

    by_id = {account.id: account for account in accounts}
    for account_id in (from_account_id, to_account_id):
        if account_id not in by_id:
            raise UnknownAccountError(account_id)

    # transfer_id and leg ids must not collide with anything already recorded
    taken: set[str] = set()
    for t in existing_transactions:
        taken.add(t.id)
        if t.transfer_id:
            taken.add(t.transfer_id)

    transfer_id = _fresh_id(taken, id_factory)

    common = dict(
        amount=value,
        date=transfer_date,
        category=TRANSFER_CATEGORY_ID,
        payment_method=TRANSFER_PAYMENT_METHOD_ID,
        transfer_id=transfer_id,
    )
    expense_leg = Transaction(
        id=_fresh_id(taken, id_factory),
        type=TransactionType.EXPENSE,
        account_id=from_account_id,
        description=f"Transfer to {by_id[to_account_id].name}",
        **common,
    )
    income_leg = Transaction(
        id=_fresh_id(taken, id_factory),
        type=TransactionType.INCOME,
        account_id=to_account_id,
        description=f"Transfer from {by_id[from_account_id].name}",
        **common,
    )

    return TransferPair(
        transfer_id=transfer_id,
        expense_leg=expense_leg,
        income_leg=income_leg,
    )


def find_transfer_legs(
    transactions: Iterable[Transaction],
    transfer_id: str,
) -> list[Transaction]:
    """All transactions belonging to one transfer."""
    return [t for t in transactions if t.transfer_id == transfer_id]
