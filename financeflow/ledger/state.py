"""
Ledger Session State

All collections the UI works with live in one explicit object that is
passed around, never in module globals. The aggregator only ever reads it.

The state is updated only AFTER storage accepted a write, so it never holds
a record storage rejected, and never holds half of a transfer.
"""

from typing import Iterable, Optional

from pydantic import BaseModel, Field

from financeflow.ledger import aggregator
from financeflow.models.ledger import (
    Account,
    Category,
    LedgerFilter,
    LedgerSummary,
    PaymentMethod,
    Transaction,
)

UNKNOWN_LABEL = "Unknown"


class LedgerState(BaseModel):
    """In-memory session state for one user session."""

    transactions: list[Transaction] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    payment_methods: list[PaymentMethod] = Field(default_factory=list)
    filter: LedgerFilter = Field(default_factory=LedgerFilter)
    demo_mode: bool = False

    # -- lookups -------------------------------------------------------------

    def account(self, account_id: str) -> Optional[Account]:
        return next((a for a in self.accounts if a.id == account_id), None)

    def category(self, category_id: str) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id), None)

    def payment_method(self, payment_method_id: str) -> Optional[PaymentMethod]:
        return next(
            (p for p in self.payment_methods if p.id == payment_method_id), None
        )

    def transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self.transactions if t.id == transaction_id), None)

    def account_name(self, account_id: str) -> str:
        account = self.account(account_id)
        return account.name if account else UNKNOWN_LABEL

    def category_name(self, category_id: str) -> str:
        """Dangling category references display as 'Unknown'."""
        category = self.category(category_id)
        return category.name if category else UNKNOWN_LABEL

    def payment_method_name(self, payment_method_id: str) -> str:
        method = self.payment_method(payment_method_id)
        return method.name if method else UNKNOWN_LABEL

    # -- derived views -------------------------------------------------------

    def visible_transactions(self) -> list[Transaction]:
        """Filtered transactions, newest first."""
        return aggregator.sort_for_display(
            aggregator.filtered_transactions(self.transactions, self.filter)
        )

    def summary(self) -> LedgerSummary:
        return aggregator.summarize(
            self.transactions,
            self.accounts,
            self.categories,
            self.filter,
        )

    def set_filter(self, account_id: str, type_: str) -> None:
        self.filter = LedgerFilter(account_id=account_id, type=type_)

    # -- applying accepted writes -------------------------------------------

    def add_transactions(self, records: Iterable[Transaction]) -> None:
        self.transactions.extend(records)

    def remove_transactions(self, transaction_ids: Iterable[str]) -> None:
        doomed = set(transaction_ids)
        self.transactions = [t for t in self.transactions if t.id not in doomed]

    def put_account(self, account: Account) -> None:
        self.accounts = _replace_or_append(self.accounts, account)

    def remove_account(self, account_id: str) -> None:
        self.accounts = [a for a in self.accounts if a.id != account_id]

    def put_category(self, category: Category) -> None:
        self.categories = _replace_or_append(self.categories, category)

    def remove_category(self, category_id: str) -> None:
        self.categories = [c for c in self.categories if c.id != category_id]

    def put_payment_method(self, method: PaymentMethod) -> None:
        self.payment_methods = _replace_or_append(self.payment_methods, method)

    def remove_payment_method(self, payment_method_id: str) -> None:
        self.payment_methods = [
            p for p in self.payment_methods if p.id != payment_method_id
        ]


def _replace_or_append(records: list, record) -> list:
    for idx, existing in enumerate(records):
        if existing.id == record.id:
            return records[:idx] + [record] + records[idx + 1:]
    return records + [record]
