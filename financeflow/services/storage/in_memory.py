"""
In-Memory Storage Implementation

Used in demo mode (no remote backend configured) and in tests.
Data lives for the lifetime of the process only.

Writes are checked completely before anything is applied, so a batch
insert or delete is all-or-nothing.
"""

from typing import Iterable, Optional

from financeflow.models.ledger import (
    Account,
    Category,
    PaymentMethod,
    Transaction,
)
from financeflow.services.storage.interface import (
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    ensure_deletable_account,
    ensure_user_category,
    ensure_user_payment_method,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Dict-backed ledger storage. Insertion order is kept."""

    supports_atomic_batch = True
    backend_name = "demo (in-memory)"

    def __init__(
        self,
        transactions: Optional[Iterable[Transaction]] = None,
        accounts: Optional[Iterable[Account]] = None,
        categories: Optional[Iterable[Category]] = None,
        payment_methods: Optional[Iterable[PaymentMethod]] = None,
    ):
        self._transactions = {t.id: t for t in transactions or []}
        self._accounts = {a.id: a for a in accounts or []}
        self._categories = {c.id: c for c in categories or []}
        self._payment_methods = {p.id: p for p in payment_methods or []}

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _insert(table: dict, record, kind: str):
        if record.id in table:
            raise DuplicateError(f"{kind} already exists: {record.id}")
        table[record.id] = record.model_copy()
        return record

    @staticmethod
    def _update(table: dict, record, kind: str):
        if record.id not in table:
            raise NotFoundError(f"{kind} not found: {record.id}")
        table[record.id] = record.model_copy()
        return record

    @staticmethod
    def _delete(table: dict, record_id: str, kind: str) -> None:
        if record_id not in table:
            raise NotFoundError(f"{kind} not found: {record_id}")
        del table[record_id]

    # -- transactions --------------------------------------------------------

    async def list_transactions(self) -> list[Transaction]:
        return [t.model_copy() for t in self._transactions.values()]

    async def insert_transactions(
        self,
        records: list[Transaction],
    ) -> list[Transaction]:
        ids = [r.id for r in records]
        if len(set(ids)) != len(ids):
            raise DuplicateError("Duplicate ids within one insert")
        for record_id in ids:
            if record_id in self._transactions:
                raise DuplicateError(f"Transaction already exists: {record_id}")
        for record in records:
            self._transactions[record.id] = record.model_copy()
        return list(records)

    async def delete_transaction(self, transaction_id: str) -> None:
        self._delete(self._transactions, transaction_id, "Transaction")

    async def delete_transactions(self, transaction_ids: list[str]) -> None:
        missing = [i for i in transaction_ids if i not in self._transactions]
        if missing:
            raise NotFoundError(f"Transactions not found: {', '.join(missing)}")
        for transaction_id in transaction_ids:
            del self._transactions[transaction_id]

    # -- accounts ------------------------------------------------------------

    async def list_accounts(self) -> list[Account]:
        return [a.model_copy() for a in self._accounts.values()]

    async def insert_account(self, account: Account) -> Account:
        return self._insert(self._accounts, account, "Account")

    async def update_account(self, account: Account) -> Account:
        return self._update(self._accounts, account, "Account")

    async def delete_account(self, account_id: str) -> None:
        ensure_deletable_account(account_id)
        self._delete(self._accounts, account_id, "Account")

    # -- categories ----------------------------------------------------------

    async def list_categories(self) -> list[Category]:
        return [c.model_copy() for c in self._categories.values()]

    async def insert_category(self, category: Category) -> Category:
        ensure_user_category(category.id)
        return self._insert(self._categories, category, "Category")

    async def update_category(self, category: Category) -> Category:
        ensure_user_category(category.id)
        return self._update(self._categories, category, "Category")

    async def delete_category(self, category_id: str) -> None:
        ensure_user_category(category_id)
        self._delete(self._categories, category_id, "Category")

    # -- payment methods -----------------------------------------------------

    async def list_payment_methods(self) -> list[PaymentMethod]:
        return [p.model_copy() for p in self._payment_methods.values()]

    async def insert_payment_method(self, method: PaymentMethod) -> PaymentMethod:
        ensure_user_payment_method(method.id)
        return self._insert(self._payment_methods, method, "Payment method")

    async def update_payment_method(self, method: PaymentMethod) -> PaymentMethod:
        ensure_user_payment_method(method.id)
        return self._update(self._payment_methods, method, "Payment method")

    async def delete_payment_method(self, payment_method_id: str) -> None:
        ensure_user_payment_method(payment_method_id)
        self._delete(self._payment_methods, payment_method_id, "Payment method")
