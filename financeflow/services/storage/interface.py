"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run against Google Sheets when configured
2. Fall back to in-memory storage in demo mode and tests
3. Keep the ledger rules decoupled from storage implementation

Every method returns the stored record(s) or raises a RepositoryError
subclass. There is no "maybe empty list" result: a write either returns
what was stored or raises.

Built-in categories and payment methods are never stored. They are merged
in when the ledger is loaded, and stores refuse to delete or edit them.
"""

from abc import ABC, abstractmethod

from financeflow.models.ledger import (
    BUILTIN_CATEGORY_IDS,
    BUILTIN_PAYMENT_METHOD_IDS,
    DEFAULT_ACCOUNT_ID,
    Account,
    Category,
    PaymentMethod,
    Transaction,
)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage operations.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    # True when insert_transactions applies all records or none.
    # The orchestrator falls back to write-then-compensate otherwise.
    supports_atomic_batch: bool = True

    # Human-readable backend name for logs and the UI
    backend_name: str = "storage"

    # -- transactions --------------------------------------------------------

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        """
        List every stored transaction.

        Raises:
            RepositoryError: If the backend can't be read
            MalformedRecordError: If a stored row can't be decoded
        """
        pass

    @abstractmethod
    async def insert_transactions(
        self,
        records: list[Transaction],
    ) -> list[Transaction]:
        """
        Insert one or more transactions.

        Args:
            records: Transactions to store, in order

        Returns:
            The stored transactions

        Raises:
            DuplicateError: If a transaction id already exists
            RepositoryError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> None:
        """
        Delete a transaction by ID.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        pass

    @abstractmethod
    async def delete_transactions(self, transaction_ids: list[str]) -> None:
        """
        Delete several transactions in one operation (both legs of a transfer).

        Raises:
            NotFoundError: If any of the transactions doesn't exist.
                Nothing is deleted in that case.
        """
        pass

    # -- accounts ------------------------------------------------------------

    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        pass

    @abstractmethod
    async def insert_account(self, account: Account) -> Account:
        """
        Raises:
            DuplicateError: If an account with this id exists
        """
        pass

    @abstractmethod
    async def update_account(self, account: Account) -> Account:
        """
        Raises:
            NotFoundError: If the account doesn't exist
        """
        pass

    @abstractmethod
    async def delete_account(self, account_id: str) -> None:
        """
        Raises:
            ProtectedRecordError: For the default account
            NotFoundError: If the account doesn't exist
        """
        pass

    # -- categories ----------------------------------------------------------

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        """List user-defined categories (built-ins are not stored)."""
        pass

    @abstractmethod
    async def insert_category(self, category: Category) -> Category:
        pass

    @abstractmethod
    async def update_category(self, category: Category) -> Category:
        pass

    @abstractmethod
    async def delete_category(self, category_id: str) -> None:
        """
        Raises:
            ProtectedRecordError: For built-in category ids
            NotFoundError: If the category doesn't exist
        """
        pass

    # -- payment methods -----------------------------------------------------

    @abstractmethod
    async def list_payment_methods(self) -> list[PaymentMethod]:
        """List user-defined payment methods (built-ins are not stored)."""
        pass

    @abstractmethod
    async def insert_payment_method(self, method: PaymentMethod) -> PaymentMethod:
        pass

    @abstractmethod
    async def update_payment_method(self, method: PaymentMethod) -> PaymentMethod:
        pass

    @abstractmethod
    async def delete_payment_method(self, payment_method_id: str) -> None:
        """
        Raises:
            ProtectedRecordError: For built-in payment method ids
            NotFoundError: If the payment method doesn't exist
        """
        pass


class RepositoryError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(RepositoryError):
    """Entity not found in storage."""
    pass


class DuplicateError(RepositoryError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(RepositoryError):
    """Could not connect to storage backend."""
    pass


class ProtectedRecordError(RepositoryError):
    """Attempted to delete or edit the default account or a built-in record."""
    pass


def ensure_deletable_account(account_id: str) -> None:
    if account_id == DEFAULT_ACCOUNT_ID:
        raise ProtectedRecordError("The default account cannot be deleted")


def ensure_user_category(category_id: str) -> None:
    if category_id in BUILTIN_CATEGORY_IDS:
        raise ProtectedRecordError(f"Built-in category cannot be changed: {category_id}")


def ensure_user_payment_method(payment_method_id: str) -> None:
    if payment_method_id in BUILTIN_PAYMENT_METHOD_IDS:
        raise ProtectedRecordError(
            f"Built-in payment method cannot be changed: {payment_method_id}"
        )
