"""
Main Orchestrator for FinanceFlow

This module ties together all the components and defines the
end-to-end flows for:
1. Loading the ledger into session state
2. Recording and deleting transactions and transfers
3. Managing accounts, categories and payment methods

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches storage without passing validation
- Session state changes only after storage accepted the write
- A transfer reaches the session state as two legs or not at all
- Every write and every failure is logged

The pure ledger core (aggregation, transfer building) never sees storage.
"""

import datetime as dt
from typing import Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from financeflow.activity import ActivityLogger, create_correlation_id
from financeflow.config import is_storage_configured
from financeflow.ledger.errors import (
    InvalidRecordError,
    LedgerError,
    TransferPartiallyFailedError,
)
from financeflow.ledger.money import Number, to_decimal
from financeflow.ledger.state import LedgerState
from financeflow.ledger.transfers import (
    TransferPair,
    build_transfer,
    find_transfer_legs,
)
from financeflow.models.ledger import (
    BUILTIN_CATEGORIES,
    BUILTIN_CATEGORY_IDS,
    BUILTIN_PAYMENT_METHOD_IDS,
    BUILTIN_PAYMENT_METHODS,
    DEFAULT_ACCOUNT_ID,
    Account,
    Category,
    PaymentMethod,
    Transaction,
    TransactionType,
    default_account,
    slugify,
)
from financeflow.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    RepositoryError,
)
from financeflow.services.storage.interface import (
    DuplicateError,
    ProtectedRecordError,
)
from financeflow.validation import LedgerValidator


# Errors that mean "the request was wrong", raised before any write
VALIDATION_ERRORS = (
    LedgerError,
    ProtectedRecordError,
    DuplicateError,
    ValidationError,
)

logger = structlog.get_logger("financeflow.orchestrator")


async def load_state(
    storage: LedgerStorageInterface,
    activity_logger: Optional[ActivityLogger] = None,
    demo_mode: bool = False,
) -> LedgerState:
    """
    Load everything from storage into a fresh session state.

    Built-in categories and payment methods are merged in front of the
    user-defined ones. If the default account is missing from storage it
    is created there, so it always exists.
    """
    transactions = await storage.list_transactions()
    accounts = await storage.list_accounts()
    stored_categories = await storage.list_categories()
    stored_methods = await storage.list_payment_methods()

    if not any(a.id == DEFAULT_ACCOUNT_ID for a in accounts):
        created = await storage.insert_account(default_account())
        accounts.insert(0, created)
        if activity_logger:
            activity_logger.log_default_account_created(created.id)

    state = LedgerState(
        transactions=transactions,
        accounts=accounts,
        categories=list(BUILTIN_CATEGORIES) + [
            c for c in stored_categories if c.id not in BUILTIN_CATEGORY_IDS
        ],
        payment_methods=list(BUILTIN_PAYMENT_METHODS) + [
            p for p in stored_methods if p.id not in BUILTIN_PAYMENT_METHOD_IDS
        ],
        demo_mode=demo_mode,
    )

    if activity_logger:
        activity_logger.log_ledger_loaded(
            transaction_count=len(state.transactions),
            account_count=len(state.accounts),
            backend=storage.backend_name,
        )

    return state


class _Flow:
    """Shared plumbing: storage, validator, logging of failures."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        validator: Optional[LedgerValidator] = None,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        self._storage = storage
        self._validator = validator or LedgerValidator()
        self._activity_logger = activity_logger or ActivityLogger()

    def _rejected(self, operation: str, error: Exception, correlation_id: Optional[UUID]) -> Exception:
        """Log a refused write and return the error to raise to the caller."""
        if isinstance(error, ValidationError):
            error = InvalidRecordError.from_validation_error(error)
        self._activity_logger.log_validation_failed(operation, error, correlation_id)
        return error

    def _storage_failed(self, operation: str, error: Exception, correlation_id: Optional[UUID]) -> None:
        self._activity_logger.log_storage_error(operation, error, correlation_id)


class TransactionFlow(_Flow):
    """
    Orchestrates transaction and transfer writes.

    Flow for every write:
    1. Validate against the session state (no I/O)
    2. Persist through storage
    3. Apply to the session state
    4. Log
    """

    async def add_transaction(
        self,
        state: LedgerState,
        amount: Number,
        type_: TransactionType,
        category: str,
        date: dt.date,
        account_id: str,
        payment_method: str = "",
        description: str = "",
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """Record a single income or expense."""
        correlation_id = correlation_id or create_correlation_id()

        try:
            transaction = Transaction(
                amount=to_decimal(amount),
                type=type_,
                category=category,
                date=date,
                account_id=account_id,
                payment_method=payment_method,
                description=description,
            )
            self._validator.check_transaction(state, transaction)
        except VALIDATION_ERRORS as e:
            raise self._rejected("add_transaction", e, correlation_id)

        try:
            stored = await self._storage.insert_transactions([transaction])
        except RepositoryError as e:
            self._storage_failed("add_transaction", e, correlation_id)
            raise

        state.add_transactions(stored)
        self._activity_logger.log_transaction_added(
            transaction_id=transaction.id,
            transaction_type=transaction.type.value,
            amount=str(transaction.amount),
            account_id=transaction.account_id,
            correlation_id=correlation_id,
        )
        return stored[0]

    async def delete_transaction(
        self,
        state: LedgerState,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> list[str]:
        """
        Delete a transaction.

        Deleting either leg of a transfer deletes both legs together.

        Returns:
            Ids of all deleted transactions
        """
        correlation_id = correlation_id or create_correlation_id()

        transaction = state.transaction(transaction_id)
        if transaction is None:
            raise self._rejected(
                "delete_transaction",
                LedgerError(f"Unknown transaction: {transaction_id}"),
                correlation_id,
            )

        try:
            if transaction.transfer_id:
                legs = find_transfer_legs(state.transactions, transaction.transfer_id)
                doomed = [leg.id for leg in legs]
                await self._storage.delete_transactions(doomed)
            else:
                doomed = [transaction.id]
                await self._storage.delete_transaction(transaction.id)
        except RepositoryError as e:
            self._storage_failed("delete_transaction", e, correlation_id)
            raise

        state.remove_transactions(doomed)
        if transaction.transfer_id:
            self._activity_logger.log_transfer_deleted(
                transfer_id=transaction.transfer_id,
                leg_ids=doomed,
                correlation_id=correlation_id,
            )
        else:
            self._activity_logger.log_transaction_deleted(doomed, correlation_id)
        return doomed

    async def add_transfer(
        self,
        state: LedgerState,
        from_account_id: str,
        to_account_id: str,
        amount: Number,
        transfer_date: dt.date,
        correlation_id: Optional[UUID] = None,
    ) -> TransferPair:
        """
        Record a transfer between two accounts.

        Raises:
            InvalidTransferError, InvalidAmountError, UnknownAccountError:
                before anything is written
            RepositoryError: clean failure, nothing was written
            TransferPartiallyFailedError: the first leg was written and the
                second was not (see .compensated)
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            pair = build_transfer(
                from_account_id,
                to_account_id,
                amount,
                transfer_date,
                accounts=state.accounts,
                existing_transactions=state.transactions,
            )
            self._validator.check_amount(pair.expense_leg.amount)
        except VALIDATION_ERRORS as e:
            raise self._rejected("add_transfer", e, correlation_id)

        await self._persist_transfer(pair, correlation_id)

        state.add_transactions(pair.legs)
        self._activity_logger.log_transfer_recorded(
            transfer_id=pair.transfer_id,
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            amount=str(pair.expense_leg.amount),
            correlation_id=correlation_id,
        )
        return pair

    async def _persist_transfer(self, pair: TransferPair, correlation_id: UUID) -> None:
        """Write both legs as one unit, compensating when the store can't."""
        if self._storage.supports_atomic_batch:
            try:
                await self._storage.insert_transactions(pair.legs)
            except RepositoryError as e:
                self._storage_failed("add_transfer", e, correlation_id)
                raise
            return

        first, second = pair.legs
        try:
            await self._storage.insert_transactions([first])
        except RepositoryError as e:
            self._storage_failed("add_transfer", e, correlation_id)
            raise

        try:
            await self._storage.insert_transactions([second])
        except Exception as e:
            compensated = await self._compensate(pair, first.id, correlation_id)
            if not compensated:
                self._activity_logger.log_transfer_partially_failed(
                    transfer_id=pair.transfer_id,
                    persisted_leg_id=first.id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise TransferPartiallyFailedError(
                transfer_id=pair.transfer_id,
                persisted_leg_id=first.id,
                compensated=compensated,
                reason=str(e),
            ) from e

    async def _compensate(self, pair: TransferPair, leg_id: str, correlation_id: UUID) -> bool:
        try:
            await self._storage.delete_transaction(leg_id)
        except Exception as cleanup_error:
            logger.error(
                "transfer_compensation_failed",
                transfer_id=pair.transfer_id,
                leg_id=leg_id,
                error=str(cleanup_error),
            )
            return False
        self._activity_logger.log_transfer_compensated(
            transfer_id=pair.transfer_id,
            removed_leg_id=leg_id,
            correlation_id=correlation_id,
        )
        return True


class ReferenceDataFlow(_Flow):
    """
    Orchestrates account, category and payment method management.

    Account and category ids are derived from their names
    ("Credit Union" -> "credit-union"); payment methods get random ids.
    """

    # -- accounts ------------------------------------------------------------

    async def add_account(
        self,
        state: LedgerState,
        name: str,
        initial_balance: Number = 0,
        correlation_id: Optional[UUID] = None,
    ) -> Account:
        correlation_id = correlation_id or create_correlation_id()
        try:
            account = Account(
                id=slugify(name),
                name=name,
                initial_balance=to_decimal(initial_balance),
            )
            self._validator.check_new_account(state, account)
        except VALIDATION_ERRORS as e:
            raise self._rejected("add_account", e, correlation_id)

        try:
            stored = await self._storage.insert_account(account)
        except RepositoryError as e:
            self._storage_failed("add_account", e, correlation_id)
            raise

        state.put_account(stored)
        self._activity_logger.log_reference_saved("account", stored.id, stored.name, correlation_id)
        return stored

    async def update_account(
        self,
        state: LedgerState,
        account_id: str,
        name: str,
        initial_balance: Number,
        correlation_id: Optional[UUID] = None,
    ) -> Account:
        """Rename an account or change its opening balance. The id stays."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            account = Account(
                id=account_id,
                name=name,
                initial_balance=to_decimal(initial_balance),
            )
            self._validator.check_account_update(state, account)
        except VALIDATION_ERRORS as e:
            raise self._rejected("update_account", e, correlation_id)

        try:
            stored = await self._storage.update_account(account)
        except RepositoryError as e:
            self._storage_failed("update_account", e, correlation_id)
            raise

        state.put_account(stored)
        self._activity_logger.log_reference_saved("account", stored.id, stored.name, correlation_id)
        return stored

    async def delete_account(
        self,
        state: LedgerState,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        correlation_id = correlation_id or create_correlation_id()
        try:
            self._validator.check_account_deletion(state, account_id)
        except VALIDATION_ERRORS as e:
            raise self._rejected("delete_account", e, correlation_id)

        try:
            await self._storage.delete_account(account_id)
        except RepositoryError as e:
            self._storage_failed("delete_account", e, correlation_id)
            raise

        state.remove_account(account_id)
        if state.filter.account_id == account_id:
            state.set_filter("all", state.filter.type)
        self._activity_logger.log_reference_deleted("account", account_id, correlation_id)

    # -- categories ----------------------------------------------------------

    async def add_category(
        self,
        state: LedgerState,
        name: str,
        color: str = "#cccccc",
        correlation_id: Optional[UUID] = None,
    ) -> Category:
        correlation_id = correlation_id or create_correlation_id()
        try:
            category = Category(id=slugify(name), name=name, color=color)
            self._validator.check_new_category(state, category)
        except VALIDATION_ERRORS as e:
            raise self._rejected("add_category", e, correlation_id)

        try:
            stored = await self._storage.insert_category(category)
        except RepositoryError as e:
            self._storage_failed("add_category", e, correlation_id)
            raise

        state.put_category(stored)
        self._activity_logger.log_reference_saved("category", stored.id, stored.name, correlation_id)
        return stored

    async def update_category(
        self,
        state: LedgerState,
        category_id: str,
        name: str,
        color: str,
        correlation_id: Optional[UUID] = None,
    ) -> Category:
        correlation_id = correlation_id or create_correlation_id()
        try:
            category = Category(id=category_id, name=name, color=color)
            self._validator.check_category_update(state, category)
        except VALIDATION_ERRORS as e:
            raise self._rejected("update_category", e, correlation_id)

        try:
            stored = await self._storage.update_category(category)
        except RepositoryError as e:
            self._storage_failed("update_category", e, correlation_id)
            raise

        state.put_category(stored)
        self._activity_logger.log_reference_saved("category", stored.id, stored.name, correlation_id)
        return stored

    async def delete_category(
        self,
        state: LedgerState,
        category_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Transactions that used the category are left untouched."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            self._validator.check_category_deletion(state, category_id)
        except VALIDATION_ERRORS as e:
            raise self._rejected("delete_category", e, correlation_id)

        try:
            await self._storage.delete_category(category_id)
        except RepositoryError as e:
            self._storage_failed("delete_category", e, correlation_id)
            raise

        state.remove_category(category_id)
        self._activity_logger.log_reference_deleted("category", category_id, correlation_id)

    # -- payment methods -----------------------------------------------------

    async def add_payment_method(
        self,
        state: LedgerState,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> PaymentMethod:
        correlation_id = correlation_id or create_correlation_id()
        try:
            method = PaymentMethod(name=name)
            self._validator.check_new_payment_method(state, method)
        except VALIDATION_ERRORS as e:
            raise self._rejected("add_payment_method", e, correlation_id)

        try:
            stored = await self._storage.insert_payment_method(method)
        except RepositoryError as e:
            self._storage_failed("add_payment_method", e, correlation_id)
            raise

        state.put_payment_method(stored)
        self._activity_logger.log_reference_saved(
            "payment_method", stored.id, stored.name, correlation_id
        )
        return stored

    async def update_payment_method(
        self,
        state: LedgerState,
        payment_method_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> PaymentMethod:
        correlation_id = correlation_id or create_correlation_id()
        try:
            method = PaymentMethod(id=payment_method_id, name=name)
            self._validator.check_payment_method_update(state, method)
        except VALIDATION_ERRORS as e:
            raise self._rejected("update_payment_method", e, correlation_id)

        try:
            stored = await self._storage.update_payment_method(method)
        except RepositoryError as e:
            self._storage_failed("update_payment_method", e, correlation_id)
            raise

        state.put_payment_method(stored)
        self._activity_logger.log_reference_saved(
            "payment_method", stored.id, stored.name, correlation_id
        )
        return stored

    async def delete_payment_method(
        self,
        state: LedgerState,
        payment_method_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        correlation_id = correlation_id or create_correlation_id()
        try:
            self._validator.check_payment_method_deletion(state, payment_method_id)
        except VALIDATION_ERRORS as e:
            raise self._rejected("delete_payment_method", e, correlation_id)

        try:
            await self._storage.delete_payment_method(payment_method_id)
        except RepositoryError as e:
            self._storage_failed("delete_payment_method", e, correlation_id)
            raise

        state.remove_payment_method(payment_method_id)
        self._activity_logger.log_reference_deleted(
            "payment_method", payment_method_id, correlation_id
        )


def create_app_components(
    use_storage: bool = True,
) -> tuple[TransactionFlow, ReferenceDataFlow, LedgerStorageInterface, ActivityLogger]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use Google Sheets when it is configured.
                    Set to False to force demo mode.

    Returns:
        (transaction_flow, reference_flow, storage, activity_logger)

    Demo mode (in-memory storage) is used when Sheets isn't configured.
    """
    activity_logger = ActivityLogger()
    storage: Optional[LedgerStorageInterface] = None

    if use_storage and is_storage_configured():
        try:
            storage = GoogleSheetsLedgerStorage(GoogleSheetsClient())
        except Exception as e:
            # Storage not configured properly - continue in demo mode
            logger.warning("storage_unavailable", error=str(e))
            storage = None

    if storage is None:
        storage = InMemoryLedgerStorage()

    validator = LedgerValidator()
    transaction_flow = TransactionFlow(storage, validator, activity_logger)
    reference_flow = ReferenceDataFlow(storage, validator, activity_logger)

    return transaction_flow, reference_flow, storage, activity_logger


def is_demo_storage(storage: LedgerStorageInterface) -> bool:
    return isinstance(storage, InMemoryLedgerStorage)
