"""
Write Validation

DESIGN DECISION: Every new write is checked against the session state
BEFORE anything is sent to storage:
- Amounts must be positive 2-place decimals below the configured ceiling
- References (account, category, payment method) must exist
- Ids derived from names must not collide
- The default account and built-in reference data are protected

Existing records with dangling references are tolerated when displayed.
Only new writes are held to these rules.

IMPORTANT: Validation NEVER silently fixes issues. It raises.
"""

from decimal import Decimal
from typing import Optional

from financeflow.config import get_settings
from financeflow.ledger.errors import (
    AccountInUseError,
    InvalidAmountError,
    ReservedNameError,
    UnknownAccountError,
    UnknownCategoryError,
    UnknownPaymentMethodError,
)
from financeflow.ledger.money import Number, require_positive_amount
from financeflow.ledger.state import LedgerState
from financeflow.models.ledger import (
    ALL,
    Account,
    Category,
    PaymentMethod,
    Transaction,
)
from financeflow.services.storage.interface import (
    DuplicateError,
    ensure_deletable_account,
    ensure_user_category,
    ensure_user_payment_method,
)


class LedgerValidator:
    """Checks writes against the current ledger state."""

    def __init__(self, max_transaction_amount: Optional[Decimal] = None):
        if max_transaction_amount is None:
            max_transaction_amount = Decimal(
                str(get_settings().app.max_transaction_amount)
            )
        self._max_amount = max_transaction_amount

    # -- amounts -------------------------------------------------------------

    def check_amount(self, value: Number) -> Decimal:
        """Return the amount as a Decimal, or raise InvalidAmountError."""
        amount = require_positive_amount(value)
        if amount > self._max_amount:
            raise InvalidAmountError(
                f"Amount {amount} exceeds the maximum of {self._max_amount}"
            )
        return amount

    # -- transactions --------------------------------------------------------

    def check_transaction(self, state: LedgerState, transaction: Transaction) -> None:
        """
        Validate a new transaction.

        Raises:
            InvalidAmountError, UnknownAccountError, UnknownCategoryError,
            UnknownPaymentMethodError, DuplicateError
        """
        self.check_amount(transaction.amount)
        if state.account(transaction.account_id) is None:
            raise UnknownAccountError(transaction.account_id)
        if state.category(transaction.category) is None:
            raise UnknownCategoryError(transaction.category)
        if transaction.payment_method and state.payment_method(transaction.payment_method) is None:
            raise UnknownPaymentMethodError(transaction.payment_method)
        if state.transaction(transaction.id) is not None:
            raise DuplicateError(f"Transaction already exists: {transaction.id}")

    # -- accounts ------------------------------------------------------------

    def check_new_account(self, state: LedgerState, account: Account) -> None:
        # "all" is the filter value for every account
        if account.id == ALL:
            raise ReservedNameError(account.name)
        if state.account(account.id) is not None:
            raise DuplicateError(f"An account named '{account.name}' already exists")

    def check_account_update(self, state: LedgerState, account: Account) -> None:
        if state.account(account.id) is None:
            raise UnknownAccountError(account.id)

    def check_account_deletion(self, state: LedgerState, account_id: str) -> None:
        ensure_deletable_account(account_id)
        if state.account(account_id) is None:
            raise UnknownAccountError(account_id)
        in_use = sum(1 for t in state.transactions if t.account_id == account_id)
        if in_use:
            raise AccountInUseError(account_id, in_use)

    # -- categories ----------------------------------------------------------

    def check_new_category(self, state: LedgerState, category: Category) -> None:
        if state.category(category.id) is not None:
            raise DuplicateError(f"A category named '{category.name}' already exists")

    def check_category_update(self, state: LedgerState, category: Category) -> None:
        ensure_user_category(category.id)
        if state.category(category.id) is None:
            raise UnknownCategoryError(category.id)

    def check_category_deletion(self, state: LedgerState, category_id: str) -> None:
        # Transactions using it keep their reference and show as "Unknown"
        ensure_user_category(category_id)
        if state.category(category_id) is None:
            raise UnknownCategoryError(category_id)

    # -- payment methods -----------------------------------------------------

    def check_new_payment_method(self, state: LedgerState, method: PaymentMethod) -> None:
        if state.payment_method(method.id) is not None:
            raise DuplicateError(f"Payment method already exists: {method.id}")
        if any(p.name.lower() == method.name.lower() for p in state.payment_methods):
            raise DuplicateError(f"A payment method named '{method.name}' already exists")

    def check_payment_method_update(self, state: LedgerState, method: PaymentMethod) -> None:
        ensure_user_payment_method(method.id)
        if state.payment_method(method.id) is None:
            raise UnknownPaymentMethodError(method.id)

    def check_payment_method_deletion(self, state: LedgerState, payment_method_id: str) -> None:
        ensure_user_payment_method(payment_method_id)
        if state.payment_method(payment_method_id) is None:
            raise UnknownPaymentMethodError(payment_method_id)
