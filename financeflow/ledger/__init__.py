"""Pure ledger core: aggregation, transfers and session state."""

from financeflow.ledger.aggregator import (
    account_balance,
    account_balances,
    balance_for_account_id,
    category_breakdown,
    filtered_transactions,
    overall_balance,
    sort_for_display,
    summarize,
    total_by_type,
)
from financeflow.ledger.errors import (
    AccountInUseError,
    InvalidAmountError,
    InvalidRecordError,
    InvalidTransferError,
    LedgerError,
    MalformedRecordError,
    ReservedNameError,
    TransferPartiallyFailedError,
    UnknownAccountError,
    UnknownCategoryError,
    UnknownPaymentMethodError,
)
from financeflow.ledger.state import LedgerState
from financeflow.ledger.transfers import (
    TransferPair,
    build_transfer,
    find_transfer_legs,
)

__all__ = [
    # Aggregation
    "account_balance",
    "account_balances",
    "balance_for_account_id",
    "category_breakdown",
    "filtered_transactions",
    "overall_balance",
    "sort_for_display",
    "summarize",
    "total_by_type",
    # Errors
    "AccountInUseError",
    "InvalidAmountError",
    "InvalidRecordError",
    "InvalidTransferError",
    "LedgerError",
    "MalformedRecordError",
    "ReservedNameError",
    "TransferPartiallyFailedError",
    "UnknownAccountError",
    "UnknownCategoryError",
    "UnknownPaymentMethodError",
    # State and transfers
    "LedgerState",
    "TransferPair",
    "build_transfer",
    "find_transfer_legs",
]
