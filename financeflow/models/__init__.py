"""
Data Models Package

This package contains all Pydantic models used in FinanceFlow.
All data flowing through the system must conform to these schemas.
"""

from financeflow.models.ledger import (
    ALL,
    BUILTIN_CATEGORIES,
    BUILTIN_CATEGORY_IDS,
    BUILTIN_PAYMENT_METHOD_IDS,
    BUILTIN_PAYMENT_METHODS,
    DEFAULT_ACCOUNT_ID,
    TRANSFER_CATEGORY_ID,
    TRANSFER_PAYMENT_METHOD_ID,
    ZERO,
    Account,
    Category,
    CategoryTotal,
    LedgerFilter,
    LedgerSummary,
    PaymentMethod,
    Transaction,
    TransactionType,
    default_account,
    new_id,
    slugify,
)
from financeflow.models.activity import (
    ActivityEvent,
    ActivityEventBuilder,
    ActivityEventType,
    ActivitySeverity,
)

__all__ = [
    # Ledger models
    "ALL",
    "BUILTIN_CATEGORIES",
    "BUILTIN_CATEGORY_IDS",
    "BUILTIN_PAYMENT_METHOD_IDS",
    "BUILTIN_PAYMENT_METHODS",
    "DEFAULT_ACCOUNT_ID",
    "TRANSFER_CATEGORY_ID",
    "TRANSFER_PAYMENT_METHOD_ID",
    "ZERO",
    "Account",
    "Category",
    "CategoryTotal",
    "LedgerFilter",
    "LedgerSummary",
    "PaymentMethod",
    "Transaction",
    "TransactionType",
    "default_account",
    "new_id",
    "slugify",
    # Activity models
    "ActivityEvent",
    "ActivityEventBuilder",
    "ActivityEventType",
    "ActivitySeverity",
]
