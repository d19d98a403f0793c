"""
Core Data Models for FinanceFlow

These models define the schemas for every record the ledger works with:
transactions, accounts, categories and payment methods, plus the filter
and summary shapes used by the aggregator.

DESIGN DECISION: Money is always a Decimal with at most two fractional
digits. Floats coming from the UI are converted through their string form,
never rounded silently. The sign of a transaction lives in its type, not in
its amount.
"""

import datetime as dt
import re
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# Distinguished records
DEFAULT_ACCOUNT_ID = "default"
DEFAULT_ACCOUNT_NAME = "Main Account"
TRANSFER_CATEGORY_ID = "transfer"
TRANSFER_PAYMENT_METHOD_ID = "bank_transfer"

# Filter sentinel meaning "no restriction"
ALL = "all"

ZERO = Decimal("0.00")


def new_id() -> str:
    """Create a fresh random record identifier."""
    return uuid4().hex


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def slugify(name: str) -> str:
    """
    Derive a record id from a display name.

    "Credit Union  Savings" -> "credit-union-savings"
    """
    return re.sub(r"\s+", "-", name.strip().lower())


def _to_decimal(value: Any) -> Any:
    # float -> Decimal through repr keeps 10.1 as 10.1, not 10.0999...
    if isinstance(value, float):
        return Decimal(str(value))
    return value


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction. Amounts are always magnitudes."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense entry against one account.

    Transfers are represented as two ordinary transactions (one expense,
    one income) sharing a transfer_id. The aggregator does not treat
    them specially.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Unique transaction ID"
    )
    created_at: dt.datetime = Field(
        default_factory=utc_now,
        description="When the record was created"
    )

    description: str = Field(
        default="",
        max_length=200,
        description="Free-text label"
    )
    amount: Annotated[
        Decimal,
        Field(ge=0, decimal_places=2, description="Magnitude of the movement")
    ]
    type: TransactionType = Field(
        ...,
        description="Income or expense"
    )
    category: str = Field(
        ...,
        description="Category id (may dangle)"
    )
    date: dt.date = Field(
        ...,
        description="Date the transaction is attributed to"
    )
    payment_method: str = Field(
        default="",
        description="Payment method id (may dangle)"
    )
    account_id: str = Field(
        default=DEFAULT_ACCOUNT_ID,
        min_length=1,
        description="Account whose balance this transaction affects"
    )
    transfer_id: Optional[str] = Field(
        default=None,
        description="Shared by both legs of a transfer"
    )

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> Any:
        return _to_decimal(v)

    @field_validator("transfer_id")
    @classmethod
    def blank_transfer_id_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @property
    def is_transfer_leg(self) -> bool:
        return self.transfer_id is not None

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign implied by the type."""
        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount


class Account(BaseModel):
    """
    A place money lives (wallet, checking, savings...).

    initial_balance is the opening balance before any recorded history.
    It is not a transaction and never appears in income/expense totals.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Unique account ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    initial_balance: Annotated[
        Decimal,
        Field(decimal_places=2, description="Opening balance (may be negative)")
    ] = ZERO

    @field_validator("initial_balance", mode="before")
    @classmethod
    def coerce_balance(cls, v: Any) -> Any:
        return _to_decimal(v)

    @property
    def is_default(self) -> bool:
        return self.id == DEFAULT_ACCOUNT_ID


class Category(BaseModel):
    """Transaction category. Color is display-only."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(
        default="#cccccc",
        pattern="^#[0-9a-fA-F]{6}$",
        description="Hex display color"
    )


class PaymentMethod(BaseModel):
    """How a transaction was paid (cash, card...)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=100)


# =============================================================================
# BUILT-IN REFERENCE DATA
# =============================================================================

BUILTIN_CATEGORIES: tuple[Category, ...] = (
    Category(id="food", name="Food", color="#ef4444"),
    Category(id="rent", name="Rent", color="#3b82f6"),
    Category(id="transport", name="Transport", color="#f59e0b"),
    Category(id="entertainment", name="Entertainment", color="#8b5cf6"),
    Category(id="health", name="Health", color="#10b981"),
    Category(id="salary", name="Salary", color="#22c55e"),
    Category(id="other", name="Other", color="#6b7280"),
    Category(id=TRANSFER_CATEGORY_ID, name="Transfer", color="#64748b"),
)

BUILTIN_PAYMENT_METHODS: tuple[PaymentMethod, ...] = (
    PaymentMethod(id="cash", name="Cash"),
    PaymentMethod(id="debit_card", name="Debit Card"),
    PaymentMethod(id="credit_card", name="Credit Card"),
    PaymentMethod(id=TRANSFER_PAYMENT_METHOD_ID, name="Bank Transfer"),
)

BUILTIN_CATEGORY_IDS = frozenset(c.id for c in BUILTIN_CATEGORIES)
BUILTIN_PAYMENT_METHOD_IDS = frozenset(p.id for p in BUILTIN_PAYMENT_METHODS)


def default_account() -> Account:
    return Account(id=DEFAULT_ACCOUNT_ID, name=DEFAULT_ACCOUNT_NAME)


# =============================================================================
# FILTER AND SUMMARY MODELS
# =============================================================================

class LedgerFilter(BaseModel):
    """Active view filter: one account or all, one type or all."""

    account_id: str = Field(
        default=ALL,
        min_length=1,
        description="Account id, or 'all'"
    )
    type: str = Field(
        default=ALL,
        pattern="^(all|income|expense)$",
        description="Transaction type, or 'all'"
    )


class CategoryTotal(BaseModel):
    """Expense total for one category."""

    category: Category
    total: Decimal


class LedgerSummary(BaseModel):
    """
    Everything the dashboard shows.

    Income/expense totals follow the active filter. Account balances and the
    overall balance always use the full, unfiltered history.
    """

    total_income: Decimal
    total_expenses: Decimal
    account_balances: dict[str, Decimal] = Field(default_factory=dict)
    overall_balance: Decimal
    category_breakdown: list[CategoryTotal] = Field(default_factory=list)

    @property
    def net(self) -> Decimal:
        """Income minus expenses over the filtered set."""
        return self.total_income - self.total_expenses

    @property
    def overdrawn_accounts(self) -> list[str]:
        """Ids of accounts with a strictly negative balance."""
        return [
            account_id
            for account_id, balance in self.account_balances.items()
            if balance < 0
        ]
