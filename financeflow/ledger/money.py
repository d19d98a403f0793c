"""Money helpers shared by the ledger, validation and UI."""

from decimal import Decimal, InvalidOperation
from typing import Union

from financeflow.ledger.errors import InvalidAmountError

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """
    Convert user input to a Decimal with at most two fractional digits.

    Raises InvalidAmountError instead of rounding.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"Not an amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidAmountError(f"Not an amount: {value!r}")
    if not amount.is_finite():
        raise InvalidAmountError(f"Not an amount: {value!r}")
    if amount.as_tuple().exponent < -2:
        raise InvalidAmountError(f"Amount has more than 2 decimal places: {value}")
    return amount


def require_positive_amount(value: Number) -> Decimal:
    amount = to_decimal(value)
    if amount <= 0:
        raise InvalidAmountError(f"Amount must be greater than zero, got {amount}")
    return amount


def format_money(value: Decimal, symbol: str = "R$") -> str:
    """Format for display: R$ 1,234.50 / -R$ 12.00"""
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol} {abs(value).quantize(CENT):,}"
