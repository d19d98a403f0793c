"""
Ledger Errors

Validation errors (amount, transfer, unknown references) are raised before
any write is attempted. They describe caller mistakes and are never retried.

TransferPartiallyFailedError is the one error that means storage may hold
half of a transfer. It carries the id of the leg that was written so the
caller can reconcile.
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger rule violations."""
    pass


class InvalidAmountError(LedgerError):
    """Amount is zero, negative, or not a valid 2-place decimal."""
    pass


class InvalidTransferError(LedgerError):
    """Transfer source and destination are the same account."""
    pass


class UnknownAccountError(LedgerError):
    """Referenced account does not exist."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Unknown account: {account_id}")


class UnknownCategoryError(LedgerError):
    """Referenced category does not exist."""

    def __init__(self, category_id: str):
        self.category_id = category_id
        super().__init__(f"Unknown category: {category_id}")


class UnknownPaymentMethodError(LedgerError):
    """Referenced payment method does not exist."""

    def __init__(self, payment_method_id: str):
        self.payment_method_id = payment_method_id
        super().__init__(f"Unknown payment method: {payment_method_id}")


class AccountInUseError(LedgerError):
    """Account still has transactions and cannot be deleted."""

    def __init__(self, account_id: str, transaction_count: int):
        self.account_id = account_id
        self.transaction_count = transaction_count
        super().__init__(
            f"Account {account_id} still has {transaction_count} transaction(s). "
            "Delete or move them first."
        )


class ReservedNameError(LedgerError):
    """Name would produce an id the ledger uses for itself (e.g. 'all')."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"'{name}' is a reserved name. Please choose another.")


class InvalidRecordError(LedgerError):
    """Submitted fields don't form a valid record (blank name, bad color...)."""

    @classmethod
    def from_validation_error(cls, error) -> "InvalidRecordError":
        first = error.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", str(error))
        return cls(f"{field}: {message}" if field else message)


class MalformedRecordError(LedgerError):
    """A record is missing a field the ledger needs. This is a data bug."""

    def __init__(self, record_id: Optional[str], field: str):
        self.record_id = record_id
        self.field = field
        super().__init__(
            f"Malformed record {record_id or '<no id>'}: missing '{field}'"
        )


class TransferPartiallyFailedError(LedgerError):
    """
    Second leg of a transfer failed after the first was written.

    compensated is True when the first leg was deleted again, so storage
    holds no trace of the transfer. When False, persisted_leg_id is still
    in storage and needs manual cleanup.
    """

    def __init__(
        self,
        transfer_id: str,
        persisted_leg_id: str,
        compensated: bool,
        reason: str,
    ):
        self.transfer_id = transfer_id
        self.persisted_leg_id = persisted_leg_id
        self.compensated = compensated
        self.reason = reason
        state = "rolled back" if compensated else "left in storage"
        super().__init__(
            f"Transfer {transfer_id} failed on its second leg ({reason}); "
            f"first leg {persisted_leg_id} was {state}"
        )
