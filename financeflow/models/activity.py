"""
Activity Models for FinanceFlow

Every user action that touches the ledger produces an activity event.
Events go to the structured local log so a failed transfer or a rejected
delete can be traced afterwards.

DESIGN DECISION: Activity events are log records only. They are not
persisted next to the ledger data; there is no audit trail.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class ActivityEventType(str, Enum):
    """Types of events we log."""
    # Loading
    LEDGER_LOADED = "ledger_loaded"
    DEFAULT_ACCOUNT_CREATED = "default_account_created"

    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_DELETED = "transaction_deleted"

    # Transfers
    TRANSFER_RECORDED = "transfer_recorded"
    TRANSFER_DELETED = "transfer_deleted"
    TRANSFER_COMPENSATED = "transfer_compensated"
    TRANSFER_PARTIALLY_FAILED = "transfer_partially_failed"

    # Reference data
    ACCOUNT_SAVED = "account_saved"
    ACCOUNT_DELETED = "account_deleted"
    CATEGORY_SAVED = "category_saved"
    CATEGORY_DELETED = "category_deleted"
    PAYMENT_METHOD_SAVED = "payment_method_saved"
    PAYMENT_METHOD_DELETED = "payment_method_deleted"

    # Failures
    VALIDATION_FAILED = "validation_failed"
    STORAGE_ERROR = "storage_error"


class ActivitySeverity(str, Enum):
    """Severity level for activity events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ActivityEvent(BaseModel):
    """A single activity event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: ActivityEventType
    severity: ActivitySeverity = ActivitySeverity.INFO

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'account', 'transfer')"
    )
    entity_id: Optional[str] = None

    # Ties together all events of one user action
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class ActivityEventBuilder:
    """
    Helper class to build activity events with common patterns.

    Usage:
        event = ActivityEventBuilder.transfer_recorded(transfer_id, ...)
    """

    @staticmethod
    def ledger_loaded(
        transaction_count: int,
        account_count: int,
        backend: str,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.LEDGER_LOADED,
            description=f"Ledger loaded from {backend}",
            details={
                "backend": backend,
                "transactions": transaction_count,
                "accounts": account_count,
            },
        )

    @staticmethod
    def default_account_created(account_id: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.DEFAULT_ACCOUNT_CREATED,
            entity_type="account",
            entity_id=account_id,
            description="Default account was missing and has been created",
        )

    @staticmethod
    def transaction_added(
        transaction_id: str,
        transaction_type: str,
        amount: str,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{transaction_type.capitalize()} of {amount} recorded",
            details={
                "type": transaction_type,
                "amount": amount,
                "account_id": account_id,
            },
        )

    @staticmethod
    def transaction_deleted(
        transaction_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_ids[0] if transaction_ids else None,
            correlation_id=correlation_id,
            description=f"Deleted {len(transaction_ids)} transaction(s)",
            details={"transaction_ids": transaction_ids},
        )

    @staticmethod
    def transfer_recorded(
        transfer_id: str,
        from_account_id: str,
        to_account_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.TRANSFER_RECORDED,
            entity_type="transfer",
            entity_id=transfer_id,
            correlation_id=correlation_id,
            description=f"Transfer of {amount} from {from_account_id} to {to_account_id}",
            details={
                "from_account_id": from_account_id,
                "to_account_id": to_account_id,
                "amount": amount,
            },
        )

    @staticmethod
    def transfer_deleted(
        transfer_id: str,
        leg_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.TRANSFER_DELETED,
            entity_type="transfer",
            entity_id=transfer_id,
            correlation_id=correlation_id,
            description="Transfer deleted with both legs",
            details={"leg_ids": leg_ids},
        )

    @staticmethod
    def transfer_compensated(
        transfer_id: str,
        removed_leg_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.TRANSFER_COMPENSATED,
            severity=ActivitySeverity.WARNING,
            entity_type="transfer",
            entity_id=transfer_id,
            correlation_id=correlation_id,
            description="Second leg failed; first leg removed",
            details={"removed_leg_id": removed_leg_id},
        )

    @staticmethod
    def transfer_partially_failed(
        transfer_id: str,
        persisted_leg_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.TRANSFER_PARTIALLY_FAILED,
            severity=ActivitySeverity.CRITICAL,
            entity_type="transfer",
            entity_id=transfer_id,
            correlation_id=correlation_id,
            description="Transfer left with a single persisted leg",
            details={"persisted_leg_id": persisted_leg_id},
            error_message=error_message,
        )

    @staticmethod
    def reference_saved(
        entity_type: str,
        entity_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        event_type = {
            "account": ActivityEventType.ACCOUNT_SAVED,
            "category": ActivityEventType.CATEGORY_SAVED,
            "payment_method": ActivityEventType.PAYMENT_METHOD_SAVED,
        }[entity_type]
        return ActivityEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.replace('_', ' ').capitalize()} saved: {name}",
            details={"name": name},
        )

    @staticmethod
    def reference_deleted(
        entity_type: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        event_type = {
            "account": ActivityEventType.ACCOUNT_DELETED,
            "category": ActivityEventType.CATEGORY_DELETED,
            "payment_method": ActivityEventType.PAYMENT_METHOD_DELETED,
        }[entity_type]
        return ActivityEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.replace('_', ' ').capitalize()} deleted",
        )

    @staticmethod
    def validation_failed(
        operation: str,
        error_type: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.VALIDATION_FAILED,
            severity=ActivitySeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Rejected {operation}: {error_type}",
            details={"operation": operation, "error_type": error_type},
            error_message=error_message,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.STORAGE_ERROR,
            severity=ActivitySeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Storage failure during {operation}",
            details={"operation": operation},
            error_message=error_message,
        )
