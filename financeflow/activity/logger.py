"""
Activity Logger

Every ledger write, rejected request and storage failure is logged as a
structured event. This gives:
1. Traceability of what the user did in a session
2. The id of any transfer leg left behind after a partial failure
3. Debugging capability

Events are written to the local structured log only. Logging must never
break the main flow.
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from financeflow.models.activity import (
    ActivityEvent,
    ActivityEventBuilder,
    ActivitySeverity,
)


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class ActivityLogger:
    """
    Central activity logging service.

    Keeps the last events in memory so the UI can show what just
    happened in this session.
    """

    def __init__(self, history_size: int = 50):
        self._logger = structlog.get_logger("financeflow")
        self._history_size = history_size
        self._recent: list[ActivityEvent] = []

    @property
    def recent_events(self) -> list[ActivityEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._recent))

    def log(self, event: ActivityEvent) -> None:
        """Log an activity event at the level matching its severity."""
        log_dict = event.to_log_dict()

        if event.severity in (ActivitySeverity.ERROR, ActivitySeverity.CRITICAL):
            self._logger.error("activity_event", **log_dict)
        elif event.severity == ActivitySeverity.WARNING:
            self._logger.warning("activity_event", **log_dict)
        elif event.severity == ActivitySeverity.DEBUG:
            self._logger.debug("activity_event", **log_dict)
        else:
            self._logger.info("activity_event", **log_dict)

        self._recent.append(event)
        del self._recent[:-self._history_size]

    def log_ledger_loaded(
        self,
        transaction_count: int,
        account_count: int,
        backend: str,
    ) -> None:
        self.log(ActivityEventBuilder.ledger_loaded(
            transaction_count=transaction_count,
            account_count=account_count,
            backend=backend,
        ))

    def log_default_account_created(self, account_id: str) -> None:
        self.log(ActivityEventBuilder.default_account_created(account_id))

    def log_transaction_added(
        self,
        transaction_id: str,
        transaction_type: str,
        amount: str,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(ActivityEventBuilder.transaction_added(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            account_id=account_id,
            correlation_id=correlation_id,
        ))

    def log_transaction_deleted(
        self,
        transaction_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(ActivityEventBuilder.transaction_deleted(
            transaction_ids=transaction_ids,
            correlation_id=correlation_id,
        ))

    def log_transfer_recorded(
        self,
        transfer_id: str,
        from_account_id: str,
        to_account_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(ActivityEventBuilder.transfer_recorded(
            transfer_id=transfer_id,
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    def log_transfer_deleted(
        self,
        transfer_id: str,
        leg_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(ActivityEventBuilder.transfer_deleted(
            transfer_id=transfer_id,
            leg_ids=leg_ids,
            correlation_id=correlation_id,
        ))

    def log_transfer_compensated(
        self,
        transfer_id: str,
        removed_leg_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(ActivityEventBuilder.transfer_compensated(
            transfer_id=transfer_id,
            removed_leg_id=removed_leg_id,
            correlation_id=correlation_id,
        ))

    def log_transfer_partially_failed(
        self,
        transfer_id: str,
        persisted_leg_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(ActivityEventBuilder.transfer_partially_failed(
            transfer_id=transfer_id,
            persisted_leg_id=persisted_leg_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_reference_saved(
        self,
        entity_type: str,
        entity_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(ActivityEventBuilder.reference_saved(
            entity_type=entity_type,
            entity_id=entity_id,
            name=name,
            correlation_id=correlation_id,
        ))

    def log_reference_deleted(
        self,
        entity_type: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(ActivityEventBuilder.reference_deleted(
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))

    def log_validation_failed(
        self,
        operation: str,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(ActivityEventBuilder.validation_failed(
            operation=operation,
            error_type=type(error).__name__,
            error_message=str(error),
            correlation_id=correlation_id,
        ))

    def log_storage_error(
        self,
        operation: str,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(ActivityEventBuilder.storage_error(
            operation=operation,
            error_message=str(error),
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a transfer).
    Pass it through all subsequent operations.
    """
    return uuid4()
