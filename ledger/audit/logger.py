"""
Audit Logger

Every significant action in the ledger is logged as a structured event.

The audit logger:
- Is async so flows await it like any other collaborator
- Never raises into the calling flow (a broken log sink must not fail a
  consolidation)
- Supports correlation IDs to trace the events of one operation
"""

from datetime import date
from typing import Optional
from uuid import UUID, uuid4

import structlog

from ledger.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from ledger.models.balance import DailyBalance
from ledger.models.transaction import Transaction


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


class AuditLogger:
    """
    Central audit logging service.

    Events are written to the structured local log; severity selects the
    log level.
    """

    def __init__(self, logger=None):
        """
        Initialize audit logger.

        Args:
            logger: Optional structlog-compatible logger. Defaults to the
                    "ledger.audit" logger.
        """
        self._logger = logger or structlog.get_logger("ledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the event was written, False if the sink failed.
        """
        log_dict = event.to_log_dict()
        severity = event.severity.value

        try:
            if severity in ("error", "critical"):
                self._logger.error("audit_event", **log_dict)
            elif severity == "warning":
                self._logger.warning("audit_event", **log_dict)
            elif severity == "debug":
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            return False

        return True

    async def log_consolidation_started(
        self,
        day: date,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log the start of a consolidation."""
        event = AuditEventBuilder.consolidation_started(
            day=day,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_balance_consolidated(
        self,
        balance: DailyBalance,
        was_created: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a persisted daily balance."""
        event = AuditEventBuilder.balance_consolidated(
            balance_id=balance.id,
            day=balance.date,
            opening_balance=str(balance.opening_balance),
            total_credits=str(balance.total_credits),
            total_debits=str(balance.total_debits),
            closing_balance=str(balance.closing_balance),
            was_created=was_created,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_balance_not_found(
        self,
        day: date,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.balance_not_found(
            day=day,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_notification_sent(
        self,
        channel: str,
        entity_type: str,
        entity_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.notification_sent(
            channel=channel,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_notification_failed(
        self,
        channel: str,
        entity_type: str,
        entity_id: UUID,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a swallowed notification failure."""
        event = AuditEventBuilder.notification_failed(
            channel=channel,
            entity_type=entity_type,
            entity_id=entity_id,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_changed(
        self,
        event_type: AuditEventType,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a created, updated or deleted transaction."""
        event = AuditEventBuilder.transaction_changed(
            event_type=event_type,
            transaction_id=transaction.id,
            kind=transaction.kind.value,
            amount=str(transaction.amount),
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.validation_failed(
            operation=operation,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of an operation (e.g., one consolidation) and
    pass it through every step.
    """
    return uuid4()
