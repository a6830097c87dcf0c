"""
Audit Models for the Cash-Flow Ledger

Every significant action in the ledger is logged for audit purposes:
1. Which date was consolidated, and what it produced
2. Whether a balance was created or replaced
3. Transaction changes
4. Failures, including the ones that are swallowed (notifications)

Audit events are append-only.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ledger.models.transaction import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Consolidation
    CONSOLIDATION_STARTED = "consolidation_started"
    BALANCE_CREATED = "balance_created"
    BALANCE_UPDATED = "balance_updated"
    BALANCE_NOT_FOUND = "balance_not_found"

    # Notifications
    NOTIFICATION_SENT = "notification_sent"
    NOTIFICATION_FAILED = "notification_failed"

    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Failures
    VALIDATION_FAILED = "validation_failed"
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of the audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'daily_balance', 'transaction')"
    )
    entity_id: Optional[UUID] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one consolidation)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.consolidation_started(day, correlation_id)
        event = AuditEventBuilder.balance_consolidated(balance, True, correlation_id)
    """

    @staticmethod
    def consolidation_started(
        day: date,
        transaction_count: int,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONSOLIDATION_STARTED,
            entity_type="daily_balance",
            correlation_id=correlation_id,
            description=f"Consolidating {day.isoformat()} from {transaction_count} transactions",
            details={
                "date": day.isoformat(),
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def balance_consolidated(
        balance_id: UUID,
        day: date,
        opening_balance: str,
        total_credits: str,
        total_debits: str,
        closing_balance: str,
        was_created: bool,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        event_type = (
            AuditEventType.BALANCE_CREATED
            if was_created
            else AuditEventType.BALANCE_UPDATED
        )
        verb = "created" if was_created else "updated"
        return AuditEvent(
            event_type=event_type,
            entity_type="daily_balance",
            entity_id=balance_id,
            correlation_id=correlation_id,
            description=f"Daily balance {verb} for {day.isoformat()}: closing {closing_balance}",
            details={
                "date": day.isoformat(),
                "opening_balance": opening_balance,
                "total_credits": total_credits,
                "total_debits": total_debits,
                "closing_balance": closing_balance,
            },
        )

    @staticmethod
    def balance_not_found(
        day: date,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type="daily_balance",
            correlation_id=correlation_id,
            description=f"No daily balance for {day.isoformat()}",
            details={"date": day.isoformat()},
        )

    @staticmethod
    def notification_sent(
        channel: str,
        entity_type: str,
        entity_id: UUID,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_SENT,
            severity=AuditSeverity.DEBUG,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Notification published to {channel}",
            details={"channel": channel},
        )

    @staticmethod
    def notification_failed(
        channel: str,
        entity_type: str,
        entity_id: UUID,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Notification to {channel} failed",
            error_message=error_message,
            details={"channel": channel},
        )

    @staticmethod
    def transaction_changed(
        event_type: AuditEventType,
        transaction_id: UUID,
        kind: str,
        amount: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        verb = event_type.value.split("_", 1)[1]
        return AuditEvent(
            event_type=event_type,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction {verb}: {kind} {amount}",
            details={
                "kind": kind,
                "amount": amount,
            },
        )

    @staticmethod
    def validation_failed(
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"{operation} rejected with {len(issues)} issues",
            details={
                "operation": operation,
                "issues": issues,
            },
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )
