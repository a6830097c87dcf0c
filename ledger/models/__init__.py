"""
Data Models Package

All Pydantic models used by the ledger. Everything flowing through the
system conforms to these schemas.
"""

from ledger.models.transaction import (
    MAX_TRANSACTION_AMOUNT,
    Transaction,
    TransactionDraft,
    TransactionKind,
    TransactionPage,
    business_day,
    utc_now,
)
from ledger.models.balance import (
    BALANCE_TOLERANCE,
    BalanceInvariantError,
    ConsolidationResult,
    DailyBalance,
    DailyTotals,
    NotificationOutcome,
)
from ledger.models.events import (
    DAILY_BALANCE_CONSOLIDATED,
    TRANSACTION_CREATED,
    TRANSACTION_DELETED,
    TRANSACTION_UPDATED,
    DailyBalanceConsolidatedEvent,
    QueueMessage,
    TransactionCreatedEvent,
    TransactionDeletedEvent,
    TransactionUpdatedEvent,
)
from ledger.models.validation import ValidationIssue, ValidationResult
from ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "MAX_TRANSACTION_AMOUNT",
    "Transaction",
    "TransactionDraft",
    "TransactionKind",
    "TransactionPage",
    "business_day",
    "utc_now",
    # Balance models
    "BALANCE_TOLERANCE",
    "BalanceInvariantError",
    "ConsolidationResult",
    "DailyBalance",
    "DailyTotals",
    "NotificationOutcome",
    # Events
    "DAILY_BALANCE_CONSOLIDATED",
    "TRANSACTION_CREATED",
    "TRANSACTION_DELETED",
    "TRANSACTION_UPDATED",
    "DailyBalanceConsolidatedEvent",
    "QueueMessage",
    "TransactionCreatedEvent",
    "TransactionDeletedEvent",
    "TransactionUpdatedEvent",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
