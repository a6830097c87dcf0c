"""
Notification Events

Payloads published after a state change has been persisted, plus the
envelope the file queue writes to disk.

Each event is a durable record of what happened, whether or not anyone
is listening on its channel.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ledger.models.balance import CalendarDate, DailyBalance
from ledger.models.transaction import Transaction, TransactionKind, utc_now


# Queue names
DAILY_BALANCE_CONSOLIDATED = "daily_balance_consolidated"
TRANSACTION_CREATED = "transaction_created"
TRANSACTION_UPDATED = "transaction_updated"
TRANSACTION_DELETED = "transaction_deleted"


class DailyBalanceConsolidatedEvent(BaseModel):
    """Published after a daily balance has been written."""

    daily_balance_id: UUID
    date: CalendarDate
    opening_balance: Decimal
    total_credits: Decimal
    total_debits: Decimal
    closing_balance: Decimal
    credit_transaction_count: int
    debit_transaction_count: int
    total_transaction_count: int
    was_created: bool
    consolidated_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_balance(
        cls,
        balance: DailyBalance,
        was_created: bool,
    ) -> "DailyBalanceConsolidatedEvent":
        return cls(
            daily_balance_id=balance.id,
            date=balance.date,
            opening_balance=balance.opening_balance,
            total_credits=balance.total_credits,
            total_debits=balance.total_debits,
            closing_balance=balance.closing_balance,
            credit_transaction_count=balance.credit_transaction_count,
            debit_transaction_count=balance.debit_transaction_count,
            total_transaction_count=balance.total_transaction_count,
            was_created=was_created,
        )


class _TransactionEvent(BaseModel):
    transaction_id: UUID
    description: str
    amount: Decimal
    kind: TransactionKind
    transaction_date: datetime
    category: Optional[str] = None


class TransactionCreatedEvent(_TransactionEvent):
    """Published after a transaction has been recorded."""

    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_transaction(cls, tx: Transaction) -> "TransactionCreatedEvent":
        return cls(
            transaction_id=tx.id,
            description=tx.description,
            amount=tx.amount,
            kind=tx.kind,
            transaction_date=tx.transaction_date,
            category=tx.category,
            notes=tx.notes,
        )


class TransactionUpdatedEvent(_TransactionEvent):
    """Published after a transaction has been changed."""

    notes: Optional[str] = None
    updated_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_transaction(cls, tx: Transaction) -> "TransactionUpdatedEvent":
        return cls(
            transaction_id=tx.id,
            description=tx.description,
            amount=tx.amount,
            kind=tx.kind,
            transaction_date=tx.transaction_date,
            category=tx.category,
            notes=tx.notes,
        )


class TransactionDeletedEvent(_TransactionEvent):
    """Published after a transaction has been removed."""

    deleted_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_transaction(cls, tx: Transaction) -> "TransactionDeletedEvent":
        return cls(
            transaction_id=tx.id,
            description=tx.description,
            amount=tx.amount,
            kind=tx.kind,
            transaction_date=tx.transaction_date,
            category=tx.category,
        )


class QueueMessage(BaseModel):
    """
    Envelope written to a queue.

    `content` is the JSON-mode dump of the event, so Decimals arrive as
    strings and never lose precision.
    """

    id: UUID = Field(default_factory=uuid4)
    queue_name: str
    message_type: str
    created_at: datetime = Field(default_factory=utc_now)
    content: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def wrap(cls, event: BaseModel, queue_name: str) -> "QueueMessage":
        return cls(
            queue_name=queue_name,
            message_type=type(event).__name__,
            content=event.model_dump(mode="json"),
        )
