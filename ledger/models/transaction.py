"""
Transaction Models for the Cash-Flow Ledger

A transaction is a single monetary movement. Amounts are always strictly
positive; the direction of the movement is carried by its kind.

CRITICAL: Consolidation only ever READS transactions. Nothing in the
balance pipeline mutates them.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


# Exclusive upper bound for a single movement
MAX_TRANSACTION_AMOUNT = Decimal("1000000")


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def business_day(value: date | datetime) -> date:
    """Calendar day of a date or datetime (time of day discarded)."""
    if isinstance(value, datetime):
        return value.date()
    return value


class TransactionKind(str, Enum):
    """
    Direction of a movement.

    There is no "unset" member: a persisted transaction is
    always a credit or a debit.
    """
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionDraft(BaseModel):
    """
    Payload used to create or update a transaction.

    Holds every transaction attribute except identity and timestamps.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What the movement was for"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        lt=MAX_TRANSACTION_AMOUNT,
        decimal_places=2,
        description="Amount of the movement (always positive)"
    )
    kind: TransactionKind = Field(
        ...,
        description="Credit or debit"
    )
    transaction_date: datetime = Field(
        ...,
        description="When the movement happened"
    )
    category: Optional[str] = Field(
        default=None,
        max_length=100,
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=500,
    )


class Transaction(TransactionDraft):
    """
    A recorded transaction.

    Identity is assigned at creation and never changes; every other field
    may be replaced through an update.
    """

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    created_at: datetime = Field(
        default_factory=utc_now,
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
    )

    @property
    def signed_amount(self) -> Decimal:
        """+amount for a credit, -amount for a debit."""
        if self.kind == TransactionKind.DEBIT:
            return -self.amount
        return self.amount

    @property
    def business_date(self) -> date:
        """Calendar day this transaction is consolidated into."""
        return business_day(self.transaction_date)

    @classmethod
    def from_draft(cls, draft: TransactionDraft) -> "Transaction":
        """Create a new transaction (fresh identity) from a draft."""
        return cls(**draft.model_dump())

    def apply(self, draft: TransactionDraft) -> "Transaction":
        """Return a copy with the draft's fields applied, same identity."""
        return Transaction(
            id=self.id,
            created_at=self.created_at,
            updated_at=utc_now(),
            **draft.model_dump(),
        )


class TransactionPage(BaseModel):
    """One page of a filtered transaction listing, newest first."""

    items: list[Transaction] = Field(default_factory=list)
    total_count: int = Field(default=0, ge=0)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1)

    @property
    def total_pages(self) -> int:
        return -(-self.total_count // self.page_size)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages
