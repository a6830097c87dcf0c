"""
Daily Balance Models

A DailyBalance is the materialized summary of every transaction dated on
one calendar day, chained to the previous day through its opening balance.

INVARIANTS (checked on construction, an inconsistent record cannot exist):
1. total_transaction_count == credit_transaction_count + debit_transaction_count
2. closing_balance == opening_balance + total_credits - total_debits
   (within BALANCE_TOLERANCE)
3. totals and counts are never negative
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from ledger.models.transaction import business_day, utc_now


BALANCE_TOLERANCE = Decimal("0.01")

# Alias so the `date` field below does not shadow the type
CalendarDate = date


class BalanceInvariantError(ValueError):
    """A balance computation was asked to break one of its invariants."""
    pass


class DailyTotals(BaseModel):
    """Credits, debits and counts for one day, computed from zero."""

    total_credits: Decimal = Field(default=Decimal("0"), ge=0)
    total_debits: Decimal = Field(default=Decimal("0"), ge=0)
    credit_transaction_count: int = Field(default=0, ge=0)
    debit_transaction_count: int = Field(default=0, ge=0)

    @property
    def total_transaction_count(self) -> int:
        return self.credit_transaction_count + self.debit_transaction_count

    @property
    def net_movement(self) -> Decimal:
        return self.total_credits - self.total_debits


class DailyBalance(BaseModel):
    """
    Consolidated balance for one calendar date.

    Exactly one record exists per date. The opening balance is fixed the
    first time the date is consolidated; totals, counts and the closing
    balance are replaced on every re-consolidation.
    """

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique balance ID"
    )
    date: CalendarDate = Field(
        ...,
        description="Calendar day this balance summarizes"
    )
    opening_balance: Decimal = Field(
        default=Decimal("0"),
        description="Balance carried into the day"
    )
    total_credits: Decimal = Field(default=Decimal("0"), ge=0)
    total_debits: Decimal = Field(default=Decimal("0"), ge=0)
    closing_balance: Decimal = Field(
        default=Decimal("0"),
        description="opening + credits - debits"
    )
    credit_transaction_count: int = Field(default=0, ge=0)
    debit_transaction_count: int = Field(default=0, ge=0)
    total_transaction_count: int = Field(default=0, ge=0)
    last_updated: datetime = Field(
        default_factory=utc_now,
    )

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, v: Any) -> Any:
        """Discard any time-of-day component."""
        if isinstance(v, datetime):
            return business_day(v)
        return v

    @model_validator(mode="after")
    def check_invariants(self) -> "DailyBalance":
        """Reject records whose totals disagree with each other."""
        violations = self.invariant_violations()
        if violations:
            raise ValueError("; ".join(violations))
        return self

    @property
    def expected_closing_balance(self) -> Decimal:
        return self.opening_balance + self.total_credits - self.total_debits

    def invariant_violations(self) -> list[str]:
        """List every invariant this record breaks (empty when consistent)."""
        violations = []

        counted = self.credit_transaction_count + self.debit_transaction_count
        if self.total_transaction_count != counted:
            violations.append(
                f"Total transaction count {self.total_transaction_count} "
                f"does not equal credit + debit counts ({counted})"
            )

        drift = abs(self.closing_balance - self.expected_closing_balance)
        if drift > BALANCE_TOLERANCE:
            violations.append(
                f"Closing balance {self.closing_balance} does not equal "
                f"opening + credits - debits ({self.expected_closing_balance})"
            )

        return violations

    def to_response(self) -> dict:
        """Shape returned by the daily balance query."""
        return {
            "id": str(self.id),
            "date": self.date.isoformat(),
            "opening_balance": self.opening_balance,
            "total_credits": self.total_credits,
            "total_debits": self.total_debits,
            "closing_balance": self.closing_balance,
            "credit_transaction_count": self.credit_transaction_count,
            "debit_transaction_count": self.debit_transaction_count,
            "total_transaction_count": self.total_transaction_count,
            "last_updated": self.last_updated.isoformat(),
        }


class NotificationOutcome(BaseModel):
    """
    Result of the best-effort notification step.

    A failed outcome never turns into an error for the caller.
    """

    channel: str
    delivered: bool
    error: Optional[str] = None


class ConsolidationResult(BaseModel):
    """What a consolidation persisted, and whether it created the record."""

    balance: DailyBalance
    was_created: bool
    notification: NotificationOutcome

    def to_response(self) -> dict:
        """Shape returned by the consolidation command."""
        response = self.balance.to_response()
        response.pop("last_updated")
        response["was_created"] = self.was_created
        return response
