"""
Shared fixtures and fakes.

No real queues or databases in tests: stores are the in-memory ones,
wrapped where a test needs them slow, gated or failing.
"""

import asyncio
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import pytest

from ledger.audit import AuditLogger
from ledger.config import CarryForwardPolicy, LedgerSettings
from ledger.models.audit import AuditEvent
from ledger.models.balance import DailyBalance
from ledger.models.transaction import Transaction, TransactionKind
from ledger.orchestrator import ConsolidationFlow, TransactionFlow
from ledger.services.messaging import NotificationPort, PublishError
from ledger.services.storage import (
    InMemoryBalanceStore,
    InMemoryTransactionStore,
    StorageError,
)


DAY = date(2024, 3, 15)


def make_transaction(
    kind: TransactionKind,
    amount: str,
    day: date = DAY,
    hour: int = 10,
    **fields,
) -> Transaction:
    return Transaction(
        description=fields.pop("description", f"{kind.value} {amount}"),
        amount=Decimal(amount),
        kind=kind,
        transaction_date=datetime(day.year, day.month, day.day, hour, 30),
        **fields,
    )


def make_balance(
    day: date,
    opening: str = "0",
    credits: str = "0",
    debits: str = "0",
) -> DailyBalance:
    opening_balance = Decimal(opening)
    total_credits = Decimal(credits)
    total_debits = Decimal(debits)
    return DailyBalance(
        date=day,
        opening_balance=opening_balance,
        total_credits=total_credits,
        total_debits=total_debits,
        closing_balance=opening_balance + total_credits - total_debits,
    )


# =============================================================================
# PUBLISHERS
# =============================================================================

class RecordingPublisher(NotificationPort):
    def __init__(self):
        self.published: list[tuple[object, str]] = []

    async def publish(self, event, channel: str) -> bool:
        self.published.append((event, channel))
        return True

    def channels(self) -> list[str]:
        return [channel for _, channel in self.published]


class FailingPublisher(NotificationPort):
    def __init__(self, error: Optional[Exception] = None):
        self.error = error or PublishError("daily_balance_consolidated", "broker down")
        self.attempts = 0

    async def publish(self, event, channel: str) -> bool:
        self.attempts += 1
        raise self.error


class RejectingPublisher(NotificationPort):
    async def publish(self, event, channel: str) -> bool:
        return False


class SlowPublisher(NotificationPort):
    def __init__(self, delay: float):
        self.delay = delay

    async def publish(self, event, channel: str) -> bool:
        await asyncio.sleep(self.delay)
        return True


# =============================================================================
# STORES
# =============================================================================

class RecordingTransactionStore(InMemoryTransactionStore):
    """Remembers which read operations were called."""

    def __init__(self, transactions=None):
        super().__init__(transactions)
        self.calls: list[str] = []

    async def get_by_date(self, day):
        self.calls.append("get_by_date")
        return await super().get_by_date(day)

    async def get_by_date_range(self, start, end):
        self.calls.append("get_by_date_range")
        return await super().get_by_date_range(start, end)


class SlowTransactionStore(InMemoryTransactionStore):
    def __init__(self, delay: float, transactions=None):
        super().__init__(transactions)
        self.delay = delay

    async def get_by_date(self, day):
        await asyncio.sleep(self.delay)
        return await super().get_by_date(day)


class GatedTransactionStore(InMemoryTransactionStore):
    """get_by_date blocks until `release` is set."""

    def __init__(self, transactions=None):
        super().__init__(transactions)
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def get_by_date(self, day):
        self.entered.set()
        await self.release.wait()
        return await super().get_by_date(day)


class FailingTransactionStore(InMemoryTransactionStore):
    async def get_by_date(self, day):
        raise StorageError("transaction store unavailable")


class RacyBalanceStore(InMemoryBalanceStore):
    """Yields inside every read so concurrent callers interleave."""

    async def get_by_date(self, day):
        await asyncio.sleep(0.01)
        return await super().get_by_date(day)


class GatedBalanceStore(InMemoryBalanceStore):
    """upsert_by_date blocks until `release` is set."""

    def __init__(self, balances=None):
        super().__init__(balances)
        self.upsert_started = asyncio.Event()
        self.release = asyncio.Event()

    async def upsert_by_date(self, balance):
        self.upsert_started.set()
        await self.release.wait()
        return await super().upsert_by_date(balance)


class SlowUpsertBalanceStore(InMemoryBalanceStore):
    def __init__(self, delay: float, balances=None):
        super().__init__(balances)
        self.delay = delay

    async def upsert_by_date(self, balance):
        await asyncio.sleep(self.delay)
        return await super().upsert_by_date(balance)


class FailingUpsertBalanceStore(InMemoryBalanceStore):
    async def upsert_by_date(self, balance):
        raise StorageError("disk full")


# =============================================================================
# AUDIT
# =============================================================================

class RecordingAuditLogger(AuditLogger):
    def __init__(self):
        super().__init__()
        self.events: list[AuditEvent] = []

    async def log(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def event_types(self) -> list[str]:
        return [event.event_type.value for event in self.events]


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def settings() -> LedgerSettings:
    return LedgerSettings(
        store_timeout_seconds=1.0,
        notification_timeout_seconds=0.5,
        carry_forward_policy=CarryForwardPolicy.PRIOR_DATE,
    )


@pytest.fixture
def transaction_store() -> InMemoryTransactionStore:
    return InMemoryTransactionStore()


@pytest.fixture
def balance_store() -> InMemoryBalanceStore:
    return InMemoryBalanceStore()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def audit_logger() -> RecordingAuditLogger:
    return RecordingAuditLogger()


@pytest.fixture
def consolidation_flow(
    transaction_store,
    balance_store,
    publisher,
    audit_logger,
    settings,
) -> ConsolidationFlow:
    return ConsolidationFlow(
        transaction_store=transaction_store,
        balance_store=balance_store,
        notifier=publisher,
        audit_logger=audit_logger,
        settings=settings,
        channel="daily_balance_consolidated",
    )


@pytest.fixture
def transaction_flow(
    transaction_store,
    publisher,
    audit_logger,
    settings,
) -> TransactionFlow:
    return TransactionFlow(
        transaction_store=transaction_store,
        notifier=publisher,
        audit_logger=audit_logger,
        settings=settings,
    )
