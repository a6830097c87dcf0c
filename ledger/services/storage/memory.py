"""
In-Memory Storage Implementation

Process-local stores used by tests and the Streamlit app.

Records are deep-copied on the way in and on the way out, so no caller
can mutate stored state through a reference it holds. Every write
replaces a whole record under the store lock, which gives the per-record
atomicity the interface requires.
"""

import asyncio
from datetime import date
from typing import Optional
from uuid import UUID

from ledger.models.balance import DailyBalance
from ledger.models.transaction import Transaction, utc_now
from ledger.services.storage.interface import (
    BalanceStoreInterface,
    DuplicateError,
    NotFoundError,
    TransactionStoreInterface,
)


class InMemoryTransactionStore(TransactionStoreInterface):
    """Transactions kept in a dict keyed by ID."""

    def __init__(self, transactions: Optional[list[Transaction]] = None):
        self._transactions: dict[UUID, Transaction] = {}
        self._lock = asyncio.Lock()
        for tx in transactions or []:
            self._transactions[tx.id] = tx.model_copy(deep=True)

    async def get_by_date(self, day: date) -> list[Transaction]:
        return [
            tx.model_copy(deep=True)
            for tx in self._transactions.values()
            if tx.business_date == day
        ]

    async def get_by_date_range(
        self,
        start: date,
        end: date,
    ) -> list[Transaction]:
        matches = [
            tx.model_copy(deep=True)
            for tx in self._transactions.values()
            if start <= tx.business_date <= end
        ]
        matches.sort(key=lambda tx: tx.transaction_date, reverse=True)
        return matches

    async def get_by_id(self, transaction_id: UUID) -> Optional[Transaction]:
        tx = self._transactions.get(transaction_id)
        return tx.model_copy(deep=True) if tx else None

    async def add(self, transaction: Transaction) -> Transaction:
        async with self._lock:
            if transaction.id in self._transactions:
                raise DuplicateError(f"Transaction already exists: {transaction.id}")
            self._transactions[transaction.id] = transaction.model_copy(deep=True)
        return transaction.model_copy(deep=True)

    async def update(self, transaction: Transaction) -> Transaction:
        async with self._lock:
            if transaction.id not in self._transactions:
                raise NotFoundError(f"Transaction not found: {transaction.id}")
            self._transactions[transaction.id] = transaction.model_copy(deep=True)
        return transaction.model_copy(deep=True)

    async def delete(self, transaction_id: UUID) -> bool:
        async with self._lock:
            return self._transactions.pop(transaction_id, None) is not None


class InMemoryBalanceStore(BalanceStoreInterface):
    """Daily balances kept in a dict keyed by calendar date."""

    def __init__(self, balances: Optional[list[DailyBalance]] = None):
        self._balances: dict[date, DailyBalance] = {}
        self._lock = asyncio.Lock()
        for balance in balances or []:
            self._balances[balance.date] = balance.model_copy(deep=True)

    async def get_by_date(self, day: date) -> Optional[DailyBalance]:
        balance = self._balances.get(day)
        return balance.model_copy(deep=True) if balance else None

    async def get_most_recent(self) -> Optional[DailyBalance]:
        if not self._balances:
            return None
        return self._balances[max(self._balances)].model_copy(deep=True)

    async def get_latest_before(self, day: date) -> Optional[DailyBalance]:
        earlier = [d for d in self._balances if d < day]
        if not earlier:
            return None
        return self._balances[max(earlier)].model_copy(deep=True)

    async def get_by_date_range(
        self,
        start: date,
        end: date,
    ) -> list[DailyBalance]:
        return [
            self._balances[d].model_copy(deep=True)
            for d in sorted(self._balances)
            if start <= d <= end
        ]

    async def upsert_by_date(self, balance: DailyBalance) -> DailyBalance:
        async with self._lock:
            existing = self._balances.get(balance.date)
            if existing is None:
                stored = balance.model_copy(update={"last_updated": utc_now()}, deep=True)
            else:
                # Identity and opening balance belong to the first write
                opening = existing.opening_balance
                stored = DailyBalance(
                    id=existing.id,
                    date=existing.date,
                    opening_balance=opening,
                    total_credits=balance.total_credits,
                    total_debits=balance.total_debits,
                    closing_balance=opening + balance.total_credits - balance.total_debits,
                    credit_transaction_count=balance.credit_transaction_count,
                    debit_transaction_count=balance.debit_transaction_count,
                    total_transaction_count=balance.total_transaction_count,
                    last_updated=utc_now(),
                )
            self._balances[stored.date] = stored
        return stored.model_copy(deep=True)

    async def delete_by_date(self, day: date) -> bool:
        async with self._lock:
            return self._balances.pop(day, None) is not None
