"""
Abstract Storage Interface

The ledger talks to two stores through these interfaces:
1. TransactionStore - the recorded movements
2. BalanceStore - one daily balance per calendar date

Any implementation (SQL, document store, in-memory) must honour:
- Dates are compared at calendar-day granularity
- A balance write is atomic per record: readers see the old record or the
  new one, never a mix
- Failures surface as StorageError (or a subclass), never as None
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from ledger.models.balance import DailyBalance
from ledger.models.transaction import Transaction


class TransactionStoreInterface(ABC):
    """
    Abstract interface for transaction storage.

    Consolidation only uses the read-by-date operations.
    """

    @abstractmethod
    async def get_by_date(self, day: date) -> list[Transaction]:
        """
        All transactions whose transaction date falls on `day`.

        No ordering is guaranteed.
        """
        pass

    @abstractmethod
    async def get_by_date_range(
        self,
        start: date,
        end: date,
    ) -> list[Transaction]:
        """
        Transactions dated between `start` and `end` (inclusive days).

        Returns:
            Transactions, newest first
        """
        pass

    @abstractmethod
    async def get_by_id(self, transaction_id: UUID) -> Optional[Transaction]:
        """
        Retrieve a transaction by its ID.

        Returns:
            The transaction if found, None otherwise
        """
        pass

    @abstractmethod
    async def add(self, transaction: Transaction) -> Transaction:
        """
        Store a new transaction.

        Raises:
            DuplicateError: If a transaction with this ID already exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update(self, transaction: Transaction) -> Transaction:
        """
        Replace an existing transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, transaction_id: UUID) -> bool:
        """
        Delete a transaction by ID.

        Returns:
            True if deleted, False if it did not exist
        """
        pass


class BalanceStoreInterface(ABC):
    """
    Abstract interface for daily balance storage.

    The date is a uniqueness key: at most one record per calendar day.
    """

    @abstractmethod
    async def get_by_date(self, day: date) -> Optional[DailyBalance]:
        """
        Retrieve the balance for a calendar day.

        Returns:
            The balance if that day was ever consolidated, None otherwise
        """
        pass

    @abstractmethod
    async def get_most_recent(self) -> Optional[DailyBalance]:
        """The balance with the latest date overall, if any."""
        pass

    @abstractmethod
    async def get_latest_before(self, day: date) -> Optional[DailyBalance]:
        """The balance with the latest date strictly before `day`, if any."""
        pass

    @abstractmethod
    async def get_by_date_range(
        self,
        start: date,
        end: date,
    ) -> list[DailyBalance]:
        """
        Balances dated between `start` and `end` (inclusive).

        Returns:
            Balances ordered by date, oldest first
        """
        pass

    @abstractmethod
    async def upsert_by_date(self, balance: DailyBalance) -> DailyBalance:
        """
        Create or replace the balance for `balance.date`.

        If a record already exists for that date its ID and opening
        balance are kept; totals, counts and closing balance are replaced
        and last_updated is stamped.

        Returns:
            The record as stored

        Raises:
            StorageError: If the write fails (nothing is written)
        """
        pass

    @abstractmethod
    async def delete_by_date(self, day: date) -> bool:
        """
        Administrative removal of a balance.

        Returns:
            True if deleted, False if none existed
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DailyBalanceNotFoundError(NotFoundError):
    """No consolidation has ever happened for the requested date."""

    def __init__(self, day: date):
        self.day = day
        super().__init__(f"Daily balance for {day.isoformat()} not found")


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageTimeoutError(StorageError):
    """A store call did not complete within its timeout."""
    pass
