"""
Storage Services Package

Abstract store interfaces, the storage error taxonomy, and the in-memory
implementations used by tests and the Streamlit app.
"""

from ledger.services.storage.interface import (
    BalanceStoreInterface,
    DailyBalanceNotFoundError,
    DuplicateError,
    NotFoundError,
    StorageError,
    StorageTimeoutError,
    TransactionStoreInterface,
)
from ledger.services.storage.memory import (
    InMemoryBalanceStore,
    InMemoryTransactionStore,
)

__all__ = [
    # Interfaces
    "BalanceStoreInterface",
    "TransactionStoreInterface",
    # Exceptions
    "DailyBalanceNotFoundError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    "StorageTimeoutError",
    # In-memory implementation
    "InMemoryBalanceStore",
    "InMemoryTransactionStore",
]
