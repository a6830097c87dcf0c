"""Services package."""

from ledger.services.messaging import (
    FileQueuePublisher,
    NotificationPort,
    PublishError,
)
from ledger.services.storage import (
    BalanceStoreInterface,
    DailyBalanceNotFoundError,
    DuplicateError,
    InMemoryBalanceStore,
    InMemoryTransactionStore,
    NotFoundError,
    StorageError,
    StorageTimeoutError,
    TransactionStoreInterface,
)

__all__ = [
    # Messaging
    "FileQueuePublisher",
    "NotificationPort",
    "PublishError",
    # Storage
    "BalanceStoreInterface",
    "DailyBalanceNotFoundError",
    "DuplicateError",
    "InMemoryBalanceStore",
    "InMemoryTransactionStore",
    "NotFoundError",
    "StorageError",
    "StorageTimeoutError",
    "TransactionStoreInterface",
]
