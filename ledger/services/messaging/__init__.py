"""
Messaging Services Package

Best-effort publication of ledger events.
"""

from ledger.services.messaging.interface import NotificationPort, PublishError
from ledger.services.messaging.file_queue import FileQueuePublisher

__all__ = [
    "FileQueuePublisher",
    "NotificationPort",
    "PublishError",
]
