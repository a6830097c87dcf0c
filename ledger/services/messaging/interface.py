"""
Notification Port

Consolidation and transaction changes are announced after they have been
persisted. Delivery is best-effort: callers treat a failed publish as a
logged outcome, never as a failure of the operation that triggered it.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel


class NotificationPort(ABC):
    """
    Abstract interface for publishing events to named channels.
    """

    @abstractmethod
    async def publish(self, event: BaseModel, channel: str) -> bool:
        """
        Publish an event.

        Args:
            event: Pydantic event payload
            channel: Destination channel (queue) name

        Returns:
            True if the event was delivered, False if it was not

        Raises:
            PublishError: If delivery failed with an error
        """
        pass


class PublishError(Exception):
    """An event could not be delivered."""

    def __init__(self, channel: str, message: str):
        self.channel = channel
        super().__init__(f"Publish to '{channel}' failed: {message}")
