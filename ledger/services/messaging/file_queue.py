"""
File Queue Publisher

Each message becomes one JSON file:

    <base_path>/<channel>/<message id>_<UTC timestamp>.json

The file holds a QueueMessage envelope. Files are written under a
temporary name and renamed into place, so a reader never sees a
half-written message. Blocking file I/O runs in a worker thread.
"""

import asyncio
import os
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import BaseModel, ValidationError
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ledger.config import get_settings
from ledger.models.events import QueueMessage
from ledger.services.messaging.interface import NotificationPort, PublishError


logger = structlog.get_logger(__name__)

_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S%fZ"


class FileQueuePublisher(NotificationPort):
    """
    Writes events as JSON files, one directory per channel.
    """

    def __init__(
        self,
        base_path: Optional[Union[str, Path]] = None,
        write_attempts: Optional[int] = None,
        wait_multiplier: float = 0.1,
        wait_max: float = 2.0,
    ):
        """
        Initialize the publisher.

        Args:
            base_path: Root directory of the queues. Defaults to settings.
            write_attempts: Attempts per message before giving up.
                            Defaults to settings.
            wait_multiplier: Exponential backoff multiplier, in seconds
            wait_max: Upper bound of a single backoff wait, in seconds
        """
        settings = get_settings().messaging
        self._base_path = Path(base_path or settings.base_path)
        self._write_attempts = write_attempts or settings.write_attempts
        self._wait_multiplier = wait_multiplier
        self._wait_max = wait_max

    @property
    def base_path(self) -> Path:
        return self._base_path

    def channel_path(self, channel: str) -> Path:
        return self._base_path / channel

    async def publish(self, event: BaseModel, channel: str) -> bool:
        """
        Wrap the event in a QueueMessage and write it to the channel.

        Raises:
            PublishError: If every write attempt failed
        """
        message = QueueMessage.wrap(event, channel)

        try:
            path = await asyncio.to_thread(self._write_with_retry, message)
        except OSError as e:
            logger.error(
                "queue_write_failed",
                channel=channel,
                message_id=str(message.id),
                attempts=self._write_attempts,
                error=str(e),
            )
            raise PublishError(channel, str(e)) from e

        logger.debug(
            "queue_message_written",
            channel=channel,
            message_id=str(message.id),
            path=str(path),
        )
        return True

    def _write_with_retry(self, message: QueueMessage) -> Path:
        retrying = Retrying(
            stop=stop_after_attempt(self._write_attempts),
            wait=wait_exponential(multiplier=self._wait_multiplier, max=self._wait_max),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )
        return retrying(self._write_message, message)

    def _write_message(self, message: QueueMessage) -> Path:
        directory = self.channel_path(message.queue_name)
        directory.mkdir(parents=True, exist_ok=True)

        stamp = message.created_at.strftime(_TIMESTAMP_FORMAT)
        target = directory / f"{message.id}_{stamp}.json"
        temp = target.with_suffix(".tmp")

        temp.write_text(message.model_dump_json(indent=2), encoding="utf-8")
        os.replace(temp, target)
        return target

    def read_messages(self, channel: str) -> list[QueueMessage]:
        """
        Read every message on a channel, oldest first.

        Files that cannot be read or parsed are skipped with a warning.
        """
        directory = self.channel_path(channel)
        if not directory.is_dir():
            return []

        messages = []
        for path in directory.glob("*.json"):
            try:
                messages.append(
                    QueueMessage.model_validate_json(path.read_text(encoding="utf-8"))
                )
            except (OSError, ValidationError) as e:
                logger.warning(
                    "queue_message_unreadable",
                    channel=channel,
                    path=str(path),
                    error=str(e),
                )

        messages.sort(key=lambda m: m.created_at)
        return messages
