"""Tests for the file queue publisher."""

import json
from datetime import date
from decimal import Decimal

import pytest

from conftest import make_balance
from ledger.models.events import DailyBalanceConsolidatedEvent
from ledger.services.messaging import FileQueuePublisher, PublishError


CHANNEL = "daily_balance_consolidated"


def _event(credits: str = "500.00") -> DailyBalanceConsolidatedEvent:
    balance = make_balance(date(2024, 3, 15), opening="1000.00", credits=credits)
    return DailyBalanceConsolidatedEvent.from_balance(balance, was_created=True)


class TestFileQueuePublisher:
    """Tests for FileQueuePublisher."""

    @pytest.mark.asyncio
    async def test_publish_writes_one_file_per_message(self, tmp_path):
        publisher = FileQueuePublisher(base_path=tmp_path, write_attempts=1)

        assert await publisher.publish(_event(), CHANNEL) is True
        assert await publisher.publish(_event(), CHANNEL) is True

        files = sorted((tmp_path / CHANNEL).glob("*.json"))
        assert len(files) == 2
        assert list((tmp_path / CHANNEL).glob("*.tmp")) == []

    @pytest.mark.asyncio
    async def test_file_holds_envelope(self, tmp_path):
        publisher = FileQueuePublisher(base_path=tmp_path, write_attempts=1)
        await publisher.publish(_event(), CHANNEL)

        path = next((tmp_path / CHANNEL).glob("*.json"))
        data = json.loads(path.read_text(encoding="utf-8"))

        assert data["queue_name"] == CHANNEL
        assert data["message_type"] == "DailyBalanceConsolidatedEvent"
        assert data["content"]["closing_balance"] == "1500.00"
        assert path.name.startswith(data["id"])

    @pytest.mark.asyncio
    async def test_read_messages_oldest_first(self, tmp_path):
        publisher = FileQueuePublisher(base_path=tmp_path, write_attempts=1)
        await publisher.publish(_event("1.00"), CHANNEL)
        await publisher.publish(_event("2.00"), CHANNEL)

        messages = publisher.read_messages(CHANNEL)
        assert [m.content["total_credits"] for m in messages] == ["1.00", "2.00"]
        assert Decimal(messages[1].content["closing_balance"]) == Decimal("1002.00")

    def test_read_messages_unknown_channel(self, tmp_path):
        publisher = FileQueuePublisher(base_path=tmp_path)
        assert publisher.read_messages("nothing_here") == []

    @pytest.mark.asyncio
    async def test_read_messages_skips_unreadable_files(self, tmp_path):
        publisher = FileQueuePublisher(base_path=tmp_path, write_attempts=1)
        await publisher.publish(_event(), CHANNEL)
        (tmp_path / CHANNEL / "garbage.json").write_text("{not json", encoding="utf-8")

        assert len(publisher.read_messages(CHANNEL)) == 1

    @pytest.mark.asyncio
    async def test_write_is_retried_then_succeeds(self, tmp_path, monkeypatch):
        publisher = FileQueuePublisher(
            base_path=tmp_path,
            write_attempts=3,
            wait_multiplier=0,
        )
        real_write = publisher._write_message
        attempts = []

        def flaky_write(message):
            attempts.append(message.id)
            if len(attempts) < 3:
                raise OSError("disk busy")
            return real_write(message)

        monkeypatch.setattr(publisher, "_write_message", flaky_write)

        assert await publisher.publish(_event(), CHANNEL) is True
        assert len(attempts) == 3
        assert len(publisher.read_messages(CHANNEL)) == 1

    @pytest.mark.asyncio
    async def test_publish_error_after_final_attempt(self, tmp_path):
        """A queue root that is a regular file can never be written to."""
        blocker = tmp_path / "not_a_directory"
        blocker.write_text("", encoding="utf-8")
        publisher = FileQueuePublisher(
            base_path=blocker,
            write_attempts=2,
            wait_multiplier=0,
        )

        with pytest.raises(PublishError) as exc_info:
            await publisher.publish(_event(), CHANNEL)
        assert exc_info.value.channel == CHANNEL
