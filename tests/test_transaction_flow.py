"""Tests for TransactionFlow."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import FailingPublisher, RecordingAuditLogger, make_transaction
from ledger.config import LedgerSettings
from ledger.models.events import (
    TransactionCreatedEvent,
    TransactionDeletedEvent,
    TransactionUpdatedEvent,
)
from ledger.models.transaction import TransactionKind
from ledger.orchestrator import ConsolidationFlow, TransactionFlow
from ledger.services.storage import (
    InMemoryBalanceStore,
    InMemoryTransactionStore,
    NotFoundError,
)
from ledger.validation import ValidationFailedError


def _payload(**overrides) -> dict:
    payload = {
        "description": "Invoice #118",
        "amount": "500.00",
        "kind": "credit",
        "transaction_date": "2024-03-15T11:00:00",
        "category": "Sales",
    }
    payload.update(overrides)
    return payload


class TestTransactionCommands:
    """Tests for create / update / delete."""

    @pytest.mark.asyncio
    async def test_create(self, transaction_flow, transaction_store, publisher, audit_logger):
        tx = await transaction_flow.create(_payload())

        assert tx.amount == Decimal("500.00")
        assert tx.kind == TransactionKind.CREDIT
        assert (await transaction_store.get_by_id(tx.id)).description == "Invoice #118"

        event, channel = publisher.published[0]
        assert channel == "transaction_created"
        assert isinstance(event, TransactionCreatedEvent)
        assert event.transaction_id == tx.id
        assert "transaction_created" in audit_logger.event_types()

    @pytest.mark.asyncio
    async def test_invalid_payload_stores_nothing(
        self, transaction_flow, transaction_store, publisher, audit_logger
    ):
        with pytest.raises(ValidationFailedError):
            await transaction_flow.create(_payload(amount="0"))

        assert await transaction_store.get_by_date(date(2024, 3, 15)) == []
        assert publisher.published == []
        assert audit_logger.event_types() == ["validation_failed"]

    @pytest.mark.asyncio
    async def test_create_survives_notification_failure(self, transaction_store):
        flow = TransactionFlow(
            transaction_store=transaction_store,
            notifier=FailingPublisher(),
            settings=LedgerSettings(),
        )
        tx = await flow.create(_payload())
        assert await transaction_store.get_by_id(tx.id) is not None

    @pytest.mark.asyncio
    async def test_update_keeps_identity(self, transaction_flow, publisher):
        created = await transaction_flow.create(_payload())
        updated = await transaction_flow.update(
            str(created.id),
            _payload(amount="450.00", kind="debit", category=None),
        )

        assert updated.id == created.id
        assert updated.created_at == created.created_at
        assert updated.amount == Decimal("450.00")
        assert updated.kind == TransactionKind.DEBIT
        assert updated.category is None

        event, channel = publisher.published[-1]
        assert channel == "transaction_updated"
        assert isinstance(event, TransactionUpdatedEvent)

    @pytest.mark.asyncio
    async def test_update_unknown_transaction(self, transaction_flow):
        with pytest.raises(NotFoundError):
            await transaction_flow.update(uuid4(), _payload())

    @pytest.mark.asyncio
    async def test_update_rejects_malformed_id(self, transaction_flow):
        with pytest.raises(ValidationFailedError):
            await transaction_flow.update("not-a-uuid", _payload())

    @pytest.mark.asyncio
    async def test_delete(self, transaction_flow, transaction_store, publisher):
        created = await transaction_flow.create(_payload())
        deleted = await transaction_flow.delete(created.id)

        assert deleted.id == created.id
        assert await transaction_store.get_by_id(created.id) is None

        event, channel = publisher.published[-1]
        assert channel == "transaction_deleted"
        assert isinstance(event, TransactionDeletedEvent)

        with pytest.raises(NotFoundError):
            await transaction_flow.delete(created.id)

    @pytest.mark.asyncio
    async def test_changes_never_touch_balances(self, transaction_store, publisher):
        """Balances only move when a date is consolidated."""
        balance_store = InMemoryBalanceStore()
        settings = LedgerSettings()
        transactions = TransactionFlow(transaction_store, notifier=publisher, settings=settings)
        consolidation = ConsolidationFlow(
            transaction_store,
            balance_store,
            notifier=publisher,
            settings=settings,
        )

        await transactions.create(_payload())
        assert await balance_store.get_most_recent() is None

        result = await consolidation.consolidate("2024-03-15")
        assert result.balance.closing_balance == Decimal("500.00")

        await transactions.create(_payload(amount="20.00", kind="debit"))
        unchanged = await consolidation.get_daily_balance("2024-03-15")
        assert unchanged.closing_balance == Decimal("500.00")


class TestTransactionQueries:
    """Tests for get and the filtered, paged listing."""

    @pytest.fixture
    def seeded_flow(self) -> TransactionFlow:
        day = date(2024, 3, 10)
        transactions = [
            make_transaction(TransactionKind.CREDIT, "100.00", day=day, category="Sales"),
            make_transaction(TransactionKind.CREDIT, "200.00", day=day + timedelta(days=1), category="sales"),
            make_transaction(TransactionKind.DEBIT, "30.00", day=day + timedelta(days=2), category="Rent"),
            make_transaction(TransactionKind.DEBIT, "40.00", day=day + timedelta(days=3)),
            make_transaction(TransactionKind.CREDIT, "50.00", day=day + timedelta(days=20)),
        ]
        return TransactionFlow(
            InMemoryTransactionStore(transactions),
            audit_logger=RecordingAuditLogger(),
            settings=LedgerSettings(default_page_size=2, max_page_size=3),
        )

    @pytest.mark.asyncio
    async def test_get_unknown(self, seeded_flow):
        with pytest.raises(NotFoundError):
            await seeded_flow.get(uuid4())

    @pytest.mark.asyncio
    async def test_list_pages_newest_first(self, seeded_flow):
        page = await seeded_flow.list_transactions("2024-03-10", "2024-03-15")
        assert page.total_count == 4
        assert page.page_size == 2
        assert page.total_pages == 2
        assert [tx.amount for tx in page.items] == [Decimal("40.00"), Decimal("30.00")]

        second = await seeded_flow.list_transactions("2024-03-10", "2024-03-15", page=2)
        assert [tx.amount for tx in second.items] == [Decimal("200.00"), Decimal("100.00")]
        assert second.has_next is False

    @pytest.mark.asyncio
    async def test_filter_by_kind(self, seeded_flow):
        page = await seeded_flow.list_transactions(
            "2024-03-10", "2024-03-15", kind="DEBIT", page_size=3
        )
        assert page.total_count == 2
        assert all(tx.kind == TransactionKind.DEBIT for tx in page.items)

    @pytest.mark.asyncio
    async def test_filter_by_category_ignores_case(self, seeded_flow):
        page = await seeded_flow.list_transactions(
            "2024-03-10", "2024-03-15", category="SALES", page_size=3
        )
        assert page.total_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"page": 0},
            {"page_size": 0},
            {"page_size": 4},
            {"kind": "transfer"},
            {"start": "2024-03-15", "end": "2024-03-10"},
        ],
    )
    async def test_rejects_bad_listing_arguments(self, seeded_flow, kwargs):
        arguments = {"start": "2024-03-10", "end": "2024-03-15"}
        arguments.update(kwargs)
        with pytest.raises(ValidationFailedError):
            await seeded_flow.list_transactions(**arguments)
