"""
Main Orchestrator for the Cash-Flow Ledger

This module ties together all the components and defines the flows for:
1. Consolidation (date -> transactions -> aggregate -> upsert -> notify)
2. Daily balance queries
3. Transaction recording (validate -> persist -> notify)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Input is validated before any store is touched
- ConsolidationFlow is the only writer of daily balances
- At most one consolidation per date runs its read-modify-write at a time
- Persisting comes first, notifying second; a failed notification is
  reported in the result, never raised
- Every step is audited
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Any, Awaitable, Optional, Union
from uuid import UUID

import structlog

from ledger.audit import AuditLogger, create_correlation_id
from ledger.config import CarryForwardPolicy, LedgerSettings, get_settings
from ledger.consolidation import ConsolidationEngine, DateHold, DateLockRegistry
from ledger.models.audit import AuditEventType
from ledger.models.balance import ConsolidationResult, DailyBalance, NotificationOutcome
from ledger.models.events import (
    TRANSACTION_CREATED,
    TRANSACTION_DELETED,
    TRANSACTION_UPDATED,
    DailyBalanceConsolidatedEvent,
    TransactionCreatedEvent,
    TransactionDeletedEvent,
    TransactionUpdatedEvent,
)
from ledger.models.transaction import (
    Transaction,
    TransactionDraft,
    TransactionKind,
    TransactionPage,
)
from ledger.models.validation import ValidationIssue
from ledger.services.messaging import FileQueuePublisher, NotificationPort
from ledger.services.storage import (
    BalanceStoreInterface,
    DailyBalanceNotFoundError,
    InMemoryBalanceStore,
    InMemoryTransactionStore,
    NotFoundError,
    StorageTimeoutError,
    TransactionStoreInterface,
)
from ledger.validation import (
    TransactionValidator,
    ValidationFailedError,
    parse_business_date,
    validate_date_range,
    validate_paging,
)


logger = structlog.get_logger(__name__)


class _LedgerFlow:
    """
    Store timeouts, best-effort notification and audit helpers shared by
    the flows.
    """

    def __init__(
        self,
        notifier: Optional[NotificationPort],
        audit_logger: Optional[AuditLogger],
        settings: Optional[LedgerSettings],
    ):
        self._notifier = notifier
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().ledger

    async def _store_call(
        self,
        operation: str,
        call: Awaitable[Any],
        correlation_id: Optional[UUID],
    ) -> Any:
        """
        Await a store call under the store timeout.

        Raises:
            StorageTimeoutError: If the call did not finish in time
            Any exception raised by the store, unchanged
        """
        timeout = self._settings.store_timeout_seconds
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError:
            error = StorageTimeoutError(f"{operation} timed out after {timeout}s")
            await self._audit_storage_error(operation, error, correlation_id)
            raise error from None
        except NotFoundError:
            raise
        except Exception as e:
            await self._audit_storage_error(operation, e, correlation_id)
            raise

    async def _audit_storage_error(
        self,
        operation: str,
        error: Exception,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(error) or type(error).__name__,
                correlation_id=correlation_id,
            )

    async def _audit_validation_failed(
        self,
        operation: str,
        error: ValidationFailedError,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_validation_failed(
                operation=operation,
                issues=[issue.to_log_dict() for issue in error.issues],
                correlation_id=correlation_id,
            )

    async def _notify(
        self,
        event: Any,
        channel: str,
        entity_type: str,
        entity_id: UUID,
        correlation_id: Optional[UUID],
    ) -> NotificationOutcome:
        """
        Publish an event, best-effort.

        Timeouts, a False return and publisher exceptions all become a
        failed outcome. Nothing here raises, except cancellation.

        A timed-out publish is unconfirmed rather than known to be lost: a
        publisher that hands the write to a thread may still deliver it.
        """
        if self._notifier is None:
            return NotificationOutcome(
                channel=channel,
                delivered=False,
                error="No notifier configured",
            )

        timeout = self._settings.notification_timeout_seconds
        error = None
        try:
            delivered = await asyncio.wait_for(
                self._notifier.publish(event, channel),
                timeout=timeout,
            )
            if not delivered:
                error = "Publisher reported the event as not delivered"
        except asyncio.TimeoutError:
            delivered = False
            error = f"Publish not confirmed within {timeout}s; the event may still be delivered"
        except Exception as e:
            delivered = False
            error = str(e) or type(e).__name__

        delivered = bool(delivered)

        if self._audit_logger:
            if delivered:
                await self._audit_logger.log_notification_sent(
                    channel=channel,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    correlation_id=correlation_id,
                )
            else:
                await self._audit_logger.log_notification_failed(
                    channel=channel,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    error_message=error,
                    correlation_id=correlation_id,
                )

        return NotificationOutcome(channel=channel, delivered=delivered, error=error)


class ConsolidationFlow(_LedgerFlow):
    """
    Orchestrates daily balance consolidation.

    Flow for consolidate(day):
    1. Normalize the date (validation, before any store access)
    2. Fetch the day's transactions
    3. Fetch the day's existing balance, if any
    4. None: opening balance carried forward from a prior balance
    5. Existing: opening balance reused unchanged
    6. Compute the aggregate (pure engine)
    7. Upsert by date
    8. Publish "balance consolidated", best-effort
    9. Return the persisted aggregate, was_created and the notification outcome

    Steps 2-7 run under the per-date lock. Once the upsert is issued it
    runs to completion even if the caller cancels or times out, and the
    date stays locked until it has finished.
    """

    def __init__(
        self,
        transaction_store: TransactionStoreInterface,
        balance_store: BalanceStoreInterface,
        notifier: Optional[NotificationPort] = None,
        audit_logger: Optional[AuditLogger] = None,
        engine: Optional[ConsolidationEngine] = None,
        locks: Optional[DateLockRegistry] = None,
        settings: Optional[LedgerSettings] = None,
        channel: Optional[str] = None,
    ):
        super().__init__(notifier, audit_logger, settings)
        self._transactions = transaction_store
        self._balances = balance_store
        self._engine = engine or ConsolidationEngine()
        self._locks = locks or DateLockRegistry()
        self._channel = channel or get_settings().messaging.consolidated_channel

    @property
    def locks(self) -> DateLockRegistry:
        return self._locks

    async def consolidate(
        self,
        day: Any,
        correlation_id: Optional[UUID] = None,
    ) -> ConsolidationResult:
        """
        Recompute and persist the daily balance for one date.

        Args:
            day: date, datetime or ISO-8601 string
            correlation_id: Optional ID threaded into audit events

        Returns:
            ConsolidationResult (persisted balance, was_created, notification)

        Raises:
            ValidationFailedError: If `day` is not a usable date
            StorageError: If a store call fails or times out
        """
        correlation_id = correlation_id or create_correlation_id()
        day = await self._parse_day(day, "consolidate", correlation_id)

        async with self._locks.hold(day) as hold:
            transactions = await self._store_call(
                "transactions.get_by_date",
                self._transactions.get_by_date(day),
                correlation_id,
            )

            if self._audit_logger:
                await self._audit_logger.log_consolidation_started(
                    day=day,
                    transaction_count=len(transactions),
                    correlation_id=correlation_id,
                )

            existing = await self._store_call(
                "balances.get_by_date",
                self._balances.get_by_date(day),
                correlation_id,
            )

            if existing is None:
                opening_balance = await self._carried_forward_balance(day, correlation_id)
                balance_id = None
                was_created = True
            else:
                opening_balance = existing.opening_balance
                balance_id = existing.id
                was_created = False

            computed = self._engine.consolidate(
                day=day,
                opening_balance=opening_balance,
                transactions=transactions,
                balance_id=balance_id,
            )

            stored = await self._upsert(computed, hold, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_balance_consolidated(
                balance=stored,
                was_created=was_created,
                correlation_id=correlation_id,
            )

        notification = await self._notify(
            DailyBalanceConsolidatedEvent.from_balance(stored, was_created),
            self._channel,
            entity_type="daily_balance",
            entity_id=stored.id,
            correlation_id=correlation_id,
        )

        return ConsolidationResult(
            balance=stored,
            was_created=was_created,
            notification=notification,
        )

    async def _carried_forward_balance(
        self,
        day: date,
        correlation_id: Optional[UUID],
    ) -> Decimal:
        """Opening balance for a date consolidated for the first time."""
        if self._settings.carry_forward_policy == CarryForwardPolicy.MOST_RECENT:
            prior = await self._store_call(
                "balances.get_most_recent",
                self._balances.get_most_recent(),
                correlation_id,
            )
        else:
            prior = await self._store_call(
                "balances.get_latest_before",
                self._balances.get_latest_before(day),
                correlation_id,
            )

        if prior is None:
            return Decimal("0")
        return prior.closing_balance

    async def _upsert(
        self,
        balance: DailyBalance,
        hold: DateHold,
        correlation_id: Optional[UUID],
    ) -> DailyBalance:
        """
        Issue the upsert and see it through.

        Cancellation while the write is in flight is deferred until the
        write has finished. A timeout fails the call, but the write itself
        is left to complete or fail on its own, and the date lock is only
        released once it has.
        """
        timeout = self._settings.store_timeout_seconds
        write = asyncio.ensure_future(self._balances.upsert_by_date(balance))

        try:
            return await asyncio.wait_for(asyncio.shield(write), timeout=timeout)
        except asyncio.CancelledError:
            await self._drain(write)
            raise
        except asyncio.TimeoutError:
            write.add_done_callback(_log_late_write)
            hold.release_after(write)
            error = StorageTimeoutError(
                f"balances.upsert_by_date timed out after {timeout}s"
            )
            await self._audit_storage_error("balances.upsert_by_date", error, correlation_id)
            raise error from None
        except Exception as e:
            await self._audit_storage_error("balances.upsert_by_date", e, correlation_id)
            raise

    @staticmethod
    async def _drain(write: asyncio.Future) -> None:
        """Wait for an issued write, absorbing further cancellations."""
        while not write.done():
            try:
                await asyncio.shield(write)
            except asyncio.CancelledError:
                continue
            except Exception:
                break
        if not write.cancelled() and write.exception() is not None:
            logger.error(
                "balance_write_failed_during_cancellation",
                error=str(write.exception()),
            )

    async def get_daily_balance(
        self,
        day: Any,
        correlation_id: Optional[UUID] = None,
    ) -> DailyBalance:
        """
        Look up the balance of a date. Performs no computation.

        Raises:
            ValidationFailedError: If `day` is not a usable date
            DailyBalanceNotFoundError: If the date was never consolidated
        """
        correlation_id = correlation_id or create_correlation_id()
        day = await self._parse_day(day, "get_daily_balance", correlation_id)

        balance = await self._store_call(
            "balances.get_by_date",
            self._balances.get_by_date(day),
            correlation_id,
        )
        if balance is None:
            if self._audit_logger:
                await self._audit_logger.log_balance_not_found(
                    day=day,
                    correlation_id=correlation_id,
                )
            raise DailyBalanceNotFoundError(day)

        return balance

    async def list_daily_balances(
        self,
        start: Any,
        end: Any,
        correlation_id: Optional[UUID] = None,
    ) -> list[DailyBalance]:
        """Balances between two dates (inclusive), oldest first."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            start_day, end_day = validate_date_range(start, end)
        except ValidationFailedError as e:
            await self._audit_validation_failed("list_daily_balances", e, correlation_id)
            raise

        return await self._store_call(
            "balances.get_by_date_range",
            self._balances.get_by_date_range(start_day, end_day),
            correlation_id,
        )

    async def _parse_day(
        self,
        value: Any,
        operation: str,
        correlation_id: Optional[UUID],
    ) -> date:
        try:
            return parse_business_date(value)
        except ValidationFailedError as e:
            await self._audit_validation_failed(operation, e, correlation_id)
            raise


def _log_late_write(write: asyncio.Future) -> None:
    if write.cancelled():
        return
    error = write.exception()
    if error is not None:
        logger.error("late_balance_write_failed", error=str(error))
    else:
        logger.warning("late_balance_write_completed", date=write.result().date.isoformat())


class TransactionFlow(_LedgerFlow):
    """
    Orchestrates transaction recording.

    Flow:
    1. Validate → Two-stage validation, nothing stored on failure
    2. Persist → Transaction store
    3. Audit
    4. Notify → Best-effort transaction_* event

    Balances are never touched here; consolidation is an explicit call.
    """

    def __init__(
        self,
        transaction_store: TransactionStoreInterface,
        notifier: Optional[NotificationPort] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[TransactionValidator] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        super().__init__(notifier, audit_logger, settings)
        self._transactions = transaction_store
        self._validator = validator or TransactionValidator(
            max_amount=self._settings.max_transaction_amount,
            future_date_tolerance_days=self._settings.future_date_tolerance_days,
        )

    async def create(
        self,
        payload: Union[dict, TransactionDraft],
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Record a new transaction.

        Raises:
            ValidationFailedError: If the payload is rejected
            StorageError: If the store fails
        """
        correlation_id = correlation_id or create_correlation_id()
        draft = await self._validate(payload, "create_transaction", correlation_id)

        transaction = await self._store_call(
            "transactions.add",
            self._transactions.add(Transaction.from_draft(draft)),
            correlation_id,
        )

        await self._after_change(
            AuditEventType.TRANSACTION_CREATED,
            transaction,
            TransactionCreatedEvent.from_transaction(transaction),
            TRANSACTION_CREATED,
            correlation_id,
        )
        return transaction

    async def update(
        self,
        transaction_id: Union[UUID, str],
        payload: Union[dict, TransactionDraft],
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Replace every field of a transaction except its identity.

        Raises:
            ValidationFailedError: If the ID or payload is rejected
            NotFoundError: If no such transaction exists
        """
        correlation_id = correlation_id or create_correlation_id()
        transaction_id = await self._parse_id(transaction_id, "update_transaction", correlation_id)
        draft = await self._validate(payload, "update_transaction", correlation_id)

        existing = await self.get(transaction_id, correlation_id)
        transaction = await self._store_call(
            "transactions.update",
            self._transactions.update(existing.apply(draft)),
            correlation_id,
        )

        await self._after_change(
            AuditEventType.TRANSACTION_UPDATED,
            transaction,
            TransactionUpdatedEvent.from_transaction(transaction),
            TRANSACTION_UPDATED,
            correlation_id,
        )
        return transaction

    async def delete(
        self,
        transaction_id: Union[UUID, str],
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Remove a transaction.

        Returns:
            The transaction as it was before deletion

        Raises:
            NotFoundError: If no such transaction exists
        """
        correlation_id = correlation_id or create_correlation_id()
        transaction_id = await self._parse_id(transaction_id, "delete_transaction", correlation_id)

        existing = await self.get(transaction_id, correlation_id)
        deleted = await self._store_call(
            "transactions.delete",
            self._transactions.delete(transaction_id),
            correlation_id,
        )
        if not deleted:
            raise NotFoundError(f"Transaction not found: {transaction_id}")

        await self._after_change(
            AuditEventType.TRANSACTION_DELETED,
            existing,
            TransactionDeletedEvent.from_transaction(existing),
            TRANSACTION_DELETED,
            correlation_id,
        )
        return existing

    async def get(
        self,
        transaction_id: Union[UUID, str],
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Raises:
            NotFoundError: If no such transaction exists
        """
        transaction_id = await self._parse_id(transaction_id, "get_transaction", correlation_id)
        transaction = await self._store_call(
            "transactions.get_by_id",
            self._transactions.get_by_id(transaction_id),
            correlation_id,
        )
        if transaction is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        return transaction

    async def list_transactions(
        self,
        start: Any,
        end: Any,
        kind: Optional[Union[TransactionKind, str]] = None,
        category: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TransactionPage:
        """
        Transactions between two dates, filtered and paged, newest first.

        `category` matches case-insensitively.
        """
        correlation_id = correlation_id or create_correlation_id()
        if page_size is None:
            page_size = self._settings.default_page_size

        try:
            start_day, end_day = validate_date_range(start, end)
            validate_paging(page, page_size, self._settings.max_page_size)
            if kind is not None:
                kind = _parse_kind(kind)
        except ValidationFailedError as e:
            await self._audit_validation_failed("list_transactions", e, correlation_id)
            raise

        transactions = await self._store_call(
            "transactions.get_by_date_range",
            self._transactions.get_by_date_range(start_day, end_day),
            correlation_id,
        )

        if kind is not None:
            transactions = [tx for tx in transactions if tx.kind == kind]
        if category:
            wanted = category.strip().casefold()
            transactions = [
                tx for tx in transactions
                if tx.category and tx.category.casefold() == wanted
            ]

        offset = (page - 1) * page_size
        return TransactionPage(
            items=transactions[offset:offset + page_size],
            total_count=len(transactions),
            page=page,
            page_size=page_size,
        )

    async def _validate(
        self,
        payload: Union[dict, TransactionDraft],
        operation: str,
        correlation_id: Optional[UUID],
    ) -> TransactionDraft:
        try:
            return self._validator.ensure_valid(payload)
        except ValidationFailedError as e:
            await self._audit_validation_failed(operation, e, correlation_id)
            raise

    async def _parse_id(
        self,
        value: Union[UUID, str],
        operation: str,
        correlation_id: Optional[UUID],
    ) -> UUID:
        if isinstance(value, UUID):
            return value
        try:
            return UUID(str(value))
        except ValueError:
            error = ValidationFailedError([ValidationIssue(
                field="transaction_id",
                issue_type="invalid_format",
                message=f"'{value}' is not a valid transaction ID",
            )])
            await self._audit_validation_failed(operation, error, correlation_id)
            raise error

    async def _after_change(
        self,
        event_type: AuditEventType,
        transaction: Transaction,
        event: Any,
        channel: str,
        correlation_id: Optional[UUID],
    ) -> NotificationOutcome:
        if self._audit_logger:
            await self._audit_logger.log_transaction_changed(
                event_type=event_type,
                transaction=transaction,
                correlation_id=correlation_id,
            )
        return await self._notify(
            event,
            channel,
            entity_type="transaction",
            entity_id=transaction.id,
            correlation_id=correlation_id,
        )


def _parse_kind(value: Union[TransactionKind, str]) -> TransactionKind:
    try:
        return TransactionKind(str(value).strip().lower())
    except ValueError:
        raise ValidationFailedError([ValidationIssue(
            field="kind",
            issue_type="invalid_value",
            message=f"Kind must be 'credit' or 'debit', got '{value}'",
        )])


def create_app_components(
    queue_path: Optional[str] = None,
    transaction_store: Optional[TransactionStoreInterface] = None,
    balance_store: Optional[BalanceStoreInterface] = None,
) -> tuple[ConsolidationFlow, TransactionFlow, FileQueuePublisher]:
    """
    Factory function to create all application components.

    Args:
        queue_path: Directory of the file queues. Defaults to settings.
        transaction_store: Defaults to an in-memory store
        balance_store: Defaults to an in-memory store

    Returns:
        (consolidation_flow, transaction_flow, publisher)
    """
    settings = get_settings()

    transaction_store = transaction_store or InMemoryTransactionStore()
    balance_store = balance_store or InMemoryBalanceStore()
    publisher = FileQueuePublisher(
        base_path=queue_path or settings.messaging.base_path,
        write_attempts=settings.messaging.write_attempts,
    )
    audit_logger = AuditLogger()

    consolidation_flow = ConsolidationFlow(
        transaction_store=transaction_store,
        balance_store=balance_store,
        notifier=publisher,
        audit_logger=audit_logger,
        settings=settings.ledger,
        channel=settings.messaging.consolidated_channel,
    )

    transaction_flow = TransactionFlow(
        transaction_store=transaction_store,
        notifier=publisher,
        audit_logger=audit_logger,
        settings=settings.ledger,
    )

    return consolidation_flow, transaction_flow, publisher
