"""
Consolidation Engine

Pure aggregation of one calendar day's transactions into a DailyBalance.

RULES:
1. Totals are computed from zero on every call, never added onto a
   previous aggregate
2. Iteration order does not matter (the aggregation is commutative)
3. Money is Decimal end to end
4. No I/O: the orchestrator fetches, this module only computes
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from ledger.models.balance import BalanceInvariantError, DailyBalance, DailyTotals
from ledger.models.transaction import Transaction, TransactionKind, utc_now


class ConsolidationEngine:
    """
    Computes daily aggregates.

    Stateless; one instance can be shared by every flow.
    """

    def aggregate(self, transactions: Iterable[Transaction]) -> DailyTotals:
        """
        Sum credits and debits separately, counting each side.

        Args:
            transactions: Movements of a single day, in any order

        Returns:
            DailyTotals starting from zero
        """
        total_credits = Decimal("0")
        total_debits = Decimal("0")
        credit_count = 0
        debit_count = 0

        for tx in transactions:
            if tx.kind == TransactionKind.CREDIT:
                total_credits += tx.amount
                credit_count += 1
            else:
                total_debits += tx.amount
                debit_count += 1

        return DailyTotals(
            total_credits=total_credits,
            total_debits=total_debits,
            credit_transaction_count=credit_count,
            debit_transaction_count=debit_count,
        )

    def consolidate(
        self,
        day: date,
        opening_balance: Decimal,
        transactions: Iterable[Transaction],
        balance_id: Optional[UUID] = None,
    ) -> DailyBalance:
        """
        Build the DailyBalance for `day`.

        Args:
            day: Target calendar day
            opening_balance: Balance carried into the day
            transactions: Movements dated on `day`
            balance_id: ID of the existing record, when re-consolidating

        Returns:
            A DailyBalance whose invariants hold

        Raises:
            BalanceInvariantError: If a transaction is dated on another day
        """
        transactions = list(transactions)

        strays = [tx.id for tx in transactions if tx.business_date != day]
        if strays:
            raise BalanceInvariantError(
                f"{len(strays)} transactions do not belong to {day.isoformat()}: "
                + ", ".join(str(tx_id) for tx_id in strays[:5])
            )

        totals = self.aggregate(transactions)

        fields = {}
        if balance_id is not None:
            fields["id"] = balance_id

        return DailyBalance(
            date=day,
            opening_balance=opening_balance,
            total_credits=totals.total_credits,
            total_debits=totals.total_debits,
            closing_balance=opening_balance + totals.net_movement,
            credit_transaction_count=totals.credit_transaction_count,
            debit_transaction_count=totals.debit_transaction_count,
            total_transaction_count=totals.total_transaction_count,
            last_updated=utc_now(),
            **fields,
        )
