"""Daily balance consolidation: the pure engine and per-date locking."""

from ledger.consolidation.engine import ConsolidationEngine
from ledger.consolidation.locks import DateHold, DateLockRegistry

__all__ = [
    "ConsolidationEngine",
    "DateHold",
    "DateLockRegistry",
]
