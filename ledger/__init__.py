"""
Cash-Flow Ledger - Source Package

Records individual monetary movements and keeps a per-day aggregate
("daily balance") that can always be rebuilt from those movements.

DESIGN PRINCIPLES:
1. A daily balance is recomputed from scratch, never incremented
2. Money is Decimal end to end
3. One consolidation per date at a time
4. Persist first, notify best-effort afterwards
5. Storage and messaging are swappable
"""

__version__ = "1.0.0"
__author__ = "Cash-Flow Ledger Team"
