"""
FinVue - Core Package

The storage and valuation core of a local-first personal finance
tracker: accounts, transactions, goals, trades and snapshots.

DESIGN PRINCIPLES:
1. Stored values are authoritative, derived values are recomputed
2. Deleting an account never leaves dangling references
3. Fail early, fail visibly
4. Every write is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "FinVue Team"
