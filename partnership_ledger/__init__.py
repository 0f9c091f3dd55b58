"""
Partnership Ledger - Source Package

A small ledger for two business partners tracking investments,
expenses, profits and withdrawals.

DESIGN PRINCIPLES:
1. Google Sheets is the primary store, a local JSON file is the fallback
2. A degraded store is better than no store
3. Records are never physically removed (soft delete only)
4. Every mutation is timestamped
5. Summaries are always derived, never stored
"""

__version__ = "1.0.0"
__author__ = "Partnership Ledger Team"
