"""Summary aggregation package."""

from partnership_ledger.summaries.aggregator import (
    Summary,
    live_transactions,
    partner_summaries,
    summary_for,
)

__all__ = ["Summary", "live_transactions", "partner_summaries", "summary_for"]
