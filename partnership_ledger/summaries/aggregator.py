"""
Summary Aggregation

DESIGN DECISION: Summaries are pure functions of the loaded document.
Nothing aggregated is ever persisted, so a summary can never disagree
with the transactions it was computed from.

Splitting rule for transactions booked to "Both":
- a partner's own summary gets half the amount
- the combined summary gets the full amount, once
Half plus half equals the full amount, so per-partner balances add up
to the combined balance.
"""

from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel

from partnership_ledger.models.transaction import (
    BOTH_PARTNERS,
    Amount,
    LedgerDocument,
    Transaction,
    TransactionType,
)


HALF = Decimal("0.5")


class Summary(BaseModel):
    """Financial totals for one partner or for the whole partnership."""

    investments: Amount = Decimal("0")
    expenses: Amount = Decimal("0")
    profits: Amount = Decimal("0")
    withdrawals: Amount = Decimal("0")
    balance: Amount = Decimal("0")


def _share(transaction: Transaction, partner: Optional[str]) -> Optional[Decimal]:
    """Fraction of the transaction attributed to partner (None = excluded)."""
    if partner is None:
        return Decimal("1")
    if transaction.partner == BOTH_PARTNERS:
        return HALF
    if transaction.partner == partner:
        return Decimal("1")
    return None


def summary_for(document: LedgerDocument, partner: Optional[str] = None) -> Summary:
    """
    Compute totals over live (non-deleted) transactions.

    Args:
        document: The loaded ledger
        partner: A partner name, or None for the combined summary

    Returns:
        Summary with balance = (investments + profits) - (expenses + withdrawals)
    """
    totals = {kind: Decimal("0") for kind in TransactionType}

    for transaction in document.transactions:
        if transaction.deleted:
            continue
        share = _share(transaction, partner)
        if share is None:
            continue
        try:
            kind = TransactionType(transaction.type)
        except ValueError:
            continue  # Unknown types contribute nothing
        totals[kind] += transaction.amount * share

    investments = totals[TransactionType.INVESTMENT]
    expenses = totals[TransactionType.EXPENSE]
    profits = totals[TransactionType.PROFIT]
    withdrawals = totals[TransactionType.WITHDRAWAL]

    return Summary(
        investments=investments,
        expenses=expenses,
        profits=profits,
        withdrawals=withdrawals,
        balance=(investments + profits) - (expenses + withdrawals),
    )


def partner_summaries(
    document: LedgerDocument,
    partners: Iterable[str],
) -> dict[str, Summary]:
    """One summary per partner plus a "combined" entry."""
    summaries = {name: summary_for(document, name) for name in partners}
    summaries["combined"] = summary_for(document)
    return summaries


def live_transactions(
    document: LedgerDocument,
    transaction_type: Optional[str] = None,
    partner: Optional[str] = None,
) -> list[Transaction]:
    """
    Non-deleted transactions, optionally filtered, in display order.

    Filters match exactly: filtering by a partner does not include
    "Both" rows. Display order is by date, then by id.
    """
    selected = [
        t for t in document.transactions
        if not t.deleted
        and (not transaction_type or t.type == transaction_type)
        and (not partner or t.partner == partner)
    ]
    return sorted(selected, key=lambda t: (t.date, t.id))
