"""
Data Models Package

This package contains all Pydantic models used by the Partnership Ledger.
Everything read from or written to storage passes through these schemas.
"""

from partnership_ledger.models.transaction import (
    BOTH_PARTNERS,
    LEDGER_VERSION,
    InvalidTransactionError,
    LedgerDocument,
    MalformedRecordError,
    Transaction,
    TransactionInput,
    TransactionPatch,
    TransactionType,
    epoch_millis,
    ledger_now,
    parse_document,
    parse_transaction,
    validate_partner,
)

__all__ = [
    "BOTH_PARTNERS",
    "LEDGER_VERSION",
    "InvalidTransactionError",
    "LedgerDocument",
    "MalformedRecordError",
    "Transaction",
    "TransactionInput",
    "TransactionPatch",
    "TransactionType",
    "epoch_millis",
    "ledger_now",
    "parse_document",
    "parse_transaction",
    "validate_partner",
]
