"""
Storage Services Package

Provides abstract interfaces and the two concrete ledger stores:
Google Sheets (primary) and a local JSON file (fallback).
"""

from partnership_ledger.services.storage.interface import (
    BackendUnavailableError,
    FallbackLedgerStore,
    MalformedRecordError,
    NotFoundError,
    PersistenceFailedError,
    PrimaryLedgerStore,
    StorageError,
)
from partnership_ledger.services.storage.google_sheets import (
    LEDGER_COLUMNS,
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
)
from partnership_ledger.services.storage.local_file import LocalFileLedgerStore

__all__ = [
    # Interfaces
    "FallbackLedgerStore",
    "PrimaryLedgerStore",
    # Exceptions
    "BackendUnavailableError",
    "MalformedRecordError",
    "NotFoundError",
    "PersistenceFailedError",
    "StorageError",
    # Google Sheets implementation
    "LEDGER_COLUMNS",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStore",
    # Local file implementation
    "LocalFileLedgerStore",
]
