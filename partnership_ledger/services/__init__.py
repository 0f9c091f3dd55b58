"""Services package."""

from partnership_ledger.services.storage import (
    BackendUnavailableError,
    FallbackLedgerStore,
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
    LocalFileLedgerStore,
    MalformedRecordError,
    NotFoundError,
    PersistenceFailedError,
    PrimaryLedgerStore,
    StorageError,
)

__all__ = [
    "BackendUnavailableError",
    "FallbackLedgerStore",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStore",
    "LocalFileLedgerStore",
    "MalformedRecordError",
    "NotFoundError",
    "PersistenceFailedError",
    "PrimaryLedgerStore",
    "StorageError",
]
